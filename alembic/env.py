"""
Alembic environment for the expense API schema.

The database URL always comes from expense_api.settings (DATABASE_URL), never
from alembic.ini. Migrations use PostgreSQL-only features (gen_random_uuid(),
JSONB), so a SQLite URL is refused here; SQLite databases used for local
runs and tests are built with Base.metadata.create_all() instead.
"""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

import expense_api.models  # noqa: F401  (registers profiles, expenses, audit_log, lookups)
from expense_api.models.base import Base
from expense_api.settings import settings

config = context.config

if settings.is_sqlite:
    raise RuntimeError(
        "Migrations target PostgreSQL; point DATABASE_URL at a Postgres database "
        "(SQLite schemas are created with Base.metadata.create_all())"
    )

config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Money columns are Numeric(10, 2) and status/type are plain strings, so type
# and server-default drift both matter to autogenerate.
COMPARE_OPTIONS = {"compare_type": True, "compare_server_default": True}


def run_migrations_offline() -> None:
    """Emit the SQL for `alembic upgrade --sql` without connecting."""
    context.configure(
        url=settings.database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, **COMPARE_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
