"""
SQLAlchemy engine and session setup.

Usage in FastAPI route handlers:
    from expense_api.database import get_db
    def my_route(db: Session = Depends(get_db)): ...

Usage in scripts:
    from expense_api.database import SessionLocal
    with SessionLocal() as db:
        ...
"""

import time
from collections.abc import Generator
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from expense_api.settings import settings


def _engine_kwargs() -> dict:
    # SQLite (local/test runs) has no connection pool sizing and needs
    # cross-thread access for the TestClient.
    if settings.is_sqlite:
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}


# ── Engine ─────────────────────────────────────────────────────────────────
engine = create_engine(
    settings.database_url,
    echo=settings.is_development,  # log SQL in dev only
    **_engine_kwargs(),
)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    class_=Session,
)


# ── FastAPI dependency ──────────────────────────────────────────────────────
def get_db() -> Generator[Session, None, None]:
    """Yield a database session, ensuring it is closed after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ── Health check helpers ────────────────────────────────────────────────────
def check_db_connection() -> bool:
    """Return True if the database is reachable. Used by /api/health."""
    return measure_db_latency() is not None


def measure_db_latency() -> Optional[float]:
    """Round-trip a SELECT 1 and return the latency in ms, or None on failure."""
    started = time.perf_counter()
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        return None
    return round((time.perf_counter() - started) * 1000, 2)
