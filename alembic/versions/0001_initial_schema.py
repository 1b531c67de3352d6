"""Initial schema: profiles, lookups, expenses, line items, audit log

Revision ID: 0001
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _money(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.Numeric(10, 2), nullable=nullable)


def upgrade() -> None:
    # ── profiles ──────────────────────────────────────────────────────────────
    op.create_table(
        "profiles",
        _uuid_pk(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(16), nullable=False, server_default="viewer"),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("bank_account", sa.String(34), nullable=True),
        sa.Column("bank_name", sa.String(255), nullable=True),
        sa.Column("account_holder", sa.String(255), nullable=True),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)

    # ── events / categories ───────────────────────────────────────────────────
    for table in ("events", "categories"):
        op.create_table(
            table,
            _uuid_pk(),
            sa.Column("key", sa.String(100), nullable=False, unique=True),
            sa.Column("label", sa.String(255), nullable=False),
            sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
            *_timestamps(),
        )

    # ── expenses ──────────────────────────────────────────────────────────────
    op.create_table(
        "expenses",
        _uuid_pk(),
        sa.Column("reference_number", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("surname", sa.String(100), nullable=False),
        sa.Column("event", sa.String(100), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("invoice_number", sa.String(100), nullable=False),
        sa.Column("invoice_date", sa.Date, nullable=False),
        sa.Column("vendor_name", sa.String(200), nullable=False),
        sa.Column("vendor_nif", sa.String(20), nullable=False),
        _money("total_amount", nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="EUR"),
        _money("tax_base"),
        _money("vat_21_base"),
        _money("vat_21_amount"),
        _money("vat_10_base"),
        _money("vat_10_amount"),
        _money("vat_4_base"),
        _money("vat_4_amount"),
        _money("vat_0_base"),
        _money("vat_0_amount"),
        sa.Column("bank_account", sa.String(34), nullable=True),
        sa.Column("account_holder", sa.String(255), nullable=True),
        sa.Column("file_url", sa.String(500), nullable=True),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="submitted"),
        sa.Column(
            "approved_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("declined_reason", sa.Text, nullable=True),
        sa.Column("comments", sa.Text, nullable=True),
        sa.Column("ocr_confidence", sa.Numeric(5, 2), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_expenses_reference_number", "expenses", ["reference_number"])
    op.create_index("ix_expenses_email", "expenses", ["email"])
    op.create_index("ix_expenses_event", "expenses", ["event"])
    op.create_index("ix_expenses_category", "expenses", ["category"])
    op.create_index("ix_expenses_status", "expenses", ["status"])
    op.create_index("ix_expenses_created_at", "expenses", ["created_at"])

    # ── expense_line_items ────────────────────────────────────────────────────
    op.create_table(
        "expense_line_items",
        _uuid_pk(),
        sa.Column(
            "expense_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("expenses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("description", sa.Text, nullable=False),
        _money("quantity", nullable=False),
        _money("unit_price", nullable=False),
        _money("total_price", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )
    op.create_index("ix_expense_line_items_expense_id", "expense_line_items", ["expense_id"])

    # ── audit_log ─────────────────────────────────────────────────────────────
    op.create_table(
        "audit_log",
        _uuid_pk(),
        sa.Column(
            "expense_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("expenses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("old_value", postgresql.JSONB, nullable=True),
        sa.Column("new_value", postgresql.JSONB, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )
    op.create_index("ix_audit_log_expense_id", "audit_log", ["expense_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("expense_line_items")
    op.drop_table("expenses")
    op.drop_table("categories")
    op.drop_table("events")
    op.drop_table("profiles")
