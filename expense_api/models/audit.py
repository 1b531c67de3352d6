"""
AuditLog: the per-expense audit trail.

  Rows are written only through expense_api.services.audit.logger and are
  never updated. They disappear only when their expense is deleted
  (ON DELETE CASCADE).

  The DB-level server_default on created_at (not application code) keeps
  the timestamp authoritative.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import DateTime, ForeignKey, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_api.models.base import Base, JSONType

if TYPE_CHECKING:
    from expense_api.models.expense import Expense
    from expense_api.models.profile import Profile


class AuditAction:
    CREATED = "created"
    UPDATED = "expense_updated"
    STATUS_CHANGED_PREFIX = "status_changed_to_"

    @classmethod
    def status_changed(cls, new_status: str) -> str:
        return f"{cls.STATUS_CHANGED_PREFIX}{new_status}"


class AuditLog(Base):
    __tablename__ = "audit_log"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    expense_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        comment="Profile that made the change; NULL for anonymous submissions",
    )
    action: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="created | expense_updated | status_changed_to_<status>",
    )

    # ── State snapshot ────────────────────────────────────────────────────────
    old_value: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    new_value: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    # ── Timestamp (server-authoritative) ─────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    expense: Mapped["Expense"] = relationship("Expense", back_populates="audit_entries")
    user: Mapped[Optional["Profile"]] = relationship("Profile")

    def __repr__(self) -> str:
        return f"<AuditLog action={self.action!r} expense={self.expense_id}>"
