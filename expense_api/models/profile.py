"""
Profile: an account that can sign in (admin reviewer or regular submitter).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from expense_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


# ── Enums (stored as strings for readability + migration safety) ────────────


class Role:
    ADMIN = "admin"
    VIEWER = "viewer"

    ALL = (ADMIN, VIEWER)


# ── Models ──────────────────────────────────────────────────────────────────


class Profile(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "profiles"

    email: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True,
        comment="Always stored lower-case",
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(16), nullable=False, default=Role.VIEWER, server_default=Role.VIEWER,
        comment="admin | viewer",
    )

    # Payment details pre-filled on the submission form
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    bank_account: Mapped[Optional[str]] = mapped_column(String(34), nullable=True)
    bank_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    account_holder: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def __repr__(self) -> str:
        return f"<Profile {self.email} role={self.role}>"
