"""
Lookup tables for the submission form: Event and Category.

Both share the same shape (key, label, is_active). Expenses reference them
by key, so deactivating a row hides it from the form without touching
historical expenses.
"""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from expense_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class LookupMixin:
    key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )


class Event(Base, UUIDPrimaryKeyMixin, TimestampMixin, LookupMixin):
    __tablename__ = "events"

    def __repr__(self) -> str:
        return f"<Event {self.key}>"


class Category(Base, UUIDPrimaryKeyMixin, TimestampMixin, LookupMixin):
    __tablename__ = "categories"

    def __repr__(self) -> str:
        return f"<Category {self.key}>"
