"""
Expense-side entities: Expense, ExpenseLineItem.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from expense_api.models.audit import AuditLog
    from expense_api.models.profile import Profile


# ── Lifecycle state constants ────────────────────────────────────────────────


class ExpenseType:
    REIMBURSABLE = "reimbursable"
    NON_REIMBURSABLE = "non_reimbursable"
    PAYABLE = "payable"

    ALL = (REIMBURSABLE, NON_REIMBURSABLE, PAYABLE)


class ExpenseStatus:
    SUBMITTED = "submitted"
    VALIDATED = "validated"
    FLAGGED = "flagged"
    READY_TO_PAY = "ready_to_pay"
    PAID = "paid"
    DECLINED = "declined"

    ALL = (SUBMITTED, VALIDATED, FLAGGED, READY_TO_PAY, PAID, DECLINED)

    # Allowed next states; paid and declined are terminal.
    TRANSITIONS: dict[str, tuple[str, ...]] = {
        SUBMITTED: (READY_TO_PAY, DECLINED, VALIDATED, FLAGGED),
        VALIDATED: (READY_TO_PAY, DECLINED, FLAGGED),
        READY_TO_PAY: (PAID, DECLINED),
        FLAGGED: (VALIDATED, DECLINED),
        PAID: (),
        DECLINED: (),
    }

    # Statuses that record who approved the expense and when
    APPROVING = (READY_TO_PAY, VALIDATED)

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        return to_status in cls.TRANSITIONS.get(from_status, ())


# ── Models ──────────────────────────────────────────────────────────────────


class Expense(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "expenses"
    __table_args__ = (Index("ix_expenses_created_at", "created_at"),)

    reference_number: Mapped[str] = mapped_column(
        String(50), nullable=False, index=True,
        comment="EXP-YYYYMMDD-NNNN, shown to the submitter",
    )

    # ── Submitter ────────────────────────────────────────────────────────────
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    surname: Mapped[str] = mapped_column(String(100), nullable=False)

    # ── Classification ───────────────────────────────────────────────────────
    event: Mapped[str] = mapped_column(
        String(100), nullable=False, index=True, comment="events.key"
    )
    category: Mapped[str] = mapped_column(
        String(100), nullable=False, index=True, comment="categories.key"
    )
    type: Mapped[str] = mapped_column(
        String(32), nullable=False, comment="reimbursable | non_reimbursable | payable"
    )

    # ── Invoice ──────────────────────────────────────────────────────────────
    invoice_number: Mapped[str] = mapped_column(String(100), nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    vendor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    vendor_nif: Mapped[str] = mapped_column(String(20), nullable=False)

    # ── Amounts ──────────────────────────────────────────────────────────────
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="EUR", server_default="EUR"
    )
    tax_base: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    vat_21_base: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    vat_21_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    vat_10_base: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    vat_10_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    vat_4_base: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    vat_4_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    vat_0_base: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    vat_0_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    # ── Payment ──────────────────────────────────────────────────────────────
    bank_account: Mapped[Optional[str]] = mapped_column(String(34), nullable=True)
    account_holder: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # ── Attachment ───────────────────────────────────────────────────────────
    file_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    file_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # ── Workflow ─────────────────────────────────────────────────────────────
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ExpenseStatus.SUBMITTED,
        server_default=ExpenseStatus.SUBMITTED,
        index=True,
    )
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    declined_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ocr_confidence: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2), nullable=True, comment="0-100, set when fields came from OCR"
    )

    # Relationships
    line_items: Mapped[list["ExpenseLineItem"]] = relationship(
        "ExpenseLineItem",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseLineItem.created_at",
    )
    approver: Mapped[Optional["Profile"]] = relationship("Profile")
    audit_entries: Mapped[list["AuditLog"]] = relationship(
        "AuditLog",
        back_populates="expense",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Expense {self.reference_number} status={self.status}>"


class ExpenseLineItem(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "expense_line_items"

    expense_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    expense: Mapped["Expense"] = relationship("Expense", back_populates="line_items")

    def __repr__(self) -> str:
        return f"<ExpenseLineItem {self.description[:30]!r} total={self.total_price}>"
