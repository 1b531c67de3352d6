"""
Expense persistence helpers used by the expense and admin routers.

Functions here flush but never commit: the calling route owns the
transaction and commits once the whole request has succeeded.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from expense_api.models.audit import AuditLog
from expense_api.models.expense import Expense, ExpenseLineItem, ExpenseStatus
from expense_api.models.lookup import Category, Event
from expense_api.schemas.expense import (
    ExpenseCreate,
    ExpenseUpdate,
    LineItemCreate,
    check_reimbursable_bank_details,
)
from expense_api.services.audit import logger as audit

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "EXP"

SORTABLE_COLUMNS = {
    "created_at": Expense.created_at,
    "total_amount": Expense.total_amount,
    "invoice_date": Expense.invoice_date,
}


@dataclass
class ExpenseFilters:
    status: Optional[str] = None
    event: Optional[str] = None
    category: Optional[str] = None
    type: Optional[str] = None
    email: Optional[str] = None
    search: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


# ── Reference numbers ─────────────────────────────────────────────────────────


def generate_reference_number(db: Session, today: Optional[date] = None) -> str:
    """Next EXP-YYYYMMDD-NNNN for the given day (sequence restarts daily)."""
    day = today or datetime.now(timezone.utc).date()
    prefix = f"{REFERENCE_PREFIX}-{day:%Y%m%d}-"
    last = db.scalar(
        select(Expense.reference_number)
        .where(Expense.reference_number.like(f"{prefix}%"))
        # Numeric suffix: past -9999 the longer string is the later one
        .order_by(func.length(Expense.reference_number).desc(), Expense.reference_number.desc())
        .limit(1)
    )
    sequence = 1
    if last:
        try:
            sequence = int(last.rsplit("-", 1)[1]) + 1
        except (IndexError, ValueError):
            logger.warning("Unparseable reference number %r, restarting sequence", last)
    return f"{prefix}{sequence:04d}"


# ── Lookups ───────────────────────────────────────────────────────────────────


def is_active_event(db: Session, key: str) -> bool:
    return _is_active_lookup(db, Event, key)


def is_active_category(db: Session, key: str) -> bool:
    return _is_active_lookup(db, Category, key)


def _is_active_lookup(db: Session, model, key: str) -> bool:
    return (
        db.scalar(select(model.id).where(model.key == key, model.is_active.is_(True)))
        is not None
    )


# ── Create / read ─────────────────────────────────────────────────────────────


def _build_line_items(items: list[LineItemCreate]) -> list[ExpenseLineItem]:
    return [
        ExpenseLineItem(
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.total_price,
        )
        for item in items
    ]


def create_expense(
    db: Session, payload: ExpenseCreate, actor_id: Optional[uuid.UUID] = None
) -> Expense:
    """Insert a submitted expense with its line items and a `created` audit entry."""
    fields = payload.model_dump(exclude={"line_items"})
    expense = Expense(
        **fields,
        reference_number=generate_reference_number(db),
        status=ExpenseStatus.SUBMITTED,
    )
    expense.line_items = _build_line_items(payload.line_items)
    db.add(expense)
    db.flush()

    audit.log_expense_created(db, expense, actor_id=actor_id)
    logger.info(
        "Expense %s created for %s (%s %s)",
        expense.reference_number,
        expense.email,
        expense.total_amount,
        expense.currency,
    )
    return expense


def get_expense(db: Session, expense_id: uuid.UUID) -> Optional[Expense]:
    return db.get(Expense, expense_id)


def _escape_like(term: str) -> str:
    """Make % and _ in user input match literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def find_expenses(
    db: Session,
    filters: ExpenseFilters,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> tuple[list[Expense], int]:
    """Return one page of expenses matching the filters, plus the total match count."""
    conditions = []
    if filters.status:
        conditions.append(Expense.status == filters.status)
    if filters.event:
        conditions.append(Expense.event == filters.event)
    if filters.category:
        conditions.append(Expense.category == filters.category)
    if filters.type:
        conditions.append(Expense.type == filters.type)
    if filters.email:
        conditions.append(Expense.email == filters.email.lower())
    if filters.start_date:
        conditions.append(
            Expense.created_at >= datetime.combine(filters.start_date, time.min, tzinfo=timezone.utc)
        )
    if filters.end_date:
        # Inclusive: everything before midnight of the following day
        next_day = filters.end_date + timedelta(days=1)
        conditions.append(
            Expense.created_at < datetime.combine(next_day, time.min, tzinfo=timezone.utc)
        )
    if filters.search:
        pattern = f"%{_escape_like(filters.search.strip())}%"
        conditions.append(
            or_(
                Expense.vendor_name.ilike(pattern, escape="\\"),
                Expense.invoice_number.ilike(pattern, escape="\\"),
                Expense.reference_number.ilike(pattern, escape="\\"),
            )
        )

    total = db.scalar(select(func.count(Expense.id)).where(*conditions)) or 0

    column = SORTABLE_COLUMNS.get(sort_by, Expense.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()

    rows = db.scalars(
        select(Expense)
        .where(*conditions)
        .options(selectinload(Expense.line_items), selectinload(Expense.approver))
        .order_by(ordering, Expense.id)
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return list(rows), total


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


# ── Admin mutations ───────────────────────────────────────────────────────────


def apply_status_change(
    db: Session,
    expense: Expense,
    new_status: str,
    actor_id: uuid.UUID,
    declined_reason: Optional[str] = None,
    comments: Optional[str] = None,
) -> str:
    """
    Move an expense to new_status and stamp the workflow columns.
    The caller has already checked the transition is allowed.
    Returns the previous status.
    """
    previous = expense.status
    now = datetime.now(timezone.utc)

    expense.status = new_status
    if new_status in ExpenseStatus.APPROVING:
        expense.approved_by = actor_id
        expense.approved_at = now
    elif new_status == ExpenseStatus.PAID:
        expense.paid_at = now
    elif new_status == ExpenseStatus.DECLINED:
        expense.declined_reason = declined_reason
    if comments:
        expense.comments = comments
    db.flush()

    audit.log_status_changed(
        db,
        expense,
        previous,
        actor_id,
        declined_reason=declined_reason,
        comments=comments,
    )
    logger.info(
        "Expense %s status %s → %s by %s",
        expense.reference_number,
        previous,
        new_status,
        actor_id,
    )
    return previous


def update_expense(
    db: Session, expense: Expense, payload: ExpenseUpdate, actor_id: uuid.UUID
) -> dict[str, Any]:
    """
    Apply a partial admin edit. Raises ValueError if the merged expense breaks
    the reimbursable bank-details rule. Returns {field: new value} for the
    fields that actually changed.
    """
    changes = payload.model_dump(exclude_unset=True, exclude={"line_items"})

    check_reimbursable_bank_details(
        changes.get("type", expense.type),
        changes.get("bank_account", expense.bank_account),
        changes.get("account_holder", expense.account_holder),
    )

    old_values: dict[str, Any] = {}
    new_values: dict[str, Any] = {}
    for field, value in changes.items():
        current = getattr(expense, field)
        if current != value:
            old_values[field] = current
            new_values[field] = value
            setattr(expense, field, value)

    if payload.line_items is not None:
        old_values["line_items"] = len(expense.line_items)
        new_values["line_items"] = len(payload.line_items)
        expense.line_items = _build_line_items(payload.line_items)

    if new_values:
        db.flush()
        audit.log_expense_updated(db, expense, old_values, new_values, actor_id)
    return new_values


def delete_expense(db: Session, expense: Expense) -> None:
    db.delete(expense)
    db.flush()
    logger.info("Expense %s deleted", expense.reference_number)


# ── Audit history ─────────────────────────────────────────────────────────────


def get_audit_logs(db: Session, expense_id: uuid.UUID) -> list[AuditLog]:
    return list(
        db.scalars(
            select(AuditLog)
            .where(AuditLog.expense_id == expense_id)
            .options(selectinload(AuditLog.user))
            .order_by(AuditLog.created_at.desc())
        ).all()
    )


def get_recent_audit_logs(db: Session, limit: int = 10) -> list[AuditLog]:
    return list(
        db.scalars(
            select(AuditLog)
            .options(selectinload(AuditLog.user), selectinload(AuditLog.expense))
            .order_by(AuditLog.created_at.desc())
            .limit(limit)
        ).all()
    )


# ── Stats ─────────────────────────────────────────────────────────────────────


def _count_by(db: Session, column) -> dict[str, int]:
    return {
        key: count
        for key, count in db.execute(
            select(column, func.count(Expense.id)).group_by(column)
        ).all()
    }


def get_expense_stats(db: Session) -> dict[str, Any]:
    """Dashboard numbers: totals, per-status counts/amounts and breakdowns."""
    amounts = {
        status: (count, Decimal(amount or 0))
        for status, count, amount in db.execute(
            select(
                Expense.status,
                func.count(Expense.id),
                func.sum(Expense.total_amount),
            ).group_by(Expense.status)
        ).all()
    }

    def _pair(status: str) -> tuple[int, Decimal]:
        return amounts.get(status, (0, Decimal("0")))

    total_count = sum(count for count, _ in amounts.values())
    total_amount = sum((amount for _, amount in amounts.values()), Decimal("0"))

    pending_count, pending_amount = _pair(ExpenseStatus.SUBMITTED)
    approved_count, approved_amount = _pair(ExpenseStatus.READY_TO_PAY)
    paid_count, paid_amount = _pair(ExpenseStatus.PAID)
    declined_count, declined_amount = _pair(ExpenseStatus.DECLINED)

    return {
        "total_expenses": total_count,
        "total_amount": total_amount,
        "pending_count": pending_count,
        "pending_amount": pending_amount,
        "approved_count": approved_count,
        "approved_amount": approved_amount,
        "paid_count": paid_count,
        "paid_amount": paid_amount,
        "declined_count": declined_count,
        "declined_amount": declined_amount,
        "by_status": {status: count for status, (count, _) in amounts.items()},
        "by_event": _count_by(db, Expense.event),
        "by_category": _count_by(db, Expense.category),
    }
