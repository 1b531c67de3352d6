"""
Expense submission and listing routes.

Workflow:
  POST /api/expenses        → public submission form (a token is optional)
  GET  /api/expenses        → paginated list; viewers only see their own
  GET  /api/expenses/{id}   → single expense with line items
"""

import uuid
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from expense_api.database import get_db
from expense_api.errors import AppError
from expense_api.models.expense import Expense
from expense_api.models.profile import Profile
from expense_api.routers.auth import get_current_user, get_optional_user
from expense_api.schemas.common import Pagination
from expense_api.schemas.expense import ExpenseCreate, ExpenseListResponse, ExpenseResponse
from expense_api.services import expenses as expense_service

router = APIRouter(prefix="/api/expenses", tags=["expenses"])


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
def submit_expense(
    payload: ExpenseCreate,
    db: Session = Depends(get_db),
    current_user: Optional[Profile] = Depends(get_optional_user),
) -> Expense:
    """
    Submit a new expense. Anonymous submissions are allowed; when a token is
    sent the audit entry records who submitted it.
    """
    check_lookup_keys(db, payload.event, payload.category)

    expense = expense_service.create_expense(
        db, payload, actor_id=current_user.id if current_user else None
    )
    db.commit()
    db.refresh(expense)
    return expense


@router.get("", response_model=ExpenseListResponse)
def list_expenses(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    event: Optional[str] = None,
    category: Optional[str] = None,
    expense_type: Optional[str] = Query(None, alias="type"),
    search: Optional[str] = Query(None, max_length=100),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    sort_by: Literal["created_at", "total_amount", "invoice_date"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> ExpenseListResponse:
    """
    Filtered, sorted, paginated expense list.
    Admins see every expense; viewers only those submitted with their email.
    """
    filters = expense_service.ExpenseFilters(
        status=status_filter,
        event=event,
        category=category,
        type=expense_type,
        search=search,
        start_date=start_date,
        end_date=end_date,
        email=None if current_user.is_admin else current_user.email,
    )
    rows, total = expense_service.find_expenses(
        db, filters, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
    )
    return ExpenseListResponse(
        data=[ExpenseResponse.model_validate(row) for row in rows],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=expense_service.total_pages(total, limit),
        ),
    )


@router.get("/{expense_id}", response_model=ExpenseResponse)
def get_expense(
    expense_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> Expense:
    expense = get_expense_or_404(expense_id, db)
    if not current_user.is_admin and expense.email != current_user.email:
        raise AppError(
            status_code=status.HTTP_403_FORBIDDEN,
            code="FORBIDDEN",
            message="You do not have access to this expense",
        )
    return expense


# ── Helpers (shared with the admin router) ────────────────────────────────────


def get_expense_or_404(expense_id: uuid.UUID, db: Session) -> Expense:
    expense = expense_service.get_expense(db, expense_id)
    if expense is None:
        raise AppError(
            status_code=status.HTTP_404_NOT_FOUND,
            code="EXPENSE_NOT_FOUND",
            message="Expense not found",
        )
    return expense


def check_lookup_keys(
    db: Session, event: Optional[str], category: Optional[str]
) -> None:
    """400 unless event/category (when given) name active lookup rows."""
    if event is not None and not expense_service.is_active_event(db, event):
        raise AppError(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="INVALID_EVENT",
            message=f"Unknown or inactive event: {event}",
        )
    if category is not None and not expense_service.is_active_category(db, category):
        raise AppError(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="INVALID_CATEGORY",
            message=f"Unknown or inactive category: {category}",
        )
