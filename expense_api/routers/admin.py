"""
Admin review API routes (admin role only).

Workflow:
  GET    /api/admin/stats                   → dashboard totals + recent activity
  PATCH  /api/admin/expenses/{id}/status    → move an expense through the workflow
  GET    /api/admin/expenses/{id}/audit     → audit history, newest first
  PATCH  /api/admin/expenses/{id}           → correct submitted data
  DELETE /api/admin/expenses/{id}           → remove an expense and its history
  GET    /api/admin/profiles                → all accounts
  PATCH  /api/admin/profiles/{id}/role      → promote / demote an account
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from expense_api.database import get_db
from expense_api.errors import AppError
from expense_api.models.audit import AuditLog
from expense_api.models.expense import Expense, ExpenseStatus
from expense_api.models.profile import Profile
from expense_api.routers.auth import require_admin
from expense_api.routers.expenses import check_lookup_keys, get_expense_or_404
from expense_api.schemas.admin import AuditLogResponse, ExpenseStats, RecentActivity
from expense_api.schemas.expense import ExpenseResponse, ExpenseUpdate, StatusUpdate
from expense_api.schemas.profile import ProfileResponse, RoleUpdate
from expense_api.services import expenses as expense_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ── Dashboard ─────────────────────────────────────────────────────────────────


@router.get("/stats", response_model=ExpenseStats)
def get_stats(
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_admin),
) -> ExpenseStats:
    stats = expense_service.get_expense_stats(db)
    recent = [_to_recent_activity(entry) for entry in expense_service.get_recent_audit_logs(db)]
    return ExpenseStats(**stats, recent_activity=recent)


# ── Status workflow ───────────────────────────────────────────────────────────


@router.patch("/expenses/{expense_id}/status", response_model=ExpenseResponse)
def update_status(
    expense_id: uuid.UUID,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_admin),
) -> Expense:
    """
    Move an expense to a new status.

      submitted    → ready_to_pay | declined | validated | flagged
      validated    → ready_to_pay | declined | flagged
      ready_to_pay → paid | declined
      flagged      → validated | declined
      paid, declined are final.

    Declining requires a reason.
    """
    expense = get_expense_or_404(expense_id, db)

    if not ExpenseStatus.can_transition(expense.status, payload.status):
        allowed = ExpenseStatus.TRANSITIONS.get(expense.status, ())
        raise AppError(
            status_code=status.HTTP_409_CONFLICT,
            code="INVALID_STATUS_TRANSITION",
            message=f"Cannot change status from '{expense.status}' to '{payload.status}'.",
            details={"current_status": expense.status, "allowed": list(allowed)},
        )

    if payload.status == ExpenseStatus.DECLINED and not (payload.declined_reason or "").strip():
        raise AppError(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="DECLINED_REASON_REQUIRED",
            message="A reason is required when declining an expense",
        )

    expense_service.apply_status_change(
        db,
        expense,
        payload.status,
        actor_id=current_user.id,
        declined_reason=payload.declined_reason,
        comments=payload.comments,
    )
    db.commit()
    db.refresh(expense)
    return expense


@router.get("/expenses/{expense_id}/audit", response_model=list[AuditLogResponse])
def get_expense_audit(
    expense_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_admin),
) -> list[AuditLogResponse]:
    get_expense_or_404(expense_id, db)
    return [_to_audit_response(entry) for entry in expense_service.get_audit_logs(db, expense_id)]


# ── Corrections ───────────────────────────────────────────────────────────────


@router.patch("/expenses/{expense_id}", response_model=ExpenseResponse)
def update_expense(
    expense_id: uuid.UUID,
    payload: ExpenseUpdate,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_admin),
) -> Expense:
    """Partial edit of submitted data. Omitted fields are left unchanged."""
    expense = get_expense_or_404(expense_id, db)
    check_lookup_keys(db, payload.event, payload.category)

    try:
        changed = expense_service.update_expense(db, expense, payload, current_user.id)
    except ValueError as exc:
        raise AppError(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="VALIDATION_ERROR",
            message=str(exc),
        )
    db.commit()
    db.refresh(expense)
    logger.info(
        "Expense %s updated by %s: %s",
        expense.reference_number,
        current_user.email,
        sorted(changed),
    )
    return expense


@router.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_admin),
) -> Response:
    expense = get_expense_or_404(expense_id, db)
    expense_service.delete_expense(db, expense)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Accounts ──────────────────────────────────────────────────────────────────


@router.get("/profiles", response_model=list[ProfileResponse])
def list_profiles(
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_admin),
) -> list[Profile]:
    return list(db.scalars(select(Profile).order_by(Profile.created_at.desc())).all())


@router.patch("/profiles/{profile_id}/role", response_model=ProfileResponse)
def update_role(
    profile_id: uuid.UUID,
    payload: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_admin),
) -> Profile:
    if profile_id == current_user.id:
        raise AppError(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="CANNOT_CHANGE_OWN_ROLE",
            message="You cannot change your own role",
        )
    profile = db.get(Profile, profile_id)
    if profile is None:
        raise AppError(
            status_code=status.HTTP_404_NOT_FOUND,
            code="PROFILE_NOT_FOUND",
            message="Profile not found",
        )
    old_role = profile.role
    profile.role = payload.role
    db.commit()
    db.refresh(profile)
    logger.info(
        "Role of %s changed %s → %s by %s",
        profile.email,
        old_role,
        profile.role,
        current_user.email,
    )
    return profile


# ── Converters ────────────────────────────────────────────────────────────────


def _audit_fields(entry: AuditLog) -> dict:
    return {
        "id": entry.id,
        "expense_id": entry.expense_id,
        "user_id": entry.user_id,
        "user_email": entry.user.email if entry.user else None,
        "action": entry.action,
        "old_value": entry.old_value,
        "new_value": entry.new_value,
        "created_at": entry.created_at,
    }


def _to_audit_response(entry: AuditLog) -> AuditLogResponse:
    return AuditLogResponse(**_audit_fields(entry))


def _to_recent_activity(entry: AuditLog) -> RecentActivity:
    return RecentActivity(
        **_audit_fields(entry),
        reference_number=entry.expense.reference_number if entry.expense else None,
        vendor_name=entry.expense.vendor_name if entry.expense else None,
    )
