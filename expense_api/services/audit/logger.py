"""
Audit Logger: the only way to write AuditLog rows.

Design rules enforced here:
  - created_at is always server-set (DB default), never passed by application
  - old/new values are always serialized to plain dicts (no ORM objects)
  - All writes go through log_event(), no direct AuditLog instantiation elsewhere
  - This module never raises: audit failures are logged but do not block the main flow
"""

import json
import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from expense_api.models.audit import AuditAction, AuditLog

logger = logging.getLogger(__name__)


def log_event(
    db: Session,
    expense_id: uuid.UUID,
    action: str,
    old_value: Optional[dict[str, Any]] = None,
    new_value: Optional[dict[str, Any]] = None,
    user_id: Optional[uuid.UUID] = None,
    flush: bool = True,
) -> None:
    """
    Append an audit entry for an expense.

    Args:
        db:         SQLAlchemy session (caller manages transaction)
        expense_id: The expense that changed
        action:     "created", "expense_updated", "status_changed_to_<status>"
        old_value:  Snapshot of the changed fields before the change
        new_value:  Snapshot of the changed fields after the change
        user_id:    Profile.id of the actor; None for anonymous submissions
        flush:      If True, flush to DB immediately (within the caller's transaction)

    Does not raise: exceptions are caught and logged as warnings.
    """
    try:
        entry = AuditLog(
            expense_id=expense_id,
            user_id=user_id,
            action=action,
            old_value=_safe_payload(old_value) if old_value is not None else None,
            new_value=_safe_payload(new_value) if new_value is not None else None,
        )
        db.add(entry)
        if flush:
            db.flush()
    except Exception as exc:
        logger.warning(
            "Failed to write audit entry %r for expense %s: %s",
            action,
            expense_id,
            exc,
        )


def _safe_payload(payload: dict) -> dict:
    """
    Ensure payload is JSON-serializable.
    Converts common non-serializable types (UUID, date/datetime, Decimal) to strings.
    """

    def default(obj: Any) -> Any:
        if isinstance(obj, uuid.UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

    # Round-trip through JSON to strip any non-serializable types
    return json.loads(json.dumps(payload, default=default))


# ── Convenience wrappers for common events ────────────────────────────────────


def log_expense_created(db: Session, expense, actor_id: Optional[uuid.UUID] = None) -> None:
    log_event(
        db,
        expense.id,
        AuditAction.CREATED,
        new_value={
            "status": expense.status,
            "reference_number": expense.reference_number,
            "total_amount": expense.total_amount,
        },
        user_id=actor_id,
    )


def log_status_changed(
    db: Session,
    expense,
    from_status: str,
    actor_id: uuid.UUID,
    declined_reason: Optional[str] = None,
    comments: Optional[str] = None,
) -> None:
    new_value: dict[str, Any] = {"status": expense.status}
    if declined_reason:
        new_value["declined_reason"] = declined_reason
    if comments:
        new_value["comments"] = comments
    log_event(
        db,
        expense.id,
        AuditAction.status_changed(expense.status),
        old_value={"status": from_status},
        new_value=new_value,
        user_id=actor_id,
    )


def log_expense_updated(
    db: Session,
    expense,
    old_values: dict[str, Any],
    new_values: dict[str, Any],
    actor_id: uuid.UUID,
) -> None:
    log_event(
        db,
        expense.id,
        AuditAction.UPDATED,
        old_value=old_values,
        new_value=new_values,
        user_id=actor_id,
    )
