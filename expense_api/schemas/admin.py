"""Admin dashboard schemas: stats and audit history."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from expense_api.schemas.common import BaseSchema


class AuditLogResponse(BaseSchema):
    id: uuid.UUID
    expense_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    user_email: Optional[str] = None
    action: str
    old_value: Optional[dict[str, Any]] = None
    new_value: Optional[dict[str, Any]] = None
    created_at: datetime


class RecentActivity(AuditLogResponse):
    reference_number: Optional[str] = None
    vendor_name: Optional[str] = None


class ExpenseStats(BaseSchema):
    total_expenses: int
    total_amount: Decimal
    pending_count: int
    pending_amount: Decimal
    approved_count: int
    approved_amount: Decimal
    paid_count: int
    paid_amount: Decimal
    declined_count: int
    declined_amount: Decimal
    by_status: dict[str, int]
    by_event: dict[str, int]
    by_category: dict[str, int]
    recent_activity: list[RecentActivity]
