from expense_api.models.base import Base  # noqa: F401
from expense_api.models.profile import Profile, Role  # noqa: F401
from expense_api.models.expense import (  # noqa: F401
    Expense,
    ExpenseLineItem,
    ExpenseStatus,
    ExpenseType,
)
from expense_api.models.audit import AuditAction, AuditLog  # noqa: F401
from expense_api.models.lookup import Category, Event  # noqa: F401
