"""
Expense and line item schemas: request and response shapes for the API.

Field rules mirror what the submission form enforces client-side; the
bank-details rule for reimbursable expenses is checked here too so that
every entry point (public form, admin edit) goes through the same code.
"""

import re
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional

from dateutil import parser as date_parser
from pydantic import EmailStr, Field, field_validator, model_validator

from expense_api.models.expense import ExpenseType
from expense_api.schemas.common import BaseSchema, Pagination, TimestampedSchema

NIF_PATTERN = r"^[A-Z0-9]+$"

Money = Annotated[Decimal, Field(max_digits=10, decimal_places=2)]
NonNegativeMoney = Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)]
PositiveMoney = Annotated[Decimal, Field(gt=0, max_digits=10, decimal_places=2)]

ExpenseTypeLiteral = Literal["reimbursable", "non_reimbursable", "payable"]


# ── Normalisers (shared with profile schemas) ─────────────────────────────────


def normalise_bank_account(v):
    """Strip spaces/dashes and upper-case an IBAN-style account number."""
    if v is None:
        return None
    if not isinstance(v, str):
        return v
    cleaned = re.sub(r"[\s-]", "", v).upper()
    return cleaned or None


def parse_invoice_date(v):
    """Accept ISO dates and other unambiguous day-first formats (31/01/2025)."""
    if v is None or isinstance(v, (date, datetime)):
        return v.date() if isinstance(v, datetime) else v
    if isinstance(v, str):
        value = v.strip()
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
        try:
            return date_parser.parse(value, dayfirst=True).date()
        except (ValueError, OverflowError):
            raise ValueError("Invalid date, expected YYYY-MM-DD")
    return v


def check_reimbursable_bank_details(
    expense_type: Optional[str],
    bank_account: Optional[str],
    account_holder: Optional[str],
) -> None:
    if expense_type == ExpenseType.REIMBURSABLE and not (bank_account and account_holder):
        raise ValueError(
            "Bank account and account holder are required for reimbursable expenses"
        )


# ── Line items ───────────────────────────────────────────────────────────────


class LineItemCreate(BaseSchema):
    description: str = Field(..., min_length=1, max_length=500)
    quantity: NonNegativeMoney = Decimal("1")
    unit_price: NonNegativeMoney
    total_price: NonNegativeMoney


class LineItemResponse(BaseSchema):
    id: uuid.UUID
    description: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal


# ── Expense create / update ──────────────────────────────────────────────────


class _ExpenseFieldRules(BaseSchema):
    """Normalisers shared by create and update payloads."""

    @field_validator("email", check_fields=False)
    @classmethod
    def lower_email(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("vendor_nif", "currency", mode="before", check_fields=False)
    @classmethod
    def upper_code(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("name", "surname", "vendor_name", "account_holder", mode="before", check_fields=False)
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("bank_account", mode="before", check_fields=False)
    @classmethod
    def clean_bank_account(cls, v):
        return normalise_bank_account(v)

    @field_validator("invoice_date", mode="before", check_fields=False)
    @classmethod
    def clean_invoice_date(cls, v):
        return parse_invoice_date(v)


class ExpenseCreate(_ExpenseFieldRules):
    """Payload of the public submission form."""

    # Submitter
    email: EmailStr
    phone: str = Field(..., min_length=9, max_length=20)
    name: str = Field(..., min_length=2, max_length=100)
    surname: str = Field(..., min_length=2, max_length=100)

    # Classification
    event: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=100)
    type: ExpenseTypeLiteral

    # Invoice
    invoice_number: str = Field(..., min_length=1, max_length=100)
    invoice_date: date
    vendor_name: str = Field(..., min_length=2, max_length=200)
    vendor_nif: str = Field(..., min_length=9, max_length=20, pattern=NIF_PATTERN)

    # Amounts
    total_amount: PositiveMoney
    currency: str = Field("EUR", pattern=r"^[A-Z]{3}$")
    tax_base: Optional[NonNegativeMoney] = None
    vat_21_base: Optional[NonNegativeMoney] = None
    vat_21_amount: Optional[NonNegativeMoney] = None
    vat_10_base: Optional[NonNegativeMoney] = None
    vat_10_amount: Optional[NonNegativeMoney] = None
    vat_4_base: Optional[NonNegativeMoney] = None
    vat_4_amount: Optional[NonNegativeMoney] = None
    vat_0_base: Optional[NonNegativeMoney] = None
    vat_0_amount: Optional[NonNegativeMoney] = None

    # Payment
    bank_account: Optional[str] = Field(None, min_length=8, max_length=34, pattern=NIF_PATTERN)
    account_holder: Optional[str] = Field(None, max_length=255)

    # Attachment (from /api/ocr/extract)
    file_url: Optional[str] = Field(None, max_length=500)
    file_name: Optional[str] = Field(None, max_length=255)

    comments: Optional[str] = Field(None, max_length=1000)
    ocr_confidence: Optional[Annotated[Decimal, Field(ge=0, le=100, max_digits=5, decimal_places=2)]] = None

    line_items: list[LineItemCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def bank_details_for_reimbursable(self) -> "ExpenseCreate":
        check_reimbursable_bank_details(self.type, self.bank_account, self.account_holder)
        return self


class ExpenseUpdate(_ExpenseFieldRules):
    """
    Admin correction of a submitted expense. Omitted fields are left unchanged.
    The reimbursable rule is re-checked against the merged result in the service.
    """

    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=9, max_length=20)
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    surname: Optional[str] = Field(None, min_length=2, max_length=100)
    event: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[ExpenseTypeLiteral] = None
    invoice_number: Optional[str] = Field(None, min_length=1, max_length=100)
    invoice_date: Optional[date] = None
    vendor_name: Optional[str] = Field(None, min_length=2, max_length=200)
    vendor_nif: Optional[str] = Field(None, min_length=9, max_length=20, pattern=NIF_PATTERN)
    total_amount: Optional[PositiveMoney] = None
    currency: Optional[str] = Field(None, pattern=r"^[A-Z]{3}$")
    tax_base: Optional[NonNegativeMoney] = None
    vat_21_base: Optional[NonNegativeMoney] = None
    vat_21_amount: Optional[NonNegativeMoney] = None
    vat_10_base: Optional[NonNegativeMoney] = None
    vat_10_amount: Optional[NonNegativeMoney] = None
    vat_4_base: Optional[NonNegativeMoney] = None
    vat_4_amount: Optional[NonNegativeMoney] = None
    vat_0_base: Optional[NonNegativeMoney] = None
    vat_0_amount: Optional[NonNegativeMoney] = None
    bank_account: Optional[str] = Field(None, min_length=8, max_length=34, pattern=NIF_PATTERN)
    account_holder: Optional[str] = Field(None, max_length=255)
    comments: Optional[str] = Field(None, max_length=1000)
    line_items: Optional[list[LineItemCreate]] = None

    # Runs only for fields present in the body
    @field_validator(
        "email", "phone", "name", "surname", "event", "category", "type",
        "invoice_number", "invoice_date", "vendor_name", "vendor_nif",
        "total_amount", "currency",
    )
    @classmethod
    def required_fields_not_null(cls, v):
        if v is None:
            raise ValueError("This field cannot be cleared")
        return v


class StatusUpdate(BaseSchema):
    status: Literal["submitted", "validated", "flagged", "ready_to_pay", "paid", "declined"]
    declined_reason: Optional[str] = Field(None, max_length=1000)
    comments: Optional[str] = Field(None, max_length=1000)


# ── Responses ────────────────────────────────────────────────────────────────


class ApproverSummary(BaseSchema):
    id: uuid.UUID
    email: str
    name: str


class ExpenseResponse(TimestampedSchema):
    """Full expense detail."""

    reference_number: str
    email: str
    phone: str
    name: str
    surname: str
    event: str
    category: str
    type: str
    invoice_number: str
    invoice_date: date
    vendor_name: str
    vendor_nif: str
    total_amount: Decimal
    currency: str
    tax_base: Optional[Decimal] = None
    vat_21_base: Optional[Decimal] = None
    vat_21_amount: Optional[Decimal] = None
    vat_10_base: Optional[Decimal] = None
    vat_10_amount: Optional[Decimal] = None
    vat_4_base: Optional[Decimal] = None
    vat_4_amount: Optional[Decimal] = None
    vat_0_base: Optional[Decimal] = None
    vat_0_amount: Optional[Decimal] = None
    bank_account: Optional[str] = None
    account_holder: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    status: str
    approved_by: Optional[uuid.UUID] = None
    approver: Optional[ApproverSummary] = None
    approved_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    declined_reason: Optional[str] = None
    comments: Optional[str] = None
    ocr_confidence: Optional[Decimal] = None
    line_items: list[LineItemResponse] = []


class ExpenseListResponse(BaseSchema):
    data: list[ExpenseResponse]
    pagination: Pagination
