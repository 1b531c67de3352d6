"""
OCR schemas.

UnifiedExtraction is the fixed shape the vision model is asked to return
(amounts in integer cents). MappedExpenseFields is what the submission form
receives: amounts in currency units, VAT split into the 21/10/4/0% bands.
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field

from expense_api.schemas.common import BaseSchema


# ── Model output (cents) ──────────────────────────────────────────────────────


class TaxBand(BaseSchema):
    tax_rate: float
    tax_base: Optional[int] = None
    tax_amount: Optional[int] = None


class Counterparty(BaseSchema):
    name: Optional[str] = None
    vat_number: Optional[str] = None


class ExtractedLineItem(BaseSchema):
    description: Optional[str] = None
    quantity: Optional[float] = None
    subtotal: Optional[int] = None
    tax_rate: Optional[float] = None
    total: Optional[int] = None


class UnifiedExtraction(BaseSchema):
    document_type: Optional[str] = None
    document_number: Optional[str] = None
    date: Optional[str] = None
    currency: Optional[str] = None
    total_amount: Optional[int] = None
    subtotal: Optional[int] = None
    tax_amount: Optional[int] = None
    tax_breakdown: list[TaxBand] = Field(default_factory=list)
    counterparty: Optional[Counterparty] = None
    line_items: list[ExtractedLineItem] = Field(default_factory=list)


# ── Form pre-fill (currency units) ────────────────────────────────────────────


class MappedLineItem(BaseSchema):
    description: str
    quantity: Decimal
    unit_price: Decimal
    subtotal: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    total: Decimal


class MappedExpenseFields(BaseSchema):
    vendor_name: str = ""
    vendor_nif: Optional[str] = None
    invoice_number: str = ""
    invoice_date: str = ""
    currency: Optional[str] = None
    total_amount: Decimal = Decimal("0")
    tax_base: Optional[Decimal] = None
    vat_21_base: Optional[Decimal] = None
    vat_21_amount: Optional[Decimal] = None
    vat_10_base: Optional[Decimal] = None
    vat_10_amount: Optional[Decimal] = None
    vat_4_base: Optional[Decimal] = None
    vat_4_amount: Optional[Decimal] = None
    vat_0_base: Optional[Decimal] = None
    vat_0_amount: Optional[Decimal] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    line_items: list[MappedLineItem] = Field(default_factory=list)


# ── Responses ────────────────────────────────────────────────────────────────


class OCRMetadata(BaseSchema):
    model: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    page_count: Optional[int] = None
    document_hint: Optional[str] = None


class OCRExtractResponse(BaseSchema):
    success: bool = True
    data: MappedExpenseFields
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    duration_ms: int
    metadata: OCRMetadata


class OCRRawResponse(BaseSchema):
    success: bool = True
    data: UnifiedExtraction
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    duration_ms: int
    metadata: OCRMetadata


class OCRHealthResponse(BaseSchema):
    status: str
    configured: bool
    model: str
    max_file_size_mb: int
    supported_types: list[str]
