"""
Turn a UnifiedExtraction (integer cents) into submission-form fields.

VAT bands are matched by rate with some tolerance because receipts print
rates such as 5% (reduced band in some regions) or 20/22% for foreign
vendors:

    20–22 → vat_21   9–11 → vat_10   4–5 → vat_4   0 → vat_0 (amount 0)
"""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from expense_api.schemas.ocr import (
    ExtractedLineItem,
    MappedExpenseFields,
    MappedLineItem,
    TaxBand,
    UnifiedExtraction,
)

_CENT = Decimal("0.01")
_NIF_RE = re.compile(r"^([A-Z]\d{7,8}[A-Z0-9]?)")


def cents_to_units(cents: Optional[int]) -> Optional[Decimal]:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(_CENT, rounding=ROUND_HALF_UP)


def _round(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def clean_nif(nif: Optional[str]) -> Optional[str]:
    """Keep the leading NIF/CIF token ("B12345678 (Barcelona)" → "B12345678")."""
    if not nif:
        return None
    compact = nif.strip().upper().replace(" ", "").replace("-", "")
    match = _NIF_RE.match(compact)
    return match.group(1) if match else nif.strip()


def _band_for_rate(rate: float) -> Optional[str]:
    if 20 <= rate <= 22:
        return "21"
    if 9 <= rate <= 11:
        return "10"
    if 4 <= rate <= 5:
        return "4"
    if rate == 0:
        return "0"
    return None


def map_vat_breakdown(bands: list[TaxBand]) -> dict[str, Optional[Decimal]]:
    """Spread tax_breakdown rows over the vat_<band>_base / vat_<band>_amount fields."""
    result: dict[str, Optional[Decimal]] = {}
    for band in bands:
        key = _band_for_rate(band.tax_rate)
        if key is None:
            continue
        result[f"vat_{key}_base"] = cents_to_units(band.tax_base)
        result[f"vat_{key}_amount"] = (
            Decimal("0.00") if key == "0" else cents_to_units(band.tax_amount)
        )
    return result


def map_line_item(item: ExtractedLineItem) -> MappedLineItem:
    quantity = Decimal(str(item.quantity)) if item.quantity else Decimal("1")
    subtotal = cents_to_units(item.subtotal) or Decimal("0.00")
    total = cents_to_units(item.total) or Decimal("0.00")
    vat_rate = Decimal(str(item.tax_rate or 0))

    if total > 0 and subtotal > 0:
        vat_amount = _round(total - subtotal)
    else:
        vat_amount = _round(subtotal * vat_rate / 100)

    return MappedLineItem(
        description=item.description or "",
        quantity=quantity,
        unit_price=_round(subtotal / quantity),
        subtotal=subtotal,
        vat_rate=vat_rate,
        vat_amount=vat_amount,
        total=total if total > 0 else subtotal + vat_amount,
    )


def map_to_expense_fields(
    doc: UnifiedExtraction,
    file_url: Optional[str] = None,
    file_name: Optional[str] = None,
) -> MappedExpenseFields:
    counterparty = doc.counterparty
    return MappedExpenseFields(
        vendor_name=(counterparty.name if counterparty and counterparty.name else ""),
        vendor_nif=clean_nif(counterparty.vat_number if counterparty else None),
        invoice_number=doc.document_number or "",
        invoice_date=doc.date or "",
        currency=doc.currency.upper() if doc.currency else None,
        total_amount=cents_to_units(doc.total_amount) or Decimal("0"),
        tax_base=cents_to_units(doc.subtotal),
        file_url=file_url,
        file_name=file_name,
        line_items=[map_line_item(item) for item in doc.line_items],
        **map_vat_breakdown(doc.tax_breakdown),
    )
