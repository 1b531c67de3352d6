"""
Vision OCR extractor.

Sends a validated receipt/invoice to Claude (via the Anthropic SDK) and
asks for a single forced tool call whose input_schema is the fixed
extraction shape below. All money values come back as integer cents.

Failure modes:
    OCRUnavailableError  ANTHROPIC_API_KEY is not set (routes answer 503)
    OCRExtractionError   the API call failed or the reply could not be parsed
                         (routes answer 422)

The SDK's own retry/timeout handling covers transient API errors
(settings.ocr_max_retries, settings.ocr_timeout_seconds).
"""

import base64
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from pydantic import ValidationError

from expense_api.schemas.ocr import UnifiedExtraction
from expense_api.services.ocr.file_validation import PDF_MIME_TYPE
from expense_api.settings import settings

logger = logging.getLogger(__name__)

TOOL_NAME = "record_document"

# Lazy-loaded client: only created when an extraction is requested
_client = None


class OCRUnavailableError(RuntimeError):
    """No OCR provider is configured."""


class OCRExtractionError(RuntimeError):
    """The provider call failed or returned something unusable."""


@dataclass
class ExtractionResult:
    data: UnifiedExtraction
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0
    model: str = ""


def _get_client():
    """Return an Anthropic client. Raises OCRUnavailableError if no API key is set."""
    global _client
    if _client is not None:
        return _client

    if not settings.anthropic_api_key:
        raise OCRUnavailableError("OCR is not configured (ANTHROPIC_API_KEY is not set)")

    import anthropic

    _client = anthropic.Anthropic(
        api_key=settings.anthropic_api_key,
        max_retries=settings.ocr_max_retries,
        timeout=settings.ocr_timeout_seconds,
    )
    return _client


# ── Prompt and response schema ────────────────────────────────────────────────

_CENTS = {"type": ["integer", "null"], "description": "Amount in cents (multiply € by 100)"}

EXTRACTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "document_type": {"type": "string", "enum": ["invoice", "receipt"]},
        "document_number": {"type": ["string", "null"]},
        "date": {"type": ["string", "null"], "description": "YYYY-MM-DD"},
        "currency": {"type": ["string", "null"], "description": "ISO 4217 code"},
        "total_amount": _CENTS,
        "subtotal": _CENTS,
        "tax_amount": _CENTS,
        "tax_breakdown": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "tax_rate": {"type": "number", "description": "Percentage, e.g. 21"},
                    "tax_base": _CENTS,
                    "tax_amount": _CENTS,
                },
                "required": ["tax_rate"],
            },
        },
        "counterparty": {
            "type": "object",
            "properties": {
                "name": {"type": ["string", "null"]},
                "vat_number": {"type": ["string", "null"]},
            },
        },
        "line_items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "description": {"type": ["string", "null"]},
                    "quantity": {"type": ["number", "null"]},
                    "subtotal": _CENTS,
                    "tax_rate": {"type": ["number", "null"]},
                    "total": _CENTS,
                },
            },
        },
    },
    "required": ["document_type", "total_amount"],
}

_SYSTEM_PROMPT = """\
You extract data from financial documents (Spanish invoices and receipts).
All data must be extracted with maximum accuracy and every figure must be
consistent with the others. Record the result with the record_document tool.
"""

_USER_PROMPT = """\
Extract these fields from the attached {hint}:

1. document_type: "invoice" or "receipt"
2. document_number: the invoice/receipt number (e.g. "F232415" near "Factura")
3. date: document date in YYYY-MM-DD format
4. counterparty.name: vendor/company name from the document header
5. counterparty.vat_number: NIF/CIF (letter + 7-8 digits, e.g. "G01670009")
6. total_amount, subtotal, tax_amount: in cents
7. tax_breakdown: the complete IVA/VAT table, one entry per row. The rate,
   base and amount of each entry MUST come from the same table row.
8. line_items: each purchased item with quantity, subtotal (cents, before
   tax), tax_rate (percentage) and total (cents, tax included)

Use null for anything that is not printed on the document.
"""


def _content_block(data: bytes, mime_type: str) -> dict:
    encoded = base64.standard_b64encode(data).decode("utf-8")
    block_type = "document" if mime_type == PDF_MIME_TYPE else "image"
    return {
        "type": block_type,
        "source": {"type": "base64", "media_type": mime_type, "data": encoded},
    }


def _tool_input(message) -> dict:
    """Pull the tool call arguments out of the reply (falls back to a JSON text block)."""
    for block in message.content:
        if getattr(block, "type", None) == "tool_use" and block.name == TOOL_NAME:
            return dict(block.input)

    for block in message.content:
        if getattr(block, "type", None) == "text":
            raw_text = block.text.strip()
            # Strip markdown code fences if the model wrapped the JSON
            if raw_text.startswith("```"):
                raw_text = raw_text.strip("`")
                if raw_text.lower().startswith("json"):
                    raw_text = raw_text[4:]
            try:
                return json.loads(raw_text)
            except json.JSONDecodeError as exc:
                raise OCRExtractionError(f"OCR provider returned non-JSON output: {exc}") from exc

    raise OCRExtractionError("OCR provider returned no extraction")


# ── Post-extraction checks ────────────────────────────────────────────────────


def check_extraction(doc: UnifiedExtraction) -> tuple[list[str], list[str]]:
    """Return (warnings, errors) for an extraction. Amounts are compared in cents."""
    warnings: list[str] = []
    errors: list[str] = []

    if doc.total_amount is None:
        warnings.append("Missing total amount")
    elif doc.total_amount < 0:
        errors.append("Total amount cannot be negative")

    if doc.subtotal is not None and doc.tax_amount is not None and doc.total_amount is not None:
        calculated = doc.subtotal + doc.tax_amount
        if abs(calculated - doc.total_amount) > 1:
            warnings.append(
                f"Amount calculation mismatch: {doc.subtotal} + {doc.tax_amount} = "
                f"{calculated}, but total is {doc.total_amount}"
            )

    if doc.date:
        try:
            date.fromisoformat(doc.date)
        except ValueError:
            errors.append(f"Invalid date format: {doc.date}")

    return warnings, errors


# ── Entry point ───────────────────────────────────────────────────────────────


def extract_document(
    data: bytes,
    mime_type: str,
    document_hint: Optional[str] = None,
) -> ExtractionResult:
    """
    Run one extraction against the vision model.

    Args:
        data:          Raw file bytes (already validated).
        mime_type:     One of the supported image types or application/pdf.
        document_hint: "invoice" or "receipt" when the caller knows the type.
    """
    client = _get_client()
    model = settings.ocr_model
    started = time.perf_counter()

    try:
        message = client.messages.create(
            model=model,
            max_tokens=settings.ocr_max_tokens,
            system=_SYSTEM_PROMPT,
            tools=[
                {
                    "name": TOOL_NAME,
                    "description": "Record the data extracted from the document.",
                    "input_schema": EXTRACTION_SCHEMA,
                }
            ],
            tool_choice={"type": "tool", "name": TOOL_NAME},
            messages=[
                {
                    "role": "user",
                    "content": [
                        _content_block(data, mime_type),
                        {"type": "text", "text": _USER_PROMPT.format(hint=document_hint or "document")},
                    ],
                }
            ],
        )
    except Exception as exc:
        logger.warning("OCR provider call failed: %s", exc)
        raise OCRExtractionError(f"OCR provider call failed: {exc}") from exc

    raw = _tool_input(message)
    try:
        extraction = UnifiedExtraction.model_validate(raw)
    except ValidationError as exc:
        logger.warning("OCR reply did not match the extraction schema: %s", exc)
        raise OCRExtractionError("OCR provider returned an invalid extraction") from exc

    if document_hint and not extraction.document_type:
        extraction.document_type = document_hint

    warnings, errors = check_extraction(extraction)
    if warnings:
        logger.warning("OCR extraction warnings: %s", warnings)

    duration_ms = round((time.perf_counter() - started) * 1000)
    logger.info(
        "OCR extraction finished in %dms (%s, %d line items)",
        duration_ms,
        extraction.document_type,
        len(extraction.line_items),
    )
    return ExtractionResult(
        data=extraction,
        warnings=warnings,
        errors=errors,
        duration_ms=duration_ms,
        model=model,
    )
