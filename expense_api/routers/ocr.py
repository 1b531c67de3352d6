"""
OCR routes: pre-fill the expense form from a photographed receipt/invoice.

  POST /api/ocr/extract           → validate, store, extract, map to form fields
  POST /api/ocr/extract/invoice   → raw extraction, document treated as an invoice
  POST /api/ocr/extract/receipt   → raw extraction, document treated as a receipt
  GET  /api/ocr/health            → is a provider configured, and which model

Uploads are multipart with a single `file` field.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status

from expense_api.errors import AppError
from expense_api.models.profile import Profile
from expense_api.routers.auth import get_current_user
from expense_api.schemas.ocr import (
    OCRExtractResponse,
    OCRHealthResponse,
    OCRMetadata,
    OCRRawResponse,
)
from expense_api.services.ocr import extractor
from expense_api.services.ocr.file_validation import (
    SUPPORTED_MIME_TYPES,
    FileInfo,
    FileValidationError,
    validate_upload,
)
from expense_api.services.ocr.mapping import map_to_expense_fields
from expense_api.services.storage.base import get_storage, public_url, unique_upload_name
from expense_api.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/ocr",
    tags=["ocr"],
    dependencies=[Depends(get_current_user)],
)


# ── Helpers ───────────────────────────────────────────────────────────────────


def _ocr_failed(message: str, details: Optional[dict] = None) -> AppError:
    return AppError(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="OCR_FAILED",
        message=message,
        details=details,
    )


def _read_upload(file: Optional[UploadFile]) -> tuple[bytes, FileInfo]:
    if file is None or not file.filename:
        raise AppError(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="NO_FILE",
            message="No file uploaded",
        )
    data = file.file.read()
    mime_type = (file.content_type or "").split(";")[0].strip().lower()
    try:
        info = validate_upload(data, mime_type)
    except FileValidationError as exc:
        logger.info("Rejected OCR upload %r: %s", file.filename, exc)
        raise _ocr_failed(str(exc), {"file_name": file.filename, "mime_type": mime_type})
    return data, info


def _run_extraction(data: bytes, info: FileInfo, document_hint: Optional[str] = None):
    try:
        return extractor.extract_document(data, info.mime_type, document_hint=document_hint)
    except extractor.OCRUnavailableError as exc:
        raise AppError(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code="OCR_UNAVAILABLE",
            message=str(exc),
        )
    except extractor.OCRExtractionError as exc:
        raise _ocr_failed(str(exc))


def _metadata(result, info: FileInfo, file_name: str, hint: Optional[str] = None) -> OCRMetadata:
    return OCRMetadata(
        model=result.model,
        file_name=file_name,
        file_size=info.size,
        mime_type=info.mime_type,
        page_count=info.page_count,
        document_hint=hint,
    )


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.post("/extract", response_model=OCRExtractResponse)
def extract(file: Optional[UploadFile] = File(None)) -> OCRExtractResponse:
    """
    Auto-detect the document type and return submission-form fields.
    The upload is kept and referenced by file_url / file_name.
    """
    data, info = _read_upload(file)
    result = _run_extraction(data, info)

    stored = get_storage().save(data, unique_upload_name(file.filename))
    logger.info("OCR upload %r stored as %s", file.filename, stored)

    return OCRExtractResponse(
        data=map_to_expense_fields(result.data, file_url=public_url(stored), file_name=file.filename),
        warnings=result.warnings,
        errors=result.errors,
        duration_ms=result.duration_ms,
        metadata=_metadata(result, info, file.filename),
    )


@router.post("/extract/invoice", response_model=OCRRawResponse)
def extract_invoice(file: Optional[UploadFile] = File(None)) -> OCRRawResponse:
    return _extract_raw(file, "invoice")


@router.post("/extract/receipt", response_model=OCRRawResponse)
def extract_receipt(file: Optional[UploadFile] = File(None)) -> OCRRawResponse:
    return _extract_raw(file, "receipt")


def _extract_raw(file: Optional[UploadFile], hint: str) -> OCRRawResponse:
    data, info = _read_upload(file)
    result = _run_extraction(data, info, document_hint=hint)
    return OCRRawResponse(
        data=result.data,
        warnings=result.warnings,
        errors=result.errors,
        duration_ms=result.duration_ms,
        metadata=_metadata(result, info, file.filename, hint),
    )


@router.get("/health", response_model=OCRHealthResponse)
def ocr_health() -> OCRHealthResponse:
    return OCRHealthResponse(
        status="ok" if settings.ocr_enabled else "unconfigured",
        configured=settings.ocr_enabled,
        model=settings.ocr_model,
        max_file_size_mb=settings.ocr_max_file_size_mb,
        supported_types=list(SUPPORTED_MIME_TYPES),
    )
