"""
Upload checks run before a document is sent to the vision model.

Rejects anything the model would either refuse or read badly: unsupported
formats, oversized files, encrypted or very long PDFs, and low-resolution
scans. Messages are user-facing and shown verbatim by the form.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional

import pdfplumber
from PIL import Image, UnidentifiedImageError

from expense_api.settings import settings

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
IMAGE_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")
SUPPORTED_MIME_TYPES = IMAGE_MIME_TYPES + (PDF_MIME_TYPE,)

MAX_PDF_PAGES = 50
MIN_PDF_WIDTH, MIN_PDF_HEIGHT = 500, 500  # points
MIN_IMAGE_WIDTH, MIN_IMAGE_HEIGHT = 800, 600  # pixels


class FileValidationError(ValueError):
    """The upload cannot be processed; str(exc) is safe to show to the user."""


@dataclass
class FileInfo:
    mime_type: str
    size: int
    width: Optional[int] = None
    height: Optional[int] = None
    page_count: Optional[int] = None
    image_format: Optional[str] = None


def max_size_bytes() -> int:
    return settings.ocr_max_file_size_mb * 1024 * 1024


def validate_format(mime_type: str) -> None:
    if mime_type not in SUPPORTED_MIME_TYPES:
        raise FileValidationError(
            f"Only {', '.join(SUPPORTED_MIME_TYPES)} formats are accepted. Got: {mime_type}"
        )


def validate_size(size: int) -> None:
    if size == 0:
        raise FileValidationError("The uploaded file is empty.")
    if size > max_size_bytes():
        raise FileValidationError(
            f"File size limit exceeded ({settings.ocr_max_file_size_mb} MB). "
            f"File size: {size / 1024 / 1024:.2f} MB"
        )


def validate_pdf(data: bytes) -> FileInfo:
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            if getattr(pdf.doc, "encryption", None):
                raise FileValidationError(
                    "The file is encrypted and cannot be processed. "
                    "Please upload an unprotected version."
                )
            page_count = len(pdf.pages)
            if page_count == 0:
                raise FileValidationError("The PDF file has no pages.")
            if page_count > MAX_PDF_PAGES:
                raise FileValidationError(
                    f"This document has {page_count} pages. "
                    f"The maximum allowed is {MAX_PDF_PAGES}."
                )
            first = pdf.pages[0]
            width, height = first.width, first.height
    except FileValidationError:
        raise
    except Exception as exc:
        logger.info("Unreadable PDF upload: %s", exc)
        if "password" in str(exc).lower() or "encrypt" in type(exc).__name__.lower():
            raise FileValidationError(
                "The file is encrypted and cannot be processed. "
                "Please upload an unprotected version."
            ) from exc
        raise FileValidationError(
            "The PDF file could not be read. "
            "Please make sure it's a valid, non-corrupted document."
        ) from exc

    if width < MIN_PDF_WIDTH or height < MIN_PDF_HEIGHT:
        raise FileValidationError(
            f"The PDF resolution is too low: {round(width)}x{round(height)}. "
            f"The minimum required is {MIN_PDF_WIDTH}x{MIN_PDF_HEIGHT}."
        )
    return FileInfo(
        mime_type=PDF_MIME_TYPE,
        size=len(data),
        width=round(width),
        height=round(height),
        page_count=page_count,
    )


def validate_image(data: bytes, mime_type: str) -> FileInfo:
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            image_format = (img.format or "unknown").lower()
    except (UnidentifiedImageError, OSError) as exc:
        raise FileValidationError(
            "The image file couldn't be opened. Please check the format and try again."
        ) from exc

    if width < MIN_IMAGE_WIDTH or height < MIN_IMAGE_HEIGHT:
        raise FileValidationError(
            f"The image resolution is too low: {width}x{height}. "
            f"The minimum required is {MIN_IMAGE_WIDTH}x{MIN_IMAGE_HEIGHT}."
        )
    return FileInfo(
        mime_type=mime_type,
        size=len(data),
        width=width,
        height=height,
        page_count=1,
        image_format=image_format,
    )


def validate_upload(data: bytes, mime_type: str) -> FileInfo:
    """Run every check for an upload. Raises FileValidationError on the first failure."""
    validate_format(mime_type)
    validate_size(len(data))
    if mime_type == PDF_MIME_TYPE:
        return validate_pdf(data)
    return validate_image(data, mime_type)
