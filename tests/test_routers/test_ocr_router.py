"""
Integration tests for the /api/ocr router.

The vision provider is never called: extract_document is replaced with a
stub returning a canned extraction, or left alone with no API key set to
exercise the 503 path.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from expense_api.schemas.ocr import UnifiedExtraction
from expense_api.services.ocr import extractor
from expense_api.settings import settings


pytestmark = pytest.mark.usefixtures("db")

CANNED_EXTRACTION = {
    "document_type": "invoice",
    "document_number": "F232415",
    "date": "2025-03-14",
    "currency": "eur",
    "total_amount": 4840,
    "subtotal": 4000,
    "tax_amount": 840,
    "tax_breakdown": [{"tax_rate": 21, "tax_base": 4000, "tax_amount": 840}],
    "counterparty": {"name": "Taxi Barcelona SL", "vat_number": "B12345678"},
    "line_items": [
        {"description": "Airport transfer", "quantity": 1, "subtotal": 4000, "tax_rate": 21, "total": 4840}
    ],
}


@pytest.fixture
def fake_extraction(monkeypatch):
    """Replace the provider call; records the hints it was called with."""
    calls = []

    def _extract(data, mime_type, document_hint=None):
        calls.append({"mime_type": mime_type, "document_hint": document_hint, "size": len(data)})
        return extractor.ExtractionResult(
            data=UnifiedExtraction.model_validate(CANNED_EXTRACTION),
            warnings=[],
            errors=[],
            duration_ms=12,
            model="test-model",
        )

    monkeypatch.setattr(extractor, "extract_document", _extract)
    return calls


def _upload(png: bytes, name: str = "ticket.png", mime: str = "image/png") -> dict:
    return {"file": (name, png, mime)}


class TestExtract:
    def test_extract_maps_fields_and_stores_upload(
        self, client: TestClient, viewer_headers, sample_png_bytes, fake_extraction
    ):
        resp = client.post(
            "/api/ocr/extract", files=_upload(sample_png_bytes), headers=viewer_headers
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True

        data = body["data"]
        assert data["vendor_name"] == "Taxi Barcelona SL"
        assert data["vendor_nif"] == "B12345678"
        assert data["invoice_number"] == "F232415"
        assert data["invoice_date"] == "2025-03-14"
        assert data["currency"] == "EUR"
        assert Decimal(data["total_amount"]) == Decimal("48.40")
        assert Decimal(data["vat_21_base"]) == Decimal("40.00")
        assert Decimal(data["vat_21_amount"]) == Decimal("8.40")
        assert data["file_name"] == "ticket.png"
        assert data["file_url"].startswith(settings.upload_url_prefix + "/")
        assert data["file_url"].endswith("ticket.png")

        assert body["metadata"]["model"] == "test-model"
        assert body["metadata"]["mime_type"] == "image/png"
        assert fake_extraction == [
            {"mime_type": "image/png", "document_hint": None, "size": len(sample_png_bytes)}
        ]

    def test_stored_upload_is_served(
        self, client: TestClient, viewer_headers, sample_png_bytes, fake_extraction
    ):
        body = client.post(
            "/api/ocr/extract", files=_upload(sample_png_bytes), headers=viewer_headers
        ).json()
        served = client.get(body["data"]["file_url"])
        assert served.status_code == 200
        assert served.content == sample_png_bytes

    def test_missing_file_returns_400(self, client: TestClient, viewer_headers):
        resp = client.post("/api/ocr/extract", headers=viewer_headers)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "NO_FILE"

    def test_unsupported_format_returns_422(self, client: TestClient, viewer_headers, fake_extraction):
        resp = client.post(
            "/api/ocr/extract",
            files=_upload(b"hello", "notes.txt", "text/plain"),
            headers=viewer_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "OCR_FAILED"
        assert fake_extraction == []

    def test_low_resolution_image_returns_422(self, client: TestClient, viewer_headers, fake_extraction):
        import io

        from PIL import Image

        buf = io.BytesIO()
        Image.new("RGB", (200, 150), "white").save(buf, format="PNG")

        resp = client.post(
            "/api/ocr/extract", files=_upload(buf.getvalue()), headers=viewer_headers
        )
        assert resp.status_code == 422
        assert "resolution is too low" in resp.json()["error"]["message"]

    def test_provider_failure_returns_422(self, client: TestClient, viewer_headers, sample_png_bytes, monkeypatch):
        def _fail(*args, **kwargs):
            raise extractor.OCRExtractionError("OCR provider returned no extraction")

        monkeypatch.setattr(extractor, "extract_document", _fail)
        resp = client.post(
            "/api/ocr/extract", files=_upload(sample_png_bytes), headers=viewer_headers
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "OCR_FAILED"

    def test_unconfigured_provider_returns_503(self, client: TestClient, viewer_headers, sample_png_bytes):
        resp = client.post(
            "/api/ocr/extract", files=_upload(sample_png_bytes), headers=viewer_headers
        )
        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "OCR_UNAVAILABLE"

    def test_requires_authentication(self, client: TestClient, sample_png_bytes):
        resp = client.post("/api/ocr/extract", files=_upload(sample_png_bytes))
        assert resp.status_code == 401


class TestTypedExtract:
    @pytest.mark.parametrize("kind", ["invoice", "receipt"])
    def test_raw_extraction_passes_hint(
        self, client: TestClient, viewer_headers, sample_png_bytes, fake_extraction, kind
    ):
        resp = client.post(
            f"/api/ocr/extract/{kind}", files=_upload(sample_png_bytes), headers=viewer_headers
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["data"]["total_amount"] == 4840
        assert body["metadata"]["document_hint"] == kind
        assert fake_extraction[0]["document_hint"] == kind


class TestOCRHealth:
    def test_unconfigured(self, client: TestClient, viewer_headers):
        body = client.get("/api/ocr/health", headers=viewer_headers).json()
        assert body["status"] == "unconfigured"
        assert body["configured"] is False
        assert "application/pdf" in body["supported_types"]

    def test_configured(self, client: TestClient, viewer_headers, monkeypatch):
        monkeypatch.setattr(settings, "anthropic_api_key", "sk-test")
        body = client.get("/api/ocr/health", headers=viewer_headers).json()
        assert body["status"] == "ok"
        assert body["model"] == settings.ocr_model
