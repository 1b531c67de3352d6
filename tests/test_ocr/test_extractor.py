"""
Unit tests for the vision extractor. The Anthropic client is replaced by a
fake that records the request and returns a canned message.
"""

import json
from types import SimpleNamespace

import pytest

from expense_api.schemas.ocr import UnifiedExtraction
from expense_api.services.ocr import extractor


class FakeMessages:
    def __init__(self, content=None, error=None):
        self.content = content or []
        self.error = error
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return SimpleNamespace(content=self.content)


def _tool_block(payload: dict):
    return SimpleNamespace(type="tool_use", name=extractor.TOOL_NAME, input=payload)


def _text_block(text: str):
    return SimpleNamespace(type="text", text=text)


@pytest.fixture
def fake_client(monkeypatch):
    def _install(content=None, error=None) -> FakeMessages:
        messages = FakeMessages(content, error)
        monkeypatch.setattr(extractor, "_client", SimpleNamespace(messages=messages))
        return messages

    return _install


GOOD = {
    "document_type": "receipt",
    "document_number": "T-9",
    "date": "2025-03-14",
    "total_amount": 1210,
    "subtotal": 1000,
    "tax_amount": 210,
    "line_items": [{"description": "Cafè", "subtotal": 1000, "total": 1210}],
}


class TestGetClient:
    def test_missing_api_key_raises_unavailable(self, monkeypatch):
        monkeypatch.setattr(extractor, "_client", None)
        monkeypatch.setattr(extractor.settings, "anthropic_api_key", "")
        with pytest.raises(extractor.OCRUnavailableError):
            extractor.extract_document(b"x", "image/png")


class TestExtractDocument:
    def test_forced_tool_call_request(self, fake_client):
        messages = fake_client([_tool_block(GOOD)])
        result = extractor.extract_document(b"\x89PNG", "image/png", document_hint="receipt")

        request = messages.requests[0]
        assert request["model"] == extractor.settings.ocr_model
        assert request["tool_choice"] == {"type": "tool", "name": extractor.TOOL_NAME}
        assert request["tools"][0]["input_schema"] is extractor.EXTRACTION_SCHEMA

        blocks = request["messages"][0]["content"]
        assert blocks[0]["type"] == "image"
        assert blocks[0]["source"]["media_type"] == "image/png"
        assert "receipt" in blocks[1]["text"]

        assert result.data.document_number == "T-9"
        assert result.data.line_items[0].total == 1210
        assert result.warnings == []
        assert result.errors == []
        assert result.model == extractor.settings.ocr_model

    def test_pdf_sent_as_document_block(self, fake_client):
        messages = fake_client([_tool_block(GOOD)])
        extractor.extract_document(b"%PDF-1.4", "application/pdf")
        assert messages.requests[0]["messages"][0]["content"][0]["type"] == "document"

    def test_json_text_fallback(self, fake_client):
        fenced = "```json\n" + json.dumps(GOOD) + "\n```"
        fake_client([_text_block(fenced)])
        result = extractor.extract_document(b"x", "image/png")
        assert result.data.total_amount == 1210

    def test_hint_fills_missing_document_type(self, fake_client):
        payload = {k: v for k, v in GOOD.items() if k != "document_type"}
        fake_client([_tool_block(payload)])
        result = extractor.extract_document(b"x", "image/png", document_hint="invoice")
        assert result.data.document_type == "invoice"

    def test_provider_error_becomes_extraction_error(self, fake_client):
        fake_client(error=RuntimeError("overloaded"))
        with pytest.raises(extractor.OCRExtractionError, match="overloaded"):
            extractor.extract_document(b"x", "image/png")

    def test_non_json_text_rejected(self, fake_client):
        fake_client([_text_block("I cannot read this document.")])
        with pytest.raises(extractor.OCRExtractionError, match="non-JSON"):
            extractor.extract_document(b"x", "image/png")

    def test_empty_reply_rejected(self, fake_client):
        fake_client([])
        with pytest.raises(extractor.OCRExtractionError, match="no extraction"):
            extractor.extract_document(b"x", "image/png")

    def test_schema_mismatch_rejected(self, fake_client):
        fake_client([_tool_block({**GOOD, "total_amount": "a lot"})])
        with pytest.raises(extractor.OCRExtractionError, match="invalid extraction"):
            extractor.extract_document(b"x", "image/png")


class TestCheckExtraction:
    def test_consistent_amounts(self):
        warnings, errors = extractor.check_extraction(UnifiedExtraction(**GOOD))
        assert (warnings, errors) == ([], [])

    def test_one_cent_rounding_tolerated(self):
        doc = UnifiedExtraction(total_amount=1211, subtotal=1000, tax_amount=210)
        assert extractor.check_extraction(doc) == ([], [])

    def test_mismatch_warns(self):
        doc = UnifiedExtraction(total_amount=1500, subtotal=1000, tax_amount=210)
        warnings, errors = extractor.check_extraction(doc)
        assert len(warnings) == 1
        assert "mismatch" in warnings[0]
        assert errors == []

    def test_missing_total_warns(self):
        warnings, _ = extractor.check_extraction(UnifiedExtraction())
        assert warnings == ["Missing total amount"]

    def test_negative_total_and_bad_date_are_errors(self):
        doc = UnifiedExtraction(total_amount=-5, date="14/03/2025")
        _, errors = extractor.check_extraction(doc)
        assert "Total amount cannot be negative" in errors
        assert any("Invalid date format" in e for e in errors)
