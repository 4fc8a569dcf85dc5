"""
Test suite for the HTTP API.

Tests cover:
- Health endpoints
- Text and EML parsing endpoints (including upload validation)
- Validation and stateless reconciliation endpoints
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from decimal import Decimal

from fastapi.testclient import TestClient

from evidence.config import settings
from evidence.main import app

client = TestClient(app)


EML = (
    b"From: \"Blue Bottle Coffee\" <receipts@bluebottle.com>\n"
    b"Subject: Your receipt\n"
    b"Date: Tue, 6 Jan 2026 09:12:00 -0800\n"
    b"\n"
    b"Thanks for your order!\n"
    b"Total: $11.00\n"
)


class TestHealth:

    def test_root(self):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestParseText:

    def test_parse_text(self):
        response = client.post("/parse/text", json={
            "text": "Receipt from Blue Bottle Coffee\nDate: January 6, 2026\nTotal: $11.00"
        })
        assert response.status_code == 200

        data = response.json()
        assert data["parsed"]["vendor"] == "Blue Bottle Coffee"
        assert data["parsed"]["date"] == "2026-01-06"
        assert Decimal(str(data["parsed"]["total"])) == Decimal('11.00')
        assert data["validation"]["confidence"] == 85
        assert data["message"] == "Email parsed successfully! Confidence: 85%"
        assert data["envelope"] is None

    def test_empty_text_rejected(self):
        response = client.post("/parse/text", json={"text": "   "})
        assert response.status_code == 400

    def test_missing_text_field(self):
        response = client.post("/parse/text", json={})
        assert response.status_code == 422


class TestParseEml:

    def test_parse_eml_upload(self):
        response = client.post(
            "/parse/eml",
            files={"file": ("receipt.eml", EML, "message/rfc822")}
        )
        assert response.status_code == 200

        data = response.json()
        assert data["parsed"]["vendor"] == "Blue Bottle Coffee"
        assert data["parsed"]["date"] == "2026-01-06"
        assert data["envelope"]["from"] == '"Blue Bottle Coffee" <receipts@bluebottle.com>'
        assert data["envelope"]["subject"] == "Your receipt"
        assert data["envelope"]["attachments"] == []

    def test_non_eml_rejected(self):
        response = client.post(
            "/parse/eml",
            files={"file": ("scan.pdf", b"%PDF-1.4", "application/pdf")}
        )
        assert response.status_code == 400

    def test_oversize_rejected(self, monkeypatch):
        monkeypatch.setattr(settings, "MAX_EML_SIZE_MB", 0)
        response = client.post(
            "/parse/eml",
            files={"file": ("receipt.eml", EML, "message/rfc822")}
        )
        assert response.status_code == 413


class TestValidate:

    def test_validate(self):
        response = client.post("/parse/validate", json={
            "vendor": "Acme",
            "date": "2026-01-06",
            "total": "11.00"
        })
        assert response.status_code == 200

        data = response.json()
        assert data["validation"]["confidence"] == 85
        assert data["validation"]["is_valid"] is True
        assert data["message"] == "Email parsed successfully! Confidence: 85%"


class TestReconcile:

    def test_user_field_kept(self):
        response = client.post("/parse/reconcile", json={
            "draft": {"vendor": "My Edit", "user_fields": ["vendor"]},
            "ocr": {"vendor": "OCR Vendor", "amount": "49.9", "items": ["Coffee"]},
        })
        assert response.status_code == 200

        data = response.json()
        assert data["draft"]["vendor"] == "My Edit"
        assert data["draft"]["amount"] == "49.90"
        assert data["fields_written"]["ocr"] == ["amount", "items"]
        assert data["draft"]["items"][0]["name"] == "Coffee"

    def test_edits_then_ocr_then_email(self):
        response = client.post("/parse/reconcile", json={
            "edits": {"date": "2026-02-01"},
            "ocr": {"date": "2026-01-06", "vendor": "Blue Bottle"},
            "email": {"vendor": "Blue Bottle Coffee", "total": "11.00", "currency": "USD"},
        })
        assert response.status_code == 200

        draft = response.json()["draft"]
        assert draft["date"] == "2026-02-01"
        assert draft["vendor"] == "Blue Bottle"
        assert draft["amount"] == "11.00"
        assert draft["currency"] == "USD"

    def test_selected_total_reported(self):
        response = client.post("/parse/reconcile", json={
            "ocr": {"items": [
                {"name": "A", "qty": 2, "unitPrice": "3.00"},
                {"name": "B", "qty": 1, "unitPrice": "4.00"},
            ]},
        })
        assert response.status_code == 200
        assert Decimal(str(response.json()["selected_total"])) == Decimal('10.00')

    def test_unknown_category_edit_rejected(self):
        response = client.post("/parse/reconcile", json={
            "edits": {"category": "groceries"}
        })
        assert response.status_code == 400
