"""Unit tests for data models."""

from datetime import datetime

import pytest

from invoice_audit.models.invoice_record import InvoiceRecord, LineItem
from invoice_audit.models.progress import ValidationIssue
from invoice_audit.models.severity import severity_rank
from invoice_audit.models.validation_result import ValidationResult, make_result_id


class TestInvoiceRecord:
    """Test InvoiceRecord construction."""

    def test_from_dict_snake_and_camel_case(self):
        """Test from_dict with snake_case and camelCase keys."""
        record = InvoiceRecord.from_dict({
            "id": 17,
            "invoiceNumber": "INV-17",
            "amount": 100,
            "tax_rate": 24,
            "taxAmount": 24,
            "totalAmount": 124,
            "discountAmount": None,
            "lineItems": [{"description": "Service", "quantity": 1, "unitPrice": 100, "lineTotal": 100}],
        })

        assert record.id == "17"
        assert record.invoice_number == "INV-17"
        assert record.tax_rate == 24
        assert record.discount_amount == 0
        assert record.line_items == (LineItem("Service", 1, 100, 100),)
        assert record.has_line_items

    def test_requires_id(self):
        """Test that a record needs an id."""
        with pytest.raises(ValueError):
            InvoiceRecord(id="")
        with pytest.raises(ValueError):
            InvoiceRecord.from_dict({"amount": 100})

    def test_immutable(self):
        """Test that records are immutable."""
        record = InvoiceRecord(id="r1", amount=100)
        with pytest.raises(Exception):
            record.amount = 200


class TestValidationResult:
    """Test ValidationResult validation."""

    def _result(self, **overrides):
        data = dict(
            id="r1_tax_amount_0", record_id="r1", field="tax_amount",
            original_value=110.0, calculated_value=100.0, discrepancy=10.0,
            discrepancy_percentage=9.09, severity="high", message="m",
            validated_at=datetime(2024, 1, 15),
        )
        data.update(overrides)
        return ValidationResult(**data)

    def test_to_dict(self):
        """Test result serialization."""
        data = self._result().to_dict()
        assert data["validated_at"] == "2024-01-15T00:00:00"
        assert data["validated_by"] == "system"

    def test_invalid_severity(self):
        """Test an invalid severity."""
        with pytest.raises(ValueError):
            self._result(severity="urgent")

    def test_negative_discrepancy(self):
        """Test a negative discrepancy."""
        with pytest.raises(ValueError):
            self._result(discrepancy=-1.0)

    def test_result_id_format(self):
        """Test the record id, field and millisecond timestamp in a result id."""
        at = datetime(2024, 1, 15)
        assert make_result_id("r1", "tax_amount", at) == f"r1_tax_amount_{int(at.timestamp() * 1000)}"

    def test_result_id_escapes_underscores_in_record_id(self):
        """Test that an underscore in the record id cannot shift the field boundary."""
        at = datetime(2024, 1, 15)

        assert make_result_id("INV1", "tax_amount", at) != make_result_id("INV1_tax", "amount", at)
        assert make_result_id("INV1_tax", "amount", at).startswith("INV1%5Ftax_amount_")
        assert make_result_id("a%5Fb", "amount", at) != make_result_id("a_b", "amount", at)


class TestMisc:
    """Test small helpers."""

    def test_severity_rank(self):
        """Test severity ranking."""
        assert severity_rank("low") < severity_rank("medium") < severity_rank("high") < severity_rank("critical")
        with pytest.raises(ValueError):
            severity_rank("urgent")

    def test_issue_to_dict(self):
        """Test issue serialization."""
        issue = ValidationIssue(record_id="r1", kind="field", message="skipped", field="subtotal")
        data = issue.to_dict()
        assert data["field"] == "subtotal"
        assert data["kind"] == "field"
