"""Shared fixtures for validation engine tests."""

from datetime import datetime, timedelta

import pytest

from invoice_audit.context import ValidationContext
from invoice_audit.models.invoice_record import InvoiceRecord, LineItem
from invoice_audit.models.validation_result import ValidationResult, make_result_id

FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0)


class TickingClock:
    """Clock advancing one second per call."""

    def __init__(self, start: datetime = FIXED_NOW):
        self.current = start

    def __call__(self) -> datetime:
        now = self.current
        self.current = now + timedelta(seconds=1)
        return now


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "INVOICE_AUDIT_PROFILE",
        "INVOICE_AUDIT_PROFILES_DIR",
        "INVOICE_AUDIT_PROGRESS_INTERVAL",
        "INVOICE_AUDIT_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def ticking_clock():
    return TickingClock()


@pytest.fixture
def audit_events():
    return []


@pytest.fixture
def context(ticking_clock, audit_events):
    return ValidationContext(audit_sink=audit_events.append, clock=ticking_clock)


@pytest.fixture
def make_record():
    """Factory for InvoiceRecords; defaults describe a consistent invoice."""

    def _make(record_id="r1", amount=1000, tax_rate=10, tax_amount=100, total_amount=1100, **kwargs):
        line_items = tuple(
            item if isinstance(item, LineItem) else LineItem(**item)
            for item in kwargs.pop("line_items", ())
        )
        return InvoiceRecord(
            id=record_id,
            invoice_number=kwargs.pop("invoice_number", f"INV-{record_id}"),
            customer_code=kwargs.pop("customer_code", "C001"),
            amount=amount,
            tax_rate=tax_rate,
            tax_amount=tax_amount,
            total_amount=total_amount,
            currency=kwargs.pop("currency", "EUR"),
            line_items=line_items,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_result():
    """Factory for ValidationResults with a given severity and discrepancy."""

    def _make(record_id="r1", field="tax_amount", discrepancy=10.0, severity="high",
              validated_at=FIXED_NOW):
        return ValidationResult(
            id=make_result_id(record_id, field, validated_at),
            record_id=record_id,
            field=field,
            original_value=100.0 + discrepancy,
            calculated_value=100.0,
            discrepancy=discrepancy,
            discrepancy_percentage=None,
            severity=severity,
            message=f"{field} discrepancy",
            validated_at=validated_at,
        )

    return _make
