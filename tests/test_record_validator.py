"""Unit tests for record-level validation."""

import pytest

from invoice_audit.config.config_store import ConfigStore
from invoice_audit.config.profile_loader import DEFAULT_CONFIG
from invoice_audit.errors import ConfigurationError
from invoice_audit.validation.record_validator import RecordValidator

SCENARIO_THRESHOLDS = {"thresholds": {"low": 2, "medium": 6, "high": 12, "critical": 25}}


@pytest.fixture
def validator(fixed_clock):
    return RecordValidator(DEFAULT_CONFIG, clock=fixed_clock)


class TestValidateRecord:
    """Test validating a single record."""

    def test_tax_discrepancy_is_medium(self, make_record, fixed_clock):
        """Test a medium tax discrepancy."""
        config = DEFAULT_CONFIG.merge(SCENARIO_THRESHOLDS)
        validator = RecordValidator(config, clock=fixed_clock)
        record = make_record(amount=1000, tax_rate=10, tax_amount=110, total_amount=1110)

        results = validator.validate_record(record)

        assert len(results) == 1
        result = results[0]
        assert result.field == "tax_amount"
        assert result.calculated_value == 100.0
        assert result.original_value == 110.0
        assert result.discrepancy == 10.0
        assert result.severity == "medium"

    def test_consistent_record_has_no_results(self, validator, make_record):
        """Test a consistent record."""
        record = make_record(amount=1000, tax_rate=10, tax_amount=100, total_amount=1100)
        assert validator.validate_record(record) == []

    def test_total_discrepancy(self, validator, make_record):
        """Test a total discrepancy."""
        results = validator.validate_record(make_record(total_amount=1140))

        assert [r.field for r in results] == ["total_amount"]
        assert results[0].discrepancy == 40.0
        assert results[0].severity == "critical"

    def test_discount_is_subtracted(self, validator, make_record):
        """Test that the discount is subtracted from the total."""
        record = make_record(total_amount=1050, discount_amount=50)
        assert validator.validate_record(record) == []

    def test_deterministic(self, validator, make_record):
        """Test that validation is deterministic."""
        record = make_record(tax_amount=110, total_amount=1110)
        assert validator.validate_record(record) == validator.validate_record(record)

    def test_uses_current_config_from_provider(self, make_record, fixed_clock):
        """Test that the validator reads the current config."""
        store = ConfigStore()
        validator = RecordValidator(store, clock=fixed_clock)
        record = make_record(tax_amount=110, total_amount=1110)

        assert validator.validate_record(record)[0].severity == "high"
        store.update(SCENARIO_THRESHOLDS)
        assert validator.validate_record(record)[0].severity == "medium"

    def test_disabled_rule_skips_field(self, make_record, fixed_clock):
        """Test that a disabled rule skips its field."""
        config = DEFAULT_CONFIG.merge({"rules": {"validate_tax_calculation": False}})
        validator = RecordValidator(config, clock=fixed_clock)
        assert validator.validate_record(make_record(tax_amount=110, total_amount=1110)) == []

    def test_field_subset(self, make_record, fixed_clock):
        """Test validating a subset of fields."""
        validator = RecordValidator(DEFAULT_CONFIG, fields=["total_amount"], clock=fixed_clock)
        assert validator.validate_record(make_record(tax_amount=110, total_amount=1100))[0].field == "total_amount"

    def test_unknown_field_fails_at_construction(self):
        """Test that unknown fields fail at construction."""
        with pytest.raises(ConfigurationError):
            RecordValidator(DEFAULT_CONFIG, fields=["tax_amount", "freight"])


class TestStructuralErrors:
    """Test records missing inputs needed for computation."""

    def test_missing_amount_yields_one_critical_result(self, validator, make_record):
        """Test a record without an amount."""
        results = validator.validate_record(make_record(amount=None))

        assert len(results) == 1
        result = results[0]
        assert result.field == "amount"
        assert result.severity == "critical"
        assert result.discrepancy == 0.0
        assert result.original_value is None
        assert "amount" in result.message

    def test_non_numeric_tax_amount(self, validator, make_record):
        """Test a non-numeric tax amount."""
        results = validator.validate_record(make_record(tax_amount="abc"))
        assert [(r.field, r.severity) for r in results] == [("tax_amount", "critical")]


class TestLineItems:
    """Test subtotal and per-line checks."""

    def test_wrong_line_total(self, validator, make_record):
        """Test a wrong line total."""
        record = make_record(
            amount=135, tax_rate=10, tax_amount=13.5, total_amount=148.5,
            line_items=[
                {"description": "Widget", "quantity": 2, "unit_price": 50, "line_total": 100},
                {"description": "Bolt", "quantity": 3, "unit_price": 10, "line_total": 35},
            ],
        )

        results = validator.validate_record(record)

        assert len(results) == 1
        assert results[0].field == "line_item_total_2"
        assert results[0].discrepancy == 5.0
        assert results[0].severity == "medium"

    def test_subtotal_mismatch(self, make_record, fixed_clock):
        """Test a subtotal that disagrees with the line totals when the rule is on."""
        config = DEFAULT_CONFIG.merge({"rules": {"validate_subtotal": True}})
        validator = RecordValidator(config, clock=fixed_clock)
        record = make_record(
            amount=150, tax_rate=10, tax_amount=15, total_amount=165,
            line_items=[{"description": "Widget", "quantity": 2, "unit_price": 50, "line_total": 100}],
        )

        results = validator.validate_record(record)

        assert [r.field for r in results] == ["subtotal"]
        assert results[0].original_value == 150.0
        assert results[0].calculated_value == 100.0
        assert results[0].severity == "critical"

    def test_subtotal_rule_off_by_default(self, validator, make_record):
        """Test that the default config does not compare the subtotal."""
        record = make_record(
            amount=150, tax_rate=10, tax_amount=15, total_amount=165,
            line_items=[{"description": "Widget", "quantity": 2, "unit_price": 50, "line_total": 100}],
        )

        assert DEFAULT_CONFIG.rules.validate_subtotal is False
        assert validator.validate_record(record) == []

    def test_failing_line_item_is_reported_and_skipped(self, validator, make_record):
        """Test that a broken line item is reported and skipped."""
        record = make_record(
            amount=100, tax_rate=10, tax_amount=20, total_amount=120,
            line_items=[{"description": "Service", "quantity": None, "unit_price": 100, "line_total": 100}],
        )

        check = validator.check_record(record)

        assert [r.field for r in check.results] == ["tax_amount"]
        assert check.results[0].severity == "high"
        assert len(check.issues) == 1
        issue = check.issues[0]
        assert issue.kind == "field"
        assert issue.field == "line_item_total_1"
        assert issue.record_id == "r1"
