"""Discrepancy classification: tolerance check, magnitude and severity tier."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..config.profile_loader import SeverityThresholds, ValidationConfig
from ..models.severity import CRITICAL, HIGH, LOW, MEDIUM
from ..models.validation_result import ValidationResult, make_result_id
from .field_evaluators import to_decimal

FIELD_LABELS = {
    "tax_amount": "Tax calculation",
    "total_amount": "Total calculation",
    "subtotal": "Subtotal",
}


def _field_label(field: str) -> str:
    if field.startswith("line_item_total_"):
        return f"Line item {field.rsplit('_', 1)[-1]} total"
    return FIELD_LABELS.get(field, field)


def classify_severity(discrepancy, thresholds: SeverityThresholds) -> str:
    """Map a discrepancy amount to a severity tier.

    Tiers are inclusive-lower/exclusive-upper: a discrepancy exactly on a
    boundary belongs to the higher tier. Anything below the medium bound is
    low, anything at or above the critical bound is critical.

    thresholds.low is not used here. It is validated with the other bounds
    (low <= medium <= high <= critical) but every discrepancy below
    thresholds.medium is low, including those below thresholds.low.
    """
    amount = to_decimal(discrepancy)
    if amount is None:
        raise ValueError(f"discrepancy must be numeric, got {discrepancy!r}")
    if amount >= to_decimal(thresholds.critical):
        return CRITICAL
    if amount >= to_decimal(thresholds.high):
        return HIGH
    if amount >= to_decimal(thresholds.medium):
        return MEDIUM
    return LOW


def discrepancy_percentage(discrepancy: Decimal, original: Decimal, epsilon: float) -> Optional[float]:
    """discrepancy / max(|original|, epsilon) × 100; None when original is zero."""
    if original == 0:
        return None
    denominator = max(abs(original), to_decimal(epsilon))
    return float(discrepancy / denominator * 100)


def classify_discrepancy(
    record_id: str,
    field: str,
    original_value,
    calculated_value,
    config: ValidationConfig,
    validated_at: Optional[datetime] = None,
) -> Optional[ValidationResult]:
    """Compare recorded and recomputed values of one field.

    Args:
        record_id: Id of the record
        field: Field name (determines the tolerance)
        original_value: Recorded value
        calculated_value: Recomputed value
        config: Active validation config
        validated_at: Result timestamp (default: now)

    Returns:
        ValidationResult, or None when the discrepancy is within tolerance
    """
    original = to_decimal(original_value)
    calculated = to_decimal(calculated_value)
    if original is None or calculated is None:
        raise ValueError(
            f"Cannot classify {field} for record {record_id}: "
            f"original={original_value!r}, calculated={calculated_value!r}"
        )

    discrepancy = abs(calculated - original)
    if discrepancy <= to_decimal(config.tolerance_for(field)):
        return None

    validated_at = validated_at or datetime.now()
    return ValidationResult(
        id=make_result_id(record_id, field, validated_at),
        record_id=record_id,
        field=field,
        original_value=float(original),
        calculated_value=float(calculated),
        discrepancy=float(discrepancy),
        discrepancy_percentage=discrepancy_percentage(discrepancy, original, config.percentage_epsilon),
        severity=classify_severity(discrepancy, config.thresholds),
        message=f"{_field_label(field)} discrepancy: Expected {calculated}, found {original}",
        validated_at=validated_at,
    )
