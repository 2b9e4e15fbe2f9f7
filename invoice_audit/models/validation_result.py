"""ValidationResult data model representing one field-level discrepancy."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .severity import SEVERITY_LEVELS


def _escape_record_id(record_id: str) -> str:
    return str(record_id).replace("%", "%25").replace("_", "%5F")


def make_result_id(record_id: str, field: str, validated_at: datetime) -> str:
    """Build a result id from record id, field and validation timestamp (ms).

    Underscores (and percent signs) in the record id are percent-escaped, so
    the first "_" always ends the record id and distinct (record id, field)
    pairs never map to the same result id.
    """
    return f"{_escape_record_id(record_id)}_{field}_{int(validated_at.timestamp() * 1000)}"


@dataclass(frozen=True)
class ValidationResult:
    """A discrepancy between a recorded and a recomputed field value.

    Attributes:
        id: "{record_id}_{field}_{timestamp_ms}", underscores in record_id escaped
        record_id: Id of the validated InvoiceRecord
        field: Validated field (e.g. "tax_amount", "line_item_total_2")
        original_value: Value recorded on the invoice (None if missing)
        calculated_value: Recomputed value (None if it could not be computed)
        discrepancy: |calculated_value - original_value|
        discrepancy_percentage: discrepancy / max(|original_value|, epsilon) * 100,
            None when original_value is zero or missing
        severity: "low", "medium", "high" or "critical"
        message: Human-readable description
        validated_at: When the result was produced
        validated_by: User or system that produced the result
    """

    id: str
    record_id: str
    field: str
    original_value: Optional[float]
    calculated_value: Optional[float]
    discrepancy: float
    discrepancy_percentage: Optional[float]
    severity: str
    message: str
    validated_at: datetime
    validated_by: str = "system"

    def __post_init__(self):
        """Validate ValidationResult fields."""
        if self.severity not in SEVERITY_LEVELS:
            raise ValueError(
                f"severity must be one of {SEVERITY_LEVELS}, got '{self.severity}'"
            )

        if self.discrepancy < 0:
            raise ValueError(f"discrepancy must be >= 0, got {self.discrepancy}")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["validated_at"] = self.validated_at.isoformat()
        return data
