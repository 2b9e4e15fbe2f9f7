"""Alert data model for high and critical discrepancies."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .severity import ALERT_SEVERITIES, CRITICAL, HIGH, LOW, MEDIUM
from .validation_result import ValidationResult

PRIORITY_WEIGHTS = {
    CRITICAL: 1000,
    HIGH: 100,
    MEDIUM: 10,
    LOW: 1,
}


def calculate_priority(severity: str, discrepancy: float) -> float:
    """Severity weight plus discrepancy weight (1 point per 100, capped at 100)."""
    base_priority = PRIORITY_WEIGHTS.get(severity, 1)
    discrepancy_weight = min(abs(discrepancy) / 100.0, 100.0)
    return base_priority + discrepancy_weight


@dataclass(frozen=True)
class Alert:
    """A user-facing, acknowledgeable notification derived from a result.

    Attributes:
        id: "alert_{result.id}"
        record_id: Id of the record the owning result belongs to
        field: Field of the owning result
        severity: "high" or "critical"
        message: Message of the owning result
        discrepancy: Discrepancy amount of the owning result
        acknowledged: True once acknowledged
        acknowledged_at: First acknowledgment time
        created_at: When the owning result was validated
        priority: Sorting priority (higher first)
    """

    id: str
    record_id: str
    field: str
    severity: str
    message: str
    discrepancy: float
    created_at: datetime
    acknowledged: bool = False
    acknowledged_at: Optional[datetime] = None
    priority: float = 0.0

    def __post_init__(self):
        if self.severity not in ALERT_SEVERITIES:
            raise ValueError(
                f"Alerts only exist for {ALERT_SEVERITIES}, got '{self.severity}'"
            )

    @classmethod
    def from_result(cls, result: ValidationResult) -> "Alert":
        return cls(
            id=f"alert_{result.id}",
            record_id=result.record_id,
            field=result.field,
            severity=result.severity,
            message=result.message,
            discrepancy=result.discrepancy,
            created_at=result.validated_at,
            priority=calculate_priority(result.severity, result.discrepancy),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["acknowledged_at"] = (
            self.acknowledged_at.isoformat() if self.acknowledged_at else None
        )
        return data
