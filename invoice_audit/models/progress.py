"""Progress and error-entry models for a single batch invocation."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

IDLE = "idle"
PREPARING = "preparing"
VALIDATING = "validating"
COMPLETED = "completed"
FAILED = "failed"
CANCELLED = "cancelled"

TERMINAL_STATUSES = (COMPLETED, FAILED, CANCELLED)


@dataclass(frozen=True)
class Progress:
    """Snapshot of batch progress delivered to progress subscribers."""

    batch_id: str
    total_records: int
    processed_records: int
    status: str
    current_step: str
    started_at: datetime
    updated_at: datetime

    @property
    def progress_percentage(self) -> int:
        if self.total_records <= 0:
            return 100 if self.status == COMPLETED else 0
        return round(self.processed_records / self.total_records * 100)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class ValidationIssue:
    """Error entry correlated by record id.

    Attributes:
        record_id: Record the error belongs to
        kind: "field" (one field skipped) or "record" (whole record skipped)
        message: Error description
        field: Field name for field-level errors
        occurred_at: When the error was captured
    """

    record_id: str
    kind: str
    message: str
    field: Optional[str] = None
    occurred_at: datetime = dataclasses.field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "record_id": self.record_id,
            "kind": self.kind,
            "message": self.message,
            "field": self.field,
            "occurred_at": self.occurred_at.isoformat(),
        }
