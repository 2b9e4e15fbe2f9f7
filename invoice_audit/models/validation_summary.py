"""ValidationSummary model and serialization."""

import json
import math
import os
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional


def _sanitize_for_json(obj: Any) -> Any:
    """Recursively replace NaN/Inf, datetimes and numpy-like numbers so JSON round-trip works."""
    if isinstance(obj, dict):
        return {k: _sanitize_for_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_sanitize_for_json(v) for v in obj]
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, float):
        return 0.0 if (math.isnan(obj) or math.isinf(obj)) else obj
    if isinstance(obj, (int, str, type(None), bool)):
        return obj
    # numpy scalars, decimal.Decimal, etc.
    try:
        f = float(obj)
        if math.isnan(f) or math.isinf(f):
            return 0.0
        return f
    except (TypeError, ValueError):
        pass
    return obj


@dataclass(frozen=True)
class ValidationSummary:
    """Summary statistics over a result set.

    Never maintained incrementally: every instance is recomputed from the
    current results by the summary aggregator.
    """

    total_records: int = 0
    valid_records: int = 0
    invalid_records: int = 0
    total_discrepancies: int = 0

    critical_count: int = 0
    high_count: int = 0
    medium_count: int = 0
    low_count: int = 0

    total_discrepancy_amount: float = 0.0
    average_discrepancy_amount: float = 0.0
    max_discrepancy_amount: float = 0.0

    batch_id: str = "manual"
    validation_start_time: Optional[datetime] = None
    validation_end_time: Optional[datetime] = None
    processing_time_ms: float = 0.0

    def to_dict(self) -> dict:
        return _sanitize_for_json(asdict(self))


def save_json(data: dict, path: Path) -> None:
    """Save data to a JSON file (atomic write to avoid truncated file on interrupt)."""
    path = Path(path)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(_sanitize_for_json(data), f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)
