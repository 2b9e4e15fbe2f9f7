"""Summary statistics recomputed from the current result set."""

import logging
import math
from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from ..errors import SummaryGenerationError
from ..models.severity import CRITICAL, HIGH, LOW, MEDIUM, SEVERITY_LEVELS
from ..models.validation_result import ValidationResult
from ..models.validation_summary import ValidationSummary

logger = logging.getLogger(__name__)

_COLUMNS = ["record_id", "severity", "discrepancy", "validated_at"]


def _check_result(index: int, result) -> None:
    if not isinstance(result, ValidationResult):
        raise SummaryGenerationError(
            f"Result #{index} is {type(result).__name__}, expected ValidationResult"
        )
    if not result.record_id:
        raise SummaryGenerationError(f"Result {result.id} has no record_id")
    if result.severity not in SEVERITY_LEVELS:
        raise SummaryGenerationError(f"Result {result.id} has unknown severity '{result.severity}'")
    if not isinstance(result.discrepancy, (int, float)) or math.isnan(result.discrepancy) \
            or math.isinf(result.discrepancy) or result.discrepancy < 0:
        raise SummaryGenerationError(
            f"Result {result.id} has invalid discrepancy {result.discrepancy!r}"
        )


def results_frame(results: Iterable[ValidationResult]) -> pd.DataFrame:
    """Build a DataFrame (record_id, severity, discrepancy, validated_at) from results.

    Raises:
        SummaryGenerationError: If any entry is not a well-formed ValidationResult
    """
    rows = []
    for index, result in enumerate(results):
        _check_result(index, result)
        rows.append({
            "record_id": result.record_id,
            "severity": result.severity,
            "discrepancy": float(result.discrepancy),
            "validated_at": result.validated_at,
        })
    return pd.DataFrame(rows, columns=_COLUMNS)


def generate_summary(
    results: Iterable[ValidationResult],
    record_ids: Optional[Iterable[str]] = None,
    batch_id: Optional[str] = None,
    started_at: Optional[datetime] = None,
    finished_at: Optional[datetime] = None,
) -> ValidationSummary:
    """Compute a ValidationSummary from scratch.

    Args:
        results: Current result set
        record_ids: Every record id validated (records without results count
            as valid). When omitted only records with results are counted.
        batch_id: Batch identifier (default "manual")
        started_at: Start of the time window (default: earliest validated_at)
        finished_at: End of the time window (default: latest validated_at)

    Returns:
        ValidationSummary. The output depends only on the inputs, so two
        calls over the same result set are identical.

    Raises:
        SummaryGenerationError: If the result set is malformed
    """
    df = results_frame(results)

    invalid_ids = set(df["record_id"].unique())
    known_ids = set(record_ids or ()) | invalid_ids
    severity_counts = df["severity"].value_counts()

    total_discrepancies = len(df)
    if total_discrepancies:
        total_amount = float(df["discrepancy"].sum())
        average_amount = float(df["discrepancy"].mean())
        max_amount = float(df["discrepancy"].max())
        window_start = started_at or df["validated_at"].min().to_pydatetime()
        window_end = finished_at or df["validated_at"].max().to_pydatetime()
    else:
        total_amount = average_amount = max_amount = 0.0
        window_start = started_at
        window_end = finished_at or started_at

    processing_time_ms = 0.0
    if window_start is not None and window_end is not None:
        processing_time_ms = (window_end - window_start).total_seconds() * 1000

    return ValidationSummary(
        total_records=len(known_ids),
        valid_records=len(known_ids) - len(invalid_ids),
        invalid_records=len(invalid_ids),
        total_discrepancies=total_discrepancies,
        critical_count=int(severity_counts.get(CRITICAL, 0)),
        high_count=int(severity_counts.get(HIGH, 0)),
        medium_count=int(severity_counts.get(MEDIUM, 0)),
        low_count=int(severity_counts.get(LOW, 0)),
        total_discrepancy_amount=total_amount,
        average_discrepancy_amount=average_amount,
        max_discrepancy_amount=max_amount,
        batch_id=batch_id or "manual",
        validation_start_time=window_start,
        validation_end_time=window_end,
        processing_time_ms=processing_time_ms,
    )


def most_common_discrepancies(results: Iterable[ValidationResult], limit: int = 5) -> list:
    """Fields ranked by number of discrepancies, with their summed amounts.

    Returns:
        List of dicts: field, count, total_discrepancy_amount
    """
    rows = []
    for index, result in enumerate(results):
        _check_result(index, result)
        # line_item_total_1, line_item_total_2, ... are one field family
        field = "line_item_total" if result.field.startswith("line_item_total_") else result.field
        rows.append({"field": field, "discrepancy": float(result.discrepancy)})
    if not rows:
        return []
    df = pd.DataFrame(rows)
    grouped = (
        df.groupby("field")["discrepancy"]
        .agg(["count", "sum"])
        .reset_index()
        .sort_values(["count", "sum", "field"], ascending=[False, False, True])
        .head(limit)
    )
    return [
        {"field": row["field"], "count": int(row["count"]), "total_discrepancy_amount": float(row["sum"])}
        for _, row in grouped.iterrows()
    ]
