"""Canonical in-memory result set shared by batch runs, alerts and summaries."""

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

from ..alerts.alert_manager import AlertManager
from ..models.alert import Alert
from ..models.validation_result import ValidationResult
from ..models.validation_summary import ValidationSummary
from ..summary.aggregator import generate_summary

logger = logging.getLogger(__name__)


class StoreSnapshot(NamedTuple):
    """Consistent read of results, alerts, known record ids and run markers."""

    results: Tuple[ValidationResult, ...]
    alerts: Tuple[Alert, ...]
    unacknowledged_alerts: Tuple[Alert, ...]
    record_ids: Tuple[str, ...]
    batch_id: Optional[str] = None
    last_validation_time: Optional[datetime] = None


class ResultStore:
    """Results, validated record ids and alerts behind one re-entrant lock.

    Every mutation (append, replace-for-ids, clear) is applied in a single
    critical section that also updates the alerts, so a reader never sees
    results without their alerts or the other way round.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._lock = threading.RLock()
        self._clock = clock or datetime.now
        self._results: List[ValidationResult] = []
        # Insertion-ordered set of every record id validated and not cleared
        self._record_ids: Dict[str, None] = {}
        self.alerts = AlertManager(lock=self._lock, clock=clock)
        self.current_batch_id: Optional[str] = None
        self.last_validation_time: Optional[datetime] = None

    # Mutations

    def replace_all(self, results: Iterable[ValidationResult] = (), record_ids: Iterable[str] = (),
                    batch_id: Optional[str] = None) -> List[Alert]:
        """Drop everything and install a new result set.

        Raises:
            ValueError: If result ids repeat; the store is left unchanged
        """
        results = list(results)
        self._check_unique(results, kept=())
        with self._lock:
            self._results = []
            self._record_ids = {}
            self.alerts._clear()
            created = self._apply(results, record_ids)
            self.current_batch_id = batch_id
        self.alerts._notify(created)
        return created

    def replace_for_records(self, record_ids: Iterable[str], results: Iterable[ValidationResult],
                            validated_ids: Optional[Iterable[str]] = None) -> List[Alert]:
        """Atomically clear results/alerts for record_ids and apply new results.

        Args:
            record_ids: Ids whose existing results and alerts are cleared
            results: New results (each record_id must be in record_ids)
            validated_ids: Ids actually re-validated (default: record_ids);
                ids cleared but not re-validated are forgotten

        Returns:
            Alerts created for the new results

        Raises:
            ValueError: If a result belongs to another record id or its id
                collides with a kept result; the store is left unchanged
        """
        record_ids = list(record_ids)
        results = list(results)
        targets = set(record_ids)
        stray = {r.record_id for r in results} - targets
        if stray:
            raise ValueError(f"Results reference record ids outside the replaced set: {sorted(stray)}")

        with self._lock:
            self._check_unique(results, kept=(r for r in self._results if r.record_id not in targets))
            self._remove(targets)
            created = self._apply(results, validated_ids if validated_ids is not None else record_ids)
        self.alerts._notify(created)
        return created

    def clear_results_for_records(self, record_ids: Iterable[str]) -> int:
        """Remove all and only results/alerts whose record_id is in record_ids.

        Returns:
            Number of results removed
        """
        with self._lock:
            return self._remove(set(record_ids))

    def clear_all(self) -> None:
        with self._lock:
            self._results = []
            self._record_ids = {}
            self.alerts._clear()
            self.current_batch_id = None
            self.last_validation_time = None

    def remove_result(self, result_id: str) -> bool:
        """Remove a single result and the alert derived from it."""
        with self._lock:
            kept = [r for r in self._results if r.id != result_id]
            if len(kept) == len(self._results):
                return False
            self._results = kept
            self.alerts.dismiss_alert(f"alert_{result_id}")
            return True

    @staticmethod
    def _check_unique(results: List[ValidationResult], kept: Iterable[ValidationResult]) -> None:
        seen = {r.id for r in kept}
        for result in results:
            if result.id in seen:
                raise ValueError(f"Duplicate result id {result.id}")
            seen.add(result.id)

    def _remove(self, record_ids) -> int:
        before = len(self._results)
        self._results = [r for r in self._results if r.record_id not in record_ids]
        for record_id in record_ids:
            self._record_ids.pop(record_id, None)
        self.alerts._remove_for_records(record_ids)
        return before - len(self._results)

    def _apply(self, results: List[ValidationResult], record_ids: Iterable[str]) -> List[Alert]:
        created = self.alerts._add_for_results(results)
        record_ids = list(record_ids)
        for record_id in record_ids:
            self._record_ids[record_id] = None
        for result in results:
            self._record_ids.setdefault(result.record_id, None)
        self._results.extend(results)
        if results or record_ids:
            self.last_validation_time = self._clock()
        return created

    # Reads

    def get_results(self) -> List[ValidationResult]:
        with self._lock:
            return list(self._results)

    def get_results_by_record(self, record_id: str) -> List[ValidationResult]:
        with self._lock:
            return [r for r in self._results if r.record_id == record_id]

    def get_results_by_severity(self, severity: str) -> List[ValidationResult]:
        with self._lock:
            return [r for r in self._results if r.severity == severity]

    def get_record_ids(self) -> List[str]:
        with self._lock:
            return list(self._record_ids)

    def has_record(self, record_id: str) -> bool:
        with self._lock:
            return record_id in self._record_ids

    def snapshot(self) -> StoreSnapshot:
        with self._lock:
            return StoreSnapshot(
                results=tuple(self._results),
                alerts=tuple(self.alerts.get_alerts()),
                unacknowledged_alerts=tuple(self.alerts.get_unacknowledged_alerts()),
                record_ids=tuple(self._record_ids),
                batch_id=self.current_batch_id,
                last_validation_time=self.last_validation_time,
            )

    def generate_summary(self) -> ValidationSummary:
        """Summary of the live result set, recomputed on every call.

        Raises:
            SummaryGenerationError: If the result set is malformed; the store
                is left untouched
        """
        return self._summarize(self.snapshot())

    def get_validation_statistics(self) -> Dict[str, Any]:
        """Session statistics taken from one consistent snapshot.

        Returns:
            Dict with validated_records, total_results, total_alerts,
            unacknowledged_alerts, last_validation_time, current_batch_id
            and summary (a ValidationSummary)

        Raises:
            SummaryGenerationError: If the result set is malformed
        """
        snapshot = self.snapshot()
        return {
            "validated_records": len(snapshot.record_ids),
            "total_results": len(snapshot.results),
            "total_alerts": len(snapshot.alerts),
            "unacknowledged_alerts": len(snapshot.unacknowledged_alerts),
            "last_validation_time": snapshot.last_validation_time,
            "current_batch_id": snapshot.batch_id,
            "summary": self._summarize(snapshot),
        }

    @staticmethod
    def _summarize(snapshot: StoreSnapshot) -> ValidationSummary:
        return generate_summary(
            snapshot.results,
            record_ids=snapshot.record_ids,
            batch_id=snapshot.batch_id,
        )
