"""Alert lifecycle: creation from high/critical results, acknowledgment, dismissal."""

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from ..events import Channel, Subscription
from ..models.alert import Alert
from ..models.severity import ALERT_SEVERITIES, HIGH, SEVERITY_LEVELS, severity_rank
from ..models.validation_result import ValidationResult

logger = logging.getLogger(__name__)


def should_notify(alert: Alert, min_severity: str = HIGH, min_discrepancy: float = 0.0) -> bool:
    """Return True if the alert reaches both the severity and discrepancy bars."""
    if severity_rank(alert.severity) < severity_rank(min_severity):
        return False
    return abs(alert.discrepancy) >= min_discrepancy


class AlertManager:
    """Holds alerts and the unacknowledged index.

    Transitions:
        result(high|critical) -> alert(unacknowledged) -> acknowledge -> alert(acknowledged)
        alert(any) -> dismiss -> removed

    Alerts are immutable; acknowledgment swaps in an updated copy. Every
    operation that touches both the alert list and the unacknowledged index
    runs under one lock, shared with the result store when the manager is
    owned by one.

    Args:
        lock: Lock to share with the owning result store
        clock: Callable returning the current time
    """

    def __init__(self, lock: Optional[threading.RLock] = None, clock: Optional[Callable[[], datetime]] = None):
        self._lock = lock or threading.RLock()
        self._clock = clock or datetime.now
        self._alerts: Dict[str, Alert] = {}
        self._unacknowledged: Dict[str, None] = {}
        self._notifications: Channel = Channel("alert notification")

    # Mutations used by the result store (caller holds the lock)

    def _add_for_results(self, results: Iterable[ValidationResult]) -> List[Alert]:
        """Create one alert per high/critical result.

        Raises:
            ValueError: If an alert id already exists or repeats within
                results; nothing is added in that case
        """
        created = [Alert.from_result(r) for r in results if r.severity in ALERT_SEVERITIES]
        seen = set()
        for alert in created:
            if alert.id in self._alerts or alert.id in seen:
                raise ValueError(f"Alert {alert.id} already exists")
            seen.add(alert.id)
        for alert in created:
            self._alerts[alert.id] = alert
            self._unacknowledged[alert.id] = None
        return created

    def _remove_for_records(self, record_ids) -> int:
        record_ids = set(record_ids)
        doomed = [alert_id for alert_id, alert in self._alerts.items() if alert.record_id in record_ids]
        for alert_id in doomed:
            del self._alerts[alert_id]
            self._unacknowledged.pop(alert_id, None)
        return len(doomed)

    def _clear(self) -> None:
        self._alerts = {}
        self._unacknowledged = {}

    def _notify(self, alerts: List[Alert]) -> None:
        for alert in alerts:
            self._notifications.publish(alert)

    # Public lifecycle

    def acknowledge_alert(self, alert_id: str) -> Optional[Alert]:
        """Acknowledge one alert.

        Unknown ids are a no-op. Re-acknowledging keeps the original
        acknowledged_at so the audit trail records the first acknowledgment.

        Returns:
            The acknowledged alert, or None if the id is unknown
        """
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                logger.debug(f"acknowledge_alert: unknown alert {alert_id}")
                return None
            if not alert.acknowledged:
                alert = replace(alert, acknowledged=True, acknowledged_at=self._clock())
                self._alerts[alert_id] = alert
            self._unacknowledged.pop(alert_id, None)
            return alert

    def acknowledge_all_alerts(self) -> int:
        """Acknowledge every unacknowledged alert with one shared timestamp.

        Idempotent: a second call finds nothing to acknowledge.

        Returns:
            Number of alerts acknowledged by this call
        """
        with self._lock:
            if not self._unacknowledged:
                return 0
            now = self._clock()
            count = 0
            for alert_id, alert in self._alerts.items():
                if not alert.acknowledged:
                    self._alerts[alert_id] = replace(alert, acknowledged=True, acknowledged_at=now)
                    count += 1
            self._unacknowledged = {}
        logger.info(f"Acknowledged {count} alert(s)")
        return count

    def dismiss_alert(self, alert_id: str) -> bool:
        """Remove one alert from both the alert list and the unacknowledged index.

        Returns:
            True if the alert existed
        """
        with self._lock:
            if self._alerts.pop(alert_id, None) is None:
                return False
            self._unacknowledged.pop(alert_id, None)
            return True

    # Read access

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        with self._lock:
            return self._alerts.get(alert_id)

    def get_alerts(self) -> List[Alert]:
        with self._lock:
            return list(self._alerts.values())

    def get_unacknowledged_alerts(self) -> List[Alert]:
        with self._lock:
            return [self._alerts[alert_id] for alert_id in self._unacknowledged]

    def get_alerts_by_severity(self, *severities: str) -> List[Alert]:
        unknown = [s for s in severities if s not in SEVERITY_LEVELS]
        if unknown:
            raise ValueError(f"Unknown severity: {unknown}")
        with self._lock:
            return [alert for alert in self._alerts.values() if alert.severity in severities]

    def prioritized_alerts(self) -> List[Alert]:
        """Alerts sorted by priority (highest first), then newest first."""
        alerts = self.get_alerts()
        return sorted(alerts, key=lambda a: (a.priority, a.created_at), reverse=True)

    def get_alert_statistics(self) -> dict:
        """Counts by status and severity plus discrepancy totals over all alerts."""
        with self._lock:
            alerts = list(self._alerts.values())
            unacknowledged = len(self._unacknowledged)

        stats = {
            "total": len(alerts),
            "acknowledged": sum(1 for a in alerts if a.acknowledged),
            "unacknowledged": unacknowledged,
            "by_severity": {severity: 0 for severity in ALERT_SEVERITIES},
            "total_discrepancy_amount": 0.0,
            "average_discrepancy_amount": 0.0,
            "max_discrepancy_amount": 0.0,
            "oldest_alert": None,
            "newest_alert": None,
        }
        if not alerts:
            return stats

        for alert in alerts:
            stats["by_severity"][alert.severity] += 1
        discrepancies = [abs(a.discrepancy) for a in alerts]
        stats["total_discrepancy_amount"] = sum(discrepancies)
        stats["average_discrepancy_amount"] = stats["total_discrepancy_amount"] / len(alerts)
        stats["max_discrepancy_amount"] = max(discrepancies)
        stats["oldest_alert"] = min(alerts, key=lambda a: a.created_at).id
        stats["newest_alert"] = max(alerts, key=lambda a: a.created_at).id
        return stats

    def subscribe(
        self,
        callback: Callable[[Alert], None],
        min_severity: str = HIGH,
        min_discrepancy: float = 0.0,
        background: bool = False,
    ) -> Subscription:
        """Subscribe to newly created alerts meeting the notification bars.

        Callbacks run after the store mutation is applied and never fail the
        validation run. With background=True they run on a worker thread and
        never block it either.
        """
        severity_rank(min_severity)

        def _filtered(alert: Alert) -> None:
            if should_notify(alert, min_severity, min_discrepancy):
                callback(alert)

        return self._notifications.subscribe(_filtered, background=background)
