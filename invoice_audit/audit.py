"""Structured audit events handed to an external audit logger."""

import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .models.validation_summary import _sanitize_for_json

logger = logging.getLogger(__name__)

AuditSink = Callable[[Dict[str, Any]], None]

BATCH_STARTED = "batch_started"
BATCH_COMPLETED = "batch_completed"
BATCH_FAILED = "batch_failed"
BATCH_CANCELLED = "batch_cancelled"
RECORDS_REVALIDATED = "records_revalidated"
CONFIG_UPDATED = "config_updated"
CONFIG_RESET = "config_reset"


class LoggingAuditSink:
    """Default sink: one JSON line per event on the invoice_audit.audit logger."""

    def __init__(self, logger_name: str = "invoice_audit.audit", level: int = logging.INFO):
        self._logger = logging.getLogger(logger_name)
        self._level = level

    def __call__(self, event: Dict[str, Any]) -> None:
        self._logger.log(self._level, json.dumps(_sanitize_for_json(event), sort_keys=True))


def emit_audit_event(sink: Optional[AuditSink], event: str, **payload) -> Dict[str, Any]:
    """Send an event to the sink; sink failures are logged and never propagate.

    Returns:
        The event dict that was emitted
    """
    data = {"event": event, "timestamp": datetime.now().isoformat(), **payload}
    if sink is None:
        return data
    try:
        sink(data)
    except Exception as e:
        logger.warning(f"Audit sink failed for event '{event}': {e}")
    return data
