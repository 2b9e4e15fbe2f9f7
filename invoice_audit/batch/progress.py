"""Per-run progress tracking, state transitions and cooperative cancellation."""

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from ..events import Channel, Subscription
from ..models.progress import (
    CANCELLED,
    COMPLETED,
    FAILED,
    IDLE,
    PREPARING,
    TERMINAL_STATUSES,
    VALIDATING,
    Progress,
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    IDLE: (PREPARING,),
    PREPARING: (VALIDATING, FAILED, CANCELLED),
    VALIDATING: (COMPLETED, FAILED, CANCELLED),
    COMPLETED: (),
    FAILED: (),
    CANCELLED: (),
}


class CancellationToken:
    """Cooperative cancellation flag checked by the batch runner between records."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class BatchRun:
    """Scratch state of one batch invocation: status, counters and progress channel.

    Each validate/revalidate call owns its BatchRun, so concurrent calls never
    share mutable progress state. Progress events are emitted after every
    `interval` records; terminal events are always emitted once, after which
    the run publishes nothing further.

    Args:
        batch_id: Batch identifier
        total_records: Number of records in the run
        interval: Records between progress events
        clock: Callable returning the current time
    """

    def __init__(self, batch_id: str, total_records: int, interval: int = 1,
                 clock: Optional[Callable[[], datetime]] = None):
        self.batch_id = batch_id
        self.total_records = total_records
        self.interval = max(1, interval)
        self._clock = clock or datetime.now
        self.status = IDLE
        self.processed_records = 0
        self.current_step = ""
        self.started_at = self._clock()
        self.finished_at: Optional[datetime] = None
        self.channel: Channel = Channel(f"progress[{batch_id}]")
        self.last_progress: Optional[Progress] = None

    def subscribe(self, callback: Callable[[Progress], None], background: bool = False) -> Subscription:
        """Subscribe to progress events; background=True delivers them on a worker thread."""
        return self.channel.subscribe(callback, background=background)

    def transition(self, status: str, step: str = "") -> Progress:
        """Move to a new status and publish a progress event.

        Raises:
            RuntimeError: If the transition is not allowed from the current status
        """
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise RuntimeError(f"Invalid batch transition {self.status} -> {status}")
        self.status = status
        if status in TERMINAL_STATUSES:
            self.finished_at = self._clock()
        return self._publish(step or status)

    def record_processed(self, step: str = "") -> Optional[Progress]:
        """Count one processed record; publish when a chunk boundary is reached."""
        self.processed_records += 1
        if self.processed_records % self.interval == 0 and self.processed_records < self.total_records:
            return self._publish(step)
        return None

    def complete(self) -> Progress:
        self.processed_records = self.total_records
        return self.transition(COMPLETED, "Validation completed")

    def fail(self, message: str) -> Progress:
        return self.transition(FAILED, f"Validation failed: {message}")

    def cancel(self) -> Progress:
        return self.transition(CANCELLED, "Validation cancelled")

    def _publish(self, step: str) -> Progress:
        self.current_step = step
        progress = Progress(
            batch_id=self.batch_id,
            total_records=self.total_records,
            processed_records=self.processed_records,
            status=self.status,
            current_step=step,
            started_at=self.started_at,
            updated_at=self._clock(),
        )
        self.last_progress = progress
        self.channel.publish(progress)
        return progress
