"""Fire-and-forget observer channel used for progress and alert notifications."""

import logging
import queue
import threading
from typing import Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STOP = object()


class Subscription:
    """Handle returned by Channel.subscribe; unsubscribe() is idempotent."""

    def __init__(self, channel: "Channel", token: int, on_close: Optional[Callable[[], None]] = None):
        self._channel = channel
        self._token = token
        self._on_close = on_close
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._channel._remove(self._token)
            self.active = False
            if self._on_close is not None:
                self._on_close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.unsubscribe()


class BackgroundDelivery:
    """Hands events to a callback on a worker thread through a queue.

    The publisher only enqueues. close() lets the worker drain what is
    already queued, then stops it.

    Args:
        callback: Subscriber callback run on the worker thread
        name: Name used for the thread and log messages
        drain_timeout: Seconds close() waits for the queue to drain
    """

    def __init__(self, callback: Callable[[T], None], name: str = "subscriber", drain_timeout: float = 5.0):
        self.callback = callback
        self.name = name
        self.drain_timeout = drain_timeout
        self._queue: "queue.Queue" = queue.Queue()
        self._thread = threading.Thread(target=self._drain, name=f"{name}-delivery", daemon=True)
        self._thread.start()

    def __call__(self, event: T) -> None:
        self._queue.put(event)

    def close(self) -> None:
        self._queue.put(_STOP)
        if threading.current_thread() is not self._thread:
            self._thread.join(self.drain_timeout)
            if self._thread.is_alive():
                logger.warning(f"{self.name} delivery still busy after {self.drain_timeout}s")

    def _drain(self) -> None:
        while True:
            event = self._queue.get()
            if event is _STOP:
                return
            try:
                self.callback(event)
            except Exception as e:
                logger.warning(f"{self.name} subscriber failed: {e}")


class Channel(Generic[T]):
    """Typed publish/subscribe channel.

    publish() never raises: a failing subscriber is logged and skipped, and
    subscribers removed mid-publish are not called again.

    Plain subscribers run on the publishing thread, so a slow callback
    delays the publisher. Subscribe with background=True to have events
    queued and delivered on a worker thread instead; unsubscribing then
    waits for the queued events to be delivered.
    """

    def __init__(self, name: str = "channel"):
        self.name = name
        self._subscribers: Dict[int, Callable[[T], None]] = {}
        self._next_token = 0
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[T], None], background: bool = False,
                  drain_timeout: float = 5.0) -> Subscription:
        on_close = None
        if background:
            callback = BackgroundDelivery(callback, name=self.name, drain_timeout=drain_timeout)
            on_close = callback.close
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = callback
        return Subscription(self, token, on_close=on_close)

    def _remove(self, token: int) -> None:
        with self._lock:
            self._subscribers.pop(token, None)

    def __len__(self) -> int:
        return len(self._subscribers)

    def publish(self, event: T) -> None:
        with self._lock:
            subscribers = list(self._subscribers.items())
        for token, callback in subscribers:
            if token not in self._subscribers:
                continue
            try:
                callback(event)
            except Exception as e:
                logger.warning(f"{self.name} subscriber failed: {e}")
