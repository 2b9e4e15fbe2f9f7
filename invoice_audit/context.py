"""Explicit validation context injected into batch runs."""

import logging
from datetime import datetime
from typing import Callable, Optional

from .audit import CONFIG_RESET, CONFIG_UPDATED, AuditSink, LoggingAuditSink, emit_audit_event
from .config.config_store import ConfigStore
from .config.profile_loader import ValidationConfig, get_default_profile, load_profile
from .config.settings import get_active_profile_name
from .store.result_store import ResultStore

logger = logging.getLogger(__name__)


class ValidationContext:
    """Bundles the config store, the result store, the audit sink and the clock.

    Each context is independent; tests and embedding applications create as
    many as they need instead of sharing process-wide state.

    Args:
        config: Initial config (default: compiled-in defaults)
        audit_sink: Receiver of audit events (default: LoggingAuditSink)
        clock: Callable returning the current time (default: datetime.now)
    """

    def __init__(
        self,
        config: Optional[ValidationConfig] = None,
        audit_sink: Optional[AuditSink] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.clock = clock or datetime.now
        self.audit_sink = audit_sink if audit_sink is not None else LoggingAuditSink()
        self.config_store = ConfigStore(initial=config, on_change=self._on_config_change)
        self.store = ResultStore(clock=self.clock)

    @classmethod
    def from_profile(cls, profile_name: Optional[str] = None, **kwargs) -> "ValidationContext":
        """Create a context whose initial config is a YAML profile.

        Args:
            profile_name: Profile to load (default: INVOICE_AUDIT_PROFILE or "default")
        """
        profile_name = profile_name or get_active_profile_name()
        if profile_name == "default":
            config = get_default_profile()
        else:
            config = load_profile(profile_name)
        logger.info(f"Using validation profile '{config.name}'")
        return cls(config=config, **kwargs)

    @property
    def config(self) -> ValidationConfig:
        return self.config_store.get()

    @property
    def alerts(self):
        return self.store.alerts

    def emit(self, event: str, **payload) -> None:
        emit_audit_event(self.audit_sink, event, **payload)

    def _on_config_change(self, event: str, config: ValidationConfig) -> None:
        name = CONFIG_RESET if event == "config_reset" else CONFIG_UPDATED
        self.emit(name, config=config.to_dict())
