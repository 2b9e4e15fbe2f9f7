"""Holder for the active validation configuration."""

import logging
import threading
from typing import Any, Callable, Dict, Optional

from .profile_loader import DEFAULT_CONFIG, ValidationConfig

logger = logging.getLogger(__name__)


class ConfigStore:
    """Single mutable holder of the active ValidationConfig.

    The held config itself is immutable, so a reader that grabbed it with
    get() keeps a consistent view even if update() runs concurrently.

    Args:
        initial: Starting config (default: compiled-in DEFAULT_CONFIG)
        defaults: Config restored by reset() (default: compiled-in DEFAULT_CONFIG)
        on_change: Optional callback(event, config) invoked after update/reset
    """

    def __init__(
        self,
        initial: Optional[ValidationConfig] = None,
        defaults: Optional[ValidationConfig] = None,
        on_change: Optional[Callable[[str, ValidationConfig], None]] = None,
    ):
        self._defaults = defaults or DEFAULT_CONFIG
        self._config = initial or self._defaults
        self._lock = threading.Lock()
        self._on_change = on_change

    def get(self) -> ValidationConfig:
        return self._config

    __call__ = get

    def update(self, partial: Dict[str, Any]) -> ValidationConfig:
        """Merge partial config per top-level key into the active config.

        Raises:
            ConfigurationError: If the merged config is invalid; the active
                config is left unchanged
        """
        with self._lock:
            self._config = self._config.merge(partial)
            config = self._config
        logger.info("Validation config updated: %s", sorted((partial or {}).keys()))
        self._notify("config_updated", config)
        return config

    def replace(self, config: ValidationConfig) -> ValidationConfig:
        """Replace the active config wholesale (e.g. after loading a profile)."""
        with self._lock:
            self._config = config
        self._notify("config_updated", config)
        return config

    def reset(self) -> ValidationConfig:
        """Restore the compiled-in defaults."""
        with self._lock:
            self._config = self._defaults
            config = self._config
        logger.info("Validation config reset to defaults")
        self._notify("config_reset", config)
        return config

    def _notify(self, event: str, config: ValidationConfig) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(event, config)
        except Exception as e:
            logger.warning(f"Config change listener failed: {e}")
