"""Alert lifecycle management."""

from .alert_manager import AlertManager, should_notify

__all__ = ["AlertManager", "should_notify"]
