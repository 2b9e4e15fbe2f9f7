"""Environment-driven settings for the validation engine."""

import logging
import math
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Upper bound on progress events per batch when no interval is configured.
MAX_PROGRESS_EVENTS = 100


def get_app_name() -> str:
    return "Invoice Audit"


def get_active_profile_name() -> str:
    """Get the profile to load at startup.

    Returns:
        INVOICE_AUDIT_PROFILE, default "default"
    """
    return os.getenv("INVOICE_AUDIT_PROFILE", "default")


def get_profiles_dir_override() -> Optional[Path]:
    """Get profiles directory from INVOICE_AUDIT_PROFILES_DIR, or None."""
    env_path = os.getenv("INVOICE_AUDIT_PROFILES_DIR")
    if env_path:
        return Path(env_path)
    return None


def get_log_level() -> int:
    """Get log level from INVOICE_AUDIT_LOG_LEVEL (default INFO)."""
    name = os.getenv("INVOICE_AUDIT_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        logger.warning(f"Invalid log level: {name}, using 'INFO'")
        return logging.INFO
    return level


def get_progress_interval(total_records: int) -> int:
    """Get number of records between progress events.

    Args:
        total_records: Size of the batch

    Returns:
        INVOICE_AUDIT_PROGRESS_INTERVAL if set to a positive integer, otherwise
        ceil(total_records / MAX_PROGRESS_EVENTS) (at least 1)
    """
    env_value = os.getenv("INVOICE_AUDIT_PROGRESS_INTERVAL")
    if env_value:
        try:
            interval = int(env_value)
            if interval > 0:
                return interval
        except ValueError:
            pass
        logger.warning(f"Invalid INVOICE_AUDIT_PROGRESS_INTERVAL: {env_value}, using default")
    return max(1, math.ceil(total_records / MAX_PROGRESS_EVENTS))
