"""Validation configuration: model, profiles, store and settings."""

from .config_store import ConfigStore
from .profile_loader import (
    DEFAULT_CONFIG,
    ValidationConfig,
    build_config,
    get_default_profile,
    list_available_profiles,
    load_profile,
)

__all__ = [
    "ConfigStore",
    "DEFAULT_CONFIG",
    "ValidationConfig",
    "build_config",
    "get_default_profile",
    "list_available_profiles",
    "load_profile",
]
