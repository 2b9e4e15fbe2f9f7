"""Validation configuration model and YAML profile loader."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

LINE_ITEM_FIELD_PREFIX = "line_item_total"


class SeverityThresholds(BaseModel):
    """Severity boundary amounts. A discrepancy at or above a bound is in that tier."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    low: float = Field(1.0, ge=0)
    medium: float = Field(5.0, ge=0)
    high: float = Field(10.0, ge=0)
    critical: float = Field(20.0, ge=0)

    @model_validator(mode="after")
    def check_ascending(self) -> "SeverityThresholds":
        if not self.low <= self.medium <= self.high <= self.critical:
            raise ValueError(
                "thresholds must satisfy low <= medium <= high <= critical, got "
                f"low={self.low}, medium={self.medium}, high={self.high}, critical={self.critical}"
            )
        return self


class FieldTolerances(BaseModel):
    """Allowed deviation per field before a discrepancy is reported."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    tax_amount: float = Field(0.01, ge=0)
    total_amount: float = Field(0.01, ge=0)
    subtotal: float = Field(0.01, ge=0)
    line_item_total: float = Field(0.01, ge=0)


class ValidationRules(BaseModel):
    """Switches for the individual calculation checks."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    validate_tax_calculation: bool = True
    validate_total_calculation: bool = True
    validate_subtotal: bool = False
    validate_line_item_totals: bool = True


class ValidationConfig(BaseModel):
    """Active validation configuration.

    Instances are immutable; updates go through ValidationConfig.merge (or the
    config store) and always produce a freshly validated instance.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = "default"
    description: str = ""
    thresholds: SeverityThresholds = Field(default_factory=SeverityThresholds)
    tolerances: FieldTolerances = Field(default_factory=FieldTolerances)
    rules: ValidationRules = Field(default_factory=ValidationRules)
    precision: int = Field(2, ge=0, le=6)
    percentage_epsilon: float = Field(0.01, gt=0)

    def tolerance_for(self, field: str) -> float:
        """Return the tolerance for a field; line_item_total_<n> share one tolerance."""
        if field.startswith(LINE_ITEM_FIELD_PREFIX):
            return self.tolerances.line_item_total
        try:
            return getattr(self.tolerances, field)
        except AttributeError:
            raise ConfigurationError(f"No tolerance configured for field '{field}'") from None

    def merge(self, partial: Dict[str, Any]) -> "ValidationConfig":
        """Merge a partial config per top-level key and return a new validated config.

        Nested mappings (thresholds, tolerances, rules) are merged key-wise,
        scalar keys are replaced.

        Raises:
            ConfigurationError: If the merged config is invalid
        """
        data = self.model_dump()
        for key, value in (partial or {}).items():
            if isinstance(value, BaseModel):
                value = value.model_dump()
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value
        return build_config(data)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


DEFAULT_CONFIG = ValidationConfig(
    name="default",
    description="Compiled-in defaults",
)


def build_config(data: Dict[str, Any]) -> ValidationConfig:
    """Validate a raw mapping into a ValidationConfig.

    Raises:
        ConfigurationError: If the mapping is not a valid configuration
    """
    try:
        return ValidationConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid validation config: {e}") from e


def get_profiles_dir() -> Path:
    """Get directory containing profile YAML files.

    Returns:
        INVOICE_AUDIT_PROFILES_DIR if set, otherwise the bundled profiles directory
    """
    from .settings import get_profiles_dir_override

    override = get_profiles_dir_override()
    if override is not None:
        return override
    return Path(__file__).resolve().parent / "profiles"


def load_profile(profile_name: str = "default", profiles_dir: Optional[Path] = None) -> ValidationConfig:
    """Load a validation profile.

    Args:
        profile_name: Name of profile to load (without .yaml extension)
        profiles_dir: Directory to look in (default: get_profiles_dir())

    Returns:
        ValidationConfig built from the profile

    Raises:
        FileNotFoundError: If profile file doesn't exist
        ConfigurationError: If profile file is invalid
    """
    profiles_dir = Path(profiles_dir) if profiles_dir is not None else get_profiles_dir()
    profile_path = profiles_dir / f"{profile_name}.yaml"

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_name} (expected at {profile_path})")

    try:
        with open(profile_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in profile {profile_name}: {e}") from e

    if not data:
        raise ConfigurationError(f"Profile file is empty: {profile_path}")

    data.setdefault("name", profile_name)
    logger.debug("Loaded validation profile %s from %s", profile_name, profile_path)
    return build_config(data)


def list_available_profiles(profiles_dir: Optional[Path] = None) -> list:
    """List all available profile names.

    Returns:
        Sorted profile names (without .yaml extension)
    """
    profiles_dir = Path(profiles_dir) if profiles_dir is not None else get_profiles_dir()

    if not profiles_dir.exists():
        return ["default"]

    profiles = [profile_file.stem for profile_file in profiles_dir.glob("*.yaml")]
    return sorted(profiles) if profiles else ["default"]


def get_default_profile() -> ValidationConfig:
    """Get default profile (always available)."""
    try:
        return load_profile("default")
    except FileNotFoundError:
        return DEFAULT_CONFIG
