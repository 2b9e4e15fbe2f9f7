"""Severity tiers for discrepancies."""

LOW = "low"
MEDIUM = "medium"
HIGH = "high"
CRITICAL = "critical"

# Ascending order; index doubles as rank.
SEVERITY_LEVELS = (LOW, MEDIUM, HIGH, CRITICAL)

ALERT_SEVERITIES = (HIGH, CRITICAL)


def severity_rank(severity: str) -> int:
    """Return the rank of a severity (0 = low, 3 = critical)."""
    try:
        return SEVERITY_LEVELS.index(severity)
    except ValueError:
        raise ValueError(f"Unknown severity: {severity!r}") from None
