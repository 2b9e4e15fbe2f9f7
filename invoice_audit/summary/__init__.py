"""Summary statistics over validation results."""

from .aggregator import generate_summary, most_common_discrepancies

__all__ = ["generate_summary", "most_common_discrepancies"]
