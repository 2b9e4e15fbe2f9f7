"""Invoice calculation validation and discrepancy alerting engine."""

__version__ = "0.1.0"
