"""Data models for records, results, alerts and summaries."""

from .alert import Alert
from .invoice_record import InvoiceRecord, LineItem
from .progress import Progress, ValidationIssue
from .validation_result import ValidationResult
from .validation_summary import ValidationSummary

__all__ = [
    "Alert",
    "InvoiceRecord",
    "LineItem",
    "Progress",
    "ValidationIssue",
    "ValidationResult",
    "ValidationSummary",
]
