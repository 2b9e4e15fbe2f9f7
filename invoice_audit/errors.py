"""Exception hierarchy for the validation engine."""

from typing import Optional


class InvoiceAuditError(Exception):
    """Base class for all validation engine errors."""


class ConfigurationError(InvoiceAuditError):
    """Invalid validation configuration or unknown field registration."""


class FieldEvaluationError(InvoiceAuditError):
    """A single field could not be evaluated. Recoverable: the field is skipped."""

    def __init__(self, field: str, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.field = field
        self.record_id = record_id


class RecordStructuralError(InvoiceAuditError):
    """A record lacks a field required for computation.

    Recoverable: the record validator turns it into a synthetic critical result.
    """

    def __init__(self, record_id: Optional[str], missing_fields):
        self.record_id = record_id
        self.missing_fields = list(missing_fields)
        super().__init__(
            f"Record {record_id} is missing required field(s): {', '.join(self.missing_fields)}"
        )


class BatchFatalError(InvoiceAuditError):
    """The batch as a whole failed. Results already committed are kept."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code}


class SummaryGenerationError(InvoiceAuditError):
    """The current result set cannot be summarised."""
