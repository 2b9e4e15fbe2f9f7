"""Field evaluation, discrepancy classification and record validation."""

from .classifier import classify_discrepancy, classify_severity
from .field_evaluators import FIELD_EVALUATORS, evaluate_field, validate_field_names
from .record_validator import RecordCheck, RecordValidator

__all__ = [
    "FIELD_EVALUATORS",
    "RecordCheck",
    "RecordValidator",
    "classify_discrepancy",
    "classify_severity",
    "evaluate_field",
    "validate_field_names",
]
