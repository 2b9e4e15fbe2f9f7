"""Record-level validation: run every registered field check on one record."""

import logging
from datetime import datetime
from typing import Callable, Iterable, List, NamedTuple, Optional, Union

from ..config.profile_loader import LINE_ITEM_FIELD_PREFIX, ValidationConfig
from ..errors import ConfigurationError, FieldEvaluationError, RecordStructuralError
from ..models.invoice_record import InvoiceRecord
from ..models.progress import ValidationIssue
from ..models.severity import CRITICAL
from ..models.validation_result import ValidationResult, make_result_id
from .classifier import classify_discrepancy
from .field_evaluators import (
    FIELD_EVALUATORS,
    evaluate_field,
    expected_line_item_total,
    missing_required_fields,
    recorded_value,
    round_amount,
    to_decimal,
    validate_field_names,
)

logger = logging.getLogger(__name__)

ConfigProvider = Union[ValidationConfig, Callable[[], ValidationConfig]]


class RecordCheck(NamedTuple):
    """Outcome of validating one record: discrepancies plus skipped-field errors."""

    results: List[ValidationResult]
    issues: List[ValidationIssue]


def structural_result(error: RecordStructuralError, validated_at: datetime) -> ValidationResult:
    """Build the synthetic critical result reported for a structurally invalid record."""
    field = error.missing_fields[0]
    return ValidationResult(
        id=make_result_id(error.record_id, field, validated_at),
        record_id=error.record_id,
        field=field,
        original_value=None,
        calculated_value=None,
        discrepancy=0.0,
        discrepancy_percentage=None,
        severity=CRITICAL,
        message=f"Missing required field(s) for calculation: {', '.join(error.missing_fields)}",
        validated_at=validated_at,
    )


class RecordValidator:
    """Runs every registered field evaluator and the classifier on one record.

    The validator holds no result state; committing results is the batch
    runner's job.

    Args:
        config: ValidationConfig or a zero-argument callable returning the
            active config (e.g. a ConfigStore)
        fields: Fields to validate (default: every registered field).
            Unknown names raise ConfigurationError here, at construction.
        clock: Callable returning the validation timestamp (default: datetime.now)
    """

    def __init__(
        self,
        config: ConfigProvider,
        fields: Optional[Iterable[str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._config = config
        self.fields = tuple(validate_field_names(fields if fields is not None else FIELD_EVALUATORS))
        self._clock = clock or datetime.now

    @property
    def config(self) -> ValidationConfig:
        if isinstance(self._config, ValidationConfig):
            return self._config
        return self._config()

    def _enabled_fields(self, config: ValidationConfig) -> List[str]:
        return [
            field for field in self.fields
            if getattr(config.rules, FIELD_EVALUATORS[field].rule)
        ]

    def validate_record(self, record: InvoiceRecord, config: Optional[ValidationConfig] = None) -> List[ValidationResult]:
        """Validate one record.

        Returns:
            Discrepancies found (empty list for a valid record)
        """
        return self.check_record(record, config).results

    def check_record(self, record: InvoiceRecord, config: Optional[ValidationConfig] = None) -> RecordCheck:
        """Validate one record and report fields that could not be evaluated.

        A missing input needed for computation yields one synthetic critical
        result instead of per-field checks. A failing field is skipped and
        recorded as a field-level issue; the other fields are still checked.
        """
        config = config or self.config
        validated_at = self._clock()
        enabled = self._enabled_fields(config)

        missing = missing_required_fields(record, enabled)
        if missing:
            error = RecordStructuralError(record.id, missing)
            logger.warning(str(error))
            return RecordCheck([structural_result(error, validated_at)], [])

        results: List[ValidationResult] = []
        issues: List[ValidationIssue] = []

        for field in enabled:
            try:
                expected = evaluate_field(record, field, config.precision)
                if expected is None:
                    continue
                result = classify_discrepancy(
                    record.id, field, recorded_value(record, field), expected, config, validated_at
                )
            except (FieldEvaluationError, ConfigurationError, ValueError) as e:
                logger.warning(f"Record {record.id}: field '{field}' skipped: {e}")
                issues.append(ValidationIssue(record_id=record.id, kind="field", message=str(e), field=field))
                continue
            if result is not None:
                results.append(result)

        if config.rules.validate_line_item_totals and record.has_line_items:
            self._check_line_items(record, config, validated_at, results, issues)

        return RecordCheck(results, issues)

    def _check_line_items(self, record, config, validated_at, results, issues) -> None:
        for index, line_item in enumerate(record.line_items, start=1):
            field = f"{LINE_ITEM_FIELD_PREFIX}_{index}"
            try:
                expected = round_amount(expected_line_item_total(line_item), config.precision)
                recorded = to_decimal(line_item.line_total)
                if recorded is None:
                    raise FieldEvaluationError(field, f"line item {index} has no numeric line_total")
                result = classify_discrepancy(record.id, field, recorded, expected, config, validated_at)
            except (FieldEvaluationError, ValueError) as e:
                logger.warning(f"Record {record.id}: field '{field}' skipped: {e}")
                issues.append(ValidationIssue(record_id=record.id, kind="field", message=str(e), field=field))
                continue
            if result is not None:
                results.append(result)
