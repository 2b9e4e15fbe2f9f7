"""Batch orchestration: validate many records with progress, isolation per record."""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from ..audit import (
    BATCH_CANCELLED,
    BATCH_COMPLETED,
    BATCH_FAILED,
    BATCH_STARTED,
    RECORDS_REVALIDATED,
)
from ..config.settings import get_progress_interval
from ..context import ValidationContext
from ..errors import BatchFatalError, ConfigurationError, SummaryGenerationError
from ..models.invoice_record import InvoiceRecord
from ..models.progress import (
    CANCELLED,
    COMPLETED,
    PREPARING,
    TERMINAL_STATUSES,
    VALIDATING,
    Progress,
    ValidationIssue,
)
from ..models.validation_result import ValidationResult
from ..models.validation_summary import ValidationSummary
from ..summary.aggregator import generate_summary
from ..validation.record_validator import RecordValidator
from .progress import BatchRun, CancellationToken

logger = logging.getLogger(__name__)

RecordInput = Union[InvoiceRecord, Mapping[str, Any]]
ProgressCallback = Callable[[Progress], None]


@dataclass
class BatchOutcome:
    """Result of one validate/revalidate call.

    Attributes:
        batch_id: Batch identifier
        status: "completed" or "cancelled" (failed runs raise BatchFatalError)
        summary: Summary over the records handled by this call
        results: Results produced by this call
        errors: Per-record and per-field errors, correlated by record id
        progress: Last progress snapshot
    """

    batch_id: str
    status: str
    summary: ValidationSummary
    results: List[ValidationResult] = field(default_factory=list)
    errors: List[ValidationIssue] = field(default_factory=list)
    progress: Optional[Progress] = None

    @property
    def record_errors(self) -> List[ValidationIssue]:
        return [e for e in self.errors if e.kind == "record"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "status": self.status,
            "summary": self.summary.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "errors": [e.to_dict() for e in self.errors],
        }


def generate_batch_id() -> str:
    return f"batch_{uuid.uuid4().hex[:12]}"


def _record_id(record: RecordInput) -> str:
    if isinstance(record, InvoiceRecord):
        return record.id
    if isinstance(record, Mapping):
        return str(record.get("id", ""))
    return ""


def _coerce_record(record: RecordInput) -> InvoiceRecord:
    if isinstance(record, InvoiceRecord):
        return record
    if isinstance(record, Mapping):
        return InvoiceRecord.from_dict(dict(record))
    raise TypeError(f"Expected InvoiceRecord or mapping, got {type(record).__name__}")


class BatchRunner:
    """Runs the record validator over batches against one ValidationContext.

    State machine per call: idle -> preparing -> validating ->
    {completed | failed | cancelled}.

    Args:
        context: Validation context holding config and result store
        fields: Fields to validate (default: all registered). Unknown fields
            raise ConfigurationError here.
        background_progress: Deliver on_progress callbacks on a worker thread
            so a slow callback never holds up validation. Queued events are
            delivered before the call returns.
    """

    def __init__(self, context: Optional[ValidationContext] = None, fields: Optional[Iterable[str]] = None,
                 background_progress: bool = False):
        self.context = context or ValidationContext()
        self.fields = tuple(fields) if fields is not None else None
        self.background_progress = background_progress
        # Fail fast on unknown fields
        RecordValidator(self.context.config, fields=self.fields)

    @property
    def store(self):
        return self.context.store

    @property
    def alerts(self):
        return self.context.store.alerts

    def validate_batch(
        self,
        records: Iterable[RecordInput],
        config: Optional[Dict[str, Any]] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BatchOutcome:
        """Validate a full batch, replacing the previous result set.

        Each record's results (and alerts) are committed atomically as soon as
        the record is validated, so a failure or cancellation keeps everything
        committed so far.

        Args:
            records: InvoiceRecords or mappings accepted by InvoiceRecord.from_dict
            config: Optional partial config merged into the active config first
            on_progress: Progress callback (fire-and-forget)
            cancel_token: Checked between records

        Returns:
            BatchOutcome with summary, results and per-record errors

        Raises:
            BatchFatalError: Invalid config or an unexpected error outside
                per-record processing
        """
        records = list(records)
        batch_id = generate_batch_id()

        def _start():
            self.store.replace_all(batch_id=batch_id)

        def _commit_record(record_id, results):
            self.store.replace_for_records([record_id], results)

        return self._run(
            records, batch_id, config, on_progress, cancel_token,
            start=_start, commit_record=_commit_record, commit_all=None,
            started_event=BATCH_STARTED, completed_event=BATCH_COMPLETED,
        )

    def revalidate_records(
        self,
        record_ids: Iterable[str],
        records: Iterable[RecordInput],
        config: Optional[Dict[str, Any]] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BatchOutcome:
        """Re-validate exactly the given record ids.

        Existing results and alerts of those ids are cleared and the new
        results applied in one atomic store operation at the end of the run.
        Results of every other record are left untouched. A cancelled
        revalidation applies nothing.

        Raises:
            BatchFatalError: code "NO_RECORDS" if no record matches record_ids
                (the store is not touched), or as for validate_batch
        """
        target_ids = list(dict.fromkeys(str(record_id) for record_id in record_ids))
        wanted = set(target_ids)
        selected = [record for record in records if _record_id(record) in wanted]
        if not selected:
            raise BatchFatalError("No records found for re-validation", code="NO_RECORDS")

        batch_id = generate_batch_id()

        def _commit_all(results, validated_ids):
            self.store.replace_for_records(target_ids, results, validated_ids=validated_ids)
            self.context.emit(
                RECORDS_REVALIDATED,
                batch_id=batch_id,
                record_ids=target_ids,
                result_count=len(results),
            )

        return self._run(
            selected, batch_id, config, on_progress, cancel_token,
            start=None, commit_record=None, commit_all=_commit_all,
            started_event=BATCH_STARTED, completed_event=BATCH_COMPLETED,
        )

    def validate_new_records(
        self,
        records: Iterable[RecordInput],
        config: Optional[Dict[str, Any]] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BatchOutcome:
        """Validate only records the store has no entry for; existing entries stay as they are."""
        fresh = [record for record in records if not self.store.has_record(_record_id(record))]
        batch_id = generate_batch_id()

        def _commit_record(record_id, results):
            self.store.replace_for_records([record_id], results)

        return self._run(
            fresh, batch_id, config, on_progress, cancel_token,
            start=None, commit_record=_commit_record, commit_all=None,
            started_event=BATCH_STARTED, completed_event=BATCH_COMPLETED,
        )

    def generate_summary(self) -> ValidationSummary:
        """Summary of the live result set (raises SummaryGenerationError, never mutates)."""
        return self.store.generate_summary()

    def get_validation_statistics(self) -> Dict[str, Any]:
        """Record, result and alert counts, last validation time, batch id and summary."""
        return self.store.get_validation_statistics()

    def clear_results_for_records(self, record_ids: Iterable[str]) -> int:
        return self.store.clear_results_for_records(record_ids)

    def _run(self, records, batch_id, config, on_progress, cancel_token, *,
             start, commit_record, commit_all, started_event, completed_event) -> BatchOutcome:
        clock = self.context.clock
        run = BatchRun(batch_id, len(records), get_progress_interval(len(records)), clock=clock)
        subscription = run.subscribe(on_progress, background=self.background_progress) if on_progress else None
        results_by_record: Dict[str, List[ValidationResult]] = {}
        errors: List[ValidationIssue] = []

        try:
            run.transition(PREPARING, "Preparing validation")
            self.context.emit(started_event, batch_id=batch_id, total_records=len(records))
            logger.info(f"Batch {batch_id}: validating {len(records)} record(s)")

            if config:
                try:
                    self.context.config_store.update(config)
                except ConfigurationError as e:
                    raise BatchFatalError(str(e), code="INVALID_CONFIG") from e
            active_config = self.context.config
            validator = RecordValidator(active_config, fields=self.fields, clock=clock)

            if start is not None:
                start()
            run.transition(VALIDATING, f"Validating {len(records)} record(s)")

            for raw in records:
                if cancel_token is not None and cancel_token.cancelled:
                    return self._finish_cancelled(run, results_by_record, errors)

                record_id = _record_id(raw)
                try:
                    record = _coerce_record(raw)
                    check = validator.check_record(record)
                except Exception as e:
                    logger.warning(f"Batch {batch_id}: record {record_id or '?'} failed: {e}")
                    errors.append(ValidationIssue(record_id=record_id, kind="record", message=str(e)))
                    run.record_processed(f"Record {record_id or '?'} failed")
                    continue

                results_by_record[record.id] = check.results
                errors.extend(check.issues)
                if commit_record is not None:
                    commit_record(record.id, check.results)
                run.record_processed(f"Validated record {record.invoice_number or record.id}")

            results = [r for record_results in results_by_record.values() for r in record_results]
            if commit_all is not None:
                commit_all(results, list(results_by_record))

            summary = generate_summary(
                results,
                record_ids=results_by_record.keys(),
                batch_id=batch_id,
                started_at=run.started_at,
                finished_at=clock(),
            )
            progress = run.complete()
            self.context.emit(
                completed_event,
                batch_id=batch_id,
                summary=summary.to_dict(),
                error_count=len(errors),
            )
            logger.info(
                f"Batch {batch_id}: completed, {summary.invalid_records} of "
                f"{summary.total_records} record(s) with discrepancies, {len(errors)} error(s)"
            )
            return BatchOutcome(batch_id, COMPLETED, summary, results, errors, progress)

        except BatchFatalError as e:
            self._fail(run, e)
            raise
        except SummaryGenerationError as e:
            error = BatchFatalError(str(e), code="SUMMARY_GENERATION_ERROR")
            self._fail(run, error)
            raise error from e
        except Exception as e:
            error = BatchFatalError(f"Batch validation failed: {e}", code="VALIDATION_ERROR")
            self._fail(run, error)
            raise error from e
        finally:
            if subscription is not None:
                subscription.unsubscribe()

    def _fail(self, run: BatchRun, error: BatchFatalError) -> None:
        logger.error(f"Batch {run.batch_id}: failed ({error.code}): {error.message}")
        if run.status not in TERMINAL_STATUSES:
            run.fail(error.message)
        self.context.emit(BATCH_FAILED, batch_id=run.batch_id, **error.to_dict())

    def _finish_cancelled(self, run: BatchRun, results_by_record, errors) -> BatchOutcome:
        results = [r for record_results in results_by_record.values() for r in record_results]
        summary = generate_summary(
            results,
            record_ids=results_by_record.keys(),
            batch_id=run.batch_id,
            started_at=run.started_at,
            finished_at=self.context.clock(),
        )
        progress = run.cancel()
        self.context.emit(BATCH_CANCELLED, batch_id=run.batch_id, processed_records=run.processed_records)
        logger.info(f"Batch {run.batch_id}: cancelled after {run.processed_records} record(s)")
        return BatchOutcome(run.batch_id, CANCELLED, summary, results, errors, progress)
