"""Batch validation runs."""

from .progress import BatchRun, CancellationToken
from .runner import BatchOutcome, BatchRunner, generate_batch_id

__all__ = ["BatchOutcome", "BatchRun", "BatchRunner", "CancellationToken", "generate_batch_id"]
