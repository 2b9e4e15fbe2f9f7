"""Unit tests for batch run state and progress publishing."""

import pytest

from invoice_audit.batch.progress import BatchRun, CancellationToken


class TestBatchRun:
    """Test status transitions."""

    def test_happy_path(self, fixed_clock):
        """Test idle -> preparing -> validating -> completed."""
        run = BatchRun("b1", 2, clock=fixed_clock)
        events = []
        run.subscribe(events.append)

        run.transition("preparing")
        run.transition("validating")
        run.record_processed()
        run.record_processed()
        run.complete()

        assert [e.status for e in events] == ["preparing", "validating", "validating", "completed"]
        assert events[-1].processed_records == 2
        assert run.finished_at is not None

    @pytest.mark.parametrize("status", ["validating", "completed", "cancelled"])
    def test_invalid_transition_from_idle(self, status, fixed_clock):
        """Test an invalid transition out of idle."""
        with pytest.raises(RuntimeError):
            BatchRun("b1", 1, clock=fixed_clock).transition(status)

    def test_no_transition_after_terminal(self, fixed_clock):
        """Test that terminal states accept no transitions."""
        run = BatchRun("b1", 1, clock=fixed_clock)
        run.transition("preparing")
        run.cancel()

        with pytest.raises(RuntimeError):
            run.transition("validating")

    def test_interval(self, fixed_clock):
        """Test progress events at chunk boundaries."""
        run = BatchRun("b1", 7, interval=3, clock=fixed_clock)
        run.transition("preparing")
        run.transition("validating")

        published = [run.record_processed() is not None for _ in range(7)]

        assert published == [False, False, True, False, False, True, False]

    def test_percentage(self, fixed_clock):
        """Test progress percentage."""
        run = BatchRun("b1", 4, clock=fixed_clock)
        run.transition("preparing")
        run.transition("validating")
        progress = run.record_processed()

        assert progress.progress_percentage == 25
        assert not progress.is_terminal


class TestCancellationToken:
    """Test cooperative cancellation flag."""

    def test_cancel(self):
        """Test that cancelling a token twice is harmless."""
        token = CancellationToken()
        assert not token.cancelled
        token.cancel()
        token.cancel()
        assert token.cancelled
