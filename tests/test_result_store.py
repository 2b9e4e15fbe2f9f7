"""Unit tests for the shared result store."""

from dataclasses import replace

import pytest

from invoice_audit.store.result_store import ResultStore


@pytest.fixture
def store(fixed_clock, make_result):
    store = ResultStore(clock=fixed_clock)
    store.replace_all(
        [
            make_result("r1", "tax_amount", 12.0, "high"),
            make_result("r1", "total_amount", 3.0, "low"),
            make_result("r2", "total_amount", 40.0, "critical"),
            make_result("r3", "tax_amount", 6.0, "medium"),
        ],
        record_ids=["r1", "r2", "r3", "r4"],
        batch_id="batch_1",
    )
    return store


class TestClearResultsForRecords:
    """Test targeted clearing."""

    def test_removes_all_and_only_given_ids(self, store):
        """Test that clearing removes all and only the given ids."""
        removed = store.clear_results_for_records(["r1", "r3"])

        assert removed == 3
        assert [r.record_id for r in store.get_results()] == ["r2"]
        assert [a.record_id for a in store.alerts.get_alerts()] == ["r2"]
        assert store.get_record_ids() == ["r2", "r4"]

    def test_unknown_ids(self, store):
        """Test clearing unknown ids."""
        assert store.clear_results_for_records(["zzz"]) == 0
        assert len(store.get_results()) == 4


class TestReplaceForRecords:
    """Test atomic replacement."""

    def test_replaces_results_and_alerts(self, store, make_result):
        """Test replacing results and alerts of one record."""
        created = store.replace_for_records(["r1"], [make_result("r1", "subtotal", 25.0, "critical")])

        assert [a.field for a in created] == ["subtotal"]
        assert [r.field for r in store.get_results_by_record("r1")] == ["subtotal"]
        assert sorted(a.record_id for a in store.alerts.get_alerts()) == ["r1", "r2"]

    def test_stray_results_rejected(self, store, make_result):
        """Test results for a record outside the replaced set."""
        before = store.snapshot()

        with pytest.raises(ValueError):
            store.replace_for_records(["r1"], [make_result("r9", "tax_amount", 1.0, "low")])

        assert store.snapshot() == before


class TestReads:
    """Test queries."""

    def test_by_severity(self, store):
        """Test results by severity."""
        assert [r.record_id for r in store.get_results_by_severity("critical")] == ["r2"]

    def test_remove_result_drops_alert(self, store):
        """Test that removing a result drops its alert."""
        result = store.get_results_by_severity("critical")[0]

        assert store.remove_result(result.id) is True
        assert store.alerts.get_alert(f"alert_{result.id}") is None
        assert store.remove_result(result.id) is False

    def test_snapshot(self, store):
        """Test snapshot contents."""
        snapshot = store.snapshot()
        assert len(snapshot.results) == 4
        assert len(snapshot.alerts) == 2
        assert snapshot.record_ids == ("r1", "r2", "r3", "r4")

    def test_summary_counts_records_without_results_as_valid(self, store):
        """Test that records without results count as valid."""
        summary = store.generate_summary()

        assert summary.total_records == 4
        assert summary.invalid_records == 3
        assert summary.valid_records == 1
        assert summary.batch_id == "batch_1"

    def test_summary_is_idempotent(self, store):
        """Test repeated summaries."""
        assert store.generate_summary() == store.generate_summary()

    def test_clear_all(self, store):
        """Test clearing the store."""
        store.clear_all()
        assert store.get_results() == []
        assert store.alerts.get_alerts() == []
        assert store.generate_summary().total_records == 0


class TestResultIds:
    """Test that result and alert ids stay unique."""

    def test_duplicate_result_id_rejected(self, store, make_result):
        """Test that a commit repeating a kept result id leaves the store unchanged."""
        before = store.snapshot()
        kept_id = store.get_results_by_record("r2")[0].id
        duplicate = replace(make_result("r1", "total_amount", 40.0, "critical"), id=kept_id)

        with pytest.raises(ValueError):
            store.replace_for_records(["r1"], [make_result("r1", "tax_amount", 30.0, "critical"), duplicate])

        assert store.snapshot() == before

    def test_repeated_id_within_commit_rejected(self, store, make_result):
        """Test that two results with the same id in one commit are refused."""
        before = store.snapshot()
        result = make_result("r1", "tax_amount", 30.0, "critical")

        with pytest.raises(ValueError):
            store.replace_for_records(["r1"], [result, result])

        assert store.snapshot() == before

    def test_replacing_a_record_reuses_its_ids(self, store, make_result):
        """Test that re-committing a record with the same timestamps is allowed."""
        store.replace_for_records(["r2"], [make_result("r2", "total_amount", 45.0, "critical")])

        assert [r.discrepancy for r in store.get_results_by_record("r2")] == [45.0]
        assert len(store.alerts.get_alerts()) == 2

    def test_underscored_record_ids_do_not_collide(self, fixed_clock, make_result):
        """Test record ids that differ only around an underscore keep separate alerts."""
        store = ResultStore(clock=fixed_clock)
        store.replace_all([
            make_result("INV1", "tax_amount", 30.0, "critical"),
            make_result("INV1_tax", "amount", 15.0, "high"),
        ], record_ids=["INV1", "INV1_tax"])

        assert len({a.id for a in store.alerts.get_alerts()}) == 2

        store.clear_results_for_records(["INV1_tax"])

        assert [a.record_id for a in store.alerts.get_alerts()] == ["INV1"]


class TestValidationStatistics:
    """Test session statistics."""

    def test_statistics(self, store, fixed_clock):
        """Test counts, batch id and summary after a full replace."""
        stats = store.get_validation_statistics()

        assert stats["validated_records"] == 4
        assert stats["total_results"] == 4
        assert stats["total_alerts"] == 2
        assert stats["unacknowledged_alerts"] == 2
        assert stats["last_validation_time"] == fixed_clock()
        assert stats["current_batch_id"] == "batch_1"
        assert stats["summary"] == store.generate_summary()

    def test_acknowledging_updates_unacknowledged_count(self, store):
        """Test that acknowledged alerts drop out of the unacknowledged count."""
        store.alerts.acknowledge_all_alerts()

        stats = store.get_validation_statistics()

        assert stats["total_alerts"] == 2
        assert stats["unacknowledged_alerts"] == 0

    def test_empty_store(self, fixed_clock):
        """Test statistics of a store that never validated anything."""
        stats = ResultStore(clock=fixed_clock).get_validation_statistics()

        assert stats["validated_records"] == 0
        assert stats["last_validation_time"] is None
        assert stats["current_batch_id"] is None
        assert stats["summary"].total_records == 0

    def test_clear_all_resets_last_validation_time(self, store):
        """Test that clearing the store forgets the last validation time."""
        store.clear_all()
        assert store.get_validation_statistics()["last_validation_time"] is None
