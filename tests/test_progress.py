"""Tests for progress counters and results."""

from datetime import datetime, timedelta, timezone

import pytest

from cropbatch.pipeline.progress import (
    COUNTER_NAMES,
    BatchProgress,
    BatchResult,
    ProgressCounters,
)


class TestProgressCounters:
    """Tests for run-scoped counters."""

    def test_starts_at_zero(self):
        assert ProgressCounters().snapshot() == BatchProgress()

    def test_add_and_snapshot(self):
        counters = ProgressCounters(manifests_queued=3)

        counters.add("crops_queued", 5)
        counters.add("crops_done")

        snap = counters.snapshot()
        assert snap.manifests_queued == 3
        assert snap.crops_queued == 5
        assert snap.crops_done == 1

    def test_snapshot_is_immutable(self):
        snap = ProgressCounters().snapshot()

        with pytest.raises(AttributeError):
            snap.crops_done = 10

    def test_counters_never_decrease(self):
        with pytest.raises(ValueError):
            ProgressCounters().add("crops_done", -1)

    def test_unknown_counter(self):
        with pytest.raises(KeyError):
            ProgressCounters().add("nope")

    def test_fresh_instances_are_independent(self):
        first = ProgressCounters()
        first.add("crops_done", 4)

        assert ProgressCounters().get("crops_done") == 0

    def test_eight_counters(self):
        assert len(COUNTER_NAMES) == 8


class TestBatchResult:
    """Tests for the terminal result value."""

    def test_from_progress(self):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        end = start + timedelta(seconds=2.5)
        progress = BatchProgress(manifests_queued=2, crops_done=4, crops_failed=1)

        result = BatchResult.from_progress(progress, start, end)

        assert result.manifests_queued == 2
        assert result.crops_done == 4
        assert result.elapsed_seconds == pytest.approx(2.5)
        assert result.ok is False
        assert isinstance(result, BatchProgress)

    def test_as_dict_is_json_friendly(self):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        result = BatchResult.from_progress(BatchProgress(), start, start)

        payload = result.as_dict()

        assert payload["started_at"] == start.isoformat()
        assert payload["crops_failed"] == 0
        assert result.ok is True
        assert "elapsed=1s" in result.summary()
