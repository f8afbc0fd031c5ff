"""Tests for the sequential batch runner."""

import signal
from pathlib import Path

import pytest

from media_toolbelt.errors import DelegatedFailure, InterruptedBySignal
from media_toolbelt.runners import BatchCallbacks, BatchResult, ItemOutcome, SequentialBatch

ITEMS = [Path("a.wmv"), Path("b.wmv"), Path("c.wmv")]


def _to_mp4(item: Path) -> Path:
    return item.with_suffix(".mp4")


class TestBatchResult:
    """Tests for BatchResult aggregation."""

    def test_counts(self):
        """Test totals, successes and failures."""
        result = BatchResult(
            [
                ItemOutcome(Path("a"), True, Path("a.mp4")),
                ItemOutcome(Path("b"), False, error="ffmpeg failed"),
                ItemOutcome(Path("c"), True),
            ]
        )

        assert result.total == 3
        assert result.succeeded == 2
        assert result.failed == 1
        assert result.success is False
        assert result.outputs == [Path("a.mp4")]
        assert result.errors == ["b: ffmpeg failed"]

    def test_empty_is_success(self):
        """Test an empty batch has nothing failed."""
        assert BatchResult().success is True


class TestSequentialBatch:
    """Tests for SequentialBatch.run."""

    def test_all_succeed(self):
        """Test every item is processed in order."""
        seen = []

        def action(item):
            seen.append(item)
            return _to_mp4(item)

        result = SequentialBatch().run(ITEMS, action)

        assert seen == ITEMS
        assert result.success
        assert result.outputs == [Path("a.mp4"), Path("b.mp4"), Path("c.mp4")]

    def test_failure_continues(self):
        """Test a DelegatedFailure is recorded and the next item still runs."""

        def action(item):
            if item.stem == "b":
                raise DelegatedFailure("ffmpeg", 1, "Invalid data found")
            return _to_mp4(item)

        result = SequentialBatch().run(ITEMS, action)

        assert result.total == 3
        assert result.failed == 1
        assert result.outcomes[1].error == "ffmpeg failed with exit status 1: Invalid data found"
        assert result.outcomes[2].success

    def test_interrupt_stops_batch(self):
        """Test an interruption is not treated as an item failure."""
        seen = []

        def action(item):
            seen.append(item)
            raise InterruptedBySignal(signal.SIGINT)

        with pytest.raises(InterruptedBySignal):
            SequentialBatch().run(ITEMS, action)

        assert seen == [Path("a.wmv")]

    def test_other_errors_propagate(self):
        """Test unexpected exceptions stop the batch."""

        def action(item):
            raise OSError("disk full")

        with pytest.raises(OSError):
            SequentialBatch().run(ITEMS, action)

    def test_callbacks(self):
        """Test start, complete and batch callbacks with 1-based indices."""
        events = []
        callbacks = BatchCallbacks(
            on_item_start=lambda item, idx, total: events.append(("start", item.name, idx, total)),
            on_item_complete=lambda outcome, idx, total: events.append(("done", outcome.success, idx, total)),
            on_batch_complete=lambda result: events.append(("batch", result.total)),
        )

        SequentialBatch().run(ITEMS[:2], _to_mp4, callbacks)

        assert events == [
            ("start", "a.wmv", 1, 2),
            ("done", True, 1, 2),
            ("start", "b.wmv", 2, 2),
            ("done", True, 2, 2),
            ("batch", 2),
        ]
