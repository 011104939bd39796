# tests/unit/replay/test_batching.py
"""Tests for BatchScheduler buffering and flush decisions."""

import pytest

from replaypipe.contracts.events import RecordedEvent
from replaypipe.core.scheduler import ManualScheduler
from replaypipe.replay.batching import BatchScheduler


def _event(seq: int) -> RecordedEvent:
    return RecordedEvent(kind=3, data={"seq": seq}, timestamp=seq)


class _Collector:
    def __init__(self) -> None:
        self.batches: list[tuple[RecordedEvent, ...]] = []

    def __call__(self, batch: tuple[RecordedEvent, ...]) -> None:
        self.batches.append(batch)


@pytest.fixture
def collector() -> _Collector:
    return _Collector()


@pytest.fixture
def batches(scheduler: ManualScheduler, collector: _Collector) -> BatchScheduler:
    return BatchScheduler(batch_size=3, flush_delay=1.0, scheduler=scheduler, on_flush=collector)


class TestConstruction:
    def test_rejects_zero_batch_size(self, scheduler) -> None:
        with pytest.raises(ValueError, match="batch_size"):
            BatchScheduler(batch_size=0, flush_delay=1.0, scheduler=scheduler, on_flush=lambda b: None)

    def test_rejects_negative_delay(self, scheduler) -> None:
        with pytest.raises(ValueError, match="flush_delay"):
            BatchScheduler(batch_size=1, flush_delay=-1, scheduler=scheduler, on_flush=lambda b: None)


class TestFlushDecision:
    def test_evaluate_with_nothing_pending_is_noop(self, batches: BatchScheduler, scheduler) -> None:
        batches.evaluate()

        assert not batches.has_timer
        assert scheduler.pending == 0

    def test_first_event_arms_timer(self, batches: BatchScheduler, collector) -> None:
        batches.append(_event(0))
        batches.evaluate()

        assert batches.has_timer
        assert collector.batches == []

    def test_only_one_timer_outstanding(self, batches: BatchScheduler, scheduler) -> None:
        for seq in range(2):
            batches.append(_event(seq))
            batches.evaluate()

        assert scheduler.pending == 1

    def test_full_batch_flushes_and_cancels_timer(self, batches: BatchScheduler, collector, scheduler) -> None:
        for seq in range(3):
            batches.append(_event(seq))
            batches.evaluate()

        assert len(collector.batches) == 1
        assert [e.data["seq"] for e in collector.batches[0]] == [0, 1, 2]
        assert not batches.has_timer
        assert scheduler.pending == 0
        assert batches.pending_count == 0

    def test_timer_flushes_partial_batch(self, batches: BatchScheduler, collector, scheduler) -> None:
        batches.append(_event(0))
        batches.evaluate()

        scheduler.advance(1.0)

        assert len(collector.batches) == 1
        assert len(collector.batches[0]) == 1
        assert not batches.has_timer

    def test_new_timer_armed_after_flush(self, batches: BatchScheduler, scheduler) -> None:
        batches.append(_event(0))
        batches.evaluate()
        scheduler.advance(1.0)

        batches.append(_event(1))
        batches.evaluate()

        assert batches.has_timer


class TestLogAndPending:
    def test_pending_is_suffix_of_events(self, batches: BatchScheduler) -> None:
        for seq in range(5):
            batches.append(_event(seq))
            batches.evaluate()

        assert len(batches) == 5
        assert batches.events[-batches.pending_count :] == batches.pending
        assert [e.data["seq"] for e in batches.pending] == [3, 4]

    def test_flush_count(self, batches: BatchScheduler) -> None:
        for seq in range(7):
            batches.append(_event(seq))
            batches.evaluate()
        batches.flush()

        assert batches.flush_count == 3

    def test_empty_flush_does_not_count(self, batches: BatchScheduler, collector) -> None:
        batches.flush()

        assert batches.flush_count == 0
        assert collector.batches == []

    def test_reset_clears_everything(self, batches: BatchScheduler, scheduler) -> None:
        batches.append(_event(0))
        batches.evaluate()

        batches.reset()

        assert len(batches) == 0
        assert batches.pending_count == 0
        assert scheduler.pending == 0

    def test_batch_cleared_when_on_flush_raises(self, scheduler) -> None:
        def explode(batch):
            raise RuntimeError("transport down")

        batches = BatchScheduler(batch_size=2, flush_delay=1.0, scheduler=scheduler, on_flush=explode)
        batches.append(_event(0))
        batches.append(_event(1))

        with pytest.raises(RuntimeError):
            batches.flush()

        assert batches.pending_count == 0
        assert len(batches) == 2
        assert batches.flush_count == 1

    def test_snapshots_do_not_alias_log(self, batches: BatchScheduler, collector) -> None:
        batches.append(_event(0))
        snapshot = batches.events

        batches.append(_event(1))

        assert len(snapshot) == 1
