# tests/unit/replay/test_throttle.py
"""Tests for ThrottleCoalescer trailing-edge behaviour."""

import pytest

from replaypipe.contracts.events import RecordedEvent
from replaypipe.replay.throttle import ThrottleCoalescer


def _event(seq: int) -> RecordedEvent:
    return RecordedEvent(kind=3, data={"seq": seq}, timestamp=seq)


@pytest.fixture
def fired() -> list[int]:
    return []


@pytest.fixture
def throttle(scheduler, fired) -> ThrottleCoalescer:
    return ThrottleCoalescer(delay=0.5, scheduler=scheduler, on_fire=lambda: fired.append(1))


class TestThrottleCoalescer:
    def test_rejects_negative_delay(self, scheduler) -> None:
        with pytest.raises(ValueError, match="delay"):
            ThrottleCoalescer(delay=-0.1, scheduler=scheduler, on_fire=lambda: None)

    def test_fires_once_after_burst(self, throttle: ThrottleCoalescer, scheduler, fired) -> None:
        for seq in range(10):
            throttle.submit(_event(seq))

        scheduler.advance(0.5)

        assert fired == [1]
        assert throttle.fire_count == 1
        assert throttle.marker is None
        assert not throttle.is_armed

    def test_marker_is_latest_event(self, throttle: ThrottleCoalescer) -> None:
        throttle.submit(_event(0))
        throttle.submit(_event(1))

        assert throttle.marker == _event(1)
        assert throttle.is_armed

    def test_at_most_one_timer(self, throttle: ThrottleCoalescer, scheduler) -> None:
        for seq in range(5):
            throttle.submit(_event(seq))

        assert scheduler.pending == 1

    def test_submit_restarts_window(self, throttle: ThrottleCoalescer, scheduler, fired) -> None:
        throttle.submit(_event(0))
        scheduler.advance(0.25)
        throttle.submit(_event(1))

        scheduler.advance(0.25)
        assert fired == []

        scheduler.advance(0.25)
        assert fired == [1]

    def test_cancel_returns_marker_and_disarms(self, throttle: ThrottleCoalescer, scheduler, fired) -> None:
        throttle.submit(_event(7))

        marker = throttle.cancel()
        scheduler.advance(1.0)

        assert marker == _event(7)
        assert fired == []
        assert throttle.marker is None

    def test_cancel_when_idle_returns_none(self, throttle: ThrottleCoalescer) -> None:
        assert throttle.cancel() is None

    def test_separate_bursts_fire_separately(self, throttle: ThrottleCoalescer, scheduler, fired) -> None:
        throttle.submit(_event(0))
        scheduler.advance(0.5)
        throttle.submit(_event(1))
        scheduler.advance(0.5)

        assert throttle.fire_count == 2
