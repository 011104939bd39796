# tests/unit/replay/test_limits.py
"""Tests for LimitMonitor decisions."""

import pytest

from replaypipe.contracts.config import SessionConfig
from replaypipe.contracts.enums import LimitDecision
from replaypipe.replay.limits import LimitMonitor


@pytest.fixture
def monitor() -> LimitMonitor:
    return LimitMonitor(SessionConfig(max_events=5, max_duration_ms=1000))


class TestLimitMonitor:
    def test_exposes_configured_limits(self, monitor: LimitMonitor) -> None:
        assert monitor.max_events == 5
        assert monitor.max_duration_ms == 1000

    def test_admits_within_limits(self, monitor: LimitMonitor) -> None:
        assert monitor.check(event_count=4, start_time=0.0, now=999.0) == LimitDecision.ADMIT

    def test_event_limit_at_count(self, monitor: LimitMonitor) -> None:
        assert monitor.check(event_count=5, start_time=0.0, now=10.0) == LimitDecision.EVENT_LIMIT

    def test_duration_boundary_is_inclusive(self, monitor: LimitMonitor) -> None:
        assert monitor.check(event_count=0, start_time=100.0, now=1100.0) == LimitDecision.ADMIT

    def test_duration_limit_past_boundary(self, monitor: LimitMonitor) -> None:
        assert monitor.check(event_count=0, start_time=100.0, now=1100.5) == LimitDecision.DURATION_LIMIT

    def test_event_limit_checked_first(self, monitor: LimitMonitor) -> None:
        assert monitor.check(event_count=9, start_time=0.0, now=5000.0) == LimitDecision.EVENT_LIMIT
