# src/replaypipe/replay/limits.py
"""Per-event session limit checks.

The event that trips a limit is itself discarded; the caller stops the
session and the session-end export reflects state up to, and excluding,
that event.
"""

from replaypipe.contracts.config import SessionConfig
from replaypipe.contracts.enums import LimitDecision


class LimitMonitor:
    """Evaluates event-count and elapsed-duration ceilings.

    Stateless apart from its config: the controller passes the current
    counters in on every call.

    Example:
        monitor = LimitMonitor(SessionConfig(max_events=5))
        monitor.check(event_count=5, start_time=0.0, now=10.0)
        # -> LimitDecision.EVENT_LIMIT
    """

    def __init__(self, config: SessionConfig) -> None:
        self._max_events = config.max_events
        self._max_duration_ms = config.max_duration_ms

    @property
    def max_events(self) -> int:
        return self._max_events

    @property
    def max_duration_ms(self) -> float:
        return self._max_duration_ms

    def check(self, *, event_count: int, start_time: float, now: float) -> LimitDecision:
        """Decide whether the next event may be admitted.

        The count limit is checked first, so a session that is both full
        and expired reports EVENT_LIMIT.

        Args:
            event_count: Events buffered so far
            start_time: Monotonic ms when recording started
            now: Monotonic ms at the incoming event's arrival

        Returns:
            ADMIT, EVENT_LIMIT or DURATION_LIMIT
        """
        if event_count >= self._max_events:
            return LimitDecision.EVENT_LIMIT
        if now - start_time > self._max_duration_ms:
            return LimitDecision.DURATION_LIMIT
        return LimitDecision.ADMIT
