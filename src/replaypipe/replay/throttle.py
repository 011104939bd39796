# src/replaypipe/replay/throttle.py
"""Trailing-edge throttle for the flush decision.

The coalescer never holds events back: every admitted event is already in
the buffer before it is submitted here. It only delays *when* the batch
flush decision runs, so a burst of events triggers one decision, after the
burst's last event plus the throttle delay.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from replaypipe.contracts.events import RecordedEvent
from replaypipe.core.scheduler import Scheduler, TimerHandle

logger = structlog.get_logger(__name__)


class ThrottleCoalescer:
    """Re-armable single-shot timer around a flush-decision callback.

    Each submit() cancels the armed timer, remembers the event as the
    trailing marker and re-arms. When the timer fires the callback runs once
    and the marker is cleared.

    Thread Safety:
        NOT thread-safe. Same single-thread rule as BatchScheduler.
    """

    def __init__(
        self,
        *,
        delay: float,
        scheduler: Scheduler,
        on_fire: Callable[[], None],
    ) -> None:
        """Initialize the coalescer.

        Args:
            delay: Throttle window in seconds
            scheduler: Source of throttle timers
            on_fire: Flush decision to run when a window closes

        Raises:
            ValueError: If delay < 0.
        """
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self._delay = delay
        self._scheduler = scheduler
        self._on_fire = on_fire
        self._timer: TimerHandle | None = None
        self._marker: RecordedEvent | None = None
        self._fire_count = 0

    @property
    def marker(self) -> RecordedEvent | None:
        """Trailing event of the open window, if any."""
        return self._marker

    @property
    def is_armed(self) -> bool:
        return self._timer is not None

    @property
    def fire_count(self) -> int:
        """Number of times the flush decision has been invoked."""
        return self._fire_count

    def submit(self, event: RecordedEvent) -> None:
        """Record event as the trailing marker and restart the window."""
        if self._timer is not None:
            self._timer.cancel()
        self._marker = event
        self._timer = self._scheduler.call_later(self._delay, self._fire)

    def cancel(self) -> RecordedEvent | None:
        """Disarm the timer without firing.

        Returns:
            The pending marker, if a window was open. The caller folds it
            into its final flush; the event itself is already buffered.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        marker, self._marker = self._marker, None
        return marker

    def _fire(self) -> None:
        self._timer = None
        if self._marker is None:
            return
        self._marker = None
        self._fire_count += 1
        logger.debug("Throttle window closed", fire_count=self._fire_count)
        self._on_fire()
