# src/replaypipe/core/scheduler.py
"""Scheduler abstraction for deferred single-shot callbacks.

The replay pipeline needs two re-armable timers (batch flush and throttle)
and a monotonic clock for duration limits. This module provides a Scheduler
protocol that abstracts both, enabling deterministic testing of
timer-dependent code paths.

Production code uses AsyncioScheduler (callbacks run on the event loop
thread, so they are serialized with every other pipeline operation).
Tests inject ManualScheduler to control time advancement.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    """Cancellable handle for one scheduled callback."""

    def cancel(self) -> None:
        """Cancel the callback. Safe to call more than once or after firing."""
        ...

    def cancelled(self) -> bool:
        """Return True if cancel() was called."""
        ...


class Scheduler(Protocol):
    """Abstract clock plus single-shot delayed callbacks.

    Implementations:
    - AsyncioScheduler: asyncio event loop timers (production)
    - ManualScheduler: virtual time advanced by tests
    """

    def monotonic(self) -> float:
        """Return monotonic time in seconds.

        Must never go backwards; suitable for elapsed time and timeouts.
        """
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule callback to run once after delay seconds.

        Args:
            delay: Seconds from now (>= 0).
            callback: Zero-argument callable.

        Returns:
            Handle that cancels the pending callback.
        """
        ...


class AsyncioScheduler:
    """Production scheduler backed by an asyncio event loop.

    Callbacks run on the loop thread. All pipeline entry points (recorder
    callback, start/stop) must be invoked from that same thread; this is
    what keeps the pipeline lock-free.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Initialize scheduler.

        Args:
            loop: Event loop to schedule on. Defaults to the running loop,
                resolved on first use.
        """
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def monotonic(self) -> float:
        """Return the event loop's monotonic time."""
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(delay, callback)


class _ManualTimer:
    """Timer entry for ManualScheduler."""

    __slots__ = ("_cancelled", "callback", "deadline", "seq")

    def __init__(self, deadline: float, seq: int, callback: Callable[[], None]) -> None:
        self.deadline = deadline
        self.seq = seq
        self.callback = callback
        self._cancelled = False

    def __lt__(self, other: _ManualTimer) -> bool:
        return (self.deadline, self.seq) < (other.deadline, other.seq)

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Controllable scheduler for deterministic testing.

    Time only moves when advance() is called. Due callbacks fire in
    deadline order (ties in scheduling order), and the clock reads each
    callback's own deadline while it runs.

    Example:
        scheduler = ManualScheduler()
        scheduler.call_later(1.0, flush)
        scheduler.advance(0.5)   # nothing fires
        scheduler.advance(0.5)   # flush() runs at t=1.0
    """

    def __init__(self, start: float = 0.0) -> None:
        """Initialize at a given monotonic time.

        Args:
            start: Initial monotonic time value (default 0.0).
        """
        self._current = start
        self._timers: list[_ManualTimer] = []
        self._seq = itertools.count()

    def monotonic(self) -> float:
        """Return current virtual time."""
        return self._current

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        if delay < 0:
            raise ValueError(f"Cannot schedule with negative delay: {delay}")
        timer = _ManualTimer(self._current + delay, next(self._seq), callback)
        heapq.heappush(self._timers, timer)
        return timer

    def advance(self, seconds: float) -> None:
        """Advance virtual time, firing every callback that becomes due.

        Callbacks scheduled by a firing callback also fire if they fall
        inside the advanced window.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        target = self._current + seconds
        while self._timers and self._timers[0].deadline <= target:
            timer = heapq.heappop(self._timers)
            if timer.cancelled():
                continue
            self._current = timer.deadline
            timer.callback()
        self._current = target

    @property
    def pending(self) -> int:
        """Number of scheduled, not yet cancelled callbacks."""
        return sum(1 for timer in self._timers if not timer.cancelled())
