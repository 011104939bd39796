# src/replaypipe/replay/batching.py
"""Event buffering and batch flush scheduling.

BatchScheduler owns the session's event log and the pending batch. The
pending batch is not a separate list: it is the slice of the log after the
last flushed index, so it is always a suffix of the log by construction.

Flush policy (the flush decision, see evaluate()):
- batch reached batch_size: flush now (cancelling any pending timer)
- otherwise, no timer armed: arm one for batch_flush_delay; when it fires
  the batch is flushed unconditionally, full or not
- otherwise: wait for the next event or the armed timer

At most one batch timer is outstanding at any time.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from replaypipe.contracts.events import RecordedEvent
from replaypipe.core.scheduler import Scheduler, TimerHandle

logger = structlog.get_logger(__name__)

FlushCallback = Callable[[tuple[RecordedEvent, ...]], None]


class BatchScheduler:
    """Accumulates events and decides when a batch is flush-worthy.

    Thread Safety:
        NOT thread-safe. All calls, including timer callbacks delivered by
        the scheduler, must run on one thread.

    Example:
        batches = BatchScheduler(
            batch_size=3, flush_delay=1.0, scheduler=scheduler, on_flush=send
        )
        batches.append(event)
        batches.evaluate()  # arms the 1s timer
    """

    def __init__(
        self,
        *,
        batch_size: int,
        flush_delay: float,
        scheduler: Scheduler,
        on_flush: FlushCallback,
    ) -> None:
        """Initialize the batch scheduler.

        Args:
            batch_size: Pending count that triggers an immediate flush
            flush_delay: Seconds before a partial batch is flushed
            scheduler: Source of batch timers
            on_flush: Receives each flushed batch snapshot, oldest first

        Raises:
            ValueError: If batch_size < 1 or flush_delay < 0.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        if flush_delay < 0:
            raise ValueError(f"flush_delay must be >= 0, got {flush_delay}")
        self._batch_size = batch_size
        self._flush_delay = flush_delay
        self._scheduler = scheduler
        self._on_flush = on_flush

        self._log: list[RecordedEvent] = []
        self._flushed_upto = 0
        self._timer: TimerHandle | None = None
        self._flush_count = 0

    @property
    def events(self) -> tuple[RecordedEvent, ...]:
        """Snapshot of the full event log in arrival order."""
        return tuple(self._log)

    @property
    def pending(self) -> tuple[RecordedEvent, ...]:
        """Snapshot of events not yet flushed (a suffix of events)."""
        return tuple(self._log[self._flushed_upto :])

    @property
    def pending_count(self) -> int:
        return len(self._log) - self._flushed_upto

    @property
    def flush_count(self) -> int:
        """Number of non-empty flushes since the last reset."""
        return self._flush_count

    @property
    def has_timer(self) -> bool:
        return self._timer is not None

    def __len__(self) -> int:
        """Return the event log length."""
        return len(self._log)

    def reset(self) -> None:
        """Clear the log and pending batch for a new session."""
        self.cancel_timer()
        self._log = []
        self._flushed_upto = 0
        self._flush_count = 0

    def append(self, event: RecordedEvent) -> None:
        """Add an event to the log and the pending batch."""
        self._log.append(event)

    def evaluate(self) -> None:
        """Run the flush decision for the current pending batch."""
        pending = self.pending_count
        if pending == 0:
            return

        if pending >= self._batch_size:
            logger.debug("Batch full, flushing", pending=pending, batch_size=self._batch_size)
            self.flush()
        elif self._timer is None:
            self._timer = self._scheduler.call_later(self._flush_delay, self._on_timer)
            logger.debug("Batch timer armed", pending=pending, delay_seconds=self._flush_delay)

    def flush(self) -> None:
        """Export the pending batch and clear it.

        Cancels any armed batch timer first. The batch is cleared even if
        on_flush raises: a flush is attempted at most once.
        """
        self.cancel_timer()
        if self.pending_count == 0:
            return

        batch = self.pending
        try:
            self._on_flush(batch)
        finally:
            self._flushed_upto += len(batch)
            self._flush_count += 1

    def cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        logger.debug("Batch timer fired", pending=self.pending_count)
        self.flush()
