# src/replaypipe/replay/recorder.py
"""Recorder that replays a captured JSON-lines event stream.

Each line of the source is one raw recorder event, e.g.
    {"type": 2, "data": {...}, "timestamp": 1700000000000}

On start() every event is scheduled on the Scheduler at its offset from the
first event's timestamp, so the controller sees the stream with its
original timing (virtual or real, depending on the scheduler).
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from numbers import Real
from pathlib import Path
from typing import Any

import structlog

from replaypipe.core.scheduler import Scheduler, TimerHandle
from replaypipe.replay.protocols import RawEventCallback, StopHandle

logger = structlog.get_logger(__name__)


def _timestamp_of(raw: object) -> float | None:
    if isinstance(raw, Mapping):
        value = raw.get("timestamp")
        if isinstance(value, Real) and not isinstance(value, bool):
            return float(value)
    return None


class JsonlRecorder:
    """RecorderProtocol implementation backed by JSON lines.

    Lines that are not valid JSON are still delivered (as the raw string),
    so the controller's boundary validation drops and counts them.
    """

    def __init__(self, lines: Iterable[str], scheduler: Scheduler, *, source: str = "<lines>") -> None:
        self._lines = lines
        self._scheduler = scheduler
        self._source = source
        self._timers: list[TimerHandle] = []
        self._span_seconds = 0.0
        self._scheduled = 0
        self._options: dict[str, Any] = {}

    @classmethod
    def from_path(cls, path: Path, scheduler: Scheduler) -> JsonlRecorder:
        """Recorder reading path lazily at start().

        A missing or unreadable file surfaces as an OSError from start().
        """
        return cls(_LazyLines(path), scheduler, source=str(path))

    @property
    def span_seconds(self) -> float:
        """Offset of the last scheduled event from the first, in seconds."""
        return self._span_seconds

    @property
    def scheduled_count(self) -> int:
        return self._scheduled

    @property
    def options(self) -> dict[str, Any]:
        """Options received by the most recent start()."""
        return self._options

    def start(self, options: Mapping[str, Any], emit: RawEventCallback) -> StopHandle:
        self._options = dict(options)
        events = [self._decode(line) for line in self._lines if line.strip()]

        base: float | None = None
        for raw in events:
            ts = _timestamp_of(raw)
            if ts is not None:
                base = ts if base is None else min(base, ts)

        span_ms = 0.0
        for raw in events:
            ts = _timestamp_of(raw)
            offset_ms = 0.0 if ts is None or base is None else ts - base
            span_ms = max(span_ms, offset_ms)
            self._timers.append(self._scheduler.call_later(offset_ms / 1000, _deliver(emit, raw)))

        self._span_seconds = span_ms / 1000
        self._scheduled = len(events)
        logger.info(
            "Recorder stream scheduled",
            source=self._source,
            events=self._scheduled,
            span_seconds=self._span_seconds,
        )
        return self.stop

    def stop(self) -> None:
        """Cancel every event not yet delivered."""
        for timer in self._timers:
            timer.cancel()
        self._timers = []

    def _decode(self, line: str) -> object:
        try:
            return json.loads(line)
        except json.JSONDecodeError as e:
            logger.debug("Recorder line is not valid JSON", source=self._source, error=str(e))
            return line


def _deliver(emit: RawEventCallback, raw: object):  # type: ignore[no-untyped-def]
    def callback() -> None:
        emit(raw)

    return callback


class _LazyLines:
    """Iterable that opens the file only when iterated."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def __iter__(self):  # type: ignore[no-untyped-def]
        with self._path.open(encoding="utf-8") as handle:
            yield from handle
