# tests/fixtures/replay.py
"""Test doubles for the replay pipeline's collaborators.

- FakeRecorder: RecorderProtocol that tests drive by calling emit()
- RecordingSink / FailingSink: EnvelopeSink implementations
- TelemetryTestExporter: in-memory ExporterProtocol
- MockTelemetryConfig: RuntimeTelemetryProtocol with mutable defaults
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from replaypipe.contracts.config import ExporterConfig
from replaypipe.contracts.enums import BackpressureMode, RecordKind, TelemetryGranularity
from replaypipe.contracts.envelope import ReplayPayload, SessionReplayEnvelope
from replaypipe.contracts.events import RecordedEvent
from replaypipe.contracts.session import SessionMetadata, Viewport

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


def raw_event(kind: int = 3, timestamp: float = 1_700_000_000_000, **data: Any) -> dict[str, Any]:
    """Raw rrweb-shaped recorder payload."""
    return {"type": kind, "data": data or {"source": 1}, "timestamp": timestamp}


class FakeRecorder:
    """Recorder double.

    start() records the options and callback; tests push events through
    emit(). `events_on_start` are delivered synchronously inside start(),
    and `fail_with` makes start() raise.
    """

    def __init__(
        self,
        *,
        fail_with: Exception | None = None,
        events_on_start: list[Any] | None = None,
        return_stop_handle: bool = True,
    ) -> None:
        self.fail_with = fail_with
        self.events_on_start = events_on_start or []
        self.return_stop_handle = return_stop_handle
        self.options: dict[str, Any] | None = None
        self.start_calls = 0
        self.stop_calls = 0
        self._emit: Callable[[object], None] | None = None

    def start(self, options: Mapping[str, Any], emit: Callable[[object], None]) -> Callable[[], None] | None:
        self.start_calls += 1
        self.options = dict(options)
        if self.fail_with is not None:
            raise self.fail_with
        self._emit = emit
        for raw in self.events_on_start:
            emit(raw)
        return self.stop if self.return_stop_handle else None

    def stop(self) -> None:
        self.stop_calls += 1
        self._emit = None

    @property
    def is_running(self) -> bool:
        return self._emit is not None

    def emit(self, raw: object) -> None:
        """Deliver a raw event the way a live recorder would."""
        if self._emit is None:
            raise RuntimeError("FakeRecorder is not running")
        self._emit(raw)

    def emit_many(self, count: int, *, kind: int = 3, timestamp: float = 1_700_000_000_000) -> None:
        for i in range(count):
            self.emit(raw_event(kind=kind, timestamp=timestamp + i, seq=i))


@dataclass
class RecordingSink:
    """Sink that keeps every envelope it receives."""

    envelopes: list[SessionReplayEnvelope] = field(default_factory=list)

    def capture(self, envelope: SessionReplayEnvelope) -> None:
        self.envelopes.append(envelope)

    def of_kind(self, record_kind: RecordKind) -> list[SessionReplayEnvelope]:
        return [e for e in self.envelopes if e.record_kind == record_kind]

    @property
    def kinds(self) -> list[RecordKind]:
        return [e.record_kind for e in self.envelopes]

    @property
    def batches(self) -> list[SessionReplayEnvelope]:
        return self.of_kind(RecordKind.EVENTS_BATCH)


class FailingSink:
    """Sink that raises on every capture (or only on selected record kinds)."""

    def __init__(self, *, only: set[RecordKind] | None = None) -> None:
        self.only = only
        self.attempts: list[SessionReplayEnvelope] = []
        self.delivered: list[SessionReplayEnvelope] = []

    def capture(self, envelope: SessionReplayEnvelope) -> None:
        self.attempts.append(envelope)
        if self.only is None or envelope.record_kind in self.only:
            raise ConnectionError("sink unavailable")
        self.delivered.append(envelope)


class TelemetryTestExporter:
    """In-memory exporter that can simulate failures."""

    def __init__(
        self,
        name: str = "test",
        *,
        fail_export: bool = False,
        fail_flush: bool = False,
        fail_close: bool = False,
    ) -> None:
        self._name = name
        self.fail_export = fail_export
        self.fail_flush = fail_flush
        self.fail_close = fail_close
        self.exported: list[SessionReplayEnvelope] = []
        self.configured_with: dict[str, Any] | None = None
        self.flush_count = 0
        self.close_count = 0

    @property
    def name(self) -> str:
        return self._name

    def configure(self, config: dict[str, Any]) -> None:
        self.configured_with = config

    def export(self, envelope: SessionReplayEnvelope) -> None:
        if self.fail_export:
            raise RuntimeError(f"Simulated export failure in {self._name}")
        self.exported.append(envelope)

    def flush(self) -> None:
        if self.fail_flush:
            raise RuntimeError(f"Simulated flush failure in {self._name}")
        self.flush_count += 1

    def close(self) -> None:
        self.close_count += 1
        if self.fail_close:
            raise RuntimeError(f"Simulated close failure in {self._name}")


@dataclass
class MockTelemetryConfig:
    """RuntimeTelemetryProtocol implementation for manager tests."""

    enabled: bool = True
    granularity: TelemetryGranularity = TelemetryGranularity.FULL
    backpressure_mode: BackpressureMode = BackpressureMode.BLOCK
    fail_on_total_exporter_failure: bool = False
    max_consecutive_failures: int = 10
    exporter_configs: tuple[ExporterConfig, ...] = ()


def make_envelope(
    record_kind: RecordKind = RecordKind.EVENTS_BATCH,
    event_kinds: tuple[int, ...] = (3,),
    *,
    session_id: str = "sess-1",
    user_id: str | None = None,
) -> SessionReplayEnvelope:
    """Envelope carrying one event per entry of event_kinds."""
    events = tuple(RecordedEvent(kind=kind, data={"seq": i}, timestamp=1_000 + i) for i, kind in enumerate(event_kinds))
    ended = record_kind == RecordKind.SESSION_END
    metadata = SessionMetadata(
        start_time=0.0,
        event_count=len(events),
        url="https://example.com",
        user_agent="pytest",
        viewport=Viewport(1024, 768),
        device_pixel_ratio=1.0,
        end_time=500.0 if ended else None,
        duration=500.0 if ended else None,
    )
    payload = ReplayPayload(
        session_id=session_id,
        events=events,
        metadata=metadata,
        config={"batchSize": 50},
        record_kind=record_kind,
    )
    return SessionReplayEnvelope(
        session_id=session_id,
        timestamp=FIXED_NOW,
        payload=payload,
        user_id=user_id,
    )
