# src/replaypipe/replay/controller.py
"""SessionReplayController owns one recording session end to end.

The controller is the only writer of session state. It:
1. Starts the external recorder with its own bound event callback
2. Validates each raw event at the boundary
3. Checks session limits (stopping the session when one is hit)
4. Masks, buffers, and runs the flush decision (directly or throttled)
5. Builds envelopes and hands them to the sink with failure isolation
6. On stop, cancels timers, flushes the pending batch and emits the full
   session history

State machine (initial IDLE):

    IDLE --start()--> RECORDING <--pause()/resume()--> PAUSED
    RECORDING/PAUSED --stop()--> STOPPED   (terminal)

Every other call is a logged no-op.

Error handling:
- Recorder failure in start(): rolled back to IDLE, controller disabled,
  RecorderSetupError raised. This is the only exception that leaves the
  controller.
- Malformed raw events: dropped and logged.
- Sink failures: logged and counted; buffer state is not rolled back.

Thread Safety:
    NOT thread-safe. The recorder callback, the public operations and the
    scheduler's timer callbacks must all run on one thread (the event loop
    thread when using AsyncioScheduler).
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

import structlog

from replaypipe.contracts.config import INTERNAL_DEFAULTS, SessionConfig
from replaypipe.contracts.enums import DeliveryMode, LimitDecision, RecordKind, SessionState
from replaypipe.contracts.envelope import ReplayPayload, SessionReplayEnvelope
from replaypipe.contracts.errors import MalformedEventError, RecorderSetupError
from replaypipe.contracts.events import RecordedEvent
from replaypipe.contracts.session import SessionMetadata, SessionSnapshot
from replaypipe.core.scheduler import AsyncioScheduler, Scheduler
from replaypipe.replay.batching import BatchScheduler
from replaypipe.replay.envelope import EnvelopeBuilder
from replaypipe.replay.host import StaticHostEnvironment
from replaypipe.replay.limits import LimitMonitor
from replaypipe.replay.masking import mask_event
from replaypipe.replay.protocols import EnvelopeSink, HostEnvironment, RecorderProtocol, StopHandle
from replaypipe.replay.throttle import ThrottleCoalescer

logger = structlog.get_logger(__name__)


def generate_session_id() -> str:
    """Return a new opaque session identifier."""
    return str(uuid.uuid4())


class SessionReplayController:
    """Session lifecycle controller and pipeline orchestrator.

    Example:
        controller = SessionReplayController(
            SessionConfig(batch_size=25),
            sink=telemetry_manager,
            recorder=recorder,
        )
        controller.start()
        ...
        controller.stop()
    """

    _MILESTONE_INTERVAL = int(INTERNAL_DEFAULTS["replay"]["milestone_interval"])

    def __init__(
        self,
        config: SessionConfig,
        *,
        sink: EnvelopeSink,
        recorder: RecorderProtocol | None,
        scheduler: Scheduler | None = None,
        host: HostEnvironment | None = None,
        session_id: str | None = None,
        wall_clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the controller in IDLE state.

        Args:
            config: Immutable session configuration
            sink: Receives every envelope
            recorder: External recorder. May be None; the controller is then
                constructed normally but start() cannot begin recording.
            scheduler: Timer and clock source. Defaults to AsyncioScheduler.
            host: Page and user context. Defaults to an empty
                StaticHostEnvironment.
            session_id: Fixed session id. Generated when omitted.
            wall_clock: Envelope timestamp source (for tests).
        """
        self._config = config
        self._sink = sink
        self._recorder = recorder
        self._scheduler: Scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self._host: HostEnvironment = host if host is not None else StaticHostEnvironment()
        self._session_id = session_id if session_id else generate_session_id()
        self._log = logger.bind(session_id=self._session_id)

        self._state = SessionState.IDLE
        self._start_time = 0.0
        self._end_time: float | None = None
        self._last_event_time = 0.0
        self._stop_handle: StopHandle | None = None
        self._held: list[SessionReplayEnvelope] | None = None
        self._disabled = False
        self._closed = False

        self._builder = EnvelopeBuilder(self._session_id, config, self._host, wall_clock=wall_clock)
        self._limits = LimitMonitor(config)
        self._batches = BatchScheduler(
            batch_size=config.batch_size,
            flush_delay=config.batch_flush_delay_seconds,
            scheduler=self._scheduler,
            on_flush=self._export_batch,
        )
        self._throttle = ThrottleCoalescer(
            delay=config.throttle_delay_seconds,
            scheduler=self._scheduler,
            on_fire=self._on_throttle_fire,
        )

        # Health metrics
        self._envelopes_sent = 0
        self._sink_failures = 0
        self._events_dropped_malformed = 0
        self._events_dropped_inactive = 0
        self._limit_stops = 0

        self._log.debug(
            "Session replay controller created",
            has_recorder=recorder is not None,
            delivery_mode=config.delivery_mode.value,
            throttle_events=config.throttle_events,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def is_enabled(self) -> bool:
        """False once setup failed, the recorder is missing, or close() ran."""
        return not self._disabled and not self._closed and self._recorder is not None

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Return a snapshot of pipeline counters for monitoring."""
        return {
            "state": self._state.value,
            "event_count": len(self._batches),
            "pending_count": self._batches.pending_count,
            "batches_flushed": self._batches.flush_count,
            "envelopes_sent": self._envelopes_sent,
            "sink_failures": self._sink_failures,
            "events_dropped_malformed": self._events_dropped_malformed,
            "events_dropped_inactive": self._events_dropped_inactive,
            "limit_stops": self._limit_stops,
            "throttle_fires": self._throttle.fire_count,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin recording.

        No-op (logged) unless the session is IDLE and the controller is
        enabled.

        session_start is always the first envelope of a session. Events the
        recorder delivers from inside its own start() are processed at once,
        but their envelopes reach the sink only after session_start; if one
        of them trips a limit the session ends before start() returns.

        Raises:
            RecorderSetupError: If the recorder raised while starting. The
                session is back in IDLE, the controller is disabled and
                nothing was sent to the sink.
        """
        if self._closed:
            self._log.warning("Controller closed, skipping start")
            return
        if self._disabled:
            self._log.warning("Session replay disabled, skipping start")
            return
        if self._state != SessionState.IDLE:
            self._log.warning("Session replay not idle, skipping start", state=self._state.value)
            return
        if self._recorder is None:
            self._log.warning("No recorder available, session replay disabled")
            self._disabled = True
            return

        self._batches.reset()
        self._throttle.cancel()
        self._state = SessionState.RECORDING
        self._start_time = self._now()
        self._end_time = None
        self._last_event_time = 0.0

        # Envelopes produced while the recorder starts are held until it
        # returns, so session_start always reaches the sink first
        start_envelope = self._builder.build(RecordKind.SESSION_START, (), self._metadata())
        self._held = []
        try:
            stop_handle = self._recorder.start(self._config.recorder_start_options(), self.handle_raw_event)
        except Exception as e:
            self._held = None
            self._state = SessionState.IDLE
            self._batches.reset()
            self._throttle.cancel()
            self._disabled = True
            self._log.error(
                "Recorder failed to start, session replay disabled",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RecorderSetupError(self._session_id, str(e)) from e

        held = self._held or []
        self._held = None
        self._deliver(start_envelope)
        for envelope in held:
            self._deliver(envelope)

        if self._state == SessionState.STOPPED:
            # A limit was hit by events emitted synchronously during start
            self._call_stop_handle(stop_handle)
            self._log.warning("Session stopped while the recorder was starting")
            return

        self._stop_handle = stop_handle
        self._log.info("Session replay recording started", start_time=self._start_time)

    def pause(self) -> None:
        """Stop accepting events until resume(). No buffer or export effects."""
        if self._state != SessionState.RECORDING:
            self._log.info("Session replay not recording, skipping pause", state=self._state.value)
            return
        self._state = SessionState.PAUSED
        self._log.info("Session replay paused", event_count=len(self._batches))

    def resume(self) -> None:
        if self._state != SessionState.PAUSED:
            self._log.info("Session replay not paused, skipping resume", state=self._state.value)
            return
        self._state = SessionState.RECORDING
        self._log.info("Session replay resumed", event_count=len(self._batches))

    def stop(self) -> None:
        """End the session.

        Stops the recorder, cancels both timers, folds a pending throttle
        marker into the final flush, flushes the pending batch and emits the
        session_end envelope carrying the whole event log. No-op (logged)
        unless RECORDING or PAUSED.
        """
        if self._state not in (SessionState.RECORDING, SessionState.PAUSED):
            self._log.info("Session replay not recording, skipping stop", state=self._state.value)
            return

        self._state = SessionState.STOPPED
        self._end_time = self._now()

        stop_handle, self._stop_handle = self._stop_handle, None
        self._call_stop_handle(stop_handle)

        self._batches.cancel_timer()
        marker = self._throttle.cancel()
        if marker is not None:
            self._log.debug("Pending throttle marker folded into final flush", event_kind=marker.kind)

        self._batches.flush()
        self._emit(RecordKind.SESSION_END, self._batches.events)
        self._log.info(
            "Session replay recording stopped",
            event_count=len(self._batches),
            duration=self._end_time - self._start_time,
        )

    def close(self) -> None:
        """Teardown: stop a live session, then refuse further starts.

        Idempotent.
        """
        if self._closed:
            return
        self.stop()
        self._closed = True
        self._log.debug("Session replay controller closed", **self.health_metrics)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_state(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self._session_id,
            state=self._state,
            start_time=self._start_time,
            event_count=len(self._batches),
            last_event_time=self._last_event_time,
        )

    def get_session_data(self) -> ReplayPayload | None:
        """Return the full event log with fresh metadata.

        Returns:
            The session as a session_end payload, or None when the session
            is IDLE with no events.
        """
        if self._state == SessionState.IDLE and len(self._batches) == 0:
            return None
        return self._builder.build_payload(RecordKind.SESSION_END, self._batches.events, self._metadata())

    # ------------------------------------------------------------------
    # Recorder callback
    # ------------------------------------------------------------------

    def handle_raw_event(self, raw: object) -> None:
        """Entry point for raw recorder events.

        Passed to the recorder at start(). Never raises.
        """
        if self._state != SessionState.RECORDING:
            self._events_dropped_inactive += 1
            self._log.debug("Ignoring recorder event, not recording", state=self._state.value)
            return

        try:
            event = RecordedEvent.from_raw(raw)
        except MalformedEventError as e:
            self._events_dropped_malformed += 1
            self._log.warning(
                "Dropped malformed recorder event",
                reason=e.reason,
                dropped_total=self._events_dropped_malformed,
            )
            return

        try:
            self._ingest(event)
        except Exception as e:
            # Recorder callbacks run inside the host page; nothing may escape
            self._log.error(
                "Failed to handle recorder event",
                event_kind=event.kind,
                error=str(e),
                error_type=type(e).__name__,
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ingest(self, event: RecordedEvent) -> None:
        now = self._now()
        decision = self._limits.check(event_count=len(self._batches), start_time=self._start_time, now=now)
        if decision != LimitDecision.ADMIT:
            self._limit_stops += 1
            self._log.warning(
                "Session replay limit reached, stopping recording",
                limit=decision.value,
                max_events=self._limits.max_events,
                max_duration_ms=self._limits.max_duration_ms,
                event_count=len(self._batches),
                elapsed_ms=now - self._start_time,
            )
            self.stop()
            return

        masked = mask_event(event, self._config)
        self._batches.append(masked)
        self._last_event_time = now

        event_count = len(self._batches)
        if event_count % self._MILESTONE_INTERVAL == 0:
            self._log.info(
                "Session replay event count milestone",
                event_count=event_count,
                pending_count=self._batches.pending_count,
                elapsed_ms=now - self._start_time,
            )

        if self._config.delivery_mode == DeliveryMode.IMMEDIATE:
            self._batches.flush()
        elif self._config.throttle_events:
            self._throttle.submit(masked)
        else:
            self._batches.evaluate()

    def _on_throttle_fire(self) -> None:
        if self._state == SessionState.STOPPED:
            return
        self._batches.evaluate()

    def _export_batch(self, events: tuple[RecordedEvent, ...]) -> None:
        self._emit(RecordKind.EVENTS_BATCH, events)

    def _emit(self, record_kind: RecordKind, events: Iterable[RecordedEvent]) -> None:
        envelope = self._builder.build(record_kind, events, self._metadata())
        if self._held is not None:
            self._held.append(envelope)
            return
        self._deliver(envelope)

    def _deliver(self, envelope: SessionReplayEnvelope) -> None:
        try:
            self._sink.capture(envelope)
        except Exception as e:
            # At-most-once: the batch counts as attempted and is not restored
            self._sink_failures += 1
            self._log.error(
                "Session replay sink failed",
                record_kind=envelope.record_kind.value,
                event_count=len(envelope.payload.events),
                error=str(e),
                failures_total=self._sink_failures,
            )
            return
        self._envelopes_sent += 1
        self._log.debug(
            "Session replay envelope sent",
            record_kind=envelope.record_kind.value,
            event_count=len(envelope.payload.events),
        )

    def _metadata(self) -> SessionMetadata:
        now = self._end_time if self._state == SessionState.STOPPED and self._end_time is not None else self._now()
        return self._builder.build_metadata(
            state=self._state,
            start_time=self._start_time,
            event_count=len(self._batches),
            now=now,
        )

    def _call_stop_handle(self, stop_handle: StopHandle | None) -> None:
        if stop_handle is None:
            return
        try:
            stop_handle()
        except Exception as e:
            self._log.warning("Recorder stop handle failed", error=str(e))

    def _now(self) -> float:
        """Monotonic milliseconds."""
        return self._scheduler.monotonic() * 1000
