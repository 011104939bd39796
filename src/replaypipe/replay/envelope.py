# src/replaypipe/replay/envelope.py
"""Envelope construction from session state.

EnvelopeBuilder turns a snapshot of session state into a
SessionReplayEnvelope. It owns nothing mutable: every call reads the host
environment and clocks afresh, so metadata is always current at build time.
"""

from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from replaypipe.contracts.config import SessionConfig
from replaypipe.contracts.enums import RecordKind, SessionState
from replaypipe.contracts.envelope import ReplayPayload, SessionReplayEnvelope
from replaypipe.contracts.events import RecordedEvent
from replaypipe.contracts.session import SessionMetadata
from replaypipe.replay.protocols import HostEnvironment


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class EnvelopeBuilder:
    """Builds payloads and envelopes for one session.

    Example:
        builder = EnvelopeBuilder("sess-1", config, host)
        metadata = builder.build_metadata(
            state=SessionState.RECORDING, start_time=0.0, event_count=3, now=250.0
        )
        envelope = builder.build(RecordKind.EVENTS_BATCH, events, metadata)
    """

    def __init__(
        self,
        session_id: str,
        config: SessionConfig,
        host: HostEnvironment,
        wall_clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            session_id: Session every envelope belongs to
            config: Session config, embedded in each payload
            host: Source of page context and the identified user
            wall_clock: Returns the envelope timestamp. Defaults to UTC now.
        """
        self._session_id = session_id
        self._config_snapshot = config.to_dict()
        self._host = host
        self._wall_clock = wall_clock if wall_clock is not None else _utc_now

    def build_metadata(
        self,
        *,
        state: SessionState,
        start_time: float,
        event_count: int,
        now: float,
    ) -> SessionMetadata:
        """Build session metadata for the given state.

        While RECORDING the session is open-ended, so end_time and duration
        are omitted. In every other state end_time is `now` and
        duration = end_time - start_time.

        Args:
            state: Session state at build time
            start_time: Monotonic ms at the transition to RECORDING
            event_count: Buffered event count
            now: Monotonic ms used as end_time when the session is not recording
        """
        end_time: float | None = None
        duration: float | None = None
        if state != SessionState.RECORDING:
            end_time = now
            duration = end_time - start_time

        return SessionMetadata(
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            event_count=event_count,
            url=self._host.url,
            user_agent=self._host.user_agent,
            viewport=self._host.viewport,
            device_pixel_ratio=self._host.device_pixel_ratio,
        )

    def build_payload(
        self,
        record_kind: RecordKind,
        events: Iterable[RecordedEvent],
        metadata: SessionMetadata,
    ) -> ReplayPayload:
        # tuple() copies, so the payload never aliases the live buffer
        return ReplayPayload(
            session_id=self._session_id,
            events=tuple(events),
            metadata=metadata,
            config=dict(self._config_snapshot),
            record_kind=record_kind,
        )

    def build(
        self,
        record_kind: RecordKind,
        events: Iterable[RecordedEvent],
        metadata: SessionMetadata,
    ) -> SessionReplayEnvelope:
        """Build one envelope.

        user_id is read from the host at build time and left unset when no
        user is identified.
        """
        return SessionReplayEnvelope(
            session_id=self._session_id,
            timestamp=self._wall_clock(),
            payload=self.build_payload(record_kind, events, metadata),
            user_id=self._host.user_id or None,
        )
