"""Session replay envelopes delivered to telemetry sinks.

The envelope crosses the replay <-> telemetry boundary, so it lives in
contracts. Envelopes are frozen and carry tuple snapshots of events: once
built, later buffer mutation cannot change an envelope already handed to a
sink.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Final

from replaypipe.contracts.enums import RecordKind
from replaypipe.contracts.events import RecordedEvent
from replaypipe.contracts.session import SessionMetadata

SESSION_REPLAY_EVENT_TYPE: Final = "session_replay"


@dataclass(frozen=True, slots=True)
class ReplayPayload:
    """Payload of a session replay envelope.

    Also returned by get_session_data() as a view of the whole session.
    """

    session_id: str
    events: tuple[RecordedEvent, ...]
    metadata: SessionMetadata
    config: Mapping[str, Any]
    record_kind: RecordKind

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "events": [event.to_dict() for event in self.events],
            "metadata": self.metadata.to_dict(),
            "config": dict(self.config),
            "recordKind": self.record_kind.value,
        }


@dataclass(frozen=True, slots=True)
class SessionReplayEnvelope:
    """Outbound telemetry unit wrapping one payload.

    Attributes:
        session_id: Session the payload belongs to
        timestamp: Wall-clock build time (UTC)
        payload: Events, metadata and config snapshot
        user_id: Identified host user at build time, if any
        event_type: Always "session_replay"
        event_name: Always "session_replay"
    """

    session_id: str
    timestamp: datetime
    payload: ReplayPayload
    user_id: str | None = None
    event_type: str = SESSION_REPLAY_EVENT_TYPE
    event_name: str = SESSION_REPLAY_EVENT_TYPE

    @property
    def record_kind(self) -> RecordKind:
        return self.payload.record_kind

    @property
    def has_large_events(self) -> bool:
        """Whether any carried event is a large kind (snapshot, custom, plugin)."""
        return any(event.is_large for event in self.payload.events)

    def to_dict(self) -> dict[str, Any]:
        """Render the wire shape. userId is omitted when no user is identified."""
        data: dict[str, Any] = {
            "eventType": self.event_type,
            "eventName": self.event_name,
            "sessionId": self.session_id,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.user_id:
            data["userId"] = self.user_id
        data["payload"] = self.payload.to_dict()
        return data
