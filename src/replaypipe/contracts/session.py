"""Session state snapshots and metadata.

These are immutable views handed out by the lifecycle controller. The
controller's own mutable bookkeeping never leaves it.
"""

from dataclasses import dataclass
from typing import Any

from replaypipe.contracts.enums import SessionState


@dataclass(frozen=True, slots=True)
class Viewport:
    """Host viewport size in CSS pixels."""

    width: int = 0
    height: int = 0


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Point-in-time copy of session state.

    Attributes:
        session_id: Opaque identifier, fixed for the controller's lifetime
        state: Current lifecycle state
        start_time: Monotonic milliseconds at the transition to RECORDING
        event_count: Number of buffered events (equals the event log length)
        last_event_time: Monotonic milliseconds of the last buffered event
    """

    session_id: str
    state: SessionState
    start_time: float
    event_count: int
    last_event_time: float

    @property
    def is_recording(self) -> bool:
        return self.state in (SessionState.RECORDING, SessionState.PAUSED)

    @property
    def is_paused(self) -> bool:
        return self.state == SessionState.PAUSED


@dataclass(frozen=True, slots=True)
class SessionMetadata:
    """Metadata attached to every envelope payload.

    end_time and duration are both None while the session is RECORDING and
    both set in every other state, with duration == end_time - start_time.
    """

    start_time: float
    event_count: int
    url: str
    user_agent: str
    viewport: Viewport
    device_pixel_ratio: float
    end_time: float | None = None
    duration: float | None = None

    def __post_init__(self) -> None:
        """Validate that end_time and duration are set together."""
        if (self.end_time is None) != (self.duration is None):
            raise ValueError(
                f"SessionMetadata requires end_time and duration together. "
                f"Got end_time={self.end_time!r}, duration={self.duration!r}"
            )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"startTime": self.start_time}
        if self.end_time is not None:
            data["endTime"] = self.end_time
            data["duration"] = self.duration
        data.update(
            {
                "eventCount": self.event_count,
                "url": self.url,
                "userAgent": self.user_agent,
                "viewport": {"width": self.viewport.width, "height": self.viewport.height},
                "devicePixelRatio": self.device_pixel_ratio,
            }
        )
        return data
