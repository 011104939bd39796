"""All status codes, modes, and kinds used across subsystem boundaries."""

from enum import StrEnum


class SessionState(StrEnum):
    """Lifecycle state of a recording session.

    Transitions are monotonic except RECORDING <-> PAUSED.
    STOPPED is terminal.
    """

    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    STOPPED = "stopped"


class RecordKind(StrEnum):
    """Kind of record carried by a session replay envelope.

    Values:
        SESSION_START: Emitted once when recording starts (no events)
        EVENTS_BATCH: A flushed batch of buffered events
        SESSION_END: Emitted once at stop with the full event history
    """

    SESSION_START = "session_start"
    EVENTS_BATCH = "events_batch"
    SESSION_END = "session_end"


class LimitDecision(StrEnum):
    """Outcome of a limit check for one incoming event."""

    ADMIT = "admit"
    EVENT_LIMIT = "event_limit"
    DURATION_LIMIT = "duration_limit"


class DeliveryMode(StrEnum):
    """How admitted events are delivered to the sink.

    Values:
        BATCHED: Accumulate events and flush by size or delay (default)
        IMMEDIATE: Flush every admitted event as a singleton batch
    """

    BATCHED = "batched"
    IMMEDIATE = "immediate"


class TelemetryGranularity(StrEnum):
    """Granularity of envelopes forwarded by the TelemetryManager.

    Values:
        LIFECYCLE: Only session start and session end envelopes
        FULL: Lifecycle + every events batch
    """

    LIFECYCLE = "lifecycle"
    FULL = "full"


class BackpressureMode(StrEnum):
    """How to handle backpressure when telemetry exporters can't keep up.

    Values:
        BLOCK: Block the caller until exporters catch up
        DROP: Drop envelopes when the queue is full (lossy, caller unaffected)
    """

    BLOCK = "block"
    DROP = "drop"
