"""Shared contracts for cross-boundary data types.

Dataclasses, enums and exceptions that cross the replay <-> telemetry
boundary live here. This package is a LEAF MODULE with no outbound
dependencies to core, replay or telemetry.

Settings classes are NOT re-exported here - import them from
replaypipe.core.config.
"""

from replaypipe.contracts.config import (
    ExporterConfig,
    RuntimeTelemetryConfig,
    SessionConfig,
)
from replaypipe.contracts.enums import (
    BackpressureMode,
    DeliveryMode,
    LimitDecision,
    RecordKind,
    SessionState,
    TelemetryGranularity,
)
from replaypipe.contracts.envelope import (
    SESSION_REPLAY_EVENT_TYPE,
    ReplayPayload,
    SessionReplayEnvelope,
)
from replaypipe.contracts.errors import (
    MalformedEventError,
    RecorderSetupError,
    ReplayError,
)
from replaypipe.contracts.events import LARGE_EVENT_KINDS, RecordedEvent
from replaypipe.contracts.session import SessionMetadata, SessionSnapshot, Viewport

__all__ = [
    "LARGE_EVENT_KINDS",
    "SESSION_REPLAY_EVENT_TYPE",
    "BackpressureMode",
    "DeliveryMode",
    "ExporterConfig",
    "LimitDecision",
    "MalformedEventError",
    "RecordKind",
    "RecordedEvent",
    "RecorderSetupError",
    "ReplayError",
    "ReplayPayload",
    "RuntimeTelemetryConfig",
    "SessionConfig",
    "SessionMetadata",
    "SessionReplayEnvelope",
    "SessionSnapshot",
    "SessionState",
    "TelemetryGranularity",
    "Viewport",
]
