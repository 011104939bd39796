# src/replaypipe/telemetry/filtering.py
"""Envelope filtering based on telemetry granularity.

- LIFECYCLE: only session_start and session_end envelopes
- FULL: every envelope, including events_batch
"""

from replaypipe.contracts.enums import RecordKind, TelemetryGranularity
from replaypipe.contracts.envelope import SessionReplayEnvelope


def should_emit(envelope: SessionReplayEnvelope, granularity: TelemetryGranularity) -> bool:
    """Decide whether an envelope passes the configured granularity.

    Example:
        >>> should_emit(start_envelope, TelemetryGranularity.LIFECYCLE)
        True
        >>> should_emit(batch_envelope, TelemetryGranularity.LIFECYCLE)
        False
    """
    match envelope.record_kind:
        case RecordKind.SESSION_START | RecordKind.SESSION_END:
            return True
        case RecordKind.EVENTS_BATCH:
            return granularity == TelemetryGranularity.FULL
        case _:
            # Unknown kinds pass through so new record kinds are never lost silently
            return True
