# tests/fixtures/__init__.py
"""Shared test doubles for replaypipe tests."""

from tests.fixtures.replay import (
    FIXED_NOW,
    FailingSink,
    FakeRecorder,
    MockTelemetryConfig,
    RecordingSink,
    TelemetryTestExporter,
    make_envelope,
    raw_event,
)

__all__ = [
    "FIXED_NOW",
    "FailingSink",
    "FakeRecorder",
    "MockTelemetryConfig",
    "RecordingSink",
    "TelemetryTestExporter",
    "make_envelope",
    "raw_event",
]
