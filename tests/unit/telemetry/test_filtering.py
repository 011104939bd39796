# tests/unit/telemetry/test_filtering.py
"""Tests for granularity filtering of envelopes."""

import pytest

from replaypipe.contracts.enums import RecordKind, TelemetryGranularity
from replaypipe.telemetry.filtering import should_emit
from tests.fixtures.replay import make_envelope


class TestShouldEmit:
    @pytest.mark.parametrize("granularity", list(TelemetryGranularity))
    @pytest.mark.parametrize("record_kind", [RecordKind.SESSION_START, RecordKind.SESSION_END])
    def test_lifecycle_envelopes_always_emitted(self, granularity, record_kind) -> None:
        assert should_emit(make_envelope(record_kind), granularity)

    def test_batches_only_at_full(self) -> None:
        envelope = make_envelope(RecordKind.EVENTS_BATCH)

        assert should_emit(envelope, TelemetryGranularity.FULL)
        assert not should_emit(envelope, TelemetryGranularity.LIFECYCLE)
