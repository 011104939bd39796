# tests/property/telemetry/test_transport_properties.py
"""Property tests for split_for_transport()."""

from hypothesis import given
from hypothesis import strategies as st

from replaypipe.telemetry.transport import split_for_transport
from tests.fixtures.replay import make_envelope
from tests.property.settings import STANDARD_SETTINGS

# Kinds 2, 4 and 5 travel alone; 3 is small
envelope_kinds = st.lists(st.sampled_from([(3,), (3, 3), (2,), (3, 2), (5,), (4, 3)]), max_size=30)
batch_limits = st.integers(min_value=1, max_value=8)


@given(kinds=envelope_kinds, limit=batch_limits)
@STANDARD_SETTINGS
def test_split_preserves_order_and_bounds(kinds: list[tuple[int, ...]], limit: int) -> None:
    envelopes = [make_envelope(event_kinds=k, session_id=f"s{i}") for i, k in enumerate(kinds)]

    batches = split_for_transport(envelopes, limit)

    assert [e for batch in batches for e in batch] == envelopes
    for batch in batches:
        assert 1 <= len(batch) <= limit
        if any(e.has_large_events for e in batch):
            assert len(batch) == 1
