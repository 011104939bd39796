# src/replaypipe/telemetry/transport.py
"""Grouping of envelopes into transport batches.

Envelopes whose payload holds a large event (full snapshot, custom or plugin
event) travel alone. Everything else is grouped, in order, into batches of
at most max_batch_envelopes.
"""

from collections.abc import Iterable

from replaypipe.contracts.config import INTERNAL_DEFAULTS
from replaypipe.contracts.envelope import SessionReplayEnvelope

MAX_BATCH_ENVELOPES = int(INTERNAL_DEFAULTS["transport"]["max_batch_envelopes"])


def split_for_transport(
    envelopes: Iterable[SessionReplayEnvelope],
    max_batch_envelopes: int = MAX_BATCH_ENVELOPES,
) -> list[list[SessionReplayEnvelope]]:
    """Split envelopes into ordered transport batches.

    Args:
        envelopes: Envelopes in send order
        max_batch_envelopes: Upper bound for a batch of small envelopes

    Returns:
        Batches whose concatenation equals the input order.

    Raises:
        ValueError: If max_batch_envelopes < 1.

    Example:
        >>> [len(b) for b in split_for_transport([small] * 7)]
        [5, 2]
        >>> [len(b) for b in split_for_transport([small, snapshot, small])]
        [1, 1, 1]
    """
    if max_batch_envelopes < 1:
        raise ValueError(f"max_batch_envelopes must be >= 1, got {max_batch_envelopes}")

    batches: list[list[SessionReplayEnvelope]] = []
    current: list[SessionReplayEnvelope] = []
    for envelope in envelopes:
        if envelope.has_large_events:
            if current:
                batches.append(current)
                current = []
            batches.append([envelope])
            continue

        if len(current) >= max_batch_envelopes:
            batches.append(current)
            current = []
        current.append(envelope)

    if current:
        batches.append(current)
    return batches
