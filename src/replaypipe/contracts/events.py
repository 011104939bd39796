"""Recorded interaction events.

RecordedEvent is the trusted shape every stage downstream of the recorder
boundary operates on. Raw payloads are validated exactly once, in
RecordedEvent.from_raw(); nothing past that point re-checks the shape.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from numbers import Real
from typing import Any

from replaypipe.contracts.errors import MalformedEventError

# rrweb event type tags that carry large payloads.
# 2 = FullSnapshot (DOM snapshot), 4 = Meta/Custom, 5 = Plugin
LARGE_EVENT_KINDS: frozenset[int] = frozenset({2, 4, 5})


def _coerce_number(value: Any, field_name: str, payload: object) -> float:
    # bool is a Real subclass but never a valid tag or timestamp
    if isinstance(value, bool) or not isinstance(value, Real | str):
        raise MalformedEventError(f"'{field_name}' must be numeric, got {type(value).__name__}", payload)
    try:
        number = float(value)
    except OverflowError:
        raise MalformedEventError(f"'{field_name}' is out of float range", payload) from None
    except ValueError:
        raise MalformedEventError(f"'{field_name}' must be numeric, got {type(value).__name__}", payload) from None
    if not math.isfinite(number):
        raise MalformedEventError(f"'{field_name}' must be finite, got {number}", payload)
    return number


@dataclass(frozen=True, slots=True)
class RecordedEvent:
    """One interaction event produced by the external recorder.

    Attributes:
        kind: Integer event type tag (rrweb "type")
        data: Opaque recorder payload, never inspected by the pipeline
        timestamp: Recorder timestamp in epoch milliseconds
    """

    kind: int
    data: Any
    timestamp: float

    @classmethod
    def from_raw(cls, raw: object) -> "RecordedEvent":
        """Validate a raw recorder payload and build a RecordedEvent.

        Accepts either "kind" or rrweb's "type" for the tag. Missing or
        empty data becomes an empty dict.

        Raises:
            MalformedEventError: If the payload is not a mapping, or kind or
                timestamp is missing or non-numeric.
        """
        if not isinstance(raw, Mapping):
            raise MalformedEventError(f"expected a mapping, got {type(raw).__name__}", raw)

        if "kind" in raw:
            raw_kind = raw["kind"]
        elif "type" in raw:
            raw_kind = raw["type"]
        else:
            raise MalformedEventError("missing 'kind'", raw)

        if "timestamp" not in raw:
            raise MalformedEventError("missing 'timestamp'", raw)

        kind = _coerce_number(raw_kind, "kind", raw)
        if not kind.is_integer():
            raise MalformedEventError(f"'kind' must be an integer, got {raw_kind!r}", raw)
        timestamp = _coerce_number(raw["timestamp"], "timestamp", raw)
        if timestamp.is_integer():
            timestamp = int(timestamp)

        data = raw.get("data")
        return cls(kind=int(kind), data=data if data else {}, timestamp=timestamp)

    @property
    def is_large(self) -> bool:
        """Whether this event kind typically carries a large payload."""
        return self.kind in LARGE_EVENT_KINDS

    def to_dict(self) -> dict[str, Any]:
        """Render in rrweb wire shape ("type" key) for replay players."""
        return {"type": self.kind, "data": self.data, "timestamp": self.timestamp}
