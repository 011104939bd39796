# src/replaypipe/contracts/config/defaults.py
"""Default value registries for runtime configuration.

INTERNAL_DEFAULTS: Values hardcoded in runtime code, NOT exposed in Settings.
These are implementation details that users shouldn't need to configure,
documented here so there is a single place to look them up.
"""

from typing import Final

INTERNAL_DEFAULTS: Final[dict[str, dict[str, int | float | bool | str]]] = {
    "replay": {
        # Info-level progress log every N accepted events
        "milestone_interval": 100,
    },
    "telemetry": {
        # Queue size for async export buffer
        # 1000 envelopes absorbs bursts without excessive memory
        "queue_size": 1000,
        # BLOCK mode put() timeout, prevents deadlock if the export thread dies
        "block_timeout_seconds": 30.0,
        # How long close() waits for the export thread to exit
        "close_timeout_seconds": 5.0,
    },
    "transport": {
        # Maximum envelopes per transport batch for small payloads
        "max_batch_envelopes": 5,
    },
}
