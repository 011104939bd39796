# src/replaypipe/contracts/config/__init__.py
"""Configuration contracts subpackage.

This subpackage contains:
- Runtime protocols (protocols.py) - what runtime components expect
- Runtime config dataclasses (runtime.py) - concrete implementations
- Default registries (defaults.py) - INTERNAL_DEFAULTS

NOTE: Settings classes are NOT here. Import them from replaypipe.core.config.
"""

from replaypipe.contracts.config.defaults import INTERNAL_DEFAULTS
from replaypipe.contracts.config.protocols import RuntimeTelemetryProtocol
from replaypipe.contracts.config.runtime import (
    ExporterConfig,
    RuntimeTelemetryConfig,
    SessionConfig,
)

__all__ = [
    "INTERNAL_DEFAULTS",
    "ExporterConfig",
    "RuntimeTelemetryConfig",
    "RuntimeTelemetryProtocol",
    "SessionConfig",
]
