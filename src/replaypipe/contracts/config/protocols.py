# src/replaypipe/contracts/config/protocols.py
"""Runtime configuration protocols.

These describe what runtime components expect from their configuration,
so tests can pass lightweight stand-ins instead of fully built configs.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from replaypipe.contracts.config.runtime import ExporterConfig
    from replaypipe.contracts.enums import BackpressureMode, TelemetryGranularity


@runtime_checkable
class RuntimeTelemetryProtocol(Protocol):
    """What TelemetryManager expects from telemetry configuration.

    These fields come from TelemetrySettings:
    - enabled: TelemetrySettings.enabled
    - granularity: TelemetrySettings.granularity (parsed to TelemetryGranularity)
    - backpressure_mode: TelemetrySettings.backpressure_mode (parsed to BackpressureMode)
    - fail_on_total_exporter_failure: TelemetrySettings.fail_on_total_exporter_failure
    - max_consecutive_failures: TelemetrySettings.max_consecutive_failures
    - exporter_configs: TelemetrySettings.exporters (tuple of ExporterConfig)
    """

    @property
    def enabled(self) -> bool:
        """Whether telemetry is active."""
        ...

    @property
    def granularity(self) -> "TelemetryGranularity":
        """Which envelope kinds are forwarded to exporters."""
        ...

    @property
    def backpressure_mode(self) -> "BackpressureMode":
        """How to handle backpressure when exporters can't keep up."""
        ...

    @property
    def fail_on_total_exporter_failure(self) -> bool:
        """Whether to raise if all exporters keep failing."""
        ...

    @property
    def max_consecutive_failures(self) -> int:
        """Number of consecutive total failures before disabling or raising."""
        ...

    @property
    def exporter_configs(self) -> "tuple[ExporterConfig, ...]":
        """Configured exporters, in order."""
        ...
