# src/replaypipe/telemetry/protocols.py
"""Protocol definitions for envelope exporters."""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from replaypipe.contracts.envelope import SessionReplayEnvelope


@runtime_checkable
class ExporterProtocol(Protocol):
    """Protocol for envelope exporters.

    Lifecycle:
        1. Discovery: replaypipe_get_exporters hook returns exporter classes
        2. Instantiation: create_telemetry_manager creates instances
        3. Configuration: configure() called with exporter options
        4. Operation: export() called for each envelope
        5. Shutdown: flush() then close()

    Error handling:
        - configure() MUST raise TelemetryExporterError on invalid config
        - export() should not raise; TelemetryManager isolates it anyway
        - close() MUST be idempotent
    """

    @property
    def name(self) -> str:
        """Exporter name matched against `telemetry.exporters[].name`."""
        ...

    def configure(self, config: dict[str, Any]) -> None:
        """Apply exporter options.

        Raises:
            TelemetryExporterError: If configuration is invalid
        """
        ...

    def export(self, envelope: "SessionReplayEnvelope") -> None:
        """Export one envelope.

        Always called from the telemetry export thread, never concurrently
        with itself. Implementations may buffer until flush().
        """
        ...

    def flush(self) -> None:
        """Deliver anything buffered. No-op for unbuffered exporters."""
        ...

    def close(self) -> None:
        """Release resources. Safe to call more than once."""
        ...
