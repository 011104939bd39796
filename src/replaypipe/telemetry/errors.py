# src/replaypipe/telemetry/errors.py
"""Telemetry-specific exceptions.

These are for envelope export errors only. Replay pipeline errors live in
replaypipe.contracts.errors.
"""


class TelemetryExporterError(Exception):
    """Raised when an exporter cannot be configured or every exporter keeps failing.

    Export calls themselves must not raise; exporters log instead.

    Attributes:
        exporter_name: Name of the exporter that failed ("all" for total failure)
        message: Human-readable error description
    """

    def __init__(self, exporter_name: str, message: str) -> None:
        self.exporter_name = exporter_name
        self.message = message
        super().__init__(f"Exporter '{exporter_name}' failed: {message}")
