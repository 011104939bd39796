# src/replaypipe/telemetry/exporters/console.py
"""Console exporter for session replay envelopes.

Writes envelopes to stdout or stderr as JSON lines or a one-line summary.
Mostly useful for local debugging and the CLI.
"""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING, Any, Literal, TextIO, TypeGuard

import structlog

from replaypipe.telemetry.errors import TelemetryExporterError

if TYPE_CHECKING:
    from replaypipe.contracts.envelope import SessionReplayEnvelope

logger = structlog.get_logger(__name__)


def _is_valid_format(v: str) -> TypeGuard[Literal["json", "pretty"]]:
    return v in {"json", "pretty"}


def _is_valid_output(v: str) -> TypeGuard[Literal["stdout", "stderr"]]:
    return v in {"stdout", "stderr"}


class ConsoleExporter:
    """Print envelopes to the console.

    Configuration options:
        format: "json" (default, full wire shape) or "pretty" (summary line)
        output: "stdout" (default) or "stderr"

    Example configuration:
        telemetry:
          exporters:
            - name: console
              options:
                format: pretty
                output: stderr
    """

    _name = "console"

    _VALID_FORMATS: frozenset[str] = frozenset({"json", "pretty"})
    _VALID_OUTPUTS: frozenset[str] = frozenset({"stdout", "stderr"})

    def __init__(self) -> None:
        self._format: Literal["json", "pretty"] = "json"
        self._output: Literal["stdout", "stderr"] = "stdout"
        self._stream: TextIO = sys.stdout

    @property
    def name(self) -> str:
        return self._name

    def configure(self, config: dict[str, Any]) -> None:
        """Validate and apply options.

        Raises:
            TelemetryExporterError: If format or output is invalid
        """
        format_value = config.get("format", "json")
        if not isinstance(format_value, str):
            raise TelemetryExporterError(self._name, f"'format' must be a string, got {type(format_value).__name__}")
        if not _is_valid_format(format_value):
            raise TelemetryExporterError(
                self._name,
                f"Invalid format '{format_value}'. Must be one of: {', '.join(sorted(self._VALID_FORMATS))}",
            )
        self._format = format_value

        output_value = config.get("output", "stdout")
        if not isinstance(output_value, str):
            raise TelemetryExporterError(self._name, f"'output' must be a string, got {type(output_value).__name__}")
        if not _is_valid_output(output_value):
            raise TelemetryExporterError(
                self._name,
                f"Invalid output '{output_value}'. Must be one of: {', '.join(sorted(self._VALID_OUTPUTS))}",
            )
        self._output = output_value
        self._stream = sys.stdout if self._output == "stdout" else sys.stderr

        logger.debug("Console exporter configured", format=self._format, output=self._output)

    def export(self, envelope: SessionReplayEnvelope) -> None:
        """Write one envelope. Never raises."""
        try:
            if self._format == "json":
                line = json.dumps(envelope.to_dict(), default=str)
            else:
                line = self._format_pretty(envelope)
            print(line, file=self._stream)
        except Exception as e:
            logger.warning(
                "Failed to export envelope",
                exporter=self._name,
                session_id=envelope.session_id,
                error=str(e),
            )

    def _format_pretty(self, envelope: SessionReplayEnvelope) -> str:
        """Format: [TIMESTAMP] record_kind: session_id (events=N, key=value...)"""
        metadata = envelope.payload.metadata
        details = [f"events={len(envelope.payload.events)}", f"event_count={metadata.event_count}"]
        if metadata.duration is not None:
            details.append(f"duration_ms={metadata.duration:g}")
        if envelope.user_id:
            details.append(f"user_id={envelope.user_id}")
        return (
            f"[{envelope.timestamp.isoformat()}] {envelope.record_kind.value}: "
            f"{envelope.session_id} ({', '.join(details)})"
        )

    def flush(self) -> None:
        try:
            self._stream.flush()
        except Exception as e:
            logger.warning("Failed to flush console stream", exporter=self._name, error=str(e))

    def close(self) -> None:
        """No-op: the exporter does not own stdout/stderr."""
