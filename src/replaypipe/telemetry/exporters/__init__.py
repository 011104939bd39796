# src/replaypipe/telemetry/exporters/__init__.py
"""Built-in envelope exporters.

- ConsoleExporter: stdout/stderr, for debugging
- JsonlFileExporter: transport-batched JSON lines in a file

Registered through the replaypipe_get_exporters hook by BuiltinExportersPlugin.
"""

from replaypipe.telemetry.exporters.console import ConsoleExporter
from replaypipe.telemetry.exporters.jsonl import JsonlFileExporter
from replaypipe.telemetry.hookspecs import hookimpl


class BuiltinExportersPlugin:
    """Plugin that registers built-in exporters."""

    @hookimpl
    def replaypipe_get_exporters(self) -> list[type]:
        return [ConsoleExporter, JsonlFileExporter]


__all__ = [
    "BuiltinExportersPlugin",
    "ConsoleExporter",
    "JsonlFileExporter",
]
