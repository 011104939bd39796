# src/replaypipe/telemetry/__init__.py
"""Envelope delivery: the TelemetryManager sink and its exporters.

Usage:
    from replaypipe.telemetry import create_telemetry_manager

    manager = create_telemetry_manager(RuntimeTelemetryConfig.from_settings(settings.telemetry))
"""

from replaypipe.telemetry.errors import TelemetryExporterError
from replaypipe.telemetry.exporters import ConsoleExporter, JsonlFileExporter
from replaypipe.telemetry.factory import create_telemetry_manager, discover_exporters
from replaypipe.telemetry.filtering import should_emit
from replaypipe.telemetry.hookspecs import hookimpl
from replaypipe.telemetry.manager import TelemetryManager
from replaypipe.telemetry.protocols import ExporterProtocol
from replaypipe.telemetry.transport import split_for_transport

__all__ = [
    "ConsoleExporter",
    "ExporterProtocol",
    "JsonlFileExporter",
    "TelemetryExporterError",
    "TelemetryManager",
    "create_telemetry_manager",
    "discover_exporters",
    "hookimpl",
    "should_emit",
    "split_for_transport",
]
