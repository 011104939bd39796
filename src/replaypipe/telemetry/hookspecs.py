# src/replaypipe/telemetry/hookspecs.py
"""pluggy hook specifications for telemetry exporters.

Usage (implementing an exporter plugin):
    from replaypipe.telemetry.hookspecs import hookimpl

    class MyExporterPlugin:
        @hookimpl
        def replaypipe_get_exporters(self):
            return [MyExporter]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from replaypipe.telemetry.protocols import ExporterProtocol

PROJECT_NAME = "replaypipe"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class ReplaypipeTelemetrySpec:
    """Hook specifications for telemetry exporter plugins."""

    @hookspec
    def replaypipe_get_exporters(self) -> list[type["ExporterProtocol"]]:  # type: ignore[empty-body]
        """Return exporter classes (not instances) implementing ExporterProtocol.

        Called by create_telemetry_manager() to discover exporters, which are
        then instantiated and configured from settings by name.
        """
