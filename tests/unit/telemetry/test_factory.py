# tests/unit/telemetry/test_factory.py
"""Tests for exporter discovery and create_telemetry_manager()."""

from pathlib import Path

import pytest

from replaypipe.contracts.config import ExporterConfig, RuntimeTelemetryConfig
from replaypipe.contracts.enums import BackpressureMode, TelemetryGranularity
from replaypipe.telemetry.errors import TelemetryExporterError
from replaypipe.telemetry.exporters import ConsoleExporter, JsonlFileExporter
from replaypipe.telemetry.factory import create_telemetry_manager, discover_exporters
from replaypipe.telemetry.hookspecs import hookimpl
from replaypipe.telemetry.manager import TelemetryManager
from tests.fixtures.replay import TelemetryTestExporter


def _config(*exporters: ExporterConfig, enabled: bool = True) -> RuntimeTelemetryConfig:
    return RuntimeTelemetryConfig(
        enabled=enabled,
        granularity=TelemetryGranularity.FULL,
        backpressure_mode=BackpressureMode.BLOCK,
        fail_on_total_exporter_failure=False,
        max_consecutive_failures=10,
        exporter_configs=exporters,
    )


class _MemoryExporter(TelemetryTestExporter):
    _name = "memory"

    def __init__(self) -> None:
        super().__init__("memory")


class _MemoryPlugin:
    @hookimpl
    def replaypipe_get_exporters(self) -> list[type]:
        return [_MemoryExporter]


class _DuplicateConsolePlugin:
    @hookimpl
    def replaypipe_get_exporters(self) -> list[type]:
        class ShadowConsole(TelemetryTestExporter):
            _name = "console"

        return [ShadowConsole]


class _BadReturnPlugin:
    @hookimpl
    def replaypipe_get_exporters(self):
        return "console"


class _MisspelledHookPlugin:
    @hookimpl
    def replaypipe_get_exporter(self) -> list[type]:
        return []


class TestDiscovery:
    def test_builtins_registered(self) -> None:
        registry = discover_exporters()

        assert registry == {"console": ConsoleExporter, "jsonl": JsonlFileExporter}

    def test_extra_plugins_registered(self) -> None:
        assert discover_exporters([_MemoryPlugin()])["memory"] is _MemoryExporter

    def test_duplicate_names_rejected(self) -> None:
        with pytest.raises(TelemetryExporterError, match="Duplicate telemetry exporter name 'console'"):
            discover_exporters([_DuplicateConsolePlugin()])

    def test_bad_hook_return_rejected(self) -> None:
        with pytest.raises(TelemetryExporterError, match="expected iterable of exporter classes"):
            discover_exporters([_BadReturnPlugin()])

    def test_unknown_hook_rejected(self) -> None:
        with pytest.raises(TelemetryExporterError, match="Invalid telemetry exporter plugin"):
            discover_exporters([_MisspelledHookPlugin()])


class TestCreateTelemetryManager:
    def test_disabled_returns_none(self) -> None:
        assert create_telemetry_manager(_config(enabled=False)) is None

    def test_builds_configured_exporters(self, tmp_path: Path) -> None:
        manager = create_telemetry_manager(
            _config(
                ExporterConfig(name="console", options={"format": "pretty"}),
                ExporterConfig(name="jsonl", options={"path": str(tmp_path / "r.jsonl")}),
            )
        )
        assert isinstance(manager, TelemetryManager)
        manager.close()

    def test_plugin_exporter_configured(self) -> None:
        manager = create_telemetry_manager(
            _config(ExporterConfig(name="memory", options={"level": 1})),
            exporter_plugins=[_MemoryPlugin()],
        )
        assert manager is not None
        manager.close()

    def test_unknown_exporter(self) -> None:
        with pytest.raises(TelemetryExporterError, match="Unknown exporter"):
            create_telemetry_manager(_config(ExporterConfig(name="datadog", options={})))

    def test_invalid_options_propagate(self) -> None:
        with pytest.raises(TelemetryExporterError, match="Invalid format"):
            create_telemetry_manager(_config(ExporterConfig(name="console", options={"format": "xml"})))

    def test_enabled_without_exporters(self) -> None:
        manager = create_telemetry_manager(_config())

        assert manager is not None
        assert manager.health_metrics["envelopes_emitted"] == 0
        manager.close()
