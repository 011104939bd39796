# src/replaypipe/telemetry/factory.py
"""Build a TelemetryManager from runtime configuration.

1. Discover exporter classes via the replaypipe_get_exporters hook
2. Instantiate and configure the exporters named in config
3. Wrap them in a TelemetryManager

Usage:
    config = RuntimeTelemetryConfig.from_settings(settings.telemetry)
    manager = create_telemetry_manager(config)
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pluggy
import structlog

from replaypipe.contracts.config import RuntimeTelemetryConfig
from replaypipe.telemetry.errors import TelemetryExporterError
from replaypipe.telemetry.exporters import BuiltinExportersPlugin
from replaypipe.telemetry.hookspecs import PROJECT_NAME, ReplaypipeTelemetrySpec
from replaypipe.telemetry.manager import TelemetryManager
from replaypipe.telemetry.protocols import ExporterProtocol

logger = structlog.get_logger(__name__)


def _resolve_exporter_name(exporter_class: type[ExporterProtocol]) -> str:
    """Return the exporter's configured name.

    A class-level `_name` is preferred; otherwise a throwaway instance is
    asked for its `name`.

    Raises:
        TelemetryExporterError: If the name is missing or not a non-empty string.
    """
    class_name = exporter_class.__name__
    hint = exporter_class.__dict__.get("_name")
    if hint is not None:
        if type(hint) is str and hint:
            return hint
        raise TelemetryExporterError(class_name, f"Exporter class attribute _name must be a non-empty string, got {hint!r}")

    try:
        resolved = exporter_class().name
    except Exception as e:
        raise TelemetryExporterError(class_name, f"Failed to instantiate exporter class during discovery: {e}") from e
    if type(resolved) is not str or not resolved:
        raise TelemetryExporterError(class_name, f"Exporter name must be a non-empty string, got {resolved!r}")
    return resolved


def discover_exporters(exporter_plugins: Iterable[Any] = ()) -> dict[str, type[ExporterProtocol]]:
    """Build the exporter name -> class registry.

    Built-in exporters are always registered; extra plugin objects implementing
    replaypipe_get_exporters are registered after them.

    Raises:
        TelemetryExporterError: If a plugin fails validation, its hook fails,
            or two exporters share a name.
    """
    plugin_manager = pluggy.PluginManager(PROJECT_NAME)
    plugin_manager.add_hookspecs(ReplaypipeTelemetrySpec)

    for plugin in (BuiltinExportersPlugin(), *exporter_plugins):
        try:
            plugin_manager.register(plugin)
            plugin_manager.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            if isinstance(e, pluggy.PluginValidationError):
                plugin_manager.unregister(plugin=plugin)
            raise TelemetryExporterError(
                "telemetry_plugins",
                f"Invalid telemetry exporter plugin {type(plugin).__name__}: {e}",
            ) from e

    try:
        results = plugin_manager.hook.replaypipe_get_exporters()
    except Exception as e:
        raise TelemetryExporterError("telemetry_plugins", f"replaypipe_get_exporters hook failed: {e}") from e

    registry: dict[str, type[ExporterProtocol]] = {}
    # pluggy returns hook results last-registered first
    for exporters in reversed(results):
        if exporters is None or isinstance(exporters, str | bytes):
            raise TelemetryExporterError(
                "telemetry_plugins",
                f"replaypipe_get_exporters returned {type(exporters).__name__}; expected iterable of exporter classes",
            )
        for exporter_class in exporters:
            exporter_name = _resolve_exporter_name(exporter_class)
            if exporter_name in registry:
                raise TelemetryExporterError(
                    exporter_name,
                    f"Duplicate telemetry exporter name '{exporter_name}' discovered: "
                    f"{registry[exporter_name].__name__} and {exporter_class.__name__}",
                )
            registry[exporter_name] = exporter_class
    return registry


def create_telemetry_manager(
    config: RuntimeTelemetryConfig,
    *,
    exporter_plugins: Iterable[Any] = (),
) -> TelemetryManager | None:
    """Create a TelemetryManager, or None when telemetry is disabled.

    Raises:
        TelemetryExporterError: If discovery fails, an unknown exporter name is
            configured, or an exporter rejects its options.
    """
    if not config.enabled:
        logger.debug("telemetry_disabled", reason="config.enabled=False")
        return None

    registry = discover_exporters(exporter_plugins)

    exporters: list[ExporterProtocol] = []
    for exporter_config in config.exporter_configs:
        try:
            exporter_class = registry[exporter_config.name]
        except KeyError:
            raise TelemetryExporterError(
                exporter_config.name,
                f"Unknown exporter. Available exporters: {sorted(registry)}",
            ) from None

        exporter = exporter_class()
        exporter.configure(dict(exporter_config.options))
        exporters.append(exporter)
        logger.debug(
            "exporter_configured",
            exporter=exporter_config.name,
            options_keys=list(exporter_config.options),
        )

    if not exporters:
        logger.warning("telemetry_enabled_no_exporters", message="Telemetry enabled but no exporters configured")

    return TelemetryManager(config, exporters=exporters)
