# src/replaypipe/cli.py
"""replaypipe Command Line Interface.

Entry point for the replaypipe CLI tool.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import typer
import yaml
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from replaypipe import __version__
from replaypipe.contracts import (
    BackpressureMode,
    ExporterConfig,
    RecorderSetupError,
    RuntimeTelemetryConfig,
    SessionConfig,
    TelemetryGranularity,
)
from replaypipe.core.config import ReplaypipeSettings, load_settings
from replaypipe.core.logging import configure_logging, session_log_context
from replaypipe.core.scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from replaypipe.replay import JsonlRecorder, SessionReplayController, StaticHostEnvironment
from replaypipe.telemetry import TelemetryExporterError, TelemetryManager, create_telemetry_manager, discover_exporters

__all__ = ["app"]

app = typer.Typer(
    name="replaypipe",
    help="replaypipe: session replay capture, batching and export.",
    no_args_is_help=True,
)

# Used by `replay` when the settings file leaves telemetry disabled
_FALLBACK_TELEMETRY = RuntimeTelemetryConfig(
    enabled=True,
    granularity=TelemetryGranularity.FULL,
    backpressure_mode=BackpressureMode.BLOCK,
    fail_on_total_exporter_failure=False,
    max_consecutive_failures=10,
    exporter_configs=(ExporterConfig(name="console", options={"format": "pretty"}),),
)


@dataclass
class _CliState:
    verbose: bool = False
    json_logs: bool = False


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"replaypipe version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load REPLAYPIPE_* overrides from a .env file.

    Raises:
        typer.Exit: If an explicit env_file doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)
    return load_dotenv(override=False)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(False, "--no-dotenv", help="Skip loading .env file."),
    env_file: Path | None = typer.Option(None, "--env-file", help="Path to .env file (skips automatic search)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose/debug logging."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Output structured JSON logs."),
) -> None:
    """replaypipe: session replay capture, batching and export."""
    configure_logging(json_output=json_logs, level="DEBUG" if verbose else None)
    ctx.obj = _CliState(verbose=verbose, json_logs=json_logs)

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho("Warning: --env-file ignored because --no-dotenv is set.", fg=typer.colors.YELLOW, err=True)


def _load_settings_or_exit(settings: Path) -> ReplaypipeSettings:
    try:
        return load_settings(settings.expanduser())
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {settings}: {e.problem}", err=True)
        raise typer.Exit(1) from None
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None


def _build_manager(settings: ReplaypipeSettings) -> TelemetryManager:
    telemetry_config = RuntimeTelemetryConfig.from_settings(settings.telemetry)
    if not telemetry_config.enabled:
        telemetry_config = _FALLBACK_TELEMETRY
    try:
        manager = create_telemetry_manager(telemetry_config)
    except TelemetryExporterError as e:
        typer.echo(f"Error configuring exporters: {e}", err=True)
        raise typer.Exit(1) from None
    # enabled is guaranteed above, so the factory never returns None here
    assert manager is not None
    return manager


def _drain_seconds(config: SessionConfig, recorder: JsonlRecorder) -> float:
    """Time needed for every scheduled event and its trailing timers to run."""
    return recorder.span_seconds + config.throttle_delay_seconds + config.batch_flush_delay_seconds


def _run_virtual(controller: SessionReplayController, recorder: JsonlRecorder, scheduler: ManualScheduler) -> None:
    controller.start()
    scheduler.advance(_drain_seconds(controller.config, recorder))
    controller.stop()


async def _run_realtime(controller: SessionReplayController, recorder: JsonlRecorder) -> None:
    controller.start()
    await asyncio.sleep(_drain_seconds(controller.config, recorder))
    controller.stop()


@app.command()
def replay(
    ctx: typer.Context,
    events_file: Path = typer.Argument(..., help="JSON-lines file of recorded events."),
    settings: Path | None = typer.Option(None, "--settings", "-s", help="Path to settings YAML file."),
    realtime: bool = typer.Option(
        False,
        "--realtime/--virtual",
        help="Replay with wall-clock timing instead of virtual time.",
    ),
    user_id: str | None = typer.Option(None, "--user-id", help="Identified user attached to envelopes."),
    url: str = typer.Option("", "--url", help="Page URL reported in session metadata."),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Summary format: 'console' (human-readable) or 'json'.",
    ),
) -> None:
    """Feed a recorded event stream through a session replay pipeline.

    Envelopes go to the exporters configured in the settings file, or to a
    pretty console exporter when telemetry is disabled there.
    """
    state: _CliState = ctx.obj if isinstance(ctx.obj, _CliState) else _CliState()
    loaded = _load_settings_or_exit(settings) if settings is not None else ReplaypipeSettings()
    if settings is not None:
        configure_logging(
            loaded.logging,
            json_output=True if state.json_logs else None,
            level="DEBUG" if state.verbose else None,
        )

    session_config = SessionConfig.from_settings(loaded.session_replay)
    manager = _build_manager(loaded)

    scheduler: Scheduler = AsyncioScheduler() if realtime else ManualScheduler()
    recorder = JsonlRecorder.from_path(events_file, scheduler)
    host = StaticHostEnvironment(url=url, user_id=user_id)
    controller = SessionReplayController(session_config, sink=manager, recorder=recorder, scheduler=scheduler, host=host)

    try:
        with session_log_context(controller.session_id):
            if realtime:
                asyncio.run(_run_realtime(controller, recorder))
            else:
                assert isinstance(scheduler, ManualScheduler)
                _run_virtual(controller, recorder, scheduler)
    except RecorderSetupError as e:
        manager.close()
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    try:
        manager.flush()
    except TelemetryExporterError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    finally:
        manager.close()

    summary: dict[str, Any] = {
        "session_id": controller.session_id,
        "events_scheduled": recorder.scheduled_count,
        "session": controller.health_metrics,
        "export": manager.health_metrics,
    }
    if output_format == "json":
        typer.echo(json.dumps(summary, default=str))
    else:
        session = summary["session"]
        typer.echo(f"Session {controller.session_id}: {session['state']}", err=True)
        typer.echo(f"  Events accepted: {session['event_count']} of {recorder.scheduled_count}", err=True)
        typer.echo(f"  Batches flushed: {session['batches_flushed']}", err=True)
        typer.echo(f"  Envelopes sent: {session['envelopes_sent']}", err=True)
        if session["events_dropped_malformed"]:
            typer.echo(f"  Malformed events dropped: {session['events_dropped_malformed']}", err=True)
        if session["limit_stops"]:
            typer.echo("  Stopped early: session limit reached", err=True)


@app.command()
def validate(
    settings: Path = typer.Option(..., "--settings", "-s", help="Path to settings YAML file."),
    show: bool = typer.Option(False, "--show", help="Print the resolved settings as YAML."),
) -> None:
    """Validate a settings file without replaying anything."""
    loaded = _load_settings_or_exit(settings)

    try:
        session_config = SessionConfig.from_settings(loaded.session_replay)
    except ValueError as e:
        typer.echo(f"Session configuration error: {e}", err=True)
        raise typer.Exit(1) from None

    telemetry_config = RuntimeTelemetryConfig.from_settings(loaded.telemetry)
    try:
        registry = discover_exporters()
        for exporter_config in telemetry_config.exporter_configs:
            if exporter_config.name not in registry:
                raise TelemetryExporterError(
                    exporter_config.name,
                    f"Unknown exporter. Available exporters: {sorted(registry)}",
                )
            registry[exporter_config.name]().configure(dict(exporter_config.options))
    except TelemetryExporterError as e:
        typer.echo(f"Telemetry configuration error: {e}", err=True)
        raise typer.Exit(1) from None

    typer.echo("Configuration valid.")
    typer.echo(f"  Delivery: {session_config.delivery_mode.value} (batch size {session_config.batch_size})")
    typer.echo(f"  Limits: {session_config.max_events} events, {session_config.max_duration_ms:g} ms")
    if telemetry_config.enabled:
        names = ", ".join(e.name for e in telemetry_config.exporter_configs) or "none"
        typer.echo(f"  Telemetry: {telemetry_config.granularity.value}, exporters: {names}")
    else:
        typer.echo("  Telemetry: disabled")

    if show:
        typer.echo(yaml.dump(loaded.model_dump(mode="json"), default_flow_style=False, sort_keys=False))


if __name__ == "__main__":
    app()
