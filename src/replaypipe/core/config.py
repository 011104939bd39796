# src/replaypipe/core/config.py
"""
Configuration schema and loading for replaypipe.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class SessionReplaySettings(BaseModel):
    """Session replay recording configuration.

    Keys may be written in snake_case or in the camelCase used by browser
    SDK configuration (maxEvents, throttleDelay, ...). Durations are in
    milliseconds.

    Example YAML:
        session_replay:
          max_events: 5000
          max_duration_ms: 600000
          batch_size: 25
          throttle_events: true
          throttle_delay_ms: 50
          mask_all_inputs: true
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    max_events: int = Field(default=10_000, gt=0, description="Stop recording after N buffered events")
    max_duration_ms: float = Field(
        default=30 * 60 * 1000,
        gt=0,
        alias="maxDuration",
        description="Stop recording after N milliseconds",
    )
    batch_size: int = Field(default=50, gt=0, description="Flush immediately once N events are pending")
    batch_flush_delay_ms: float = Field(
        default=1000,
        ge=0,
        alias="batchFlushDelay",
        description="Flush a partial batch N milliseconds after it was scheduled",
    )
    throttle_events: bool = Field(default=False, description="Coalesce flush decisions to the trailing event of a burst")
    throttle_delay_ms: float = Field(
        default=100,
        ge=0,
        alias="throttleDelay",
        description="Throttle window in milliseconds",
    )
    mask_text_inputs: bool = Field(default=False, description="Mask text input values")
    mask_all_inputs: bool = Field(default=False, description="Mask all input values")
    mask_text_selector: str | None = Field(default=None, description="CSS selector for text to mask")
    mask_input_selector: str | None = Field(default=None, description="CSS selector for inputs to mask")
    delivery_mode: Literal["batched", "immediate"] = Field(
        default="batched",
        description="batched: size/delay batching; immediate: one envelope per event",
    )
    recorder_options: dict[str, Any] = Field(
        default_factory=dict,
        description="Options passed through to the external recorder (recordCanvas, blockClass, ...)",
    )

    @field_validator("mask_text_selector", "mask_input_selector")
    @classmethod
    def validate_selector_not_blank(cls, v: str | None) -> str | None:
        """Blank selectors are treated as unset."""
        if v is not None and not v.strip():
            return None
        return v


class ExporterSettings(BaseModel):
    """Configuration for one telemetry exporter."""

    model_config = {"frozen": True}

    name: str = Field(min_length=1, description="Exporter name (console, jsonl, or a plugin-provided name)")
    options: dict[str, Any] = Field(default_factory=dict, description="Exporter-specific options")


class TelemetrySettings(BaseModel):
    """Configuration for envelope export.

    Example YAML:
        telemetry:
          enabled: true
          granularity: full
          backpressure_mode: drop
          exporters:
            - name: console
              options:
                format: pretty
    """

    model_config = {"frozen": True}

    enabled: bool = Field(default=False, description="Enable envelope export")
    granularity: Literal["lifecycle", "full"] = Field(
        default="full",
        description="lifecycle: session start/end only; full: every batch too",
    )
    backpressure_mode: Literal["block", "drop"] = Field(
        default="block",
        description="Behaviour when the export queue is full",
    )
    fail_on_total_exporter_failure: bool = Field(
        default=False,
        description="Raise on flush() after repeated total exporter failure instead of disabling",
    )
    max_consecutive_failures: int = Field(
        default=10,
        gt=0,
        description="Consecutive total exporter failures before disabling or raising",
    )
    exporters: list[ExporterSettings] = Field(default_factory=list, description="Configured exporters")

    @model_validator(mode="after")
    def validate_unique_exporter_names(self) -> "TelemetrySettings":
        """Each exporter may be configured at most once."""
        names = [exporter.name for exporter in self.exporters]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate exporter names: {duplicates}")
        return self


class LoggingSettings(BaseModel):
    """Logging output configuration."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO", description="Root log level")
    json_output: bool = Field(default=False, description="Emit JSON log lines instead of console output")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v


class ReplaypipeSettings(BaseModel):
    """Top-level replaypipe configuration.

    All sections are optional and default to a disabled-telemetry,
    default-limits configuration.
    """

    model_config = {"frozen": True}

    session_replay: SessionReplaySettings = Field(
        default_factory=SessionReplaySettings,
        description="Recording limits, batching, throttling and masking",
    )
    telemetry: TelemetrySettings = Field(
        default_factory=TelemetrySettings,
        description="Envelope export configuration",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )


def load_settings(config_path: Path) -> ReplaypipeSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (REPLAYPIPE_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: REPLAYPIPE_SESSION_REPLAY__MAX_EVENTS for
    nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated ReplaypipeSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="REPLAYPIPE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    # Also filter out internal Dynaconf settings
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    return ReplaypipeSettings(**raw_config)


def _lower_keys(value: Any) -> Any:
    """Lowercase snake_case keys produced by env overrides, leave camelCase alone."""
    if isinstance(value, dict):
        return {(k.lower() if isinstance(k, str) and k.isupper() else k): _lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lower_keys(item) for item in value]
    return value
