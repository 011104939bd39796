# src/replaypipe/contracts/config/runtime.py
"""Runtime configuration dataclasses.

These dataclasses are built once from validated Settings objects and never
change afterwards.

Design Principles:
1. Frozen (immutable) - runtime config never changes mid-session
2. Slots - memory efficient, prevents attribute typos
3. Factory methods - from_settings(), default()

Field Origins:
- Settings fields: Come from user YAML configuration via Pydantic models
- Internal fields: Hardcoded implementation details, see INTERNAL_DEFAULTS
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from replaypipe.contracts.enums import BackpressureMode, DeliveryMode, TelemetryGranularity

# Settings classes are imported for type checking only so contracts stays a
# leaf package with no runtime dependency on core.
if TYPE_CHECKING:
    from replaypipe.core.config import SessionReplaySettings, TelemetrySettings


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Immutable session replay configuration read at setup.

    Field Origins (all from SessionReplaySettings, direct mapping):
        max_events, max_duration_ms, batch_size, batch_flush_delay_ms,
        throttle_events, throttle_delay_ms, mask_text_inputs, mask_all_inputs,
        mask_text_selector, mask_input_selector, delivery_mode,
        recorder_options (copied to a plain dict)
    """

    max_events: int = 10_000
    max_duration_ms: float = 30 * 60 * 1000
    batch_size: int = 50
    batch_flush_delay_ms: float = 1000
    throttle_events: bool = False
    throttle_delay_ms: float = 100
    mask_text_inputs: bool = False
    mask_all_inputs: bool = False
    mask_text_selector: str | None = None
    mask_input_selector: str | None = None
    delivery_mode: DeliveryMode = DeliveryMode.BATCHED
    recorder_options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_events < 1:
            raise ValueError(f"max_events must be >= 1, got {self.max_events}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.max_duration_ms <= 0:
            raise ValueError(f"max_duration_ms must be > 0, got {self.max_duration_ms}")
        if self.batch_flush_delay_ms < 0:
            raise ValueError(f"batch_flush_delay_ms must be >= 0, got {self.batch_flush_delay_ms}")
        if self.throttle_delay_ms < 0:
            raise ValueError(f"throttle_delay_ms must be >= 0, got {self.throttle_delay_ms}")

    @classmethod
    def default(cls) -> "SessionConfig":
        """Factory for the default session configuration."""
        return cls()

    @classmethod
    def from_settings(cls, settings: "SessionReplaySettings") -> "SessionConfig":
        """Factory from SessionReplaySettings config model.

        Args:
            settings: Validated Pydantic settings model

        Returns:
            SessionConfig with mapped values
        """
        return cls(
            max_events=settings.max_events,
            max_duration_ms=settings.max_duration_ms,
            batch_size=settings.batch_size,
            batch_flush_delay_ms=settings.batch_flush_delay_ms,
            throttle_events=settings.throttle_events,
            throttle_delay_ms=settings.throttle_delay_ms,
            mask_text_inputs=settings.mask_text_inputs,
            mask_all_inputs=settings.mask_all_inputs,
            mask_text_selector=settings.mask_text_selector,
            mask_input_selector=settings.mask_input_selector,
            delivery_mode=DeliveryMode(settings.delivery_mode.lower()),
            recorder_options=dict(settings.recorder_options),
        )

    @property
    def masking_enabled(self) -> bool:
        """Whether the masking stage copies events."""
        return self.mask_text_inputs or self.mask_all_inputs

    @property
    def has_selector_rules(self) -> bool:
        return bool(self.mask_text_selector or self.mask_input_selector)

    @property
    def batch_flush_delay_seconds(self) -> float:
        return self.batch_flush_delay_ms / 1000

    @property
    def throttle_delay_seconds(self) -> float:
        return self.throttle_delay_ms / 1000

    def recorder_start_options(self) -> dict[str, Any]:
        """Options handed to the external recorder's start().

        Selector-based masking is forwarded so a DOM-aware recorder can apply
        it at capture time.
        """
        options = dict(self.recorder_options)
        if self.mask_text_selector:
            options["maskTextSelector"] = self.mask_text_selector
        if self.mask_input_selector:
            options["maskInputSelector"] = self.mask_input_selector
        if self.mask_all_inputs:
            options["maskAllInputs"] = True
        return options

    def to_dict(self) -> dict[str, Any]:
        """Render the config snapshot embedded in envelope payloads."""
        data: dict[str, Any] = {
            "maxEvents": self.max_events,
            "maxDuration": self.max_duration_ms,
            "batchSize": self.batch_size,
            "batchFlushDelay": self.batch_flush_delay_ms,
            "throttleEvents": self.throttle_events,
            "throttleDelay": self.throttle_delay_ms,
            "maskTextInputs": self.mask_text_inputs,
            "maskAllInputs": self.mask_all_inputs,
            "deliveryMode": self.delivery_mode.value,
        }
        if self.mask_text_selector is not None:
            data["maskTextSelector"] = self.mask_text_selector
        if self.mask_input_selector is not None:
            data["maskInputSelector"] = self.mask_input_selector
        return data


@dataclass(frozen=True, slots=True)
class ExporterConfig:
    """Configuration for a single telemetry exporter.

    Each exporter has a name (which determines the exporter class) and an
    options dict (passed to the exporter's configure()).

    Example YAML that produces ExporterConfig instances:
        telemetry:
          exporters:
            - name: console
              options:
                format: pretty
            - name: jsonl
              options:
                path: ./replay.jsonl
    """

    name: str
    options: dict[str, Any]


@dataclass(frozen=True, slots=True)
class RuntimeTelemetryConfig:
    """Runtime configuration for envelope export.

    Implements RuntimeTelemetryProtocol for structural typing verification.

    Field Origins (all from TelemetrySettings):
        - enabled: direct mapping
        - granularity: parsed from str to TelemetryGranularity
        - backpressure_mode: parsed from str to BackpressureMode
        - fail_on_total_exporter_failure: direct
        - max_consecutive_failures: direct
        - exporter_configs: converted to tuple of ExporterConfig
    """

    enabled: bool
    granularity: TelemetryGranularity
    backpressure_mode: BackpressureMode
    fail_on_total_exporter_failure: bool
    max_consecutive_failures: int
    exporter_configs: tuple[ExporterConfig, ...]

    @classmethod
    def default(cls) -> "RuntimeTelemetryConfig":
        """Factory for default telemetry configuration.

        Returns config with telemetry disabled - telemetry is opt-in.
        """
        return cls(
            enabled=False,
            granularity=TelemetryGranularity.FULL,
            backpressure_mode=BackpressureMode.BLOCK,
            fail_on_total_exporter_failure=False,
            max_consecutive_failures=10,
            exporter_configs=(),
        )

    @classmethod
    def from_settings(cls, settings: "TelemetrySettings") -> "RuntimeTelemetryConfig":
        """Factory from TelemetrySettings config model.

        Raises:
            ValueError: If granularity or backpressure_mode is invalid
        """
        granularity = TelemetryGranularity(settings.granularity.lower())
        backpressure_mode = BackpressureMode(settings.backpressure_mode.lower())
        exporter_configs = tuple(ExporterConfig(name=exp.name, options=dict(exp.options)) for exp in settings.exporters)

        return cls(
            enabled=settings.enabled,
            granularity=granularity,
            backpressure_mode=backpressure_mode,
            fail_on_total_exporter_failure=settings.fail_on_total_exporter_failure,
            max_consecutive_failures=settings.max_consecutive_failures,
            exporter_configs=exporter_configs,
        )
