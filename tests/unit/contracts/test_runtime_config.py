# tests/unit/contracts/test_runtime_config.py
"""Tests for runtime configuration dataclasses."""

import pytest

from replaypipe.contracts.config import (
    ExporterConfig,
    RuntimeTelemetryConfig,
    RuntimeTelemetryProtocol,
    SessionConfig,
)
from replaypipe.contracts.enums import BackpressureMode, DeliveryMode, TelemetryGranularity
from replaypipe.core.config import ExporterSettings, SessionReplaySettings, TelemetrySettings


class TestSessionConfig:
    def test_defaults(self) -> None:
        config = SessionConfig.default()

        assert config.max_events == 10_000
        assert config.max_duration_ms == 1_800_000
        assert config.batch_size == 50
        assert config.batch_flush_delay_seconds == 1.0
        assert config.throttle_delay_seconds == 0.1
        assert config.delivery_mode == DeliveryMode.BATCHED
        assert not config.masking_enabled

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("max_events", 0),
            ("batch_size", 0),
            ("max_duration_ms", 0),
            ("batch_flush_delay_ms", -1),
            ("throttle_delay_ms", -1),
        ],
    )
    def test_rejects_invalid_values(self, field: str, value: float) -> None:
        with pytest.raises(ValueError, match=field):
            SessionConfig(**{field: value})

    def test_from_settings(self) -> None:
        settings = SessionReplaySettings(
            maxEvents=5,
            maxDuration=60_000,
            batchSize=3,
            throttleEvents=True,
            throttleDelay=50,
            maskAllInputs=True,
            maskInputSelector="input.card",
            delivery_mode="immediate",
            recorder_options={"recordCanvas": True},
        )

        config = SessionConfig.from_settings(settings)

        assert config.max_events == 5
        assert config.max_duration_ms == 60_000
        assert config.batch_size == 3
        assert config.throttle_events
        assert config.throttle_delay_ms == 50
        assert config.mask_all_inputs
        assert config.mask_input_selector == "input.card"
        assert config.delivery_mode == DeliveryMode.IMMEDIATE
        assert config.recorder_options == {"recordCanvas": True}

    def test_recorder_start_options_do_not_mutate(self) -> None:
        config = SessionConfig(recorder_options={"blockClass": "rr-block"}, mask_input_selector="input")

        options = config.recorder_start_options()
        options["extra"] = True

        assert config.recorder_options == {"blockClass": "rr-block"}
        assert config.recorder_start_options() == {"blockClass": "rr-block", "maskInputSelector": "input"}

    def test_to_dict_uses_camel_case(self) -> None:
        data = SessionConfig(mask_text_selector=".pii").to_dict()

        assert data["maxEvents"] == 10_000
        assert data["maxDuration"] == 1_800_000
        assert data["maskTextSelector"] == ".pii"
        assert "maskInputSelector" not in data
        assert data["deliveryMode"] == "batched"


class TestRuntimeTelemetryConfig:
    def test_default_is_disabled(self) -> None:
        config = RuntimeTelemetryConfig.default()

        assert not config.enabled
        assert config.exporter_configs == ()
        assert isinstance(config, RuntimeTelemetryProtocol)

    def test_from_settings(self) -> None:
        settings = TelemetrySettings(
            enabled=True,
            granularity="lifecycle",
            backpressure_mode="drop",
            max_consecutive_failures=3,
            exporters=[ExporterSettings(name="console", options={"format": "pretty"})],
        )

        config = RuntimeTelemetryConfig.from_settings(settings)

        assert config.granularity == TelemetryGranularity.LIFECYCLE
        assert config.backpressure_mode == BackpressureMode.DROP
        assert config.max_consecutive_failures == 3
        assert config.exporter_configs == (ExporterConfig(name="console", options={"format": "pretty"}),)
