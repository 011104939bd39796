# tests/conftest.py
"""Shared test fixtures and Hypothesis configuration.

Hypothesis profiles:
- "ci": 100 examples (default)
- "nightly": 1000 examples
- "debug": 10 examples, verbose

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Iterator

import pytest
import structlog
from hypothesis import Phase, Verbosity, settings

from replaypipe.contracts.config import SessionConfig
from replaypipe.contracts.session import Viewport
from replaypipe.core.logging import configure_logging
from replaypipe.core.scheduler import ManualScheduler
from replaypipe.replay.controller import SessionReplayController
from replaypipe.replay.host import StaticHostEnvironment
from tests.fixtures.replay import FIXED_NOW, FakeRecorder, RecordingSink

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


@pytest.fixture(autouse=True)
def _configure_logging() -> Iterator[None]:
    # Keep log records on stderr so stdout carries only exporter output
    configure_logging(level="WARNING")
    yield
    structlog.reset_defaults()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def recorder() -> FakeRecorder:
    return FakeRecorder()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def host() -> StaticHostEnvironment:
    return StaticHostEnvironment(
        url="https://shop.example.com/checkout",
        user_agent="Mozilla/5.0 (X11; Linux x86_64)",
        viewport=Viewport(width=1280, height=720),
        device_pixel_ratio=2.0,
    )


@pytest.fixture
def make_controller(scheduler, recorder, sink, host):
    """Factory for controllers wired to the shared doubles."""

    def _make(config: SessionConfig | None = None, **overrides) -> SessionReplayController:
        kwargs = {
            "sink": sink,
            "recorder": recorder,
            "scheduler": scheduler,
            "host": host,
            "session_id": "sess-test",
            "wall_clock": lambda: FIXED_NOW,
        }
        kwargs.update(overrides)
        return SessionReplayController(config or SessionConfig(), **kwargs)

    return _make
