# src/replaypipe/core/__init__.py
"""Core infrastructure: configuration, logging, and scheduling."""

from replaypipe.core.config import (
    ExporterSettings,
    LoggingSettings,
    ReplaypipeSettings,
    SessionReplaySettings,
    TelemetrySettings,
    load_settings,
)
from replaypipe.core.logging import configure_logging, session_log_context
from replaypipe.core.scheduler import AsyncioScheduler, ManualScheduler, Scheduler, TimerHandle

__all__ = [
    "AsyncioScheduler",
    "ExporterSettings",
    "LoggingSettings",
    "ManualScheduler",
    "ReplaypipeSettings",
    "Scheduler",
    "SessionReplaySettings",
    "TelemetrySettings",
    "TimerHandle",
    "configure_logging",
    "load_settings",
    "session_log_context",
]
