# src/replaypipe/replay/__init__.py
"""Session replay pipeline.

SessionReplayController is the public entry point. The remaining classes
are its stages, exposed for embedding and testing.
"""

from replaypipe.replay.batching import BatchScheduler
from replaypipe.replay.controller import SessionReplayController, generate_session_id
from replaypipe.replay.envelope import EnvelopeBuilder
from replaypipe.replay.host import StaticHostEnvironment
from replaypipe.replay.limits import LimitMonitor
from replaypipe.replay.masking import mask_event
from replaypipe.replay.protocols import EnvelopeSink, HostEnvironment, RecorderProtocol
from replaypipe.replay.recorder import JsonlRecorder
from replaypipe.replay.throttle import ThrottleCoalescer

__all__ = [
    "BatchScheduler",
    "EnvelopeBuilder",
    "EnvelopeSink",
    "HostEnvironment",
    "JsonlRecorder",
    "LimitMonitor",
    "RecorderProtocol",
    "SessionReplayController",
    "StaticHostEnvironment",
    "ThrottleCoalescer",
    "generate_session_id",
    "mask_event",
]
