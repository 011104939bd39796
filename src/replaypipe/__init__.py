"""
replaypipe: Session-replay telemetry pipeline.

Buffers interaction events from an external DOM recorder, enforces session
limits, batches and paces delivery, and emits structured envelopes to a
telemetry sink.
"""

__version__ = "0.1.0"
