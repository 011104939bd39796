# src/replaypipe/telemetry/manager.py
"""TelemetryManager: the bundled EnvelopeSink.

The controller calls capture() on its own thread and must never wait on
delivery. TelemetryManager therefore:
1. Filters envelopes by configured granularity
2. Queues them for a background export thread
3. Dispatches each envelope to every exporter with failure isolation
4. Tracks health metrics
5. Disables itself (or raises on flush) after repeated total failure

Thread Safety:
    - capture() runs on the caller's thread
    - _export_loop() runs on the "replay-export" thread
    - _envelopes_dropped is written by both and guarded by _dropped_lock
    - Every other counter has a single writer (the export thread)
"""

import queue
import threading
from typing import Any

import structlog

from replaypipe.contracts.config import INTERNAL_DEFAULTS, RuntimeTelemetryProtocol
from replaypipe.contracts.enums import BackpressureMode
from replaypipe.contracts.envelope import SessionReplayEnvelope
from replaypipe.telemetry.errors import TelemetryExporterError
from replaypipe.telemetry.filtering import should_emit
from replaypipe.telemetry.protocols import ExporterProtocol

logger = structlog.get_logger(__name__)

_QUEUE_SIZE = int(INTERNAL_DEFAULTS["telemetry"]["queue_size"])
_BLOCK_TIMEOUT = float(INTERNAL_DEFAULTS["telemetry"]["block_timeout_seconds"])
_CLOSE_TIMEOUT = float(INTERNAL_DEFAULTS["telemetry"]["close_timeout_seconds"])


class TelemetryManager:
    """Queues envelopes and fans them out to exporters.

    Backpressure modes:
    - BLOCK: capture() waits for queue space, up to a timeout
    - DROP: capture() drops the envelope when the queue is full

    Failure handling:
    - One exporter failing never affects the others
    - An envelope counts as emitted if at least one exporter took it
    - After max_consecutive_failures envelopes in a row fail on every
      exporter, the manager either raises TelemetryExporterError from the
      next flush() (fail_on_total_exporter_failure=True) or logs CRITICAL
      and disables itself

    Example:
        >>> manager = TelemetryManager(config, exporters=[ConsoleExporter()])
        >>> controller = SessionReplayController(session_config, sink=manager, recorder=recorder)
        >>> ...
        >>> manager.flush()
        >>> manager.close()
    """

    _LOG_INTERVAL = 100

    def __init__(
        self,
        config: RuntimeTelemetryProtocol,
        exporters: list[ExporterProtocol],
        *,
        queue_size: int = _QUEUE_SIZE,
    ) -> None:
        """Initialize the manager and start its export thread.

        Args:
            config: Granularity, backpressure and failure policy
            exporters: Configured exporter instances. May be empty, in which
                case capture() is a no-op.
            queue_size: Export queue capacity
        """
        self._config = config
        self._exporters = exporters
        self._max_consecutive_failures = config.max_consecutive_failures
        self._consecutive_total_failures = 0

        # Health metrics
        self._envelopes_emitted = 0
        self._envelopes_dropped = 0
        self._envelopes_filtered = 0
        self._exporter_failures: dict[str, int] = {}
        self._last_logged_drop_count = 0

        self._disabled = False
        self._stored_exception: TelemetryExporterError | None = None

        self._shutdown_event = threading.Event()
        self._dropped_lock = threading.Lock()
        self._export_thread_ready = threading.Event()

        self._queue: queue.Queue[SessionReplayEnvelope | None] = queue.Queue(maxsize=queue_size)

        self._export_thread = threading.Thread(
            target=self._export_loop,
            name="replay-export",
            daemon=False,
        )
        self._export_thread.start()
        self._export_thread_ready.wait(timeout=5.0)

    @property
    def is_disabled(self) -> bool:
        return self._disabled

    def _export_loop(self) -> None:
        """Consume the queue until the None sentinel arrives."""
        self._export_thread_ready.set()

        while True:
            envelope = self._queue.get()
            try:
                if envelope is None:
                    break
                self._dispatch_to_exporters(envelope)
            except TelemetryExporterError as e:
                logger.error("Export loop failed", error=str(e))
                self._stored_exception = e
            except Exception as e:
                logger.error("Export loop failed unexpectedly", error=str(e))
            finally:
                # task_done() for every get(), sentinel included, or join() hangs
                self._queue.task_done()

    def _dispatch_to_exporters(self, envelope: SessionReplayEnvelope) -> None:
        failures = 0
        for exporter in self._exporters:
            try:
                exporter.export(envelope)
            except Exception as e:
                failures += 1
                self._exporter_failures[exporter.name] = self._exporter_failures.get(exporter.name, 0) + 1
                logger.warning(
                    "Envelope exporter failed",
                    exporter=exporter.name,
                    session_id=envelope.session_id,
                    record_kind=envelope.record_kind.value,
                    error=str(e),
                )

        if failures < len(self._exporters):
            self._envelopes_emitted += 1
            self._consecutive_total_failures = 0
            return

        self._consecutive_total_failures += 1
        with self._dropped_lock:
            self._envelopes_dropped += 1
            if self._envelopes_dropped - self._last_logged_drop_count >= self._LOG_INTERVAL:
                logger.error(
                    "ALL envelope exporters failing - envelopes dropped",
                    dropped_since_last_log=self._envelopes_dropped - self._last_logged_drop_count,
                    dropped_total=self._envelopes_dropped,
                    consecutive_failures=self._consecutive_total_failures,
                )
                self._last_logged_drop_count = self._envelopes_dropped

        if self._consecutive_total_failures >= self._max_consecutive_failures:
            if self._config.fail_on_total_exporter_failure:
                raise TelemetryExporterError(
                    "all",
                    f"All {len(self._exporters)} exporters failed {self._max_consecutive_failures} consecutive times.",
                )
            logger.critical(
                "Envelope export disabled after repeated total failures",
                consecutive_failures=self._consecutive_total_failures,
                envelopes_dropped=self._envelopes_dropped,
            )
            self._disabled = True

    def capture(self, envelope: SessionReplayEnvelope) -> None:
        """Queue an envelope for export. Never raises.

        Safe to call from any thread.
        """
        if self._shutdown_event.is_set() or self._disabled or not self._exporters:
            return

        if not should_emit(envelope, self._config.granularity):
            self._envelopes_filtered += 1
            return

        if not self._export_thread_ready.is_set():
            logger.warning("Export thread not ready, dropping envelope")
            self._count_drop()
            return

        if not self._export_thread.is_alive():
            logger.critical("Export thread died, disabling envelope export")
            self._disabled = True
            return

        if self._config.backpressure_mode == BackpressureMode.DROP:
            try:
                self._queue.put_nowait(envelope)
            except queue.Full:
                self._count_drop(log_backpressure=True)
        else:
            try:
                self._queue.put(envelope, timeout=_BLOCK_TIMEOUT)
            except queue.Full:
                logger.error("BLOCK mode put() timed out - export thread may be stuck")
                self._count_drop()

    def _count_drop(self, *, log_backpressure: bool = False) -> None:
        with self._dropped_lock:
            self._envelopes_dropped += 1
            if log_backpressure and self._envelopes_dropped - self._last_logged_drop_count >= self._LOG_INTERVAL:
                logger.warning(
                    "Envelopes dropped due to backpressure",
                    dropped_since_last_log=self._envelopes_dropped - self._last_logged_drop_count,
                    dropped_total=self._envelopes_dropped,
                    backpressure_mode="drop",
                )
                self._last_logged_drop_count = self._envelopes_dropped

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Snapshot of export health.

        Reads are approximately consistent; only the drop counter is locked.
        """
        with self._dropped_lock:
            envelopes_dropped = self._envelopes_dropped
        return {
            "envelopes_emitted": self._envelopes_emitted,
            "envelopes_dropped": envelopes_dropped,
            "envelopes_filtered": self._envelopes_filtered,
            "exporter_failures": self._exporter_failures.copy(),
            "consecutive_total_failures": self._consecutive_total_failures,
            "queue_depth": self._queue.qsize(),
            "queue_maxsize": self._queue.maxsize,
        }

    def flush(self) -> None:
        """Wait for the queue to drain, then flush every exporter.

        Raises:
            TelemetryExporterError: If fail_on_total_exporter_failure=True and
                all exporters failed repeatedly since the last flush.
        """
        if not self._shutdown_event.is_set():
            self._queue.join()

        if self._stored_exception is not None:
            exc, self._stored_exception = self._stored_exception, None
            raise exc

        for exporter in self._exporters:
            try:
                exporter.flush()
            except Exception as e:
                logger.warning("Exporter flush failed", exporter=exporter.name, error=str(e))

    def close(self) -> None:
        """Stop the export thread and close exporters.

        Order matters: reject new envelopes, enqueue the sentinel (draining
        if the queue is full), join the thread, then close exporters.
        Anything queued before the sentinel is still exported.
        """
        if self._shutdown_event.is_set():
            return
        self._shutdown_event.set()

        sentinel_sent = False
        for _ in range(self._queue.maxsize + 10):
            try:
                self._queue.put(None, timeout=0.1)
                sentinel_sent = True
                break
            except queue.Full:
                try:
                    discarded = self._queue.get_nowait()
                    self._queue.task_done()
                    if discarded is not None:
                        self._count_drop()
                        logger.debug(
                            "Discarded envelope during shutdown drain",
                            session_id=discarded.session_id,
                        )
                except queue.Empty:
                    pass

        if not sentinel_sent:
            logger.error("Failed to send shutdown sentinel - export thread may hang")

        self._export_thread.join(timeout=_CLOSE_TIMEOUT)
        if self._export_thread.is_alive():
            logger.error("Export thread did not exit cleanly within timeout")

        for exporter in self._exporters:
            try:
                exporter.flush()
            except Exception as e:
                logger.warning("Exporter flush failed", exporter=exporter.name, error=str(e))

        logger.info("Telemetry manager closing", **self.health_metrics)
        for exporter in self._exporters:
            try:
                exporter.close()
            except Exception as e:
                logger.warning("Exporter close failed", exporter=exporter.name, error=str(e))
