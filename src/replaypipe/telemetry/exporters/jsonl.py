# src/replaypipe/telemetry/exporters/jsonl.py
"""JSON-lines file exporter.

Envelopes are buffered by export() and written by flush(). Each written line
is one transport batch: a JSON array of envelopes as produced by
split_for_transport(), so large snapshot envelopes land on lines of their own.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

import structlog

from replaypipe.telemetry.errors import TelemetryExporterError
from replaypipe.telemetry.transport import MAX_BATCH_ENVELOPES, split_for_transport

if TYPE_CHECKING:
    from replaypipe.contracts.envelope import SessionReplayEnvelope

logger = structlog.get_logger(__name__)


class JsonlFileExporter:
    """Append envelope batches to a file.

    Configuration options:
        path: Output file (required). Parent directories are created.
        mode: "append" (default) or "overwrite"
        buffer_size: Buffered envelopes that trigger a flush (default 50)
        max_batch_envelopes: Envelopes per line for small payloads (default 5)

    Example configuration:
        telemetry:
          exporters:
            - name: jsonl
              options:
                path: ./out/replay.jsonl
    """

    _name = "jsonl"

    def __init__(self) -> None:
        self._path: Path | None = None
        self._file_mode = "a"
        self._buffer_size = 50
        self._max_batch_envelopes = MAX_BATCH_ENVELOPES
        self._buffer: list[SessionReplayEnvelope] = []
        self._handle: TextIO | None = None
        self._lines_written = 0
        self._envelopes_dropped = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def lines_written(self) -> int:
        return self._lines_written

    @property
    def envelopes_dropped(self) -> int:
        return self._envelopes_dropped

    def configure(self, config: dict[str, Any]) -> None:
        """Validate and apply options.

        Raises:
            TelemetryExporterError: If path is missing or an option is invalid
        """
        path_value = config.get("path")
        if not isinstance(path_value, str | Path) or not str(path_value):
            raise TelemetryExporterError(self._name, "'path' is required and must be a non-empty string")

        mode = config.get("mode", "append")
        if mode not in ("append", "overwrite"):
            raise TelemetryExporterError(self._name, f"Invalid mode '{mode}'. Must be one of: append, overwrite")

        buffer_size = config.get("buffer_size", 50)
        if type(buffer_size) is not int or buffer_size < 1:
            raise TelemetryExporterError(self._name, f"'buffer_size' must be a positive integer, got {buffer_size!r}")

        max_batch = config.get("max_batch_envelopes", MAX_BATCH_ENVELOPES)
        if type(max_batch) is not int or max_batch < 1:
            raise TelemetryExporterError(
                self._name, f"'max_batch_envelopes' must be a positive integer, got {max_batch!r}"
            )

        self._path = Path(path_value)
        self._file_mode = "a" if mode == "append" else "w"
        self._buffer_size = buffer_size
        self._max_batch_envelopes = max_batch
        logger.debug("JSONL exporter configured", path=str(self._path), mode=mode)

    def export(self, envelope: SessionReplayEnvelope) -> None:
        self._buffer.append(envelope)
        if len(self._buffer) >= self._buffer_size:
            self.flush()

    def flush(self) -> None:
        """Write buffered envelopes, one transport batch per line.

        Each envelope leaves the buffer once its line is written, so a
        failure part way through never rewrites earlier lines. Unwritten
        envelopes are kept for the next flush, up to buffer_size; older
        ones beyond that are dropped and counted.

        Raises:
            OSError: If the file cannot be opened or written.
        """
        if not self._buffer:
            return
        batches = split_for_transport(self._buffer, self._max_batch_envelopes)
        written = 0
        try:
            handle = self._open()
            for batch in batches:
                handle.write(json.dumps([envelope.to_dict() for envelope in batch], default=str))
                handle.write("\n")
                written += len(batch)
                self._lines_written += 1
            handle.flush()
        except (OSError, TelemetryExporterError):
            del self._buffer[:written]
            self._drop_overflow()
            raise
        del self._buffer[:written]
        logger.debug("JSONL exporter flushed", envelopes=written, lines=len(batches))

    def _drop_overflow(self) -> None:
        overflow = len(self._buffer) - self._buffer_size
        if overflow <= 0:
            return
        del self._buffer[:overflow]
        self._envelopes_dropped += overflow
        logger.warning(
            "JSONL exporter dropped envelopes after write failure",
            dropped=overflow,
            dropped_total=self._envelopes_dropped,
            retained=len(self._buffer),
        )

    def _open(self) -> TextIO:
        if self._handle is None:
            if self._path is None:
                raise TelemetryExporterError(self._name, "exporter used before configure()")
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self._path.open(self._file_mode, encoding="utf-8")
        return self._handle

    def close(self) -> None:
        if self._buffer:
            try:
                self.flush()
            except OSError as e:
                self._envelopes_dropped += len(self._buffer)
                logger.warning("JSONL exporter lost buffered envelopes on close", error=str(e), lost=len(self._buffer))
                self._buffer = []
        if self._handle is not None:
            self._handle.close()
            self._handle = None
