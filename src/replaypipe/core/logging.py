# src/replaypipe/core/logging.py
"""Logging setup for replaypipe.

structlog renders every record, including records from plain stdlib
loggers in a host application, through one ProcessorFormatter on stderr.
stdout is left to envelope output (console exporter, CLI summaries).

Per-session context is carried in contextvars: inside
session_log_context(session_id) every record, from any module, carries
session_id without the caller binding it.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

from replaypipe.core.config import LoggingSettings

# Libraries whose DEBUG output would drown session logs
_QUIET_LOGGERS = ("asyncio", "dynaconf")


def _strip_formatter_keys(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.pop("_record", None)
    event_dict.pop("_from_structlog", None)
    return event_dict


def _pre_chain() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
    ]


def _renderer(json_output: bool) -> list[Any]:
    if json_output:
        return [_strip_formatter_keys, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [_strip_formatter_keys, structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def configure_logging(
    settings: LoggingSettings | None = None,
    *,
    json_output: bool | None = None,
    level: str | None = None,
) -> None:
    """Route structlog and stdlib logging to stderr.

    Keyword arguments override the matching settings field, so CLI flags
    such as --verbose win over the settings file.

    Args:
        settings: Logging section of the settings file. Defaults apply when None.
        json_output: Emit one JSON object per line instead of console text.
        level: Root level name (DEBUG, INFO, WARNING, ERROR).
    """
    settings = settings or LoggingSettings()
    json_output = settings.json_output if json_output is None else json_output
    log_level: int = getattr(logging, (level or settings.level).upper())

    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Tests and the CLI reconfigure after loggers exist
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ProcessorFormatter(processors=_renderer(json_output), foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


@contextmanager
def session_log_context(session_id: str) -> Iterator[None]:
    """Attach session_id to every record logged inside the block."""
    with structlog.contextvars.bound_contextvars(session_id=session_id):
        yield
