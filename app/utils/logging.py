"""Structlog configuration shared by the repair pipeline and its scripts.

Output is one JSON object per line on stderr so stdout stays free for the
run summary printed by ``scripts/repair_assets.py``.

Verbosity:
  0   info and above
  1   debug and above
  2+  debug, plus full record dumps (see :func:`trace_enabled`)
"""

import logging
import sys
from typing import TextIO

import structlog

_TRACE_VERBOSITY = 2
_trace = False


def _level_for(verbosity: int) -> int:
    if verbosity >= 1:
        return logging.DEBUG
    return logging.INFO


def configure_logging(verbosity: int = 0, stream: TextIO | None = None) -> None:
    """Configure structlog for JSON output at the level implied by *verbosity*."""
    global _trace
    _trace = verbosity >= _TRACE_VERBOSITY

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_level_for(verbosity)),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )


def trace_enabled() -> bool:
    """True when full asset payloads should be logged (``-vv``)."""
    return _trace


def get_logger(name: str):
    """Return a lazy structlog logger tagged with *name*.

    Safe to call at import time: the logger picks up whatever configuration
    is active when it is first used.
    """
    return structlog.get_logger(name)
