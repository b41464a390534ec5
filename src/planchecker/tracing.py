"""
Per-parse trace logging.

parse_plan() runs with the trace flag of its own CheckerConfig stored in a
context variable. Loggers obtained through get_logger() carry a filter that
drops DEBUG records unless that flag is set, so tracing one parse never
touches logger levels and parses running alongside it stay quiet.

Where records go, and from which level, is up to the application: the CLI
attaches a RichHandler and lowers the package logger to DEBUG on --trace.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

# Thread- and task-local, so concurrent parses never see each other's flag
_trace_enabled: ContextVar[bool] = ContextVar("planchecker_trace", default=False)


def is_tracing() -> bool:
    """True inside a parse whose config has trace enabled."""
    return _trace_enabled.get()


class TraceFilter(logging.Filter):
    """Pass DEBUG records only while the current context is tracing."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno > logging.DEBUG or _trace_enabled.get()


_TRACE_FILTER = TraceFilter()


def get_logger(name: str) -> logging.Logger:
    """logging.getLogger(name) with the trace filter attached once."""
    logger = logging.getLogger(name)
    if _TRACE_FILTER not in logger.filters:
        logger.addFilter(_TRACE_FILTER)
    return logger


@contextmanager
def tracing(enabled: bool) -> Iterator[None]:
    """Set the trace flag for the current context until the block exits."""
    token = _trace_enabled.set(enabled)
    try:
        yield
    finally:
        _trace_enabled.reset(token)
