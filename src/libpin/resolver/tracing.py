"""
Diagnostic tracing for dynamic branch resolution.

A tracer is a pure observer: it receives one line per decision the resolver
makes and returns nothing the resolver looks at.
"""

import logging
import sys
from typing import List, Optional, Protocol, TextIO


logger = logging.getLogger(__name__)

TRACE_PREFIX = "defaultedVersion(): "


class Tracer(Protocol):
    """Sink for ordered diagnostic lines."""

    def trace(self, message: str) -> None:
        ...


class NullTracer:
    """Tracer that discards everything."""

    def trace(self, message: str) -> None:
        pass


class ListTracer:
    """Tracer that keeps lines in memory, for tests and programmatic checks."""

    def __init__(self):
        self.lines: List[str] = []

    def trace(self, message: str) -> None:
        self.lines.append(message)

    def __contains__(self, fragment: str) -> bool:
        return any(fragment in line for line in self.lines)


class StreamTracer:
    """Tracer that prints lines to a text stream (stderr by default)."""

    def __init__(self, stream: Optional[TextIO] = None, prefix: str = TRACE_PREFIX):
        self.stream = stream
        self.prefix = prefix

    def trace(self, message: str) -> None:
        stream = self.stream or sys.stderr
        print(f"{self.prefix}{message}", file=stream)


class LoggingTracer:
    """Tracer that forwards lines to a logger."""

    def __init__(self, target: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.target = target or logger
        self.level = level

    def trace(self, message: str) -> None:
        self.target.log(self.level, "%s%s", TRACE_PREFIX, message)


def safe_trace(tracer: Tracer, message: str) -> None:
    """Emit a trace line; a broken sink never reaches the caller."""
    try:
        tracer.trace(message)
    except Exception as e:
        logger.debug("Tracer %r failed: %s", tracer, e)
