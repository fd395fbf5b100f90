"""Logger front-end, default logger and scope helpers.

Provides :class:`Logger`, which turns ``info``/``debug``/``warning``/``error``
calls into :class:`~ctxlog.record.Record` objects and hands them to its
handler, the process-wide default logger, and the helpers that attach
overrides to a scope.

Example:
    >>> logger = get_default_logger()
    >>> with bind(trace_id="abc123"):
    ...     logger.info("Connection established", peer="10.0.0.7")
    >>> with bind_log_level(MAX_LEVEL):
    ...     noisy_third_party_call()  # logs nothing, not even errors
"""

import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from .attr import attrs_from
from .handler import Handler
from .handlers import callstack_handler, context_handler
from .record import DEBUG, ERROR, INFO, MAX_LEVEL, WARN, CallSite, Record
from .scope import (
    Scope,
    attach_callstack_level,
    attach_handler,
    attach_log_level,
    current_scope,
    read_handler,
    use_scope,
)
from .sinks import StreamHandler

# =============================================================================
# Logger
# =============================================================================


class Logger:
    """Front-end that builds records at the call site.

    The current scope is read on every call, so overrides attached with
    :func:`bind` and friends apply without passing anything around.  Errors
    raised by the handler propagate to the caller.

    Example:
        >>> logger = Logger(context_handler(StreamHandler(sys.stderr)))
        >>> logger.info("Connection established", peer_id="abc123")
        >>> child = logger.with_attrs(component="ws").with_group("conn")
        >>> child.error("Failed to connect", "host", "localhost", port=8765)
    """

    def __init__(self, handler: Handler):
        self._handler = handler

    @property
    def handler(self) -> Handler:
        return self._handler

    def debug(self, message: str, *args: Any, **attrs: Any) -> None:
        self._emit(DEBUG, message, args, attrs)

    def info(self, message: str, *args: Any, **attrs: Any) -> None:
        self._emit(INFO, message, args, attrs)

    def warning(self, message: str, *args: Any, **attrs: Any) -> None:
        self._emit(WARN, message, args, attrs)

    def error(self, message: str, *args: Any, **attrs: Any) -> None:
        self._emit(ERROR, message, args, attrs)

    def log(self, level: int, message: str, *args: Any, **attrs: Any) -> None:
        """Emit a record at an arbitrary level."""
        self._emit(level, message, args, attrs)

    def enabled(self, level: int) -> bool:
        return self._handler.enabled(current_scope(), level)

    def with_attrs(self, *args: Any, **attrs: Any) -> "Logger":
        """Derive a logger whose records all carry the given attributes."""
        converted = attrs_from(args, attrs)
        if not converted:
            return self
        return Logger(self._handler.with_attrs(converted))

    def with_group(self, name: str) -> "Logger":
        """Derive a logger nesting later attributes under ``name``."""
        if not name:
            return self
        return Logger(self._handler.with_group(name))

    def _emit(self, level: int, message: str, args: tuple, attrs: dict) -> None:
        """Build a record and hand it to the handler.

        Must be called directly from the public logging function, whose caller
        is recorded as the call site.
        """
        scope = current_scope()
        if not self._handler.enabled(scope, level):
            return
        record = Record(
            level=level,
            message=message,
            call_site=CallSite.from_frame(sys._getframe(2)),
            time_ns=time.time_ns(),
            attrs=attrs_from(args, attrs),
        )
        self._handler.handle(scope, record)


# =============================================================================
# Default logger
# =============================================================================

_default_logger: Logger | None = None


def get_default_logger() -> Logger:
    """Get or create the process-wide default logger.

    Until :func:`set_default_logger` (or :func:`ctxlog.configure_logging`) is
    called, this is a context-aware JSON logger writing INFO and above to
    stderr, with callstacks disabled.
    """
    global _default_logger

    if _default_logger is None:
        handler = StreamHandler(sys.stderr, format="json", level=INFO)
        _default_logger = Logger(context_handler(callstack_handler(handler, MAX_LEVEL)))
    return _default_logger


def set_default_logger(logger: Logger) -> None:
    global _default_logger
    _default_logger = logger


def debug(message: str, *args: Any, **attrs: Any) -> None:
    get_default_logger()._emit(DEBUG, message, args, attrs)


def info(message: str, *args: Any, **attrs: Any) -> None:
    get_default_logger()._emit(INFO, message, args, attrs)


def warning(message: str, *args: Any, **attrs: Any) -> None:
    get_default_logger()._emit(WARN, message, args, attrs)


def error(message: str, *args: Any, **attrs: Any) -> None:
    get_default_logger()._emit(ERROR, message, args, attrs)


def log(level: int, message: str, *args: Any, **attrs: Any) -> None:
    get_default_logger()._emit(level, message, args, attrs)


# =============================================================================
# Scope helpers
# =============================================================================


def attach(scope: Scope, *args: Any, **attrs: Any) -> Scope:
    """Attach attributes to every record logged within ``scope``.

    Attributes add up: the new override starts from the handler already in
    effect for ``scope`` (an earlier override, else the default logger's
    handler), so nested attachments keep the outer ones.

    The default logger's handler should be context aware (built with
    :func:`ctxlog.context_handler`, as :func:`ctxlog.configure_logging` does).
    """
    handler = read_handler(scope)
    if handler is None:
        handler = get_default_logger().handler
    return attach_handler(scope, handler.with_attrs(attrs_from(args, attrs)))


@contextmanager
def bind(*args: Any, **attrs: Any) -> Iterator[Scope]:
    """Attach attributes to the current scope for the duration of the block."""
    with use_scope(attach(current_scope(), *args, **attrs)) as scope:
        yield scope


@contextmanager
def bind_log_level(level: int) -> Iterator[Scope]:
    """Override the minimum log level for the duration of the block."""
    with use_scope(attach_log_level(current_scope(), level)) as scope:
        yield scope


@contextmanager
def bind_callstack_level(level: int) -> Iterator[Scope]:
    """Override the minimum callstack level for the duration of the block."""
    with use_scope(attach_callstack_level(current_scope(), level)) as scope:
        yield scope
