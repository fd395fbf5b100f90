"""Helpers for tests of code that logs through ctxlog.

Example:
    >>> def test_something():
    ...     with backup_default_logger():
    ...         set_default_logger(Logger(testing_handler(print, INFO, WARN)))
    ...         ctxlog.debug("debug")  # not shown
    ...         ctxlog.info("info")    # printed, captured by pytest
    ...         ctxlog.warning("warn") # fails the test
"""

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager

from .attr import Attr
from .handler import Handler
from .handlers import callstack_handler
from .logger import Logger, get_default_logger, set_default_logger
from .record import INFO, WARN, Record, level_name
from .scope import Scope
from .sinks import StreamHandler


@contextmanager
def backup_default_logger() -> Iterator[Logger]:
    """Restore the default logger on exit, whatever the block installed."""
    backup = get_default_logger()
    try:
        yield backup
    finally:
        set_default_logger(backup)


class LineWriter:
    """Write-only text stream handing every complete line to ``emit``.

    Partial lines are buffered until their newline arrives; the newline itself
    is not passed on.
    """

    def __init__(self, emit: Callable[[str], object]):
        self._emit = emit
        self._buf = ""

    def write(self, text: str) -> int:
        self._buf += text
        *lines, self._buf = self._buf.split("\n")
        for line in lines:
            self._emit(line)
        return len(text)


def _raise_assertion(message: str) -> None:
    raise AssertionError(message)


class FailingHandler(Handler):
    """Forwards every record, then reports those at or above ``fail_at``."""

    def __init__(
        self,
        inner: Handler,
        fail_at: int,
        on_failure: Callable[[str], object] = _raise_assertion,
    ):
        self.inner = inner
        self.fail_at = fail_at
        self._on_failure = on_failure

    def enabled(self, scope: Scope, level: int) -> bool:
        return self.inner.enabled(scope, level)

    def handle(self, scope: Scope, record: Record) -> None:
        try:
            self.inner.handle(scope, record)
        finally:
            if record.level >= self.fail_at:
                self._on_failure(
                    f"logged at {level_name(record.level)} level with {record.message!r}"
                )

    def with_attrs(self, attrs: Sequence[Attr]) -> Handler:
        return FailingHandler(self.inner.with_attrs(attrs), self.fail_at, self._on_failure)

    def with_group(self, name: str) -> Handler:
        return FailingHandler(self.inner.with_group(name), self.fail_at, self._on_failure)


def testing_handler(
    emit: Callable[[str], object] = print,
    min_level: int = INFO,
    fail_at: int = WARN,
    on_failure: Callable[[str], object] = _raise_assertion,
) -> Handler:
    """Build a handler for tests.

    Records at ``min_level`` and above are rendered as text lines, with source
    and callstack, and passed to ``emit``; records at ``fail_at`` and above
    also call ``on_failure`` (by default raising ``AssertionError``).
    """
    inner = StreamHandler(LineWriter(emit), format="text", level=min_level, add_source=True)
    return FailingHandler(callstack_handler(inner, min_level), fail_at, on_failure)
