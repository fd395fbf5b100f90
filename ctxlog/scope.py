"""Ambient, per-unit-of-work logging overrides.

A :class:`Scope` is an immutable chain of ``(key, value)`` layers.  Adding a
value never touches the parent: it returns a new layer on top of it, so a
child unit of work (a nested request step, a spawned task) can override
logging behaviour without affecting anything that still holds the parent.

The scope for the code currently running lives in a ``ContextVar``, which
keeps it correct across threads and asyncio tasks.  Use :func:`use_scope`
(or the ``bind*`` helpers in :mod:`ctxlog.logger`) to install a scope for a
block of code.

Three overrides are understood by the handlers in :mod:`ctxlog.handlers`:

- a handler carrying extra attributes (see :func:`ctxlog.attach`),
- a minimum log level,
- a minimum callstack level.

Values of the wrong type are treated as if they were absent.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

from .handler import Handler


class _Key:
    """Private scope key; identity is what matters."""

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"<scope key {self.name}>"


HANDLER_KEY = _Key("handler")
LOG_LEVEL_KEY = _Key("log_level")
CALLSTACK_LEVEL_KEY = _Key("callstack_level")

_MISSING = object()


@dataclass(frozen=True, eq=False)
class Scope:
    """Immutable chained lookup structure; the root scope holds nothing."""

    parent: "Scope | None" = None
    key: Any = None
    value: Any = None

    def with_value(self, key: Any, value: Any) -> "Scope":
        """Return a child scope where ``key`` maps to ``value``."""
        return Scope(self, key, value)

    def lookup(self, key: Any, default: Any = None) -> Any:
        """Return the innermost value stored for ``key``, else ``default``."""
        scope: Scope | None = self
        while scope is not None and scope.parent is not None:
            if scope.key is key:
                return scope.value
            scope = scope.parent
        return default

    def __contains__(self, key: Any) -> bool:
        return self.lookup(key, _MISSING) is not _MISSING


ROOT = Scope()

_current_scope: ContextVar[Scope] = ContextVar("ctxlog_scope", default=ROOT)


def current_scope() -> Scope:
    """Return the scope of the running context (the root scope by default)."""
    return _current_scope.get()


@contextmanager
def use_scope(scope: Scope) -> Iterator[Scope]:
    """Make ``scope`` current for the duration of the block."""
    token = _current_scope.set(scope)
    try:
        yield scope
    finally:
        _current_scope.reset(token)


# =============================================================================
# Override attach / read
# =============================================================================


def attach_handler(scope: Scope, handler: Handler | None) -> Scope:
    """Layer an attribute-bag override; ``None`` clears it for the child scope."""
    return scope.with_value(HANDLER_KEY, handler)


def attach_log_level(scope: Scope, level: int) -> Scope:
    """Attach a minimum log level (inclusive) overriding the handler's own."""
    return scope.with_value(LOG_LEVEL_KEY, level)


def attach_callstack_level(scope: Scope, level: int) -> Scope:
    """Attach a minimum callstack level (inclusive) overriding the handler's own."""
    return scope.with_value(CALLSTACK_LEVEL_KEY, level)


def read_handler(scope: Scope) -> Handler | None:
    handler = scope.lookup(HANDLER_KEY)
    if isinstance(handler, Handler):
        return handler
    return None


def _read_level(scope: Scope, key: _Key) -> int | None:
    level = scope.lookup(key)
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    return None


def read_log_level(scope: Scope) -> int | None:
    return _read_level(scope, LOG_LEVEL_KEY)


def read_callstack_level(scope: Scope) -> int | None:
    return _read_level(scope, CALLSTACK_LEVEL_KEY)
