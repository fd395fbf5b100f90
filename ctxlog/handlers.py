"""Context-aware and callstack-capturing handlers.

:class:`ContextHandler` makes overrides attached to the current
:class:`~ctxlog.scope.Scope` take effect for every log call made within it:
extra attributes (redirecting to the handler stored by
:func:`ctxlog.attach`) and a minimum log level.

:class:`CallstackHandler` attaches the full call stack, starting at the log
call site, to records at or above a level.  The level can be overridden per
unit of work with :func:`ctxlog.attach_callstack_level`.

Both are built with :func:`context_handler` / :func:`callstack_handler`,
which never stack a second layer of the same kind on top of an existing one.
"""

import itertools
import sys
import traceback
from collections.abc import Callable, Sequence
from typing import Literal

from .attr import Attr
from .handler import Handler
from .record import CallSite, Record
from .scope import (
    Scope,
    attach_handler,
    read_callstack_level,
    read_handler,
    read_log_level,
)

CALLSTACK_FORMAT = Literal["frames", "strings"]

CALLSTACK_KEY = "callstack"
CALLSTACK_TRUNCATED_KEY = "callstack_truncated"

INITIAL_CALLSTACK_CAPACITY = 20
MAX_CALLSTACK_CAPACITY = 1 << 16


def _enabled(scope: Scope, level: int, inner: Handler) -> bool:
    override = read_log_level(scope)
    if override is not None:
        return level >= override
    return inner.enabled(scope, level)


# =============================================================================
# Context Handler
# =============================================================================


class ContextHandler(Handler):
    """Applies the attribute and log-level overrides of the current scope."""

    def __init__(self, inner: Handler):
        self.inner = inner

    def enabled(self, scope: Scope, level: int) -> bool:
        return _enabled(scope, level, self.inner)

    def handle(self, scope: Scope, record: Record) -> None:
        override = read_handler(scope)
        if override is not None:
            # The override is itself context aware; clear it for this call
            # only so it does not redirect to itself.
            return override.handle(attach_handler(scope, None), record)
        return self.inner.handle(scope, record)

    def with_attrs(self, attrs: Sequence[Attr]) -> Handler:
        return ContextHandler(self.inner.with_attrs(attrs))

    def with_group(self, name: str) -> Handler:
        return ContextHandler(self.inner.with_group(name))

    def __repr__(self) -> str:
        return f"ContextHandler({self.inner!r})"


def context_handler(inner: Handler) -> Handler:
    """Wrap ``inner`` to honor scope overrides; already-wrapped handlers are returned as is."""
    if isinstance(inner, ContextHandler):
        return inner
    return ContextHandler(inner)


# =============================================================================
# Stack capture
# =============================================================================


def walk_callers(capacity: int, skip: int = 0) -> list[CallSite]:
    """Return up to ``capacity`` call sites of the current stack, innermost first.

    ``skip`` drops that many frames above the caller of this function.
    """
    frame = sys._getframe(skip + 1)
    return [
        CallSite.from_frame(f)
        for f, _ in itertools.islice(traceback.walk_stack(frame), capacity)
    ]


def capture_stack(
    walk: Callable[[int], list[CallSite]],
    capacity: int = INITIAL_CALLSTACK_CAPACITY,
    max_capacity: int = MAX_CALLSTACK_CAPACITY,
) -> tuple[list[CallSite], bool]:
    """Walk the stack with a doubling buffer.

    ``walk(n)`` returns at most ``n`` call sites.  A full result may have been
    cut short, so the capacity is doubled and the walk retried until a result
    comes back shorter than what was asked for.

    Returns the call sites and whether the walk hit ``max_capacity`` and may
    therefore be truncated.
    """
    while True:
        sites = walk(capacity)
        if len(sites) < capacity:
            return sites, False
        if capacity >= max_capacity:
            return sites, True
        capacity = min(capacity + capacity, max_capacity)


def trim_to(sites: list[CallSite], origin: CallSite) -> list[CallSite]:
    """Drop everything before ``origin``; without a match keep the full walk."""
    for i, site in enumerate(sites):
        if site == origin:
            return sites[i:]
    return sites


# =============================================================================
# Callstack Handler
# =============================================================================


class CallstackHandler(Handler):
    """Attaches a ``callstack`` attribute to records at or above ``level``."""

    def __init__(
        self,
        inner: Handler,
        level: int,
        format: CALLSTACK_FORMAT = "frames",
        walk: Callable[[int], list[CallSite]] | None = None,
    ):
        if format not in ("frames", "strings"):
            raise ValueError(f"Invalid callstack format: {format}. Choose from 'frames' or 'strings'.")
        self.inner = inner
        self.level = level
        self.format: CALLSTACK_FORMAT = format
        self._walk = walk if walk is not None else walk_callers

    def enabled(self, scope: Scope, level: int) -> bool:
        return _enabled(scope, level, self.inner)

    def handle(self, scope: Scope, record: Record) -> None:
        if not self.enabled(scope, record.level):
            return None

        level = read_callstack_level(scope)
        if level is None:
            level = self.level
        if record.level >= level and record.call_site is not None:
            sites, truncated = capture_stack(self._walk)
            sites = trim_to(sites, record.call_site)
            if sites:
                attrs = [Attr(CALLSTACK_KEY, self._render(sites))]
                if truncated:
                    attrs.append(Attr(CALLSTACK_TRUNCATED_KEY, True))
                record = record.with_attrs(*attrs)
        return self.inner.handle(scope, record)

    def _render(self, sites: list[CallSite]) -> tuple:
        frames = tuple(site.frame() for site in sites)
        if self.format == "strings":
            return tuple(str(f) for f in frames)
        return frames

    def _derive(self, inner: Handler) -> "CallstackHandler":
        return CallstackHandler(inner, self.level, self.format, self._walk)

    def with_attrs(self, attrs: Sequence[Attr]) -> Handler:
        return self._derive(self.inner.with_attrs(attrs))

    def with_group(self, name: str) -> Handler:
        return self._derive(self.inner.with_group(name))

    def __repr__(self) -> str:
        return f"CallstackHandler({self.inner!r}, level={self.level}, format={self.format!r})"


def callstack_handler(
    inner: Handler,
    level: int,
    format: CALLSTACK_FORMAT = "frames",
) -> Handler:
    """Wrap ``inner`` to add the callstack at ``level`` (inclusive).

    If ``inner`` already is a :class:`CallstackHandler`, the result replaces its
    configuration instead of stacking a second capturing layer.
    """
    if isinstance(inner, CallstackHandler):
        return CallstackHandler(inner.inner, level, format, inner._walk)
    return CallstackHandler(inner, level, format)
