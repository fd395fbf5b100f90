"""Structured log attributes and attribute rewriting.

An :class:`Attr` is a key with a typed value.  A value of type
:class:`Group` (built with :func:`group`) is a *group*: its members are
nested under the group key when a record is serialized.  Any other value,
tuples included, is serialized as is.

``ReplaceAttr`` functions are applied by terminal handlers to every
non-group attribute right before serialization; use
:func:`chain_replace_attr` to run several of them in order.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

BADKEY = "!BADKEY"


class Group(tuple):
    """Ordered members of a group attribute."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Group({tuple.__repr__(self)})"


@dataclass(frozen=True)
class Attr:
    """A single key/value attribute."""

    key: str
    value: Any

    @property
    def kind(self) -> str:
        """Return the value kind: string, int, float, bool, duration, group or any."""
        value = self.value
        if isinstance(value, bool):
            return "bool"
        if isinstance(value, int):
            return "int"
        if isinstance(value, float):
            return "float"
        if isinstance(value, str):
            return "string"
        if isinstance(value, timedelta):
            return "duration"
        if isinstance(value, Group):
            return "group"
        return "any"

    def is_group(self) -> bool:
        return isinstance(self.value, Group)


def group(key: str, *args: Any, **kwargs: Any) -> Attr:
    """Build a group attribute from the same arguments a log call accepts."""
    return Attr(key, Group(attrs_from(args, kwargs)))


def attrs_from(args: Sequence[Any], kwargs: dict[str, Any] | None = None) -> tuple[Attr, ...]:
    """Convert log-call arguments into attributes, preserving order.

    Positional arguments are either :class:`Attr` instances or alternating
    ``key, value`` pairs.  A value without a string key in front of it is kept
    under ``"!BADKEY"``.  Keyword arguments follow the positional ones.
    """
    attrs: list[Attr] = []
    i = 0
    while i < len(args):
        arg = args[i]
        if isinstance(arg, Attr):
            attrs.append(arg)
            i += 1
        elif isinstance(arg, str) and i + 1 < len(args):
            attrs.append(Attr(arg, args[i + 1]))
            i += 2
        else:
            attrs.append(Attr(BADKEY, arg))
            i += 1
    if kwargs:
        attrs.extend(Attr(k, v) for k, v in kwargs.items())
    return tuple(attrs)


# =============================================================================
# Attribute rewriting
# =============================================================================

ReplaceAttr = Callable[[Sequence[str], Attr], Attr]


def chain_replace_attr(*fs: ReplaceAttr) -> ReplaceAttr:
    """Chain several ReplaceAttr functions together.

    Each function receives the result of the previous one, so the order of
    ``fs`` matters when two of them rename or retype the same attribute.
    """

    def replace(groups: Sequence[str], attr: Attr) -> Attr:
        for f in fs:
            attr = f(groups, attr)
        return attr

    return replace
