"""The handler contract every stage of a ctxlog pipeline implements."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

from .attr import Attr
from .record import Record

if TYPE_CHECKING:
    from .scope import Scope


class Handler(ABC):
    """A composable unit that gates, transforms or forwards records.

    Handlers are immutable once built.  ``with_attrs`` and ``with_group`` return
    new handlers, so derived handlers never interfere with each other and a
    single handler can be shared by any number of concurrent callers.

    Errors raised by ``handle`` propagate to the caller unchanged.
    """

    @abstractmethod
    def enabled(self, scope: "Scope", level: int) -> bool: ...

    @abstractmethod
    def handle(self, scope: "Scope", record: Record) -> None: ...

    @abstractmethod
    def with_attrs(self, attrs: Sequence[Attr]) -> "Handler": ...

    @abstractmethod
    def with_group(self, name: str) -> "Handler": ...
