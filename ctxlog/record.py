"""Log levels, call sites and records.

Levels are plain ints on the OpenTelemetry ``SeverityNumber`` scale, so a
record can be handed to an OTel pipeline without translation.  Two
sentinels bracket the scale: :data:`MIN_LEVEL` enables a behaviour for every
record and :data:`MAX_LEVEL` disables it for everything not logged
explicitly at ``MAX_LEVEL``.
"""

import sys
from dataclasses import dataclass, field, replace
from types import CodeType, FrameType

from opentelemetry._logs import SeverityNumber

from .attr import Attr

# =============================================================================
# Levels
# =============================================================================

DEBUG = SeverityNumber.DEBUG.value
INFO = SeverityNumber.INFO.value
WARN = SeverityNumber.WARN.value
ERROR = SeverityNumber.ERROR.value

MIN_LEVEL = -sys.maxsize - 1
MAX_LEVEL = sys.maxsize

_LEVEL_NAMES = ((ERROR, "ERROR"), (WARN, "WARN"), (INFO, "INFO"), (DEBUG, "DEBUG"))


def level_name(level: int) -> str:
    """Render a level as ``INFO``, ``WARN+2``, ``DEBUG-1``, ``MIN`` or ``MAX``."""
    if level == MIN_LEVEL:
        return "MIN"
    if level == MAX_LEVEL:
        return "MAX"
    base, name = DEBUG, "DEBUG"
    for value, candidate in _LEVEL_NAMES:
        if level >= value:
            base, name = value, candidate
            break
    offset = level - base
    if offset == 0:
        return name
    return f"{name}{offset:+d}"


def severity_number(level: int) -> SeverityNumber:
    """Clamp a level into the OTel severity range (TRACE..FATAL4)."""
    clamped = min(max(level, SeverityNumber.TRACE.value), SeverityNumber.FATAL4.value)
    return SeverityNumber(clamped)


# =============================================================================
# Call sites and frames
# =============================================================================


@dataclass(frozen=True)
class CallSite:
    """Reference to the instruction a log call was made from.

    Two call sites are equal when they point to the same instruction of the
    same code object, which stays true while that frame is on the stack.
    """

    code: CodeType
    lasti: int
    line: int = field(default=0, compare=False)

    @classmethod
    def from_frame(cls, frame: FrameType) -> "CallSite":
        return cls(frame.f_code, frame.f_lasti, frame.f_lineno or 0)

    @property
    def file(self) -> str:
        return self.code.co_filename

    @property
    def function(self) -> str:
        return self.code.co_qualname

    def frame(self) -> "Frame":
        return Frame(function=self.function, file=self.file, line=self.line)


@dataclass(frozen=True)
class Frame:
    """Resolved stack frame, as rendered in a ``callstack`` attribute."""

    function: str
    file: str
    line: int

    def as_dict(self) -> dict[str, str | int]:
        return {"function": self.function, "file": self.file, "line": self.line}

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


# =============================================================================
# Record
# =============================================================================


@dataclass(frozen=True)
class Record:
    """A single log event.

    Records are immutable: handlers that add attributes call
    :meth:`with_attrs` and forward the copy.
    """

    level: int
    message: str
    call_site: CallSite | None = None
    time_ns: int = 0
    attrs: tuple[Attr, ...] = ()

    def with_attrs(self, *attrs: Attr) -> "Record":
        """Return a copy with ``attrs`` appended."""
        return replace(self, attrs=self.attrs + attrs)

    def source(self) -> Frame | None:
        """Resolve the record's call site, if it has one."""
        if self.call_site is None:
            return None
        return self.call_site.frame()
