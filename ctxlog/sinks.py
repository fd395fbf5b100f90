"""Terminal handlers that end a ctxlog pipeline.

Provides :class:`StreamHandler` (one JSON or text line per record),
:class:`OTelHandler` (emits through an OpenTelemetry ``LoggerProvider``) and
:class:`ObserverHandler` (pushes records onto a ReactiveX observer).

All of them share the attribute bookkeeping of :class:`SinkHandler`:
``with_attrs`` attaches attributes at the current group depth and
``with_group`` opens a new group that later attributes, including the
record's own, are nested under.
"""

import copy
import json
import threading
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import IO, Any, Literal

from opentelemetry._logs import LoggerProvider, LogRecord
from reactivex import Observer
from reactivex import operators as ops

from .attr import Attr, Group, ReplaceAttr
from .handler import Handler
from .record import INFO, MIN_LEVEL, Frame, Record, level_name, severity_number
from .scope import Scope

LOG_FORMAT = Literal["json", "text"]

TIME_KEY = "time"
LEVEL_KEY = "level"
SOURCE_KEY = "source"
MESSAGE_KEY = "msg"


# =============================================================================
# Shared attribute bookkeeping
# =============================================================================


class SinkHandler(Handler):
    """Base for terminal handlers: static level plus attached attrs and groups."""

    def __init__(self, level: int = INFO, replace_attr: ReplaceAttr | None = None):
        self.level = level
        self.replace_attr = replace_attr
        self._groups: tuple[str, ...] = ()
        # Attached attributes per group depth; always len(_groups) + 1 entries.
        self._attrs: tuple[tuple[Attr, ...], ...] = ((),)

    def enabled(self, scope: Scope, level: int) -> bool:
        return level >= self.level

    def with_attrs(self, attrs: Sequence[Attr]) -> Handler:
        if not attrs:
            return self
        derived = copy.copy(self)
        derived._attrs = self._attrs[:-1] + (self._attrs[-1] + tuple(attrs),)
        return derived

    def with_group(self, name: str) -> Handler:
        if not name:
            return self
        derived = copy.copy(self)
        derived._groups = self._groups + (name,)
        derived._attrs = self._attrs + ((),)
        return derived

    def resolve(self, record: Record) -> tuple[Attr, ...]:
        """Merge attached and record attributes, nested under the open groups.

        Groups that end up empty are omitted.
        """
        depths = self._attrs[:-1] + (self._attrs[-1] + record.attrs,)
        inner: tuple[Attr, ...] = ()
        for depth in range(len(self._groups), 0, -1):
            members = depths[depth] + inner
            inner = (Attr(self._groups[depth - 1], Group(members)),) if members else ()
        return depths[0] + inner

    def rewrite(self, groups: tuple[str, ...], attrs: Sequence[Attr]) -> list[Attr]:
        """Apply ``replace_attr`` to every non-group attribute; drop empty keys."""
        out: list[Attr] = []
        for attr in attrs:
            if attr.is_group():
                members = self.rewrite(groups + (attr.key,), attr.value)
                if not members:
                    continue
                if attr.key:
                    out.append(Attr(attr.key, Group(members)))
                else:
                    out.extend(members)
                continue
            if self.replace_attr is not None:
                attr = self.replace_attr(groups, attr)
            if attr.key:
                out.append(attr)
        return out


def _flatten(attrs: Sequence[Attr], prefix: str = "") -> list[tuple[str, Any]]:
    """Flatten groups into dotted keys."""
    out: list[tuple[str, Any]] = []
    for attr in attrs:
        key = f"{prefix}{attr.key}"
        if attr.is_group():
            out.extend(_flatten(attr.value, key + "."))
        else:
            out.append((key, attr.value))
    return out


# =============================================================================
# Stream Handler
# =============================================================================


def _json_value(value: Any) -> Any:
    if isinstance(value, Group):
        return _json_object(value)
    if isinstance(value, (tuple, list)):
        return [_json_value(v) for v in value]
    if isinstance(value, Frame):
        return value.as_dict()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, timedelta):
        # nanoseconds, as integers
        return value // timedelta(microseconds=1) * 1000
    return value


def _json_object(attrs: Sequence[Attr]) -> dict[str, Any]:
    return {attr.key: _json_value(attr.value) for attr in attrs}


def _text_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (tuple, list)):
        return "[" + " ".join(_text_value(v) for v in value) + "]"
    return str(value)


def _quote(text: str) -> str:
    if not text or any(c in text for c in ' ="') or not text.isprintable():
        return json.dumps(text, ensure_ascii=False)
    return text


def format_record_json(attrs: Sequence[Attr]) -> str:
    """Render resolved attributes as a single JSON line."""
    return json.dumps(_json_object(attrs), default=str, ensure_ascii=False) + "\n"


def format_record_text(attrs: Sequence[Attr]) -> str:
    """Render resolved attributes as ``key=value`` pairs; nested keys are dotted."""
    pairs = (f"{_quote(key)}={_quote(_text_value(value))}" for key, value in _flatten(attrs))
    return " ".join(pairs) + "\n"


class StreamHandler(SinkHandler):
    """Writes one line per record to a text stream.

    Each line is written with a single ``write`` call under a lock shared with
    every handler derived from this one, so concurrent records never
    interleave.

    Parameters:
        stream: Any object with a ``write(str)`` method.
        format: ``"json"`` for JSON lines, ``"text"`` for ``key=value`` lines.
        level: Minimum level (inclusive).
        add_source: Include the ``source`` (call site) of each record.
        replace_attr: Rewrite applied to every attribute before serialization,
            built-in ``time``/``level``/``source``/``msg`` included.

    Example:
        >>> handler = StreamHandler(sys.stderr, format="text", level=DEBUG)
        >>> Logger(handler).info("started", port=8080)
    """

    def __init__(
        self,
        stream: IO[str],
        *,
        format: LOG_FORMAT = "json",
        level: int = INFO,
        add_source: bool = False,
        replace_attr: ReplaceAttr | None = None,
    ):
        if format not in ("json", "text"):
            raise ValueError(f"Invalid format: {format}. Choose from 'json' or 'text'.")
        super().__init__(level=level, replace_attr=replace_attr)
        self._stream = stream
        self._format = format
        self._add_source = add_source
        self._lock = threading.Lock()
        self._formatter = format_record_json if format == "json" else format_record_text

    def handle(self, scope: Scope, record: Record) -> None:
        builtins = [
            Attr(TIME_KEY, datetime.fromtimestamp(record.time_ns / 1e9, tz=UTC)),
            Attr(LEVEL_KEY, level_name(record.level)),
        ]
        source = record.source()
        if self._add_source and source is not None:
            builtins.append(Attr(SOURCE_KEY, source))
        builtins.append(Attr(MESSAGE_KEY, record.message))

        attrs = self.rewrite((), builtins) + self.rewrite((), self.resolve(record))
        line = self._formatter(attrs)
        with self._lock:
            self._stream.write(line)
            flush = getattr(self._stream, "flush", None)
            if flush is not None:
                flush()


# =============================================================================
# OpenTelemetry Handler
# =============================================================================


def _otel_value(value: Any) -> Any:
    if isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (tuple, list)):
        return [v if isinstance(v, (str, bool, int, float)) else str(v) for v in value]
    return str(value)


class OTelHandler(SinkHandler):
    """Emits records as OpenTelemetry log records.

    Groups are flattened into dotted attribute keys.  With ``add_source`` the
    call site is reported with the ``code.*`` semantic-convention attributes.

    Example:
        >>> provider = configure_telemetry("my-app", exporters=[ConsoleLogExporter()])
        >>> logger = Logger(context_handler(OTelHandler(provider)))
    """

    def __init__(
        self,
        logger_provider: LoggerProvider,
        name: str = "ctxlog",
        *,
        level: int = INFO,
        add_source: bool = False,
        replace_attr: ReplaceAttr | None = None,
    ):
        super().__init__(level=level, replace_attr=replace_attr)
        self._logger = logger_provider.get_logger(name)
        self._add_source = add_source

    def handle(self, scope: Scope, record: Record) -> None:
        attributes = {
            key: _otel_value(value)
            for key, value in _flatten(self.rewrite((), self.resolve(record)))
        }
        source = record.source()
        if self._add_source and source is not None:
            attributes["code.filepath"] = source.file
            attributes["code.lineno"] = source.line
            attributes["code.function"] = source.function
        self._logger.emit(
            LogRecord(
                timestamp=record.time_ns,
                body=record.message,
                severity_text=level_name(record.level),
                severity_number=severity_number(record.level),
                attributes=attributes,
            )
        )


# =============================================================================
# ReactiveX Handler
# =============================================================================


class ObserverHandler(SinkHandler):
    """Pushes records to an observer (or a plain callable).

    The emitted record carries the attached attributes and open groups
    already resolved into its ``attrs``.
    """

    def __init__(self, observer: Observer | Callable[[Record], Any], *, level: int = MIN_LEVEL):
        super().__init__(level=level)
        if hasattr(observer, "on_next"):
            self._emit = observer.on_next
        else:
            self._emit = observer

    def handle(self, scope: Scope, record: Record) -> None:
        self._emit(Record(
            level=record.level,
            message=record.message,
            call_site=record.call_site,
            time_ns=record.time_ns,
            attrs=self.resolve(record),
        ))


def level_filter(min_level: int):
    """The operator keeping records at or above ``min_level``; other items are dropped."""
    return ops.filter(lambda record: isinstance(record, Record) and record.level >= min_level)
