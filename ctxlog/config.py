"""Bootstrap helpers wiring a ctxlog pipeline together.

Provides :func:`configure_logging` (builds the context-aware handler chain
and installs it as the default logger) and :func:`configure_telemetry`
(an OpenTelemetry ``LoggerProvider`` for :class:`~ctxlog.sinks.OTelHandler`).
"""

import sys
from collections.abc import Sequence
from typing import IO, Any

from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import (
    BatchLogRecordProcessor,
    LogRecordExporter,
    SimpleLogRecordProcessor,
)
from opentelemetry.sdk.resources import Resource

from .attr import ReplaceAttr, attrs_from
from .handler import Handler
from .handlers import CALLSTACK_FORMAT, callstack_handler, context_handler
from .logger import Logger, set_default_logger
from .record import INFO, MAX_LEVEL
from .sinks import LOG_FORMAT, StreamHandler


def configure_logging(
    *,
    stream: IO[str] | None = None,
    format: LOG_FORMAT = "json",
    level: int = INFO,
    add_source: bool = False,
    replace_attr: ReplaceAttr | None = None,
    callstack_level: int = MAX_LEVEL,
    callstack_format: CALLSTACK_FORMAT = "frames",
    global_attrs: dict[str, Any] | None = None,
    handler: Handler | None = None,
    set_default: bool = True,
) -> Logger:
    """
    Build a context-aware logger and (by default) install it as the default.

    The chain is ``context_handler(callstack_handler(terminal))``: scope
    overrides are resolved first, then the callstack is added when the record
    qualifies, then the terminal handler serializes it.

    Args:
        stream: Output stream for the built-in stream handler. Default stderr.
        format: ``"json"`` (default) or ``"text"``.
        level: Minimum level (inclusive). Default INFO.
        add_source: Include the call site of every record.
        replace_attr: Attribute rewrite applied before serialization.
            This option overwrites; use :func:`ctxlog.chain_replace_attr` to
            combine several rewrites.
        callstack_level: Add the callstack at this level (inclusive). Use
            ``MAX_LEVEL`` (default) to disable it and ``MIN_LEVEL`` to add it
            to every record.
        callstack_format: ``"frames"`` (default) or ``"strings"``.
        global_attrs: Attributes attached to every record.
        handler: Terminal handler to use instead of the built-in stream
            handler (e.g. an ``OTelHandler``). ``stream``, ``format``,
            ``level``, ``add_source`` and ``replace_attr`` are ignored then.
        set_default: Install the logger as the process-wide default.

    Returns:
        The configured :class:`Logger`.

    Example:
        >>> configure_logging(
        ...     format="text",
        ...     level=DEBUG,
        ...     add_source=True,
        ...     callstack_level=ERROR,
        ...     global_attrs={"version": os.environ.get("VERSION_TAG", "")},
        ... )
        >>> ctxlog.info("Hello, world!", key="value")
    """
    if handler is None:
        handler = StreamHandler(
            stream if stream is not None else sys.stderr,
            format=format,
            level=level,
            add_source=add_source,
            replace_attr=replace_attr,
        )
    chain = context_handler(callstack_handler(handler, callstack_level, callstack_format))
    if global_attrs:
        chain = chain.with_attrs(attrs_from((), global_attrs))

    logger = Logger(chain)
    if set_default:
        set_default_logger(logger)
    return logger


def configure_telemetry(
    service_name: str = "ctxlog",
    *,
    exporters: Sequence[LogRecordExporter] = (),
    service_version: str = "",
    resource_attrs: dict[str, Any] | None = None,
    batch: bool = False,
) -> LoggerProvider:
    """
    Build the OpenTelemetry ``LoggerProvider`` an :class:`~ctxlog.sinks.OTelHandler` emits through.

    Each exporter gets its own processor.  Records are exported synchronously
    from the log call by default, so a record reaches every exporter before
    the call returns; pass ``batch=True`` for network exporters, then call
    ``provider.shutdown()`` (or ``force_flush()``) before exit.

    The global OTel provider is left untouched.

    Example:
        >>> provider = configure_telemetry("my-app", exporters=[ConsoleLogExporter()])
        >>> configure_logging(handler=OTelHandler(provider, add_source=True))
    """
    attributes: dict[str, Any] = {"service.name": service_name}
    if service_version:
        attributes["service.version"] = service_version
    if resource_attrs:
        attributes.update(resource_attrs)

    provider = LoggerProvider(resource=Resource.create(attributes))
    processor = BatchLogRecordProcessor if batch else SimpleLogRecordProcessor
    for exporter in exporters:
        provider.add_log_record_processor(processor(exporter))
    return provider
