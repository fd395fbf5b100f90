"""Convenience exports for the :mod:`ctxlog` package."""

from .attr import Attr, Group, ReplaceAttr, attrs_from, chain_replace_attr, group  # noqa: F401
from .config import configure_logging, configure_telemetry  # noqa: F401
from .handler import Handler  # noqa: F401
from .handlers import (  # noqa: F401
    CallstackHandler,
    ContextHandler,
    callstack_handler,
    capture_stack,
    context_handler,
)
from .logger import (  # noqa: F401
    Logger,
    attach,
    bind,
    bind_callstack_level,
    bind_log_level,
    debug,
    error,
    get_default_logger,
    info,
    log,
    set_default_logger,
    warning,
)
from .record import (  # noqa: F401
    DEBUG,
    ERROR,
    INFO,
    MAX_LEVEL,
    MIN_LEVEL,
    WARN,
    CallSite,
    Frame,
    Record,
    level_name,
)
from .scope import (  # noqa: F401
    Scope,
    attach_callstack_level,
    attach_log_level,
    current_scope,
    read_callstack_level,
    read_handler,
    read_log_level,
    use_scope,
)
from .sinks import LOG_FORMAT, OTelHandler, ObserverHandler, StreamHandler, level_filter  # noqa: F401

__all__ = [
    # levels and records
    "DEBUG",
    "INFO",
    "WARN",
    "ERROR",
    "MIN_LEVEL",
    "MAX_LEVEL",
    "level_name",
    "Attr",
    "Group",
    "group",
    "attrs_from",
    "CallSite",
    "Frame",
    "Record",

    # handlers
    "Handler",
    "ContextHandler",
    "CallstackHandler",
    "context_handler",
    "callstack_handler",
    "capture_stack",

    # scope
    "Scope",
    "current_scope",
    "use_scope",
    "attach",
    "attach_log_level",
    "attach_callstack_level",
    "read_handler",
    "read_log_level",
    "read_callstack_level",
    "bind",
    "bind_log_level",
    "bind_callstack_level",

    # logger
    "Logger",
    "get_default_logger",
    "set_default_logger",
    "debug",
    "info",
    "warning",
    "error",
    "log",

    # sinks
    "LOG_FORMAT",
    "StreamHandler",
    "OTelHandler",
    "ObserverHandler",
    "level_filter",

    # attribute rewriting
    "ReplaceAttr",
    "chain_replace_attr",

    # config
    "configure_logging",
    "configure_telemetry",
]
