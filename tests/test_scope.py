"""Tests for ctxlog.scope - the chained override carrier."""

import asyncio

from ctxlog import DEBUG, ERROR, INFO, Logger, ObserverHandler
from ctxlog.scope import (
    HANDLER_KEY,
    LOG_LEVEL_KEY,
    ROOT,
    attach_callstack_level,
    attach_handler,
    attach_log_level,
    current_scope,
    read_callstack_level,
    read_handler,
    read_log_level,
    use_scope,
)

KEY = object()


def test_lookup_returns_innermost_value():
    parent = ROOT.with_value(KEY, 1)
    child = parent.with_value(KEY, 2)

    assert child.lookup(KEY) == 2
    assert parent.lookup(KEY) == 1
    assert ROOT.lookup(KEY) is None


def test_lookup_walks_outward():
    scope = ROOT.with_value(KEY, "outer").with_value(object(), "other")
    assert scope.lookup(KEY) == "outer"
    assert KEY in scope
    assert KEY not in ROOT


def test_child_does_not_change_parent():
    parent = attach_log_level(ROOT, INFO)
    child = attach_log_level(parent, DEBUG)

    assert read_log_level(child) == DEBUG
    assert read_log_level(parent) == INFO


def test_absent_overrides_read_as_none():
    assert read_handler(ROOT) is None
    assert read_log_level(ROOT) is None
    assert read_callstack_level(ROOT) is None


def test_overrides_are_independent():
    scope = attach_callstack_level(attach_log_level(ROOT, ERROR), DEBUG)
    assert read_log_level(scope) == ERROR
    assert read_callstack_level(scope) == DEBUG
    assert read_handler(scope) is None


def test_malformed_values_read_as_absent():
    assert read_log_level(ROOT.with_value(LOG_LEVEL_KEY, "debug")) is None
    assert read_log_level(ROOT.with_value(LOG_LEVEL_KEY, True)) is None
    assert read_handler(ROOT.with_value(HANDLER_KEY, Logger(ObserverHandler(print)))) is None


def test_explicit_none_handler_shadows_outer_override():
    handler = ObserverHandler(print)
    scope = attach_handler(ROOT, handler)

    assert read_handler(scope) is handler
    assert read_handler(attach_handler(scope, None)) is None
    assert read_handler(scope) is handler


def test_use_scope_resets_on_exit():
    scope = attach_log_level(ROOT, DEBUG)
    with use_scope(scope) as active:
        assert active is scope
        assert current_scope() is scope
    assert current_scope() is ROOT


def test_tasks_see_their_own_scope():
    async def worker(level):
        with use_scope(attach_log_level(current_scope(), level)):
            await asyncio.sleep(0)
            return read_log_level(current_scope())

    async def main():
        return await asyncio.gather(worker(DEBUG), worker(ERROR))

    assert asyncio.run(main()) == [DEBUG, ERROR]
    assert read_log_level(current_scope()) is None
