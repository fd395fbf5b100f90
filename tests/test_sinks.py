"""Tests for the terminal handlers.

Tests the sinks ending a ctxlog pipeline:
- StreamHandler JSON and text lines, groups and attribute rewriting
- OTelHandler emission through a LoggerProvider
- ObserverHandler and level_filter on ReactiveX streams
"""

import io
import json
import time
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import reactivex as rx
from opentelemetry._logs import SeverityNumber
from opentelemetry.sdk._logs.export import LogRecordExportResult
from reactivex.subject import Subject

from ctxlog import (
    DEBUG,
    ERROR,
    INFO,
    MIN_LEVEL,
    WARN,
    Attr,
    Group,
    Logger,
    ObserverHandler,
    OTelHandler,
    Record,
    StreamHandler,
    callstack_handler,
    chain_replace_attr,
    configure_telemetry,
    group,
    level_filter,
)


def _json_logger(buf, **kwargs):
    return Logger(StreamHandler(buf, format="json", **kwargs))


def _text_logger(buf, **kwargs):
    return Logger(StreamHandler(buf, format="text", **kwargs))


class TestStreamHandlerJSON:
    """Tests for JSON lines."""

    def test_builtin_keys_come_first(self):
        buf = io.StringIO()
        _json_logger(buf).info("hello", user="ada")

        data = json.loads(buf.getvalue())
        assert list(data) == ["time", "level", "msg", "user"]
        assert data["level"] == "INFO"
        assert data["msg"] == "hello"
        assert data["user"] == "ada"

    def test_one_line_per_record(self):
        buf = io.StringIO()
        logger = _json_logger(buf)
        logger.info("one")
        logger.info("two")

        lines = buf.getvalue().splitlines()
        assert [json.loads(line)["msg"] for line in lines] == ["one", "two"]

    def test_source_when_requested(self):
        buf = io.StringIO()
        _json_logger(buf, add_source=True).info("hello")

        source = json.loads(buf.getvalue())["source"]
        assert source["function"] == "TestStreamHandlerJSON.test_source_when_requested"
        assert source["file"] == __file__

    def test_static_level(self):
        buf = io.StringIO()
        logger = _json_logger(buf, level=WARN)
        logger.info("dropped")
        logger.log(WARN + 1, "kept")

        data = json.loads(buf.getvalue())
        assert data["level"] == "WARN+1"

    def test_groups_nest_attributes(self):
        buf = io.StringIO()
        logger = _json_logger(buf).with_attrs(app="api").with_group("req").with_attrs(method="GET")
        logger.info("served", status=200)

        data = json.loads(buf.getvalue())
        assert data["app"] == "api"
        assert data["req"] == {"method": "GET", "status": 200}

    def test_empty_group_is_omitted(self):
        buf = io.StringIO()
        _json_logger(buf).with_group("req").info("nothing attached")

        assert "req" not in json.loads(buf.getvalue())

    def test_group_attr_value(self):
        buf = io.StringIO()
        _json_logger(buf).info("m", group("peer", host="localhost", port=8765))

        assert json.loads(buf.getvalue())["peer"] == {"host": "localhost", "port": 8765}

    def test_duration_as_nanoseconds(self):
        buf = io.StringIO()
        _json_logger(buf).info("m", elapsed=timedelta(milliseconds=1500))

        assert json.loads(buf.getvalue())["elapsed"] == 1_500_000_000

    def test_empty_tuple_value_is_kept(self):
        buf = io.StringIO()
        _json_logger(buf).info("x", items=(), other=[])

        data = json.loads(buf.getvalue())
        assert data["items"] == []
        assert data["other"] == []

    def test_unknown_values_use_str(self):
        class Token:
            def __str__(self):
                return "token-1"

        buf = io.StringIO()
        _json_logger(buf).info("m", token=Token())

        assert json.loads(buf.getvalue())["token"] == "token-1"


class TestStreamHandlerText:
    """Tests for key=value lines."""

    def test_pairs_and_quoting(self):
        buf = io.StringIO()
        _text_logger(buf).info("hello world", user="ada", ok=True, empty="")

        line = buf.getvalue()
        assert line.endswith("\n")
        assert "level=INFO" in line
        assert 'msg="hello world"' in line
        assert "user=ada" in line
        assert "ok=true" in line
        assert 'empty=""' in line

    def test_groups_use_dotted_keys(self):
        buf = io.StringIO()
        _text_logger(buf).with_group("req").info("m", method="GET")

        assert "req.method=GET" in buf.getvalue()

    def test_empty_tuple_value_is_kept(self):
        buf = io.StringIO()
        _text_logger(buf).with_group("req").info("x", items=())

        assert "req.items=[]" in buf.getvalue()


class TestReplaceAttr:
    """Tests for attribute rewriting before serialization."""

    def test_builtin_can_be_dropped(self):
        def drop_time(groups, a):
            if not groups and a.key == "time":
                return Attr("", None)
            return a

        buf = io.StringIO()
        _json_logger(buf, replace_attr=drop_time).info("hello")

        assert list(json.loads(buf.getvalue())) == ["level", "msg"]

    def test_receives_group_path(self):
        seen = []

        def record_groups(groups, a):
            seen.append((tuple(groups), a.key))
            return a

        buf = io.StringIO()
        _json_logger(buf, replace_attr=record_groups).with_group("req").info("m", method="GET")

        assert (("req",), "method") in seen
        assert ((), "msg") in seen
        # group attributes themselves are not passed
        assert ((), "req") not in seen

    def test_chained_rewrites(self):
        def rename(groups, a):
            if a.key == "msg":
                return Attr("message", a.value)
            return a

        def upper(groups, a):
            if a.key == "message":
                return Attr(a.key, a.value.upper())
            return a

        buf = io.StringIO()
        _json_logger(buf, replace_attr=chain_replace_attr(rename, upper)).info("hello")

        data = json.loads(buf.getvalue())
        assert data["message"] == "HELLO"
        assert "msg" not in data

    def test_group_emptied_by_rewrite_is_omitted(self):
        def drop_secret(groups, a):
            return Attr("", None) if a.key == "password" else a

        buf = io.StringIO()
        _json_logger(buf, replace_attr=drop_secret).with_group("auth").info("login", password="hunter2")

        assert "auth" not in json.loads(buf.getvalue())


class TestStreamHandlerErrors:
    """Tests for configuration and write errors."""

    def test_invalid_format_raises(self):
        with pytest.raises(ValueError):
            StreamHandler(io.StringIO(), format="xml")

    def test_write_errors_propagate(self):
        stream = MagicMock()
        stream.write.side_effect = OSError("disk full")

        with pytest.raises(OSError):
            Logger(StreamHandler(stream)).info("lost")

    def test_flushes_after_write(self):
        stream = MagicMock()
        Logger(StreamHandler(stream)).info("hello")

        assert stream.write.call_count == 1
        assert stream.flush.called


class TestOTelHandler:
    """Tests for OTelHandler."""

    def test_severity_and_body(self):
        provider = MagicMock()
        mock_logger = provider.get_logger.return_value
        logger = Logger(OTelHandler(provider, level=DEBUG))

        logger.debug("debug message")
        logger.info("info message")
        logger.warning("warning message")
        logger.error("error message")

        provider.get_logger.assert_called_once_with("ctxlog")
        calls = mock_logger.emit.call_args_list
        assert [c[0][0].severity_number for c in calls] == [
            SeverityNumber.DEBUG,
            SeverityNumber.INFO,
            SeverityNumber.WARN,
            SeverityNumber.ERROR,
        ]
        assert [c[0][0].severity_text for c in calls] == ["DEBUG", "INFO", "WARN", "ERROR"]
        assert calls[1][0][0].body == "info message"

    def test_attributes_are_flattened(self):
        provider = MagicMock()
        mock_logger = provider.get_logger.return_value
        logger = Logger(OTelHandler(provider)).with_attrs(peer_id="abc123").with_group("conn")

        logger.info("connected", port=8765)

        record = mock_logger.emit.call_args[0][0]
        assert record.attributes["peer_id"] == "abc123"
        assert record.attributes["conn.port"] == 8765

    def test_source_attributes(self):
        provider = MagicMock()
        mock_logger = provider.get_logger.return_value

        Logger(OTelHandler(provider, add_source=True)).info("here")

        record = mock_logger.emit.call_args[0][0]
        assert record.attributes["code.function"] == "TestOTelHandler.test_source_attributes"
        assert record.attributes["code.filepath"] == __file__

    def test_callstack_rendered_as_strings(self):
        provider = MagicMock()
        mock_logger = provider.get_logger.return_value

        Logger(callstack_handler(OTelHandler(provider), MIN_LEVEL)).error("boom")

        stack = mock_logger.emit.call_args[0][0].attributes["callstack"]
        assert all(isinstance(s, str) for s in stack)

    def test_timestamp_is_set(self):
        provider = MagicMock()
        mock_logger = provider.get_logger.return_value

        before = time.time_ns()
        Logger(OTelHandler(provider)).info("test")
        after = time.time_ns()

        record = mock_logger.emit.call_args[0][0]
        assert before <= record.timestamp <= after

    def test_exporter_receives_records(self):
        mock_exporter = MagicMock()
        mock_exporter.export.return_value = LogRecordExportResult.SUCCESS

        provider = configure_telemetry("test-app", exporters=[mock_exporter])
        Logger(OTelHandler(provider)).info("Test message", key="value")

        assert mock_exporter.export.called


class TestObserverHandler:
    """Tests for the ReactiveX sink."""

    def test_pushes_resolved_records(self):
        collected = []
        logger = Logger(ObserverHandler(collected.append)).with_attrs(a=1).with_group("g")

        logger.info("m", b=2)

        record = collected[0]
        assert isinstance(record, Record)
        assert record.attrs == (Attr("a", 1), Attr("g", Group((Attr("b", 2),))))
        assert record.attrs[1].is_group()
        assert record.call_site is not None

    def test_subject_with_level_filter(self):
        subject = Subject()
        collected = []
        subject.pipe(level_filter(WARN)).subscribe(collected.append)
        logger = Logger(ObserverHandler(subject))

        logger.info("skipped")
        logger.warning("kept")
        logger.error("kept too")

        assert [r.message for r in collected] == ["kept", "kept too"]

    def test_level_filter_drops_other_items(self):
        items = [Record(INFO, "a"), Record(ERROR, "b"), "x"]
        collected = []
        rx.from_(items).pipe(level_filter(INFO)).subscribe(collected.append)

        assert [r.message for r in collected] == ["a", "b"]
