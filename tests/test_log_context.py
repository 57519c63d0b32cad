"""
Request Log Context Tests

Tests for:
- Seeding a context from an ASGI scope
- Request id format
- Rendering (ordering, idempotence, strictness)
- Record emission and the serialization fallback
"""

from __future__ import annotations

import json
import re
import time

import pytest

from muxlog.errors import SerializationFailure
from muxlog.middleware.log_context import (
    SEED_FIELDS,
    RequestLogContext,
    bind_log_context,
    find_log_context,
    new_request_id,
)
from muxlog.observability import emit_error, emit_event, emit_record, render_record

_HEX8 = re.compile(r"^[0-9a-f]{8}$")


def _scope(**overrides):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "query_string": b"",
        "headers": [],
        "client": ("10.0.0.7", 51234),
    }
    scope.update(overrides)
    return scope


# ──────────────────────────────────────────────
# Seeding
# ──────────────────────────────────────────────


class TestSeeding:

    def test_seed_fields_present_in_order(self):
        ctx = RequestLogContext.for_request(_scope())
        assert tuple(ctx) == SEED_FIELDS

    def test_seed_values(self):
        ctx = RequestLogContext.for_request(_scope(method="POST", path="/orders"), 1700000000.9)
        assert ctx["request_time"] == 1700000000
        assert ctx["event"] == "request"
        assert ctx["remote_addr"] == "10.0.0.7:51234"
        assert ctx["method"] == "POST"
        assert ctx["url"] == "/orders"

    def test_url_includes_query(self):
        ctx = RequestLogContext.for_request(_scope(path="/search", query_string=b"q=a&page=2"))
        assert ctx["url"] == "/search?q=a&page=2"

    def test_missing_client(self):
        ctx = RequestLogContext.for_request(_scope(client=None))
        assert ctx["remote_addr"] == ""

    def test_request_time_defaults_to_now(self):
        before = int(time.time())
        ctx = RequestLogContext.for_request(_scope())
        assert before <= ctx["request_time"] <= int(time.time())

    @pytest.mark.parametrize(
        "headers, expected",
        [
            ([], 0),
            ([(b"content-length", b"42")], 42),
            ([(b"transfer-encoding", b"chunked")], -1),
            ([(b"content-length", b"many")], -1),
        ],
    )
    def test_content_length(self, headers, expected):
        ctx = RequestLogContext.for_request(_scope(headers=headers))
        assert ctx["content_length"] == expected


class TestRequestId:

    def test_format(self):
        for _ in range(2000):
            assert _HEX8.match(new_request_id())

    def test_ids_vary(self):
        ids = {new_request_id() for _ in range(200)}
        assert len(ids) > 190


# ──────────────────────────────────────────────
# Mutation and scope binding
# ──────────────────────────────────────────────


class TestMutation:

    def test_add_and_item_assignment(self):
        ctx = RequestLogContext.for_request(_scope())
        ctx.add("user", "alice")
        ctx["items"] = 3
        assert list(ctx)[-2:] == ["user", "items"]

    def test_replace_keeps_identity(self):
        ctx = RequestLogContext.for_request(_scope())
        scope = _scope()
        bind_log_context(scope, ctx)
        ctx.replace({"event": "custom"})
        assert find_log_context(scope) is ctx
        assert dict(ctx) == {"event": "custom"}

    def test_finish_records_code_and_millis(self):
        ctx = RequestLogContext.for_request(_scope())
        started = time.perf_counter_ns() - 25_000_000
        ctx.finish(201, started)
        assert ctx["code"] == 201
        assert isinstance(ctx["tts_ns"], int)
        assert 25 <= ctx["tts_ns"] < 10_000

    def test_find_without_binding(self):
        assert find_log_context(_scope()) is None

    def test_bound_context_visible_via_state(self):
        scope = _scope(state={})
        ctx = RequestLogContext()
        bind_log_context(scope, ctx)
        assert scope["state"]["log_context"] is ctx


# ──────────────────────────────────────────────
# Rendering
# ──────────────────────────────────────────────


class TestRender:

    def test_render_is_idempotent(self):
        ctx = RequestLogContext.for_request(_scope())
        ctx.finish(200, time.perf_counter_ns())
        assert ctx.render() == ctx.render()

    def test_render_is_single_compact_line(self):
        ctx = RequestLogContext({"event": "request", "message": "a\nb"})
        line = ctx.render()
        assert "\n" not in line
        assert line == '{"event":"request","message":"a\\nb"}'

    def test_render_preserves_insertion_order(self):
        line = render_record({"b": 1, "a": 2})
        assert line.index('"b"') < line.index('"a"')

    def test_non_encodable_value_raises(self):
        with pytest.raises(SerializationFailure) as excinfo:
            render_record({"request_id": "deadbeef", "when": object()})
        assert excinfo.value.record_id == "deadbeef"

    def test_nan_rejected(self):
        with pytest.raises(SerializationFailure):
            render_record({"ratio": float("nan")})


class TestEmit:

    def test_emit_record_writes_exact_line(self, log_capture):
        emit_record({"event": "request", "code": 200})
        assert log_capture.stream.getvalue() == '{"event":"request","code":200}\n'

    def test_emit_event(self, log_capture):
        fields = {"request_id": "0000abcd", "event": "request"}
        emit_event(fields, "panic", "it broke", level="error")
        (line,) = log_capture.records()
        assert line == {"request_id": "0000abcd", "event": "panic", "message": "it broke"}

    def test_emit_error_default_error_text(self, log_capture):
        emit_error({}, None, "something odd")
        (line,) = log_capture.records()
        assert line == {"event": "error", "message": "something odd", "error": "internal error condition"}

    def test_emit_error_tolerates_unencodable_values(self, log_capture):
        emit_error({"thing": object()}, ValueError("bad"), "oops")
        (line,) = log_capture.records()
        assert line["thing"].startswith("<object object")
        assert line["error"] == "bad"

    def test_serialization_failure_falls_back_once(self, log_capture):
        emit_record({"request_id": "cafef00d", "event": "request", "ratio": float("inf")})
        lines = log_capture.lines()
        assert len(lines) == 1
        assert lines[0]["event"] == "error"
        assert lines[0]["request_id"] == "cafef00d"
        assert lines[0]["message"] == "unable to serialize log record"
        assert "cafef00d" in lines[0]["error"]

    def test_fallback_keeps_renderable_fields(self, log_capture):
        ctx = RequestLogContext.for_request(_scope())
        ctx.add("ratio", float("nan"))
        ctx.add("tenant", "acme")
        ctx.finish(201, time.perf_counter_ns())
        ctx.emit()
        (line,) = log_capture.lines()
        assert line["event"] == "error"
        assert set(SEED_FIELDS) | {"code", "tts_ns", "tenant"} <= set(line)
        assert line["code"] == 201
        assert "ratio" not in line

    def test_fallback_skips_non_string_request_id(self, log_capture):
        emit_record({"request_id": object()})
        (line,) = log_capture.lines()
        assert "request_id" not in line

    def test_each_line_is_valid_json(self, log_capture):
        ctx = RequestLogContext.for_request(_scope())
        ctx.emit()
        ctx.emit_event("panic", "x")
        for raw in log_capture.stream.getvalue().splitlines():
            json.loads(raw)
