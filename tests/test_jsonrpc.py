import io
import json

import pytest

from sqlsls.jsonrpc import Connection, JsonRpcError, read_message, write_message
from sqlsls.protocol import Position


def frame(payload) -> bytes:
    buf = io.BytesIO()
    write_message(buf, payload)
    return buf.getvalue()


def read_all(data: bytes) -> list:
    stream = io.BytesIO(data)
    messages = []
    while (message := read_message(stream)) is not None:
        messages.append(message)
    return messages


def run(messages, handler, trace_log=None):
    reader = io.BytesIO(b"".join(frame(m) for m in messages))
    writer = io.BytesIO()
    Connection(reader, writer, handler, trace_log).serve()
    return read_all(writer.getvalue())


def test_write_message_header_matches_body():
    data = frame({"method": "initialize", "id": 1})
    header, sep, body = data.partition(b"\r\n\r\n")
    assert sep == b"\r\n\r\n"
    assert header.startswith(b"Content-Length: ")
    assert int(header[len(b"Content-Length: "):]) == len(body)
    assert json.loads(body) == {"method": "initialize", "id": 1}


def test_round_trip_unicode():
    payload = {"text": "SELECT 'żółw' FROM city"}
    assert read_all(frame(payload)) == [payload]


def test_round_trip_several_messages():
    payloads = [{"id": 1}, {"id": 2}, [1, 2, 3]]
    assert read_all(b"".join(frame(p) for p in payloads)) == payloads


def test_read_message_empty_stream_is_none():
    assert read_message(io.BytesIO(b"")) is None


def test_read_message_header_case_and_extra_headers():
    body = b'{"a": 1}'
    data = (
        b"content-type: application/vscode-jsonrpc\r\n"
        b"content-length: %d\r\n\r\n" % len(body)
    ) + body
    assert read_message(io.BytesIO(data)) == {"a": 1}


def test_read_message_eof_in_header():
    with pytest.raises(EOFError):
        read_message(io.BytesIO(b"Content-Length: 5\r\n"))


def test_read_message_truncated_body():
    with pytest.raises(EOFError):
        read_message(io.BytesIO(b"Content-Length: 10\r\n\r\n{}"))


def test_read_message_missing_length():
    with pytest.raises(ValueError):
        read_message(io.BytesIO(b"Content-Type: x\r\n\r\n{}"))


def test_read_message_invalid_json():
    data = b"Content-Length: 3\r\n\r\n{x}"
    with pytest.raises(JsonRpcError) as info:
        read_message(io.BytesIO(data))
    assert info.value.code == JsonRpcError.PARSE_ERROR


def test_serve_answers_requests_in_order():
    calls = []

    def handler(method, params):
        calls.append((method, params))
        return {"echo": params}

    out = run(
        [
            {"jsonrpc": "2.0", "id": 1, "method": "first", "params": {"x": 1}},
            {"jsonrpc": "2.0", "id": 2, "method": "second", "params": [5]},
        ],
        handler,
    )
    assert calls == [("first", {"x": 1}), ("second", [5])]
    assert [m["id"] for m in out] == [1, 2]
    assert out[0]["result"] == {"echo": {"x": 1}}
    assert out[1]["result"] == {"echo": [5]}


def test_serve_none_result_is_null():
    out = run([{"jsonrpc": "2.0", "id": 7, "method": "shutdown"}], lambda m, p: None)
    assert out == [{"jsonrpc": "2.0", "id": 7, "result": None}]


def test_serve_converts_protocol_objects():
    out = run(
        [{"jsonrpc": "2.0", "id": 1, "method": "pos"}],
        lambda m, p: Position(line=3, character=4),
    )
    assert out[0]["result"] == {"line": 3, "character": 4}


def test_notification_gets_no_response():
    seen = []
    out = run(
        [{"jsonrpc": "2.0", "method": "initialized", "params": {}}],
        lambda m, p: seen.append(m),
    )
    assert out == []
    assert seen == ["initialized"]


def test_jsonrpc_error_is_reported():
    def handler(method, params):
        raise JsonRpcError(JsonRpcError.METHOD_NOT_FOUND, f"method not supported: {method}")

    out = run([{"jsonrpc": "2.0", "id": 3, "method": "nope"}], handler)
    assert out[0]["id"] == 3
    assert out[0]["error"]["code"] == JsonRpcError.METHOD_NOT_FOUND
    assert out[0]["error"]["message"] == "method not supported: nope"
    assert "result" not in out[0]


def test_other_exception_becomes_error_message():
    def handler(method, params):
        raise RuntimeError("document not found: file:///a.sql")

    out = run([{"jsonrpc": "2.0", "id": 4, "method": "hover"}], handler)
    assert out[0]["error"]["message"] == "document not found: file:///a.sql"


def test_notification_error_is_swallowed():
    def handler(method, params):
        raise RuntimeError("boom")

    out = run(
        [
            {"jsonrpc": "2.0", "method": "didOpen"},
            {"jsonrpc": "2.0", "id": 1, "method": "ping"},
        ],
        lambda m, p: handler(m, p) if m == "didOpen" else "pong",
    )
    assert out == [{"jsonrpc": "2.0", "id": 1, "result": "pong"}]


def test_client_responses_are_ignored():
    out = run([{"jsonrpc": "2.0", "id": 9, "result": None}], lambda m, p: "x")
    assert out == []


def test_bad_body_reports_parse_error_and_continues():
    good = frame({"jsonrpc": "2.0", "id": 1, "method": "ping"})
    reader = io.BytesIO(b"Content-Length: 3\r\n\r\n{x}" + good)
    writer = io.BytesIO()
    Connection(reader, writer, lambda m, p: "pong").serve()
    out = read_all(writer.getvalue())
    assert out[0]["error"]["code"] == JsonRpcError.PARSE_ERROR
    assert out[0]["id"] is None
    assert out[1]["result"] == "pong"


def test_notify_writes_notification():
    writer = io.BytesIO()
    conn = Connection(io.BytesIO(b""), writer, lambda m, p: None)
    conn.notify("window/showMessage", {"type": 3, "message": "hello"})
    assert read_all(writer.getvalue()) == [
        {"jsonrpc": "2.0", "method": "window/showMessage",
         "params": {"type": 3, "message": "hello"}}
    ]


def test_trace_log_sees_requests_and_results():
    lines = []
    run([{"jsonrpc": "2.0", "id": 1, "method": "textDocument/hover"}],
        lambda m, p: None, trace_log=lines.append)
    assert len(lines) == 2
    assert all("textDocument/hover" in line for line in lines)
    assert lines[0].startswith("-->")
    assert lines[1].startswith("<--")