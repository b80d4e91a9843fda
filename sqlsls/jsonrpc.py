"""JSON-RPC 2.0 over a byte stream framed with Content-Length headers."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, BinaryIO, Callable, Optional

from sqlsls.protocol import to_wire

_log = logging.getLogger(__name__)

_HEADER_LENGTH = b"content-length"


class JsonRpcError(Exception):
    """An error reported to the peer in a JSON-RPC response."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    def __init__(self, code: int, message: str = "", data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = to_wire(self.data)
        return error

    def __str__(self) -> str:
        return f"jsonrpc2: code {self.code} message: {self.message}"


def read_message(stream: BinaryIO) -> Any:
    """Read one framed message; return None when the stream ends cleanly.

    Raises EOFError when the stream ends inside a message, ValueError when
    the header block is malformed and JsonRpcError when the body is not JSON.
    """
    length: Optional[int] = None
    in_header = False
    while True:
        line = stream.readline()
        if not line:
            if in_header:
                raise EOFError("stream closed inside a message header")
            return None
        in_header = True
        line = line.rstrip(b"\r\n")
        if not line:
            break
        name, sep, value = line.partition(b":")
        if not sep:
            raise ValueError(f"invalid header line: {line!r}")
        if name.strip().lower() == _HEADER_LENGTH:
            try:
                length = int(value.strip())
            except ValueError as exc:
                raise ValueError(f"invalid Content-Length: {value!r}") from exc
            if length < 0:
                raise ValueError(f"invalid Content-Length: {length}")
    if length is None:
        raise ValueError("missing Content-Length header")
    body = stream.read(length)
    if len(body) < length:
        raise EOFError("stream closed inside a message body")
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise JsonRpcError(JsonRpcError.PARSE_ERROR, f"invalid message body: {exc}") from exc


def write_message(stream: BinaryIO, payload: Any) -> None:
    """Write one message with its Content-Length header and flush."""
    body = json.dumps(to_wire(payload), separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    stream.write(b"Content-Length: %d\r\n\r\n" % len(body))
    stream.write(body)
    stream.flush()


Handler = Callable[[str, Any], Any]


class Connection:
    """Reads requests, hands them to a handler and writes the responses."""

    def __init__(
        self,
        reader: BinaryIO,
        writer: BinaryIO,
        handler: Handler,
        trace_log: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._handler = handler
        self._trace_log = trace_log
        self._write_lock = threading.Lock()

    def _trace(self, text: str) -> None:
        if self._trace_log is not None:
            self._trace_log(text)

    def _send(self, payload: dict[str, Any]) -> None:
        with self._write_lock:
            write_message(self._writer, payload)

    def notify(self, method: str, params: Any = None) -> None:
        """Send a notification to the peer."""
        message: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = to_wire(params)
        self._trace(f"<-- notif: {method}: {json.dumps(message.get('params'))}")
        self._send(message)

    def _reply(self, request_id: Any, method: str, result: Any = None,
               error: Optional[JsonRpcError] = None) -> None:
        message: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id}
        if error is not None:
            message["error"] = error.to_dict()
            self._trace(f"<-- error #{request_id}: {method}: {error}")
        else:
            message["result"] = to_wire(result)
            self._trace(f"<-- result #{request_id}: {method}: {json.dumps(message['result'])}")
        self._send(message)

    def _dispatch(self, message: Any) -> None:
        if not isinstance(message, dict):
            self._reply(None, "", error=JsonRpcError(JsonRpcError.INVALID_REQUEST, "invalid request"))
            return
        method = message.get("method")
        has_id = "id" in message
        request_id = message.get("id")
        if method is None:
            if not has_id:
                self._reply(None, "", error=JsonRpcError(JsonRpcError.INVALID_REQUEST, "invalid request"))
            # A response to something this side sent; nothing waits for it.
            return
        if not isinstance(method, str):
            if has_id:
                self._reply(request_id, "", error=JsonRpcError(JsonRpcError.INVALID_REQUEST, "method must be a string"))
            return
        params = message.get("params")
        if has_id:
            self._trace(f"--> request #{request_id}: {method}: {json.dumps(params)}")
        else:
            self._trace(f"--> notif: {method}: {json.dumps(params)}")
        try:
            result = self._handler(method, params)
        except JsonRpcError as exc:
            if has_id:
                self._reply(request_id, method, error=exc)
            else:
                _log.info("error handling notification %s: %s", method, exc)
            return
        except Exception as exc:  # the peer must get an answer whatever failed
            if has_id:
                self._reply(request_id, method, error=JsonRpcError(0, str(exc)))
            else:
                _log.info("error handling notification %s: %s", method, exc)
            return
        if has_id:
            self._reply(request_id, method, result=result)

    def serve(self) -> None:
        """Handle messages until the reader is exhausted or the framing breaks."""
        while True:
            try:
                message = read_message(self._reader)
            except JsonRpcError as exc:
                self._reply(None, "", error=exc)
                continue
            except (EOFError, ValueError, OSError) as exc:
                _log.info("jsonrpc2: closing connection: %s", exc)
                return
            if message is None:
                return
            self._dispatch(message)