"""The language server: open documents, configuration, connections and commands."""

from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, Union

from sqlsls import commands
from sqlsls.commands import VerticalTableWriter, code_actions, extract_range_text
from sqlsls.jsonrpc import JsonRpcError
from sqlsls.messenger import Messenger
from sqlsls.protocol import (
    CompletionOptions,
    FormattingOptions,
    InitializeResult,
    ServerCapabilities,
    SignatureHelpOptions,
    TextDocumentSyncKind,
    TextEdit,
    formatting_options_from_dict,
    range_from_dict,
)

_log = logging.getLogger(__name__)

PROTO_TCP = "tcp"
PROTO_UDP = "udp"
PROTO_UNIX = "unix"

# Pieces of SQL text that a statement split must not look inside.
_LEXEME_ALTERNATIVES = (
    r"'(?:[^']|'')*'",
    r'"(?:[^"]|"")*"',
    r"`[^`]*`",
    r"--[^\n]*",
    r"/\*.*?\*/",
    r";",
    r"""[^'"`;/-]+""",
    r".",
)
_STATEMENT_LEXEME = re.compile("|".join(_LEXEME_ALTERNATIVES), re.S)


@dataclass
class TextFile:
    """An open document."""

    language_id: str
    text: str = ""


class DocumentNotFoundError(LookupError):
    """Raised when a request names a document that is not open."""

    def __init__(self, uri: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"document not found: {uri}")
        self.uri = uri


class NoConnectionError(RuntimeError):
    """Raised when no database connection is configured."""

    def __init__(self) -> None:
        super().__init__("no database connection")


@dataclass
class _ResultSet:
    columns: list[str]
    rows: list[list[str]]


class _Database(Protocol):
    def close(self) -> None: ...

    def run(self, sql: str) -> Union[_ResultSet, int]: ...

    def databases(self) -> list[str]: ...

    def schemas(self) -> list[str]: ...

    def schema_tables(self) -> dict[str, list[str]]: ...

    def current_schema(self) -> str: ...


def _to_text(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class _SqliteDatabase:
    """A connection to an SQLite database file."""

    def __init__(self, path: str) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)

    def close(self) -> None:
        self._conn.close()

    def run(self, sql: str) -> Union[_ResultSet, int]:
        cursor = self._conn.execute(sql)
        if cursor.description is not None:
            columns = [column[0] for column in cursor.description]
            rows = [[_to_text(value) for value in row] for row in cursor.fetchall()]
            return _ResultSet(columns, rows)
        self._conn.commit()
        return max(cursor.rowcount, 0)

    def databases(self) -> list[str]:
        return [row[1] for row in self._conn.execute("PRAGMA database_list")]

    def schemas(self) -> list[str]:
        return self.databases()

    def schema_tables(self) -> dict[str, list[str]]:
        rows = self._conn.execute(
            "SELECT name FROM sqlite_master WHERE type IN ('table', 'view') ORDER BY name"
        )
        return {"": [row[0] for row in rows]}

    def current_schema(self) -> str:
        return ""


def _open_sqlite(cfg: Mapping[str, Any]) -> _Database:
    path = cfg.get("dataSourceName") or cfg.get("path") or cfg.get("dbName")
    if not path:
        raise ValueError("sqlite3: dataSourceName or path is required")
    return _SqliteDatabase(str(path))


_DRIVERS: dict[str, Callable[[Mapping[str, Any]], _Database]] = {
    "sqlite3": _open_sqlite,
    "sqlite": _open_sqlite,
}


def _open_database(cfg: Mapping[str, Any]) -> _Database:
    driver = cfg.get("driver", "")
    opener = _DRIVERS.get(driver)
    if opener is None:
        raise ValueError(f"unsupported database driver: {driver}")
    return opener(cfg)


def _split_statements(text: str) -> list[str]:
    statements: list[str] = []
    current = ""
    for match in _STATEMENT_LEXEME.finditer(text):
        piece = match.group()
        current += piece
        if piece == ";":
            statements.append(current)
            current = ""
    statements.append(current)
    return [stmt.strip() for stmt in statements if stmt.strip()]


def _looks_numeric(cell: str) -> bool:
    try:
        float(cell)
    except ValueError:
        return False
    return True


def _render_grid(columns: list[str], rows: list[list[str]]) -> str:
    if not columns:
        return ""
    widths = [max(map(len, cells)) for cells in zip(columns, *rows)]
    rule = "+" + "+".join("-" * (width + 2) for width in widths) + "+"

    def line(cells: Iterable[str]) -> str:
        return "| " + " | ".join(cells) + " |"

    header = line(name.upper().center(width) for name, width in zip(columns, widths))
    body = [
        line(
            cell.rjust(width) if _looks_numeric(cell) else cell.ljust(width)
            for cell, width in zip(row, widths)
        )
        for row in rows
    ]
    return "\n".join([rule, header, rule, *body, rule]) + "\n"


def _format_result_set(result: _ResultSet, vertical: bool) -> str:
    if vertical:
        writer = VerticalTableWriter()
        writer.set_headers(result.columns)
        for row in result.rows:
            writer.append_row(row)
        body = writer.render()
    else:
        body = _render_grid(result.columns, result.rows)
    return f"{body}{len(result.rows)} rows in set\n\n"


def _require(params: Any, method: str) -> Mapping[str, Any]:
    if params is None:
        raise JsonRpcError(JsonRpcError.INVALID_PARAMS, f"{method}: params are required")
    if not isinstance(params, Mapping):
        raise JsonRpcError(JsonRpcError.INVALID_PARAMS, f"{method}: params must be an object")
    return params


def _uri(params: Mapping[str, Any]) -> str:
    document = params.get("textDocument")
    if not isinstance(document, Mapping) or not isinstance(document.get("uri"), str):
        raise JsonRpcError(JsonRpcError.INVALID_PARAMS, "textDocument.uri is required")
    return document["uri"]


def _connections(cfg: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    conns = cfg.get("connections") or []
    if not isinstance(conns, list) or not all(isinstance(c, Mapping) for c in conns):
        raise ValueError("connections must be a list of objects")
    return conns


def _describe_connection(conn: Mapping[str, Any]) -> str:
    if conn.get("dataSourceName"):
        return str(conn["dataSourceName"])
    proto = conn.get("proto", "")
    host, port = conn.get("host", ""), conn.get("port", 0)
    db_name, path = conn.get("dbName", ""), conn.get("path", "")
    if proto == PROTO_TCP:
        return f"tcp({host}:{port})/{db_name}"
    if proto == PROTO_UDP:
        return f"udp({host}:{port})/{db_name}"
    if proto == PROTO_UNIX:
        return f"unix({path})/{db_name}"
    return ""


class Server:
    """Answers language server requests for SQL documents."""

    def __init__(self, notify: Callable[[str, Any], Any]) -> None:
        self.specific_file_cfg: Optional[dict[str, Any]] = None
        self.default_file_cfg: Optional[dict[str, Any]] = None
        self.ws_cfg: Optional[dict[str, Any]] = None
        self.init_option_db_config: Optional[dict[str, Any]] = None
        self.files: dict[str, TextFile] = {}
        self.db: Optional[_Database] = None
        self.cur_db_cfg: Optional[dict[str, Any]] = None
        self.cur_db_name = ""
        self.cur_connection_index = 0
        self.connector: Callable[[Mapping[str, Any]], _Database] = _open_database
        self.formatter: Optional[
            Callable[[str, FormattingOptions, Mapping[str, Any]], Iterable[TextEdit]]
        ] = None
        self._messenger = Messenger(notify)
        self._handlers: dict[str, Callable[[Any], Any]] = {
            "initialize": self._initialize,
            "initialized": lambda params: None,
            "shutdown": self._shutdown,
            "exit": self._exit,
            "textDocument/didOpen": self._did_open,
            "textDocument/didChange": self._did_change,
            "textDocument/didSave": self._did_save,
            "textDocument/didClose": self._did_close,
            "textDocument/codeAction": self._code_action,
            "workspace/executeCommand": self._execute_command,
            "workspace/didChangeConfiguration": self._did_change_configuration,
            "textDocument/formatting": self._formatting,
            "textDocument/rangeFormatting": self._range_formatting,
        }
        self._commands: dict[str, Callable[[list, Mapping[str, Any]], Any]] = {
            commands.EXECUTE_QUERY: self._execute_query,
            commands.SHOW_DATABASES: self._show_databases,
            commands.SHOW_SCHEMAS: self._show_schemas,
            commands.SHOW_CONNECTIONS: self._show_connections,
            commands.SWITCH_DATABASE: self._switch_database,
            commands.SWITCH_CONNECTIONS: self._switch_connections,
            commands.SHOW_TABLES: self._show_tables,
        }

    def handle(self, method: str, params: Any = None) -> Any:
        """Run the handler for a request or notification and return its result."""
        handler = self._handlers.get(method)
        if handler is None:
            raise JsonRpcError(JsonRpcError.METHOD_NOT_FOUND, f"method not supported: {method}")
        try:
            return handler(params)
        except Exception as exc:
            _log.info("error serving, %s", exc)
            raise

    def stop(self) -> None:
        """Close the database connection."""
        self._close_db()

    # configuration and connections

    def _config(self) -> dict[str, Any]:
        for cfg in (self.specific_file_cfg, self.ws_cfg, self.default_file_cfg):
            if cfg is not None:
                return cfg
        return {"connections": []}

    def _top_connection(self) -> Optional[Mapping[str, Any]]:
        if self.init_option_db_config is not None:
            return self.init_option_db_config
        conns = _connections(self._config())
        return conns[0] if conns else None

    def _get_connection(self, index: int) -> Optional[Mapping[str, Any]]:
        conns = _connections(self._config())
        return conns[index] if 0 <= index < len(conns) else None

    def _close_db(self) -> None:
        if self.db is not None:
            db, self.db = self.db, None
            db.close()

    def _reconnect(self) -> None:
        self._close_db()
        cfg = self._top_connection()
        if cfg is None:
            raise NoConnectionError()
        if self.cur_connection_index != 0:
            cfg = self._get_connection(self.cur_connection_index)
        if cfg is None:
            raise LookupError(
                f"not found database connection config, index {self.cur_connection_index + 1}"
            )
        cfg = dict(cfg)
        if self.cur_db_name:
            cfg["dbName"] = self.cur_db_name
        self.cur_db_cfg = cfg
        self.db = self.connector(cfg)

    def _connect_reporting(self) -> None:
        try:
            self._reconnect()
        except NoConnectionError as exc:
            _log.info("send err %s", exc)
            self._messenger.show_error(str(exc))
        except Exception as exc:  # any failure is shown to the user, not fatal
            self._messenger.show_info(str(exc))

    def _require_db(self) -> _Database:
        if self.db is None:
            raise RuntimeError("database connection is not open")
        return self.db

    # lifecycle

    def _initialize(self, params: Any) -> InitializeResult:
        params = _require(params, "initialize")
        options = params.get("initializationOptions") or {}
        if not isinstance(options, Mapping):
            raise JsonRpcError(JsonRpcError.INVALID_PARAMS, "initializationOptions must be an object")
        conn_cfg = options.get("connectionConfig")
        if conn_cfg is not None and not isinstance(conn_cfg, Mapping):
            raise JsonRpcError(JsonRpcError.INVALID_PARAMS, "connectionConfig must be an object")
        self.init_option_db_config = dict(conn_cfg) if conn_cfg is not None else None

        result = InitializeResult(
            capabilities=ServerCapabilities(
                text_document_sync=TextDocumentSyncKind.FULL,
                hover_provider=True,
                code_action_provider=True,
                completion_provider=CompletionOptions(trigger_characters=["(", "."]),
                signature_help_provider=SignatureHelpOptions(
                    trigger_characters=["(", ","],
                    retrigger_characters=["(", ","],
                    work_done_progress=False,
                ),
                definition_provider=True,
                document_formatting_provider=True,
                document_range_formatting_provider=True,
                rename_provider=True,
            )
        )
        self._connect_reporting()
        return result

    def _shutdown(self, params: Any) -> None:
        self._close_db()
        return None

    def _exit(self, params: Any) -> None:
        self.stop()
        return None

    # documents

    def _file(self, uri: str) -> TextFile:
        try:
            return self.files[uri]
        except KeyError:
            raise DocumentNotFoundError(uri) from None

    def _did_open(self, params: Any) -> None:
        params = _require(params, "textDocument/didOpen")
        document = params.get("textDocument")
        uri = _uri(params)
        self.files[uri] = TextFile(language_id=str(document.get("languageId", "")))
        self._file(uri).text = str(document.get("text", ""))
        return None

    def _did_change(self, params: Any) -> None:
        params = _require(params, "textDocument/didChange")
        uri = _uri(params)
        changes = params.get("contentChanges")
        if not isinstance(changes, list) or not changes or not isinstance(changes[0], Mapping):
            raise JsonRpcError(JsonRpcError.INVALID_PARAMS, "contentChanges must not be empty")
        self._file(uri).text = str(changes[0].get("text", ""))
        return None

    def _did_save(self, params: Any) -> None:
        params = _require(params, "textDocument/didSave")
        uri = _uri(params)
        text = params.get("text") or ""
        if text:
            self._file(uri).text = str(text)
        return None

    def _did_close(self, params: Any) -> None:
        params = _require(params, "textDocument/didClose")
        self.files.pop(_uri(params), None)
        return None

    def _did_change_configuration(self, params: Any) -> None:
        params = _require(params, "workspace/didChangeConfiguration")
        settings = params.get("settings") or {}
        if not isinstance(settings, Mapping):
            raise JsonRpcError(JsonRpcError.INVALID_PARAMS, "settings must be an object")
        sqls = settings.get("sqls")
        if sqls is not None and not isinstance(sqls, Mapping):
            raise JsonRpcError(JsonRpcError.INVALID_PARAMS, "settings.sqls must be an object")
        self.ws_cfg = dict(sqls) if sqls is not None else None
        if self.db is not None:
            return None
        self._connect_reporting()
        return None

    # formatting

    def _formatting(self, params: Any) -> Optional[list[TextEdit]]:
        params = _require(params, "textDocument/formatting")
        document = self._file(_uri(params))
        if self.formatter is None:
            raise RuntimeError("document formatting is not available")
        options = formatting_options_from_dict(params.get("options") or {})
        edits = list(self.formatter(document.text, options, self._config()))
        return edits or None

    def _range_formatting(self, params: Any) -> None:
        params = _require(params, "textDocument/rangeFormatting")
        self._file(_uri(params))
        return None

    # commands

    def _code_action(self, params: Any) -> list:
        params = _require(params, "textDocument/codeAction")
        return code_actions(_uri(params))

    def _execute_command(self, params: Any) -> Any:
        params = _require(params, "workspace/executeCommand")
        arguments = params.get("arguments") or []
        if not isinstance(arguments, list):
            raise JsonRpcError(JsonRpcError.INVALID_PARAMS, "arguments must be a list")
        command = params.get("command")
        runner = self._commands.get(command) if isinstance(command, str) else None
        if runner is None:
            raise ValueError(f"unsupported command: {command}")
        return runner(arguments, params)

    def _execute_query(self, arguments: list, params: Mapping[str, Any]) -> str:
        db = self._require_db()
        if not arguments:
            raise ValueError("required arguments were not provided: <File URI>")
        uri = arguments[0]
        if not isinstance(uri, str):
            raise TypeError("specify the file uri as a string")
        document = self.files.get(uri)
        if document is None:
            raise DocumentNotFoundError(uri, f'document not found, "{uri}"')
        vertical = len(arguments) > 1 and arguments[1] == "-show-vertical"

        text = document.text
        if params.get("range") is not None:
            rng = range_from_dict(params["range"])
            text = extract_range_text(
                text, rng.start.line, rng.start.character, rng.end.line, rng.end.character
            )

        out: list[str] = []
        for statement in _split_statements(text):
            result = db.run(statement)
            if isinstance(result, _ResultSet):
                out.append(_format_result_set(result, vertical) + "\n")
            else:
                out.append(f"Query OK, {result} row affected\n\n\n")
        return "".join(out)

    def _show_databases(self, arguments: list, params: Mapping[str, Any]) -> str:
        return "\n".join(self._require_db().databases())

    def _show_schemas(self, arguments: list, params: Mapping[str, Any]) -> str:
        return "\n".join(self._require_db().schemas())

    def _show_connections(self, arguments: list, params: Mapping[str, Any]) -> str:
        return "\n".join(
            f"{number} {conn.get('driver', '')} {conn.get('alias', '')} {_describe_connection(conn)}"
            for number, conn in enumerate(_connections(self._config()), start=1)
        )

    def _switch_database(self, arguments: list, params: Mapping[str, Any]) -> None:
        if len(arguments) != 1:
            raise ValueError("required arguments were not provided: <DB Name>")
        name = arguments[0]
        if not isinstance(name, str):
            raise TypeError("specify the db name as a string")
        self.cur_db_name = name
        self._reconnect()
        return None

    def _switch_connections(self, arguments: list, params: Mapping[str, Any]) -> None:
        if len(arguments) != 1:
            raise ValueError("required arguments were not provided: <Connection Index>")
        value = arguments[0]
        if not isinstance(value, str):
            raise TypeError("specify the connection index as a number")
        conns = _connections(self._config())
        index = next(
            (number for number, conn in enumerate(conns, start=1) if conn.get("alias") == value),
            0,
        )
        if index <= 0:
            try:
                index = int(value)
            except ValueError:
                index = 0
        if index <= 0:
            raise ValueError("specify the connection index as a number")
        self.cur_connection_index = index - 1
        self._reconnect()
        return None

    def _show_tables(self, arguments: list, params: Mapping[str, Any]) -> str:
        db = self._require_db()
        tables = db.schema_tables()
        schema = db.current_schema()
        results: list[str] = []
        for schema_name, names in tables.items():
            if schema_name and schema_name != schema:
                continue
            results.extend(f"{schema_name}.{name}" if schema_name else name for name in names)
        return "\n".join(results)