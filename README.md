# sqlsls

A Language Server Protocol server for SQL documents. It reads JSON-RPC 2.0
messages framed with `Content-Length` headers on standard input and writes
replies on standard output, so an editor can start it as a subprocess. It
keeps the open documents, reads connection settings, and runs the queries of
a document against an SQLite database.

## Install

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running the server

Configure your editor to start:

```
sqlsls
```

Options:

- `-l`, `--log FILE`: also append log lines to `FILE` (they always go to
  stderr).
- `-c`, `--config FILE`: read this JSON configuration file instead of the
  per-user one. A configuration read this way takes precedence over settings
  sent by the workspace.
- `-t`, `--trace`: log every request, notification and response.
- `-v`, `--version`: print the version.
- `-h`, `--help`: print help.

The command exits with status 1 and prints the error when the configuration
file given with `--config` cannot be read.

### Configuration

The per-user configuration file is `$XDG_CONFIG_HOME/sqls/config.json`
(or `~/.config/sqls/config.json`). It is read when it exists and no
`--config` file is given. It is a JSON object with a list of connections:

```json
{
  "connections": [
    {"driver": "sqlite3", "dataSourceName": "/tmp/world.sqlite3", "alias": "local"}
  ]
}
```

The same object can be sent by the editor as the `sqls` entry of
`workspace/didChangeConfiguration` settings, or a single connection can be
given as `initializationOptions.connectionConfig` in `initialize`; that one
is used before all others. Configurations are chosen in the order: `--config`
file, workspace settings, per-user file.

To open the per-user configuration file in `$EDITOR` (falling back to `vim`),
run through the shell:

```
sqlsls config
```

## What the server answers

- `initialize`, `initialized`, `shutdown`, `exit`. On `initialize` and on a
  configuration change (while no database is open) the server connects to
  the first configured database; a failure is reported to the editor with
  `window/showMessage`.
- `textDocument/didOpen`, `didChange`, `didSave`, `didClose`: full-text
  synchronisation.
- `textDocument/codeAction`: offers the commands below.
- `workspace/executeCommand`:
  - `executeQuery <file uri> [-show-vertical]`: splits the document (or the
    `range` given with the command) into statements and runs each one.
    Results are rendered as a text grid, or one column per line with
    `-show-vertical`, followed by `N rows in set`; other statements report
    `Query OK, N row affected`.
  - `showDatabases`, `showSchemas`, `showTables`
  - `showConnections`: one line per configured connection.
  - `switchDatabase <name>`, `switchConnections <alias or 1-based index>`:
    reconnect.
- `workspace/didChangeConfiguration`
- `textDocument/formatting`, `textDocument/rangeFormatting` (see below).

Unknown methods get a JSON-RPC "method not found" error.

## What it does not do

- Only SQLite databases can be opened (driver `sqlite3` or `sqlite`, file
  taken from `dataSourceName`, `path` or `dbName`). Other drivers are
  rejected with "unsupported database driver".
- There is no completion, hover, signature help, go-to-definition or rename.
  The `initialize` reply advertises these capabilities, but the requests are
  answered with "method not found".
- No SQL formatter is bundled. `textDocument/formatting` fails with
  "document formatting is not available" unless a formatter callable is
  assigned to `Server.formatter`; `textDocument/rangeFormatting` always
  returns no edits.

## Using it from Python

```python
from sqlsls.server import Server

server = Server(notify=lambda method, params: None)
server.handle("textDocument/didOpen", {
    "textDocument": {"uri": "file:///tmp/q.sql", "languageId": "sql",
                     "version": 0, "text": "SELECT 1;"},
})
print(server.files["file:///tmp/q.sql"].text)
server.stop()
```

- `sqlsls.server`: `Server` (`handle(method, params)`, `stop()`, the
  `files` mapping of `TextFile` objects), `DocumentNotFoundError`.
- `sqlsls.jsonrpc`: `read_message`, `write_message`, `Connection` (serves a
  handler over a pair of binary streams, sends notifications with
  `notify`) and `JsonRpcError`.
- `sqlsls.messenger`: `Messenger`, sending `window/showMessage`
  notifications through a callable.
- `sqlsls.commands`: `code_actions(uri)`, `extract_range_text(...)` which
  cuts a line/character range out of a text, and `VerticalTableWriter`
  which renders rows one column per line.
- `sqlsls.protocol`: protocol dataclasses and enums, `to_wire` for their
  JSON form, and `position_from_dict`, `range_from_dict`,
  `formatting_options_from_dict`.
- `sqlsls.cli`: `main(argv=None)`, the command above, and `open_editor`.