"""Command line entry point: serve over stdio or edit the configuration."""

from __future__ import annotations

import argparse
import json
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Any, Optional

from sqlsls.jsonrpc import Connection
from sqlsls.server import Server

VERSION = "0.1.0"
REVISION = "unknown"

_log = logging.getLogger("sqlsls")


def _default_config_path() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return Path(base) / "sqls" / "config.json"


def _load_config(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: configuration must be a JSON object")
    return data


def open_editor(program: str, *args: str) -> int:
    """Run the editor on the given files through the shell."""
    command = program + " " + " ".join(args)
    if sys.platform == "win32":
        argv = ["cmd", "/c", command]
    else:
        argv = ["sh", "-c", command]
    return subprocess.run(argv, check=True).returncode


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqls",
        description="An implementation of the Language Server Protocol for SQL.",
    )
    parser.add_argument("-l", "--log", help="Also log to this file. (in addition to stderr)")
    parser.add_argument(
        "-c",
        "--config",
        help="Specifies an alternative per-user configuration file. If a configuration "
        "file is given on the command line, the workspace option "
        "(initializationOptions) will be ignored.",
    )
    parser.add_argument("-t", "--trace", action="store_true", help="Print all requests and responses.")
    parser.add_argument(
        "-v", "--version", action="version",
        version=f"Version:{VERSION}, Revision:{REVISION}", help="Print version.",
    )
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("config", aliases=["c"], help="edit config")
    return parser


def _serve(args: argparse.Namespace) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if args.log:
        handlers.append(logging.FileHandler(args.log, mode="a", encoding="utf-8"))
    formatter = logging.Formatter("%(asctime)s %(message)s")
    for handler in handlers:
        handler.setFormatter(formatter)
        _log.addHandler(handler)
    previous_level = _log.level
    _log.setLevel(logging.INFO)

    connection: Optional[Connection] = None

    def notify(method: str, params: Any) -> None:
        if connection is not None:
            connection.notify(method, params)

    server = Server(notify)
    try:
        if args.config:
            try:
                server.specific_file_cfg = _load_config(Path(args.config))
            except (OSError, ValueError) as exc:
                raise RuntimeError(f"cannot read specified config, {exc}") from exc
        else:
            path = _default_config_path()
            if path.exists():
                try:
                    server.default_file_cfg = _load_config(path)
                except (OSError, ValueError) as exc:
                    raise RuntimeError(f"cannot read default config, {exc}") from exc

        trace_log = _log.info if args.trace else None
        connection = Connection(sys.stdin.buffer, sys.stdout.buffer, server.handle, trace_log)
        _log.info("sqls: reading on stdin, writing on stdout")
        connection.serve()
        _log.info("sqls: connections closed")
    finally:
        try:
            server.stop()
        except Exception as exc:  # closing must not hide the outcome of serving
            _log.info("%s", exc)
        for handler in handlers:
            _log.removeHandler(handler)
            handler.close()
        _log.setLevel(previous_level)


def main(argv: Optional[list[str]] = None) -> int:
    """Run the command line; return the process exit status."""
    args = _build_parser().parse_args(argv)
    try:
        if args.command in ("config", "c"):
            editor = os.environ.get("EDITOR") or "vim"
            open_editor(editor, str(_default_config_path()))
        else:
            _serve(args)
    except Exception as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())