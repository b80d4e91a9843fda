"""Code actions, query text extraction and vertical result tables."""

from __future__ import annotations

from sqlsls.protocol import Command

EXECUTE_QUERY = "executeQuery"
SHOW_DATABASES = "showDatabases"
SHOW_SCHEMAS = "showSchemas"
SHOW_CONNECTIONS = "showConnections"
SWITCH_DATABASE = "switchDatabase"
SWITCH_CONNECTIONS = "switchConnections"
SHOW_TABLES = "showTables"

_ROW_BANNER = "***************************[ {}. row ]***************************"


def code_actions(uri: str) -> list[Command]:
    """The commands offered for a document."""
    return [
        Command(title="Execute Query", command=EXECUTE_QUERY, arguments=[uri]),
        Command(title="Show Databases", command=SHOW_DATABASES, arguments=[]),
        Command(title="Show Schemas", command=SHOW_SCHEMAS, arguments=[]),
        Command(title="Show Connections", command=SHOW_CONNECTIONS, arguments=[]),
        Command(title="Switch Database", command=SWITCH_DATABASE, arguments=[]),
        Command(title="Switch Connections", command=SWITCH_CONNECTIONS, arguments=[]),
        Command(title="Show Tables", command=SHOW_TABLES, arguments=[]),
    ]


def _lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def extract_range_text(
    text: str, start_line: int, start_char: int, end_line: int, end_char: int
) -> str:
    """Return the text between two line/character positions.

    Raises ValueError when a position falls outside its line.
    """
    parts: list[str] = []
    for number, line in enumerate(_lines(text)):
        if not start_line <= number <= end_line:
            continue
        start = start_char if number == start_line else 0
        end = end_char if number == end_line else len(line)
        if not 0 <= start <= end <= len(line):
            raise ValueError(
                f"range [{start}:{end}] is outside line {number} of length {len(line)}"
            )
        parts.append(line[start:end])
        if number != end_line:
            parts.append("\n")
    return "".join(parts)


class VerticalTableWriter:
    """Renders result rows one column per line, headers right-aligned."""

    def __init__(self) -> None:
        self.headers: list[str] = []
        self.rows: list[list[str]] = []
        self.header_max_len = 0

    def set_headers(self, headers: list[str]) -> None:
        self.headers = list(headers)
        self.header_max_len = max(
            [self.header_max_len, *(len(header) for header in self.headers)]
        )

    def append_row(self, row: list[str]) -> None:
        self.rows.append(list(row))

    def render(self) -> str:
        out: list[str] = []
        for row_number, row in enumerate(self.rows, start=1):
            if len(row) > len(self.headers):
                raise ValueError(
                    f"row {row_number} has {len(row)} columns but only "
                    f"{len(self.headers)} headers"
                )
            out.append(_ROW_BANNER.format(row_number) + "\n")
            for header, column in zip(self.headers, row):
                out.append(f"{header:>{self.header_max_len}} | {column}\n")
        return "".join(out)