"""Language Server Protocol data types and their JSON wire form."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Mapping, Optional

_OMITEMPTY = "omitempty"


def _optional(default: Any = None, factory: Any = None) -> Any:
    """A field left out of the wire form when it holds an empty value."""
    metadata = {_OMITEMPTY: True}
    if factory is not None:
        return field(default_factory=factory, metadata=metadata)
    return field(default=default, metadata=metadata)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (bool, int, float, str, list, tuple, dict)):
        return not value
    return False


def to_wire(obj: Any) -> Any:
    """Convert protocol objects into plain JSON-ready values."""
    custom = getattr(obj, "_wire", None)
    if custom is not None and dataclasses.is_dataclass(obj):
        return custom()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        result: dict[str, Any] = {}
        for fld in dataclasses.fields(obj):
            value = getattr(obj, fld.name)
            if fld.metadata.get(_OMITEMPTY) and _is_empty(value):
                continue
            result[_camel(fld.name)] = to_wire(value)
        return result
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Mapping):
        return {str(key): to_wire(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_wire(item) for item in obj]
    return obj


class TextDocumentSyncKind(IntEnum):
    NONE = 0
    FULL = 1
    INCREMENTAL = 2


class CompletionItemKind(IntEnum):
    TEXT = 1
    METHOD = 2
    FUNCTION = 3
    CONSTRUCTOR = 4
    FIELD = 5
    VARIABLE = 6
    CLASS = 7
    INTERFACE = 8
    MODULE = 9
    PROPERTY = 10
    UNIT = 11
    VALUE = 12
    ENUM = 13
    KEYWORD = 14
    SNIPPET = 15
    COLOR = 16
    FILE = 17
    REFERENCE = 18
    FOLDER = 19
    ENUM_MEMBER = 20
    CONSTANT = 21
    STRUCT = 22
    EVENT = 23
    OPERATOR = 24
    TYPE_PARAMETER = 25


class InsertTextFormat(IntEnum):
    PLAIN_TEXT = 1
    SNIPPET = 2


class MarkupKind(str, Enum):
    PLAINTEXT = "plaintext"
    MARKDOWN = "markdown"


class MessageType(IntEnum):
    ERROR = 1
    WARNING = 2
    INFO = 3
    LOG = 4


@dataclass
class Position:
    line: int = 0
    character: int = 0


@dataclass
class Range:
    start: Position = field(default_factory=Position)
    end: Position = field(default_factory=Position)


@dataclass
class Location:
    uri: str
    range: Range = field(default_factory=Range)


@dataclass
class TextDocumentIdentifier:
    uri: str


@dataclass
class TextDocumentItem:
    uri: str
    language_id: str = ""
    version: int = 0
    text: str = ""


@dataclass
class TextEdit:
    range: Range
    new_text: str


@dataclass
class Command:
    title: str
    command: str
    arguments: list = _optional(factory=list)


@dataclass
class MarkupContent:
    kind: MarkupKind
    value: str


@dataclass
class CompletionOptions:
    trigger_characters: list[str] = field(default_factory=list)
    resolve_provider: bool = _optional(False)


@dataclass
class SignatureHelpOptions:
    trigger_characters: list[str] = _optional(factory=list)
    retrigger_characters: list[str] = _optional(factory=list)
    work_done_progress: bool = _optional(False)


@dataclass
class ServerCapabilities:
    text_document_sync: TextDocumentSyncKind = _optional(TextDocumentSyncKind.NONE)
    hover_provider: bool = _optional(False)
    completion_provider: Optional[CompletionOptions] = _optional()
    signature_help_provider: Optional[SignatureHelpOptions] = _optional()
    definition_provider: bool = _optional(False)
    type_definition_provider: bool = _optional(False)
    implementation_provider: bool = _optional(False)
    references_provider: bool = _optional(False)
    document_highlight_provider: bool = _optional(False)
    document_symbol_provider: bool = _optional(False)
    workspace_symbol_provider: bool = _optional(False)
    code_action_provider: Any = _optional()
    code_lens_provider: Optional[dict] = _optional()
    document_formatting_provider: bool = _optional(False)
    document_range_formatting_provider: bool = _optional(False)
    document_on_type_formatting_provider: Optional[dict] = _optional()
    rename_provider: bool = _optional(False)
    document_link_provider: Optional[dict] = _optional()
    color_provider: bool = _optional(False)
    folding_range_provider: bool = _optional(False)
    declaration_provider: bool = _optional(False)
    execute_command_provider: Optional[dict] = _optional()


@dataclass
class InitializeResult:
    capabilities: ServerCapabilities = field(default_factory=ServerCapabilities)


@dataclass
class ShowMessageParams:
    type: MessageType
    message: str


@dataclass
class TextDocumentEdit:
    """Edits for one document; the version is always sent, even when zero."""

    uri: str
    edits: list[TextEdit] = field(default_factory=list)
    version: int = 0

    def _wire(self) -> dict[str, Any]:
        return {
            "textDocument": {"version": self.version, "uri": self.uri},
            "edits": to_wire(self.edits),
        }


@dataclass
class WorkspaceEdit:
    changes: Optional[dict[str, list[TextEdit]]] = _optional()
    document_changes: list[TextDocumentEdit] = _optional(factory=list)
    change_annotations: Optional[dict[str, str]] = _optional()


@dataclass
class ParameterInformation:
    label: str
    documentation: str = _optional("")


@dataclass
class SignatureInformation:
    label: str
    documentation: str = _optional("")
    parameters: list[ParameterInformation] = _optional(factory=list)
    active_parameter: int = _optional(0)


@dataclass
class SignatureHelp:
    signatures: list[SignatureInformation] = field(default_factory=list)
    active_signature: int = 0
    active_parameter: int = 0


@dataclass
class Hover:
    contents: MarkupContent
    range: Range = field(default_factory=Range)


@dataclass
class FormattingOptions:
    tab_size: float = 0.0
    insert_spaces: bool = False
    trim_trailing_whitespace: bool = _optional(False)
    insert_final_newline: bool = _optional(False)
    trim_final_newlines: bool = _optional(False)


def _require_mapping(data: Any, what: str) -> Mapping:
    if not isinstance(data, Mapping):
        raise TypeError(f"{what} must be an object, got {type(data).__name__}")
    return data


def _int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number, got {value!r}")
    return int(value)


def _bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be a boolean, got {value!r}")
    return value


def position_from_dict(data: Any) -> Position:
    """Build a Position from its wire form; missing fields are zero."""
    data = _require_mapping(data, "position")
    return Position(
        line=_int(data.get("line", 0), "line"),
        character=_int(data.get("character", 0), "character"),
    )


def range_from_dict(data: Any) -> Range:
    """Build a Range from its wire form; missing ends are at zero."""
    data = _require_mapping(data, "range")
    return Range(
        start=position_from_dict(data.get("start", {})),
        end=position_from_dict(data.get("end", {})),
    )


def formatting_options_from_dict(data: Any) -> FormattingOptions:
    """Build FormattingOptions from their wire form."""
    data = _require_mapping(data, "formatting options")
    tab_size = data.get("tabSize", 0.0)
    if isinstance(tab_size, bool) or not isinstance(tab_size, (int, float)):
        raise TypeError(f"tabSize must be a number, got {tab_size!r}")
    return FormattingOptions(
        tab_size=float(tab_size),
        insert_spaces=_bool(data.get("insertSpaces", False), "insertSpaces"),
        trim_trailing_whitespace=_bool(
            data.get("trimTrailingWhitespace", False), "trimTrailingWhitespace"
        ),
        insert_final_newline=_bool(
            data.get("insertFinalNewline", False), "insertFinalNewline"
        ),
        trim_final_newlines=_bool(
            data.get("trimFinalNewlines", False), "trimFinalNewlines"
        ),
    )