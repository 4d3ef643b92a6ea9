"""Typed interaction records and their line-delimited JSON encoding.

Every record is a frozen dataclass tagged by :class:`EventKind`. Records are
built at occurrence time, encoded once by the log sink and dropped; nothing
holds on to them afterwards.

The wire format is one JSON object per line terminated by ``\\r\\n``. Keys use
the camelCase names readers of the interaction log expect, for example::

    {"logType": "windowState", "eventName": "onDidChangeWindowState",
     "timestamp": 1700000000000, "content": "focused",
     "payload": {"focused": true}}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, Mapping, Union, cast

from ..core.ranges import TextRange

LINE_TERMINATOR = "\r\n"

ChangeReasonLabel = Literal["undo", "redo", "unknown"]
SelectionKindLabel = Literal["mouse", "keyboard", "command"]


class EventKind(str, Enum):
    """Closed set of record kinds written to the interaction log."""

    TEXT_CHANGES = "textChanges"
    FILE_OPERATION = "fileOperation"
    WINDOW_STATE = "windowState"
    TEXT_SELECTIONS = "textSelections"
    WEB_SEARCH = "webSearch"
    TERMINAL_STATE = "terminalState"
    DOCUMENT_STATE = "documentState"
    ADD_RESPONSE = "addResponse"
    ADD_REQUEST = "addRequest"


class RecordDecodeError(ValueError):
    """Raised when a log line cannot be parsed back into a record."""


@dataclass(slots=True, frozen=True)
class DocumentMeta:
    """Document metadata captured alongside document and text-change events."""

    version: int
    line_count: int
    language_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "lineCount": self.line_count, "languageId": self.language_id}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> DocumentMeta:
        return cls(
            version=int(payload["version"]),
            line_count=int(payload["lineCount"]),
            language_id=str(payload["languageId"]),
        )


@dataclass(slots=True, frozen=True)
class WindowFocus:
    """Window focus state carried by ``windowState`` events."""

    focused: bool

    def to_dict(self) -> dict[str, Any]:
        return {"focused": self.focused}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> WindowFocus:
        return cls(focused=bool(payload["focused"]))


@dataclass(slots=True, frozen=True)
class ChatExchange:
    """Links ``addRequest``/``addResponse`` events to a chat message."""

    message_id: str
    has_code: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"messageId": self.message_id, "hasCode": self.has_code}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> ChatExchange:
        return cls(message_id=str(payload["messageId"]), has_code=bool(payload.get("hasCode", False)))


EventPayload = Union[DocumentMeta, WindowFocus, ChatExchange]

# Each user-event kind carries exactly one payload shape (or none at all).
_PAYLOAD_TYPES: Mapping[EventKind, type] = {
    EventKind.DOCUMENT_STATE: DocumentMeta,
    EventKind.WINDOW_STATE: WindowFocus,
    EventKind.ADD_REQUEST: ChatExchange,
    EventKind.ADD_RESPONSE: ChatExchange,
}
_USER_EVENT_KINDS = frozenset(
    {
        EventKind.FILE_OPERATION,
        EventKind.WINDOW_STATE,
        EventKind.WEB_SEARCH,
        EventKind.DOCUMENT_STATE,
        EventKind.ADD_REQUEST,
        EventKind.ADD_RESPONSE,
    }
)


@dataclass(slots=True, frozen=True)
class ContentChange:
    """A single replaced span inside a text change record."""

    range: TextRange
    range_offset: int
    range_length: int
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "range": self.range.to_dict(),
            "rangeOffset": self.range_offset,
            "rangeLength": self.range_length,
            "text": self.text,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> ContentChange:
        return cls(
            range=TextRange.from_value(payload["range"]),
            range_offset=int(payload["rangeOffset"]),
            range_length=int(payload["rangeLength"]),
            text=str(payload["text"]),
        )


@dataclass(slots=True, frozen=True)
class EventRecord:
    """Common header shared by every interaction record."""

    kind: EventKind
    event_name: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {"logType": self.kind.value, "eventName": self.event_name, "timestamp": self.timestamp}


def _require_kind(record: EventRecord, expected: EventKind) -> None:
    if record.kind is not expected:
        raise ValueError(f"{type(record).__name__} records must use kind {expected.value}, got {record.kind.value}")


@dataclass(slots=True, frozen=True)
class UserEvent(EventRecord):
    """Generic action, file, document, window, search or chat occurrence."""

    content: str | None = None
    payload: EventPayload | None = None

    def __post_init__(self) -> None:
        if self.kind not in _USER_EVENT_KINDS:
            raise ValueError(f"{self.kind.value} is not a user event kind")
        expected = _PAYLOAD_TYPES.get(self.kind)
        if self.payload is not None and (expected is None or not isinstance(self.payload, expected)):
            raise TypeError(f"{self.kind.value} events cannot carry {type(self.payload).__name__}")

    def to_dict(self) -> dict[str, Any]:
        data = EventRecord.to_dict(self)
        if self.content is not None:
            data["content"] = self.content
        if self.payload is not None:
            data["payload"] = self.payload.to_dict()
        return data


@dataclass(slots=True, frozen=True)
class TextChangeEvent(EventRecord):
    """Document edit with every content-change span passed through verbatim."""

    filename: str = ""
    change_reason: ChangeReasonLabel = "unknown"
    content_changes: tuple[ContentChange, ...] = ()
    document: DocumentMeta | None = None

    def __post_init__(self) -> None:
        _require_kind(self, EventKind.TEXT_CHANGES)

    def to_dict(self) -> dict[str, Any]:
        data = EventRecord.to_dict(self)
        data["filename"] = self.filename
        data["changeReason"] = self.change_reason
        data["contentChanges"] = [change.to_dict() for change in self.content_changes]
        if self.document is not None:
            data["document"] = self.document.to_dict()
        return data


@dataclass(slots=True, frozen=True)
class TextSelectionEvent(EventRecord):
    """Non-blank selection together with the text under the primary range."""

    filename: str = ""
    selection_kind: SelectionKindLabel = "command"
    selections: tuple[TextRange, ...] = ()
    selected_text: str = ""

    def __post_init__(self) -> None:
        _require_kind(self, EventKind.TEXT_SELECTIONS)

    def to_dict(self) -> dict[str, Any]:
        data = EventRecord.to_dict(self)
        data["filename"] = self.filename
        data["selectionKind"] = self.selection_kind
        data["selections"] = [selection.to_dict() for selection in self.selections]
        data["selectedText"] = self.selected_text
        return data


@dataclass(slots=True, frozen=True)
class TerminalEvent(EventRecord):
    """Integrated terminal lifecycle or focus change."""

    terminal_name: str = ""
    is_interacted_with: bool = False
    process_id: int | None = None

    def __post_init__(self) -> None:
        _require_kind(self, EventKind.TERMINAL_STATE)

    def to_dict(self) -> dict[str, Any]:
        data = EventRecord.to_dict(self)
        data["terminalName"] = self.terminal_name
        data["isInteractedWith"] = self.is_interacted_with
        if self.process_id is not None:
            data["processId"] = self.process_id
        return data


def encode_record(record: EventRecord) -> str:
    """Serialize ``record`` into one CRLF-terminated, ASCII-only JSON line."""

    return json.dumps(record.to_dict(), ensure_ascii=True, separators=(",", ":")) + LINE_TERMINATOR


def decode_record(line: str) -> EventRecord:
    """Parse a single log line produced by :func:`encode_record`."""

    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise RecordDecodeError(f"Log line is not valid JSON: {exc}") from exc
    if not isinstance(data, Mapping):
        raise RecordDecodeError("Log line must contain a JSON object")
    try:
        return _record_from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise RecordDecodeError(f"Malformed {data.get('logType')!r} record: {exc}") from exc


def _record_from_dict(data: Mapping[str, Any]) -> EventRecord:
    kind = EventKind(data["logType"])
    event_name = str(data["eventName"])
    timestamp = int(data["timestamp"])
    if kind is EventKind.TEXT_CHANGES:
        document = data.get("document")
        return TextChangeEvent(
            kind=kind,
            event_name=event_name,
            timestamp=timestamp,
            filename=str(data["filename"]),
            change_reason=cast(ChangeReasonLabel, data.get("changeReason", "unknown")),
            content_changes=tuple(ContentChange.from_dict(item) for item in data.get("contentChanges", ())),
            document=DocumentMeta.from_dict(document) if document is not None else None,
        )
    if kind is EventKind.TEXT_SELECTIONS:
        return TextSelectionEvent(
            kind=kind,
            event_name=event_name,
            timestamp=timestamp,
            filename=str(data["filename"]),
            selection_kind=cast(SelectionKindLabel, data.get("selectionKind", "command")),
            selections=tuple(TextRange.from_value(item) for item in data.get("selections", ())),
            selected_text=str(data.get("selectedText", "")),
        )
    if kind is EventKind.TERMINAL_STATE:
        process_id = data.get("processId")
        return TerminalEvent(
            kind=kind,
            event_name=event_name,
            timestamp=timestamp,
            terminal_name=str(data["terminalName"]),
            is_interacted_with=bool(data.get("isInteractedWith", False)),
            process_id=int(process_id) if process_id is not None else None,
        )
    payload_type = _PAYLOAD_TYPES.get(kind)
    raw_payload = data.get("payload")
    payload = None
    if raw_payload is not None:
        if payload_type is None:
            raise ValueError(f"{kind.value} events do not carry a payload")
        payload = payload_type.from_dict(raw_payload)
    content = data.get("content")
    return UserEvent(
        kind=kind,
        event_name=event_name,
        timestamp=timestamp,
        content=str(content) if content is not None else None,
        payload=payload,
    )


__all__ = [
    "ChatExchange",
    "ContentChange",
    "DocumentMeta",
    "EventKind",
    "EventPayload",
    "EventRecord",
    "LINE_TERMINATOR",
    "RecordDecodeError",
    "TerminalEvent",
    "TextChangeEvent",
    "TextSelectionEvent",
    "UserEvent",
    "WindowFocus",
    "decode_record",
    "encode_record",
]
