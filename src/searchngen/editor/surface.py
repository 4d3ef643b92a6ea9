"""Occurrence types and protocols exposed by the host editor surface.

The host editor owns the real document, window and terminal objects. The core
only sees the minimal read-only views declared here, delivered through plain
callbacks on :class:`~searchngen.events.dispatcher.EventDispatcher`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Protocol, Sequence

from ..core.ranges import TextRange


class ChangeReason(IntEnum):
    """Raw reason signal attached to a document text change."""

    UNDO = 1
    REDO = 2


class SelectionChangeKind(IntEnum):
    """Raw source signal attached to a selection change."""

    KEYBOARD = 1
    MOUSE = 2
    COMMAND = 3


class TextDocument(Protocol):
    """Read-only view of an open editor document."""

    @property
    def file_name(self) -> str:
        ...

    @property
    def version(self) -> int:
        ...

    @property
    def line_count(self) -> int:
        ...

    @property
    def language_id(self) -> str:
        ...

    def get_text(self, text_range: TextRange | None = None) -> str:
        ...


class Terminal(Protocol):
    """Read-only view of an integrated terminal."""

    @property
    def name(self) -> str:
        ...

    @property
    def process_id(self) -> int | None:
        ...

    @property
    def is_interacted_with(self) -> bool:
        ...


@dataclass(slots=True, frozen=True)
class ContentChangeSpan:
    """One replaced span inside a text change occurrence."""

    range: TextRange
    range_offset: int
    range_length: int
    text: str


@dataclass(slots=True)
class TextDocumentChange:
    """Raw text change occurrence as emitted by the editor."""

    document: TextDocument
    content_changes: Sequence[ContentChangeSpan]
    reason: ChangeReason | None = None


@dataclass(slots=True)
class SelectionChange:
    """Raw selection change occurrence as emitted by the editor."""

    document: TextDocument
    selections: Sequence[TextRange] = field(default_factory=tuple)
    kind: SelectionChangeKind | None = None


@dataclass(slots=True, frozen=True)
class CodeContext:
    """Code selected in the active editor, handed to the chat session."""

    code: str
    language_id: str


class EditorSurface(Protocol):
    """Operations the chat session needs from the active text editor."""

    def code_context(self) -> CodeContext | None:
        """Return the non-empty primary selection of the active editor, if any."""

    def collapse_selection(self) -> None:
        """Shrink the active selection to a caret at its end."""


__all__ = [
    "ChangeReason",
    "CodeContext",
    "ContentChangeSpan",
    "EditorSurface",
    "SelectionChange",
    "SelectionChangeKind",
    "Terminal",
    "TextDocument",
    "TextDocumentChange",
]
