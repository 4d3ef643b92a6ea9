"""Shared test helpers and stub classes.

Import from here instead of duplicating editor fakes in individual test files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from searchngen.core.ranges import Position, TextRange
from searchngen.editor.surface import CodeContext


@dataclass
class FakeDocument:
    """In-memory document satisfying :class:`searchngen.editor.surface.TextDocument`."""

    file_name: str = "/workspace/main.py"
    text: str = ""
    version: int = 1
    language_id: str = "python"

    @property
    def line_count(self) -> int:
        return self.text.count("\n") + 1

    def get_text(self, text_range: TextRange | None = None) -> str:
        if text_range is None:
            return self.text
        return self.text[self._offset(text_range.start) : self._offset(text_range.end)]

    def _offset(self, position: Position) -> int:
        lines = self.text.split("\n")
        line = min(position.line, len(lines) - 1)
        prefix = sum(len(lines[index]) + 1 for index in range(line))
        return prefix + min(position.character, len(lines[line]))


@dataclass
class FakeTerminal:
    name: str = "bash"
    process_id: int | None = 4242
    is_interacted_with: bool = False


@dataclass
class FakeEditor:
    """Editor surface stub recording selection collapses."""

    context: CodeContext | None = None
    collapses: int = 0

    def code_context(self) -> CodeContext | None:
        return self.context

    def collapse_selection(self) -> None:
        self.collapses += 1


@dataclass
class PanelRecorder:
    """Rendering surface that keeps every payload it receives."""

    payloads: list[dict[str, Any]] = field(default_factory=list)

    def __call__(self, payload: dict[str, Any]) -> None:
        self.payloads.append(payload)

    def types(self) -> list[str]:
        return [payload["type"] for payload in self.payloads]


def span(start_line: int, start_char: int, end_line: int, end_char: int) -> TextRange:
    return TextRange(Position(start_line, start_char), Position(end_line, end_char))
