"""Structured helpers for representing editor positions and spans."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Iterator


def _coerce_index(value: Any, label: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Position {label} must be an integer") from exc
    if number < 0:
        return 0
    return number


@dataclass(slots=True, frozen=True, order=True)
class Position:
    """Zero-based line/character location inside a document."""

    line: int
    character: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "line", _coerce_index(self.line, "line"))
        object.__setattr__(self, "character", _coerce_index(self.character, "character"))

    def to_dict(self) -> dict[str, int]:
        return {"line": self.line, "character": self.character}

    @classmethod
    def from_value(cls, value: Any) -> Position:
        """Coerce a mapping, pair or :class:`Position` into a position."""

        if isinstance(value, Position):
            return value
        if isinstance(value, Mapping):
            if "line" not in value or "character" not in value:
                raise ValueError("Position mappings require line and character keys")
            return cls(value["line"], value["character"])
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and len(value) == 2:
            return cls(value[0], value[1])
        raise ValueError(f"Unsupported position value: {value!r}")


@dataclass(slots=True, frozen=True)
class TextRange(Sequence[Position]):
    """Canonical representation of an editor span using line/character positions."""

    start: Position
    end: Position

    def __post_init__(self) -> None:
        start = Position.from_value(self.start)
        end = Position.from_value(self.end)
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    def __len__(self) -> int:
        return 2

    def __getitem__(self, index: int | slice) -> Any:
        if isinstance(index, slice):
            return (self.start, self.end)[index]
        if index == 0:
            return self.start
        if index == 1:
            return self.end
        raise IndexError("TextRange index out of range")

    def __iter__(self) -> Iterator[Position]:
        yield self.start
        yield self.end

    @property
    def is_empty(self) -> bool:
        """Return ``True`` when the range collapses to a caret."""

        return self.start == self.end

    def to_dict(self) -> dict[str, dict[str, int]]:
        """Return the range as a JSON-friendly object."""

        return {"start": self.start.to_dict(), "end": self.end.to_dict()}

    @classmethod
    def from_value(cls, value: Any) -> TextRange:
        """Coerce ``value`` into a :class:`TextRange`."""

        if isinstance(value, TextRange):
            return value
        if value is None:
            raise ValueError("TextRange value is required")
        if isinstance(value, Mapping):
            start = value.get("start")
            end = value.get("end")
            if start is None or end is None:
                raise ValueError("TextRange mappings require start and end keys")
            return cls(Position.from_value(start), Position.from_value(end))
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and len(value) == 2:
            return cls(Position.from_value(value[0]), Position.from_value(value[1]))
        raise ValueError(f"Unsupported range value: {value!r}")


__all__ = ["Position", "TextRange"]
