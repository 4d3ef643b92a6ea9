"""Core value types shared by the event pipeline and the chat session."""

from .ranges import Position, TextRange

__all__ = ["Position", "TextRange"]
