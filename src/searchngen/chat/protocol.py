"""Message vocabulary exchanged between the chat session and its panel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Protocol, Union

from ..core.ranges import TextRange

CommandType = Literal["askQuestion", "openSettings", "openSearchSettings", "clearConversation", "stopGenerating"]
_COMMAND_TYPES: frozenset[str] = frozenset(
    {"askQuestion", "openSettings", "openSearchSettings", "clearConversation", "stopGenerating"}
)


class ProtocolError(ValueError):
    """Raised when an inbound panel message cannot be understood."""


@dataclass(slots=True, frozen=True)
class ShowInProgress:
    in_progress: bool

    def to_payload(self) -> dict[str, Any]:
        return {"type": "showInProgress", "inProgress": self.in_progress}


@dataclass(slots=True, frozen=True)
class AddQuestion:
    """Echo of the question as typed, plus the code it was asked about."""

    question: str
    code_block: str
    message_id: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": "addQuestion",
            "value": {"question": self.question, "codeBlock": self.code_block},
            "id": self.message_id,
        }


@dataclass(slots=True, frozen=True)
class AddResponse:
    value: str
    message_id: str

    def to_payload(self) -> dict[str, Any]:
        return {"type": "addResponse", "value": self.value, "id": self.message_id}


@dataclass(slots=True, frozen=True)
class AddError:
    value: str

    def to_payload(self) -> dict[str, Any]:
        return {"type": "addError", "value": self.value}


@dataclass(slots=True, frozen=True)
class SetSelection:
    """Mirrors the editor's primary selection into the panel."""

    range: TextRange

    def to_payload(self) -> dict[str, Any]:
        return {"type": "setSelection", "value": self.range.to_dict()}


OutboundMessage = Union[ShowInProgress, AddQuestion, AddResponse, AddError, SetSelection]


class MessageSink(Protocol):
    """Anything that accepts outbound panel messages."""

    def __call__(self, message: OutboundMessage) -> None:
        ...


@dataclass(slots=True, frozen=True)
class InboundCommand:
    """Command sent by the panel."""

    type: CommandType
    value: str | None = None


def parse_command(payload: Mapping[str, Any]) -> InboundCommand:
    """Validate a raw panel message and return the command it carries."""

    if not isinstance(payload, Mapping):
        raise ProtocolError(f"Panel messages must be objects, got {type(payload).__name__}")
    command_type = payload.get("type")
    if command_type not in _COMMAND_TYPES:
        raise ProtocolError(f"Unknown panel command: {command_type!r}")
    value = payload.get("value")
    if command_type == "askQuestion":
        if not isinstance(value, str):
            raise ProtocolError("askQuestion requires a string value")
        return InboundCommand(type="askQuestion", value=value)
    return InboundCommand(type=command_type)


__all__ = [
    "AddError",
    "AddQuestion",
    "AddResponse",
    "CommandType",
    "InboundCommand",
    "MessageSink",
    "OutboundMessage",
    "ProtocolError",
    "SetSelection",
    "ShowInProgress",
    "parse_command",
]
