"""Conversation transcript owned by a single chat session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Mapping, cast

from openai.types.chat import ChatCompletionMessageParam

ChatRole = Literal["system", "human", "assistant"]

# ``human`` turns are sent as ``user`` messages to the completion API.
_API_ROLES: Mapping[ChatRole, str] = {"system": "system", "human": "user", "assistant": "assistant"}


@dataclass(slots=True, frozen=True)
class ConversationTurn:
    """Individual turn stored inside :class:`ConversationMemory`."""

    role: ChatRole
    content: str

    def to_chat_param(self) -> ChatCompletionMessageParam:
        return cast(ChatCompletionMessageParam, {"role": _API_ROLES[self.role], "content": self.content})


class ConversationMemory:
    """Ordered transcript: one fixed system turn followed by human/assistant pairs.

    Turns are only ever added as complete exchanges, so the transcript always
    alternates ``human``/``assistant`` after the system turn. A failed request
    adds nothing.
    """

    def __init__(self, system_prompt: str) -> None:
        self._turns: list[ConversationTurn] = [ConversationTurn(role="system", content=system_prompt)]

    @property
    def system_prompt(self) -> str:
        return self._turns[0].content

    def record_exchange(self, human: str, assistant: str) -> None:
        """Append a completed human/assistant exchange."""

        self._turns.append(ConversationTurn(role="human", content=human))
        self._turns.append(ConversationTurn(role="assistant", content=assistant))

    def transcript(self, pending_human: str | None = None) -> list[ChatCompletionMessageParam]:
        """Return chat params for the stored turns plus an optional pending question."""

        messages = [turn.to_chat_param() for turn in self._turns]
        if pending_human is not None:
            messages.append(ConversationTurn(role="human", content=pending_human).to_chat_param())
        return messages

    def __len__(self) -> int:
        return len(self._turns)


__all__ = ["ChatRole", "ConversationMemory", "ConversationTurn"]
