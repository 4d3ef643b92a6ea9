"""Single-flight chat session driving the remote completion collaborator."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Awaitable, Callable, Sequence

from openai.types.chat import ChatCompletionMessageParam

from ..editor.surface import CodeContext, EditorSurface
from .errors import RemoteError, classify_error
from .memory import ConversationMemory
from .prompts import SYSTEM_PROMPT, compose_prompt
from .protocol import AddError, AddQuestion, AddResponse, MessageSink, OutboundMessage, ShowInProgress

if TYPE_CHECKING:
    from ..events.dispatcher import EventDispatcher

LOGGER = logging.getLogger(__name__)

CompletionFn = Callable[[Sequence[ChatCompletionMessageParam]], Awaitable[str]]


@dataclass(slots=True)
class SessionState:
    """Mutable bookkeeping for the active chat session."""

    in_progress: bool = False
    question_counter: int = 0
    current_message_id: str = ""


class ChatSession:
    """Runs at most one completion request at a time and reports progress to the panel.

    A request moves through ``Idle -> Building -> Awaiting -> Idle``; the
    ``in_progress`` flag is the only guard. :meth:`reset_conversation` and
    :meth:`stop_generating` cannot cancel a call that is already awaiting the
    remote side, so every request remembers the memory instance and request id
    it started with and its result is dropped once either has been superseded.
    """

    def __init__(
        self,
        completion: CompletionFn,
        *,
        emit: MessageSink | None = None,
        editor: EditorSurface | None = None,
        events: "EventDispatcher | None" = None,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self._completion = completion
        self._emit = emit
        self._editor = editor
        self._events = events
        self._state = SessionState()
        self._memory = ConversationMemory(system_prompt)
        self._active_request: str | None = None

    @property
    def state(self) -> SessionState:
        """Return a copy of the current session state."""

        return replace(self._state)

    @property
    def in_progress(self) -> bool:
        return self._state.in_progress

    @property
    def memory(self) -> ConversationMemory:
        return self._memory

    def connect(self, emit: MessageSink | None) -> None:
        """Route outbound panel messages to ``emit``."""

        self._emit = emit

    async def submit_question(self, question: str, code_context: CodeContext | None = None) -> str | None:
        """Ask ``question`` and return the assistant reply when it is applied."""

        if self._state.in_progress:
            LOGGER.debug("Ignoring question while request %s is in flight", self._state.current_message_id)
            return None
        trimmed = question.strip()
        if not trimmed:
            return None

        self._state.in_progress = True
        self._state.question_counter += 1
        message_id = uuid.uuid4().hex
        self._state.current_message_id = message_id
        self._active_request = message_id
        memory = self._memory

        code_block = code_context.code if code_context is not None else ""
        prompt = compose_prompt(trimmed, code_context)
        self._post(ShowInProgress(True))
        self._post(AddQuestion(question=trimmed, code_block=code_block, message_id=message_id))
        LOGGER.debug(
            "Submitting question #%s (%s) with %s prior turn(s)",
            self._state.question_counter,
            message_id,
            len(memory),
        )

        reply: str | None = None
        try:
            if self._events is not None:
                self._events.record_chat_request(prompt, message_id=message_id, has_code=bool(code_block))
            answer = await self._completion(memory.transcript(pending_human=prompt))
        except RemoteError as exc:
            if self._is_current(message_id, memory):
                LOGGER.warning("Chat request %s failed: %r", message_id, exc)
                self._post(AddError(classify_error(exc)))
            else:
                LOGGER.debug("Discarding failure of superseded request %s: %r", message_id, exc)
        else:
            if self._is_current(message_id, memory):
                memory.record_exchange(prompt, answer)
                reply = answer
                self._post(AddResponse(value=answer, message_id=message_id))
                if self._events is not None:
                    self._events.record_chat_response(answer, message_id=message_id)
            else:
                LOGGER.debug("Discarding reply to superseded request %s", message_id)
        finally:
            if self._active_request == message_id:
                self._collapse_selection()
                self._active_request = None
                self._state.in_progress = False
                self._post(ShowInProgress(False))
        return reply

    def reset_conversation(self) -> None:
        """Start over with a fresh transcript; an in-flight reply will be discarded."""

        self._state.question_counter = 0
        self._memory = ConversationMemory(self._memory.system_prompt)
        LOGGER.debug("Conversation reset")

    def stop_generating(self) -> None:
        """Release the single-flight guard without waiting for the remote call."""

        if self._active_request is not None:
            LOGGER.debug("Stopped waiting for request %s", self._active_request)
        self._active_request = None
        self._state.in_progress = False
        self._post(ShowInProgress(False))

    def _is_current(self, message_id: str, memory: ConversationMemory) -> bool:
        return self._active_request == message_id and memory is self._memory

    def _collapse_selection(self) -> None:
        if self._editor is not None:
            self._editor.collapse_selection()

    def _post(self, message: OutboundMessage) -> None:
        if self._emit is not None:
            self._emit(message)


__all__ = ["ChatSession", "CompletionFn", "SessionState"]
