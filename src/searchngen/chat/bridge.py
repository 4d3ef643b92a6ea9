"""Duplex message channel between the chat session and its rendering surface."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from ..core.ranges import TextRange
from ..editor.surface import EditorSurface
from .protocol import OutboundMessage, ProtocolError, SetSelection, parse_command
from .session import ChatSession

LOGGER = logging.getLogger(__name__)

RenderingSurface = Callable[[dict[str, Any]], None]
SettingsOpener = Callable[[str], None]

_SETTING_KEYS: Mapping[str, str] = {
    "openSettings": "api_key",
    "openSearchSettings": "search_engine",
}


class DisplayBridge:
    """Delivers session messages to the attached panel and routes panel commands back.

    Outbound messages are handed to the surface immediately and in emission
    order. With no surface attached they are dropped, not queued.
    """

    def __init__(
        self,
        *,
        editor: EditorSurface | None = None,
        open_settings: SettingsOpener | None = None,
    ) -> None:
        self._surface: RenderingSurface | None = None
        self._session: ChatSession | None = None
        self._editor = editor
        self._open_settings = open_settings

    @property
    def attached(self) -> bool:
        return self._surface is not None

    def bind(self, session: ChatSession) -> None:
        """Route inbound commands to ``session`` and its outbound messages here."""

        self._session = session
        session.connect(self.post)

    def attach(self, surface: RenderingSurface) -> None:
        if self._surface is not None and self._surface is not surface:
            LOGGER.debug("Replacing attached rendering surface")
        self._surface = surface

    def detach(self) -> None:
        self._surface = None

    def post(self, message: OutboundMessage) -> None:
        surface = self._surface
        if surface is None:
            return
        surface(message.to_payload())

    def set_selection(self, selection: TextRange) -> None:
        self.post(SetSelection(range=selection))

    async def receive(self, payload: Mapping[str, Any]) -> None:
        """Handle one command sent by the panel."""

        try:
            command = parse_command(payload)
        except ProtocolError as exc:
            LOGGER.warning("Ignoring panel message: %s", exc)
            return

        if command.type in _SETTING_KEYS:
            if self._open_settings is not None:
                self._open_settings(_SETTING_KEYS[command.type])
            return

        session = self._session
        if session is None:
            LOGGER.warning("Panel command %s received before a session was bound", command.type)
            return
        if command.type == "askQuestion":
            context = self._editor.code_context() if self._editor is not None else None
            await session.submit_question(command.value or "", context)
        elif command.type == "clearConversation":
            session.reset_conversation()
        elif command.type == "stopGenerating":
            session.stop_generating()


__all__ = ["DisplayBridge", "RenderingSurface", "SettingsOpener"]
