"""Tests for the panel message bridge."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import pytest

from searchngen.chat.bridge import DisplayBridge
from searchngen.chat.protocol import ProtocolError, parse_command
from searchngen.chat.session import ChatSession
from searchngen.editor.surface import CodeContext

from tests.helpers import FakeEditor, PanelRecorder, span


class _EchoCompletion:
    def __init__(self) -> None:
        self.calls: list[Sequence[Any]] = []

    async def __call__(self, messages: Sequence[Any]) -> str:
        self.calls.append(messages)
        return f"answer {len(self.calls)}"


def _bridge(*, editor: FakeEditor | None = None, **kwargs: Any) -> tuple[DisplayBridge, ChatSession, _EchoCompletion]:
    completion = _EchoCompletion()
    bridge = DisplayBridge(editor=editor, **kwargs)
    session = ChatSession(completion, editor=editor)
    bridge.bind(session)
    return bridge, session, completion


def test_parse_command_validates_payloads() -> None:
    assert parse_command({"type": "askQuestion", "value": "hi"}).value == "hi"
    assert parse_command({"type": "stopGenerating", "value": "ignored"}).value is None
    with pytest.raises(ProtocolError):
        parse_command({"type": "askQuestion"})
    with pytest.raises(ProtocolError):
        parse_command({"type": "launchRockets"})
    with pytest.raises(ProtocolError):
        parse_command(["askQuestion"])  # type: ignore[arg-type]


def test_messages_are_dropped_while_detached(panel: PanelRecorder) -> None:
    bridge, _, _ = _bridge()

    bridge.set_selection(span(0, 0, 0, 1))
    bridge.attach(panel)
    bridge.set_selection(span(2, 3, 4, 5))
    bridge.detach()
    bridge.set_selection(span(0, 0, 0, 1))

    assert panel.payloads == [
        {"type": "setSelection", "value": {"start": {"line": 2, "character": 3}, "end": {"line": 4, "character": 5}}}
    ]
    assert not bridge.attached


@pytest.mark.asyncio
async def test_ask_question_uses_editor_selection_and_preserves_order(panel: PanelRecorder) -> None:
    editor = FakeEditor(context=CodeContext(code="print(1)", language_id="python"))
    bridge, session, completion = _bridge(editor=editor)
    bridge.attach(panel)

    await bridge.receive({"type": "askQuestion", "value": "explain"})

    assert panel.types() == ["showInProgress", "addQuestion", "addResponse", "showInProgress"]
    assert panel.payloads[1]["value"] == {"question": "explain", "codeBlock": "print(1)"}
    assert panel.payloads[2]["id"] == panel.payloads[1]["id"]
    assert panel.payloads[0]["inProgress"] is True and panel.payloads[3]["inProgress"] is False
    assert "python" in completion.calls[0][-1]["content"]
    assert editor.collapses == 1
    assert len(session.memory) == 3


@pytest.mark.asyncio
async def test_clear_and_stop_commands_reach_the_session(panel: PanelRecorder) -> None:
    bridge, session, _ = _bridge()
    bridge.attach(panel)
    await bridge.receive({"type": "askQuestion", "value": "one"})

    await bridge.receive({"type": "clearConversation"})
    await bridge.receive({"type": "stopGenerating"})

    assert len(session.memory) == 1
    assert session.state.question_counter == 0
    assert panel.payloads[-1] == {"type": "showInProgress", "inProgress": False}


@pytest.mark.asyncio
async def test_settings_commands_open_the_matching_section() -> None:
    opened: list[str] = []
    bridge, _, _ = _bridge(open_settings=opened.append)

    await bridge.receive({"type": "openSettings"})
    await bridge.receive({"type": "openSearchSettings"})

    assert opened == ["api_key", "search_engine"]


@pytest.mark.asyncio
async def test_malformed_commands_are_logged_and_ignored(
    panel: PanelRecorder, caplog: pytest.LogCaptureFixture
) -> None:
    bridge, session, completion = _bridge()
    bridge.attach(panel)

    with caplog.at_level(logging.WARNING, logger="searchngen.chat.bridge"):
        await bridge.receive({"type": "askQuestion", "value": 7})
        await bridge.receive({"type": "selfDestruct"})

    assert panel.payloads == []
    assert completion.calls == []
    assert session.state.question_counter == 0
    assert caplog.text.count("Ignoring panel message") == 2
