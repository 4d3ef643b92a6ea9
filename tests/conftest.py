"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from searchngen.events.dispatcher import EventClock, EventDispatcher
from searchngen.events.sink import LogSink

from tests.helpers import FakeDocument, FakeEditor, PanelRecorder


class StepClock:
    """Deterministic millisecond source advancing by ``step`` per reading."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 5) -> None:
        self.value = start
        self.step = step

    def __call__(self) -> int:
        current = self.value
        self.value += self.step
        return current


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "SEARCHNGEN_API_KEY",
        "SEARCHNGEN_BASE_URL",
        "SEARCHNGEN_MODEL",
        "SEARCHNGEN_OUTPUT_DIR",
        "SEARCHNGEN_SEARCH_ENGINE",
        "SEARCHNGEN_DEBUG_LOGGING",
        "SEARCHNGEN_TEMPERATURE",
        "SEARCHNGEN_REQUEST_TIMEOUT",
        "SEARCHNGEN_DEBUG",
        "SEARCHNGEN_SETTINGS_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "logs" / "log_2024-01-02_03-04-05.txt"


@pytest.fixture
def sink(log_path: Path) -> LogSink:
    return LogSink.initialize(log_path)


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def dispatcher(sink: LogSink, clock: StepClock) -> EventDispatcher:
    return EventDispatcher(sink, clock=EventClock(clock))


@pytest.fixture
def document() -> FakeDocument:
    return FakeDocument(text="def main():\n    return 42\n")


@pytest.fixture
def editor() -> FakeEditor:
    return FakeEditor()


@pytest.fixture
def panel() -> PanelRecorder:
    return PanelRecorder()
