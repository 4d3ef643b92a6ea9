"""Tests for the append-only interaction log writer."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from searchngen.events.records import EventKind, UserEvent, WindowFocus
from searchngen.events.sink import LogSink, PathUnavailable, WriteFailed


def _focus(timestamp: int, focused: bool) -> UserEvent:
    return UserEvent(
        kind=EventKind.WINDOW_STATE,
        event_name="onDidChangeWindowState",
        timestamp=timestamp,
        content="focused" if focused else "unfocused",
        payload=WindowFocus(focused=focused),
    )


def test_initialize_creates_missing_directories(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b" / "log.txt"

    sink = LogSink.initialize(target)

    assert target.parent.is_dir()
    assert sink.path == target
    assert not target.exists()


def test_initialize_raises_when_parent_is_a_file(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")

    with pytest.raises(PathUnavailable):
        LogSink.initialize(blocker / "log.txt")


def test_for_directory_names_file_after_creation_time(tmp_path: Path) -> None:
    sink = LogSink.for_directory(tmp_path, created_at=datetime(2024, 1, 2, 3, 4, 5))

    assert sink.path == tmp_path / "log_2024-01-02_03-04-05.txt"


def test_append_writes_lines_in_call_order(sink: LogSink) -> None:
    sink.append(_focus(100, True))
    sink.append(_focus(105, False))

    raw = sink.path.read_bytes()
    lines = raw.split(b"\r\n")

    assert raw.endswith(b"\r\n")
    assert len(lines) == 3 and lines[-1] == b""
    assert [record.timestamp for record in sink.read_records()] == [100, 105]
    assert [record.content for record in sink.read_records()] == ["focused", "unfocused"]


def test_append_raises_write_failed_when_path_is_a_directory(tmp_path: Path) -> None:
    target = tmp_path / "log.txt"
    target.mkdir()
    sink = LogSink(target)

    with pytest.raises(WriteFailed):
        sink.append(_focus(1, True))


def test_read_records_on_missing_file_yields_nothing(tmp_path: Path) -> None:
    assert list(LogSink(tmp_path / "missing.txt").read_records()) == []


def test_append_persists_lone_surrogates(sink: LogSink) -> None:
    record = UserEvent(kind=EventKind.WEB_SEARCH, event_name="onWebSearch", timestamp=7, content="q \udfff")

    sink.append(record)

    assert list(sink.read_records()) == [record]


def test_append_wraps_encoding_errors(sink: LogSink, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("searchngen.events.sink.encode_record", lambda record: "\ud800\r\n")

    with pytest.raises(WriteFailed) as excinfo:
        sink.append(_focus(1, True))

    assert isinstance(excinfo.value.__cause__, UnicodeEncodeError)
