"""Tests for diagnostic logging helpers."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Iterator

import pytest

from searchngen.utils import logging as logging_utils


def _created_by_setup(handler: logging.Handler) -> bool:
    return isinstance(handler, logging.handlers.RotatingFileHandler) or type(handler) is logging.StreamHandler


@pytest.fixture(autouse=True)
def _restore_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    root = logging.getLogger()
    events_logger = logging.getLogger("searchngen.events")
    saved_level = root.level
    saved_http = {name: logging.getLogger(name).level for name in ("httpx", "httpcore", "openai")}
    monkeypatch.setattr(logging_utils, "_targets", None)
    monkeypatch.setattr(logging_utils, "_events_handler", None)
    yield
    for logger in (root, events_logger):
        for handler in [handler for handler in logger.handlers if _created_by_setup(handler)]:
            logger.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)
    for name, level in saved_http.items():
        logging.getLogger(name).setLevel(level)


def _flush() -> None:
    for logger in (logging.getLogger(), logging.getLogger("searchngen.events")):
        for handler in logger.handlers:
            handler.flush()


def test_setup_logging_writes_diagnostics(tmp_path: Path) -> None:
    targets = logging_utils.setup_logging(log_dir=tmp_path / "logs", console=False, force=True)

    logging.getLogger("searchngen.tests").info("Logging smoke test")
    logging.getLogger("searchngen.tests").debug("hidden detail")
    _flush()

    assert targets.diagnostic == tmp_path / "logs" / "searchngen.log"
    assert logging_utils.get_log_targets() == targets
    text = targets.diagnostic.read_text(encoding="utf-8")
    assert "Logging smoke test" in text
    assert "hidden detail" not in text


def test_dropped_events_get_their_own_file(tmp_path: Path) -> None:
    targets = logging_utils.setup_logging(log_dir=tmp_path, console=False, force=True)
    dispatcher_logger = logging.getLogger("searchngen.events.dispatcher")

    dispatcher_logger.info("Routine bookkeeping")
    dispatcher_logger.warning("Dropped windowState event onDidChangeWindowState: disk full")
    logging.getLogger("searchngen.chat.session").warning("Chat request failed")
    _flush()

    dropped = targets.dropped_events.read_text(encoding="utf-8")
    assert "disk full" in dropped
    assert "Routine bookkeeping" not in dropped
    assert "Chat request failed" not in dropped
    assert "disk full" in targets.diagnostic.read_text(encoding="utf-8")


def test_debug_mode_lowers_levels(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SEARCHNGEN_LOG_DIR", str(tmp_path / "env-logs"))

    targets = logging_utils.setup_logging(debug=True, console=False, force=True)
    logging.getLogger("searchngen.tests").debug("request trace")
    _flush()

    assert targets.diagnostic.parent == tmp_path / "env-logs"
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.INFO
    assert "request trace" in targets.diagnostic.read_text(encoding="utf-8")


def test_http_loggers_are_quiet_by_default(tmp_path: Path) -> None:
    logging_utils.setup_logging(log_dir=tmp_path, console=False, force=True)

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("openai").level == logging.WARNING


def test_setup_logging_is_idempotent_without_force(tmp_path: Path) -> None:
    first = logging_utils.setup_logging(log_dir=tmp_path / "a", console=False, force=True)

    second = logging_utils.setup_logging(log_dir=tmp_path / "b", console=False)

    assert second == first
    assert not (tmp_path / "b").exists()


def test_forced_setup_replaces_dropped_events_handler(tmp_path: Path) -> None:
    events_logger = logging.getLogger("searchngen.events")
    before = len([handler for handler in events_logger.handlers if _created_by_setup(handler)])

    logging_utils.setup_logging(log_dir=tmp_path / "a", console=False, force=True)
    logging_utils.setup_logging(log_dir=tmp_path / "b", console=False, force=True)

    assert len([handler for handler in events_logger.handlers if _created_by_setup(handler)]) == before + 1
    assert events_logger.handlers[-1].baseFilename == str(tmp_path / "b" / "dropped-events.log")
