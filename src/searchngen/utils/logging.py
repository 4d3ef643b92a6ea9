"""Diagnostic logging for SearchNGen.

Diagnostics are separate from the interaction log written by
:mod:`searchngen.events.sink`. Two rotating files live in the log directory:

``searchngen.log``
    Everything at the configured level (``DEBUG`` when ``debug_logging`` is on).
``dropped-events.log``
    Warnings from the interaction-log pipeline only, so records lost to
    ``WriteFailed`` can be audited without reading request traces.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path

__all__ = ["LogTargets", "setup_logging", "get_log_targets"]

_DEFAULT_LOG_DIR = Path.home() / ".searchngen" / "logs"
_EVENTS_LOGGER = "searchngen.events"
_HTTP_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "openai")
_FORMATTER = logging.Formatter(
    fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


@dataclass(slots=True, frozen=True)
class LogTargets:
    """Files written by the diagnostic logging setup."""

    diagnostic: Path
    dropped_events: Path


_targets: LogTargets | None = None
_events_handler: logging.Handler | None = None


def setup_logging(
    debug: bool = False,
    *,
    log_dir: Path | str | None = None,
    console: bool | None = None,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> LogTargets:
    """Configure root logging for the host process.

    ``debug`` mirrors :attr:`Settings.debug_logging`: it lowers the level to
    ``DEBUG`` and, unless ``console`` says otherwise, echoes records to stderr.
    A second call is a no-op unless ``force`` is set.
    """

    global _targets
    if _targets is not None and not force:
        return _targets

    level = logging.DEBUG if debug else logging.INFO
    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    targets = LogTargets(
        diagnostic=target_dir / "searchngen.log",
        dropped_events=target_dir / "dropped-events.log",
    )

    handlers: list[logging.Handler] = [_rotating_handler(targets.diagnostic, level, max_bytes, backup_count)]
    if debug if console is None else console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(_FORMATTER)
        handlers.append(console_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    _attach_dropped_events_handler(targets.dropped_events, max_bytes, backup_count)
    # Request/response tracing from the HTTP stack is only kept in debug mode.
    for logger_name in _HTTP_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.INFO if debug else logging.WARNING)

    _targets = targets
    return targets


def get_log_targets() -> LogTargets | None:
    """Return the files configured by :func:`setup_logging`, if any."""

    return _targets


def _rotating_handler(path: Path, level: int, max_bytes: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(_FORMATTER)
    return handler


def _attach_dropped_events_handler(path: Path, max_bytes: int, backup_count: int) -> None:
    global _events_handler
    events_logger = logging.getLogger(_EVENTS_LOGGER)
    if _events_handler is not None:
        events_logger.removeHandler(_events_handler)
        _events_handler.close()
    _events_handler = _rotating_handler(path, logging.WARNING, max_bytes, backup_count)
    events_logger.addHandler(_events_handler)


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get("SEARCHNGEN_LOG_DIR")
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()
