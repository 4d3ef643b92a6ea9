"""Append-only interaction log writer."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterator

from .records import LINE_TERMINATOR, EventRecord, decode_record, encode_record

LOGGER = logging.getLogger(__name__)

_FILENAME_FORMAT = "log_%Y-%m-%d_%H-%M-%S.txt"


class TelemetryError(Exception):
    """Base class for interaction-log failures."""


class PathUnavailable(TelemetryError):
    """Raised when the directory holding the log file cannot be created."""


class WriteFailed(TelemetryError):
    """Raised when a single record could not be appended to the log."""


class LogSink:
    """Writes one CRLF-terminated JSON line per record to a fixed file.

    Each :meth:`append` opens the file, writes the full line, flushes and
    closes it before returning, so lines land on disk in call order and a
    failed write never leaves a handle behind.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """Return the log file this sink appends to."""

        return self._path

    @classmethod
    def initialize(cls, path: Path | str) -> LogSink:
        """Create the containing directory for ``path`` and return a sink for it."""

        target = Path(path).expanduser()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PathUnavailable(f"Cannot create log directory {target.parent}: {exc}") from exc
        if not target.parent.is_dir():
            raise PathUnavailable(f"Log directory {target.parent} is not a directory")
        LOGGER.info("Logging user actions to %s", target)
        return cls(target)

    @classmethod
    def for_directory(cls, output_dir: Path | str, *, created_at: datetime | None = None) -> LogSink:
        """Allocate a log file named after ``created_at`` inside ``output_dir``."""

        instant = created_at or datetime.now()
        return cls.initialize(Path(output_dir).expanduser() / instant.strftime(_FILENAME_FORMAT))

    def append(self, record: EventRecord) -> None:
        """Serialize ``record`` and append it as a single line."""

        line = encode_record(record)
        try:
            with self._path.open("a", encoding="utf-8", newline="") as handle:
                handle.write(line)
                handle.flush()
                os.fsync(handle.fileno())
        except (OSError, ValueError) as exc:
            raise WriteFailed(f"Failed to append {record.kind.value} record to {self._path}: {exc}") from exc

    def read_records(self) -> Iterator[EventRecord]:
        """Stream records back from the log file in write order."""

        if not self._path.exists():
            return
        with self._path.open("r", encoding="utf-8", newline="") as handle:
            for line in handle:
                stripped = line.rstrip(LINE_TERMINATOR)
                if stripped:
                    yield decode_record(stripped)


__all__ = ["LogSink", "PathUnavailable", "TelemetryError", "WriteFailed"]
