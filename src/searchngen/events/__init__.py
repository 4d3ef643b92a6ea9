"""Interaction event pipeline: record model, dispatcher and log sink."""

from .dispatcher import EventDispatcher
from .records import EventKind, EventRecord, decode_record, encode_record
from .sink import LogSink, PathUnavailable, TelemetryError, WriteFailed

__all__ = [
    "EventDispatcher",
    "EventKind",
    "EventRecord",
    "LogSink",
    "PathUnavailable",
    "TelemetryError",
    "WriteFailed",
    "decode_record",
    "encode_record",
]
