"""Concrete adapters wiring application ports to built-in implementations."""

from __future__ import annotations

from .events import FanoutEventSink, LoggingEventSink, MemoryEventSink, NullEventSink
from .journal import JournalEntry, JSONLJournal

__all__ = [
    "FanoutEventSink",
    "JSONLJournal",
    "JournalEntry",
    "LoggingEventSink",
    "MemoryEventSink",
    "NullEventSink",
]
