"""Persistent record sinks."""

from .history_sink import SQLiteHistorySink

__all__ = ["SQLiteHistorySink"]
