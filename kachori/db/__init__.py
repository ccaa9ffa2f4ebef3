"""SQLite-backed key-value storage and the count log."""

from .count_log import CountLogEntry, LogStore
from .kv import KeyValueStore
from .schema import ensure_schema

__all__ = [
    "CountLogEntry",
    "KeyValueStore",
    "LogStore",
    "ensure_schema",
]
