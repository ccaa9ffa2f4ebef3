"""Persisted, newest-first log of verified counts."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Callable, Iterator

from ..errors import StorageReadCorrupt, StorageWriteError
from .kv import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CountLogEntry:
    """A committed count. Immutable once created."""

    id: str
    timestamp: str  # ISO8601
    count: int
    image_url: str  # data URI of the captured frame
    notes: str | None = None

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "timestamp": self.timestamp,
            "count": self.count,
            "imageUrl": self.image_url,
        }
        if self.notes is not None:
            d["notes"] = self.notes
        return d

    @classmethod
    def from_dict(cls, data: dict) -> CountLogEntry:
        try:
            return cls(
                id=str(data["id"]),
                timestamp=str(data["timestamp"]),
                count=int(data["count"]),
                image_url=str(data["imageUrl"]),
                notes=data.get("notes"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise StorageReadCorrupt(f"Invalid log entry: {data!r}") from e


def decode_entries(text: str) -> list[CountLogEntry]:
    """Decode the stored JSON array of log entries.

    Raises:
        StorageReadCorrupt: If the text is not a JSON array of entries.
    """
    try:
        items = json.loads(text)
    except json.JSONDecodeError as e:
        raise StorageReadCorrupt(f"Stored logs are not valid JSON: {e}") from e
    if not isinstance(items, list):
        raise StorageReadCorrupt("Stored logs are not a JSON array")
    return [CountLogEntry.from_dict(item) for item in items]


def encode_entries(entries: list[CountLogEntry] | tuple[CountLogEntry, ...]) -> str:
    return json.dumps([e.to_dict() for e in entries], ensure_ascii=False)


class LogStore:
    """Owns every CountLogEntry and writes the full collection on each change."""

    def __init__(self, storage: KeyValueStore, key: str = "kachori_logs") -> None:
        self._storage = storage
        self._key = key
        self._entries: list[CountLogEntry] = []

    def load(self) -> None:
        """Replace in-memory entries with the persisted collection.

        Malformed data is logged and treated as an empty log.
        """
        raw = self._storage.get(self._key)
        if raw is None:
            self._entries = []
            return
        try:
            self._entries = decode_entries(raw)
        except StorageReadCorrupt:
            logger.warning("Failed to parse logs from storage; starting empty", exc_info=True)
            self._entries = []

    @property
    def entries(self) -> tuple[CountLogEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CountLogEntry]:
        return iter(tuple(self._entries))

    def get(self, entry_id: str) -> CountLogEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def total_count(self) -> int:
        return sum(e.count for e in self._entries)

    def prepend(self, entry: CountLogEntry) -> None:
        """Insert *entry* at the head of the log."""
        self._entries.insert(0, entry)
        logger.info("Logged count %d (%s)", entry.count, entry.id)
        self._persist()

    def delete(self, entry_id: str) -> bool:
        """Remove the entry with *entry_id*. Returns False if it was absent."""
        remaining = [e for e in self._entries if e.id != entry_id]
        if len(remaining) == len(self._entries):
            return False
        self._entries = remaining
        logger.info("Deleted log entry %s", entry_id)
        self._persist()
        return True

    def clear(self, confirm: Callable[[], bool]) -> bool:
        """Empty the log if *confirm* returns true.

        Returns:
            True if the log was cleared.
        """
        if not confirm():
            return False
        self._entries = []
        logger.info("Cleared all log entries")
        self._persist()
        return True

    def _persist(self) -> None:
        try:
            self._storage.set(self._key, encode_entries(self._entries))
        except StorageWriteError:
            logger.exception("Failed to save logs to storage")
