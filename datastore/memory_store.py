from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import List, Optional

from models.records import Reading, StoredReading


class InMemoryReadingStore:
    """Process-local reading store used when the durable store is unreachable."""

    def __init__(self) -> None:
        self._items: List[StoredReading] = []
        self._next_id = 1
        self._lock = Lock()

    def insert(self, reading: Reading, captured_at: datetime) -> StoredReading:
        with self._lock:
            stored = StoredReading.from_reading(
                reading, sequence_id=self._next_id, captured_at=captured_at
            )
            self._next_id += 1
            self._items.append(stored)
            return stored

    def list_recent(self, limit: int) -> list[StoredReading]:
        """Return up to ``limit`` readings, newest first."""

        if limit <= 0:
            return []
        with self._lock:
            ordered = sorted(
                self._items,
                key=lambda item: (item.captured_at, item.sequence_id),
                reverse=True,
            )
        return ordered[:limit]

    def latest(self) -> Optional[StoredReading]:
        recent = self.list_recent(1)
        return recent[0] if recent else None

    def oldest(self) -> Optional[StoredReading]:
        with self._lock:
            if not self._items:
                return None
            return min(self._items, key=lambda item: (item.captured_at, item.sequence_id))

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def wipe_all(self) -> int:
        # Identifiers keep counting after a wipe so clients never see one reused.
        with self._lock:
            deleted = len(self._items)
            self._items = []
            return deleted

    def close(self) -> None:
        return None
