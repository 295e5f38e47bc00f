"""Storage gateway that routes every read and write to one selected backend."""

from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache
from typing import Callable, Optional, Protocol

from datastore.memory_store import InMemoryReadingStore
from datastore.sql_store import SqlReadingStore
from errors import BackendUnavailable
from models.records import BackendKind, Reading, StoredReading
from settings import get_settings

logger = logging.getLogger(__name__)


class ReadingStore(Protocol):
    def insert(self, reading: Reading, captured_at: datetime) -> StoredReading: ...

    def list_recent(self, limit: int) -> list[StoredReading]: ...

    def latest(self) -> Optional[StoredReading]: ...

    def oldest(self) -> Optional[StoredReading]: ...

    def count(self) -> int: ...

    def wipe_all(self) -> int: ...

    def close(self) -> None: ...


class StorageGateway:
    """Single entry point to the active reading store.

    The backend is chosen once, at construction, and never changes for the
    lifetime of the gateway. Failures of the durable store after that point
    surface as BackendOperationError to the caller of the failing operation.
    """

    def __init__(self, store: ReadingStore, backend: BackendKind) -> None:
        self._store = store
        self._backend = backend

    @classmethod
    def select(
        cls,
        durable_factory: Optional[Callable[[], ReadingStore]],
        fallback_factory: Callable[[], ReadingStore] = InMemoryReadingStore,
    ) -> "StorageGateway":
        """Try the durable store once; use the in-process store if it is unreachable."""

        if durable_factory is None:
            logger.warning(
                "Durable store not configured; using in-memory readings",
                extra={"backend": BackendKind.fallback.value},
            )
            return cls(fallback_factory(), BackendKind.fallback)

        try:
            store = durable_factory()
        except BackendUnavailable as exc:
            logger.warning(
                "Durable store unavailable; continuing with in-memory readings",
                extra={"backend": BackendKind.fallback.value, "reason": str(exc)},
            )
            return cls(fallback_factory(), BackendKind.fallback)

        logger.info("Connected to durable store", extra={"backend": BackendKind.durable.value})
        return cls(store, BackendKind.durable)

    def active_backend(self) -> BackendKind:
        return self._backend

    def insert(self, reading: Reading, captured_at: datetime) -> StoredReading:
        stored = self._store.insert(reading, captured_at)
        logger.debug(
            "Stored reading",
            extra={"backend": self._backend.value, "sequence_id": stored.sequence_id},
        )
        return stored

    def list_recent(self, limit: int) -> list[StoredReading]:
        return self._store.list_recent(limit)

    def latest(self) -> Optional[StoredReading]:
        return self._store.latest()

    def oldest(self) -> Optional[StoredReading]:
        return self._store.oldest()

    def count(self) -> int:
        return self._store.count()

    def wipe_all(self) -> int:
        """Delete every reading and return how many were removed."""

        deleted = self._store.wipe_all()
        logger.info(
            "Wiped stored readings",
            extra={"backend": self._backend.value, "deleted_count": deleted},
        )
        return deleted

    def close(self) -> None:
        self._store.close()


@lru_cache
def build_default_gateway(database_url: Optional[str] = None) -> StorageGateway:
    settings = get_settings()
    url = settings.database_url if database_url is None else database_url
    durable_factory: Optional[Callable[[], ReadingStore]] = None
    if url:
        durable_factory = lambda: SqlReadingStore.connect(  # noqa: E731
            url, connect_timeout=settings.database_connect_timeout
        )
    return StorageGateway.select(durable_factory)
