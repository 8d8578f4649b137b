from __future__ import annotations

import logging
import threading
from typing import Iterable

from ghrepo.domain.entities import RemoteRepositoryRecord
from ghrepo.domain.interfaces import IMetadataCache

log = logging.getLogger(__name__)


class InMemoryMetadataCache(IMetadataCache):
    """
    Two-level map owner → name → RemoteRepositoryRecord.

    A threading.Lock (not an asyncio.Lock) guards the map: no critical
    section awaits anything, and prefetches may run from worker threads
    as well as from coroutines. The lock only protects the map structure;
    records themselves are immutable and are swapped, never edited.
    """

    def __init__(self) -> None:
        self._repos: dict[str, dict[str, RemoteRepositoryRecord]] = {}
        self._lock = threading.Lock()

    def get(self, owner: str, name: str) -> RemoteRepositoryRecord | None:
        with self._lock:
            record = self._repos.get(owner, {}).get(name)
        log.debug("Cache %s for %s/%s", "miss" if record is None else "hit", owner, name)
        return record

    def put_all(self, owner: str, records: Iterable[RemoteRepositoryRecord]) -> None:
        records = list(records)
        if not records:
            return

        with self._lock:
            by_name = self._repos.setdefault(owner, {})
            for record in records:
                by_name[record.name] = record

    def put(self, record: RemoteRepositoryRecord) -> None:
        self.put_all(record.owner, [record])

    def count(self, owner: str | None = None) -> int:
        """Number of cached records, for one owner or overall."""
        with self._lock:
            if owner is not None:
                return len(self._repos.get(owner, {}))
            return sum(len(by_name) for by_name in self._repos.values())
