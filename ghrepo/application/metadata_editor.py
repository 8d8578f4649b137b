from __future__ import annotations

import asyncio
import dataclasses
import logging

from ghrepo.domain.entities import RemoteRepositoryRecord, RepositoryUpdate
from ghrepo.domain.interfaces import IMetadataCache, IRepoHost

log = logging.getLogger(__name__)


def has_changes(record: RemoteRepositoryRecord, update: RepositoryUpdate) -> bool:
    """
    True when applying `update` would change anything on `record`.

    A field set in the update counts as a change when the record has no
    value for it, or when the values differ.
    """
    for name, wanted in update.set_fields().items():
        current = getattr(record, name)
        if current is None or current != wanted:
            return True
    return False


class RepositoryMetadata:
    """
    The remote metadata of one repository, behind one asyncio.Lock.

    Every read and every write takes the same lock, so a reader never sees
    a record while an edit for it is in flight. After an edit the server's
    answer replaces the held record wholesale (no local merging) and is
    written back to the shared cache.
    """

    def __init__(self, record: RemoteRepositoryRecord, host: IRepoHost, cache: IMetadataCache) -> None:
        self._record = record
        self._host   = host
        self._cache  = cache
        self._lock   = asyncio.Lock()

    async def snapshot(self) -> RemoteRepositoryRecord:
        async with self._lock:
            return self._record

    async def description(self) -> str:
        async with self._lock:
            return self._record.description or ""

    async def topics(self) -> list[str]:
        async with self._lock:
            return list(self._record.topics or ())

    async def archived(self) -> bool:
        async with self._lock:
            return bool(self._record.archived)

    async def edit(self, update: RepositoryUpdate) -> bool:
        """
        Apply `update` on GitHub if it changes anything.
        Returns True when a live edit call was made.
        """
        async with self._lock:
            if not has_changes(self._record, update):
                log.debug("Edit of %s skipped, nothing changes", self._record.full_name)
                return False

            record = await self._host.edit_repository(self._record.owner, self._record.name, update)
            self._replace(record)
            log.info("Edited %s: %s", record.full_name, ", ".join(update.set_fields()))
            return True

    async def set_description(self, description: str) -> bool:
        return await self.edit(RepositoryUpdate(description=description))

    async def set_topics(self, topics: list[str]) -> bool:
        """Replace the full topic list, unless it is already exactly `topics`."""
        async with self._lock:
            if list(self._record.topics or ()) == list(topics):
                log.debug("Topics of %s unchanged", self._record.full_name)
                return False

            stored = await self._host.replace_topics(self._record.owner, self._record.name, list(topics))
            self._replace(dataclasses.replace(self._record, topics=tuple(stored)))
            return True

    def _replace(self, record: RemoteRepositoryRecord) -> None:
        # Caller holds self._lock.
        self._record = record
        self._cache.put(record)
