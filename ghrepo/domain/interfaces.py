"""
Domain Layer — Interfaces (Abstract Contracts)
-----------------------------------------------
What the application layer needs from the outside world:

  IRepoHost        — the hosting service's REST API (GitHub)
  IMetadataCache   — where remote repository records are kept between calls
  IReferenceStore  — read access to a local repository's git references

The application layer depends on THESE, never on httpx or GitPython, so a
fake host or an in-memory reference store can stand in for them in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterable, Iterable

from .entities import Release, ReleaseAsset, RemoteRepositoryRecord, RepositoryUpdate


class IRepoHost(ABC):
    """Contract for the remote hosting API."""

    @abstractmethod
    async def get_repository(self, owner: str, name: str) -> RemoteRepositoryRecord:
        """Fetch one repository. Raises RepositoryNotFoundError on 404."""
        ...

    @abstractmethod
    async def list_repositories_by_user(self, user: str, page: int, per_page: int) -> tuple[list[RemoteRepositoryRecord], int]:
        """
        Fetch one page of a user's repositories.

        Returns:
            records    — the repositories on this page
            next_page  — number of the next page, 0 when this was the last one
        """
        ...

    @abstractmethod
    async def list_repositories_by_org(self, org: str, page: int, per_page: int) -> tuple[list[RemoteRepositoryRecord], int]:
        """Same as list_repositories_by_user, for an organisation."""
        ...

    @abstractmethod
    async def create_repository(self, name: str, org: str | None = None, private: bool = True) -> RemoteRepositoryRecord:
        """Create a repository for the authenticated user, or under `org`."""
        ...

    @abstractmethod
    async def edit_repository(self, owner: str, name: str, update: RepositoryUpdate) -> RemoteRepositoryRecord:
        """Apply a sparse update and return the server's new representation."""
        ...

    @abstractmethod
    async def replace_topics(self, owner: str, name: str, topics: list[str]) -> list[str]:
        """Replace all topics. Returns the topics as stored by the server."""
        ...

    @abstractmethod
    async def get_latest_release(self, owner: str, name: str) -> Release:
        ...

    @abstractmethod
    async def create_release(self, owner: str, name: str, tag_name: str, *, release_name: str | None = None, body: str | None = None, draft: bool = False, prerelease: bool = False) -> Release:
        ...

    @abstractmethod
    async def upload_release_asset(self, owner: str, name: str, release_id: int, asset_name: str, content: AsyncIterable[bytes], size: int, content_type: str) -> ReleaseAsset:
        """
        Upload `size` bytes from `content` as a release asset.

        The host must answer 201 Created; anything else raises
        AssetUploadStatusError carrying the raw response body.
        """
        ...


class IMetadataCache(ABC):
    """Contract for the owner → name → record cache shared by a Service."""

    @abstractmethod
    def get(self, owner: str, name: str) -> RemoteRepositoryRecord | None:
        ...

    @abstractmethod
    def put_all(self, owner: str, records: Iterable[RemoteRepositoryRecord]) -> None:
        """Insert or overwrite records (by name) under `owner` in one critical section."""
        ...

    @abstractmethod
    def put(self, record: RemoteRepositoryRecord) -> None:
        ...


class IReferenceStore(ABC):
    """Read-only view of a local repository's references."""

    @abstractmethod
    def resolve(self, name: str) -> str:
        """
        Follow symbolic references starting at `name` and return the full
        name of the reference that holds a commit.

        Raises ReferenceNotFoundError when any link of the chain is missing.
        Any other exception means the reference store itself is broken.
        """
        ...
