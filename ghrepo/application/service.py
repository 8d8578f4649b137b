from __future__ import annotations

import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable

from ghrepo.domain.entities import MAIN, ReferenceName, RemoteRepositoryRecord, RepositoryOptions
from ghrepo.domain.errors import (
    GhRepoError,
    LocalRepositoryError,
    NoDefaultBranchError,
    NotAGitRepositoryError,
    RepositoryNotFoundError,
)
from ghrepo.domain.interfaces import IRepoHost
from ghrepo.infrastructure.git_worktree import LocalWorkingCopy
from .branch_resolver import REMOTE_NAME, resolve_default_branch
from .metadata_cache import InMemoryMetadataCache
from .metadata_editor import RepositoryMetadata
from .repository import Repository, github_remote_url

log = logging.getLogger(__name__)

MAX_PER_PAGE = 100

ListPage = Callable[[str, int, int], Awaitable[tuple[list[RemoteRepositoryRecord], int]]]


class Service:
    """
    Entry point: owns the host client, the metadata cache and the default
    RepositoryOptions, and hands out Repository objects.

    All dependencies are injected. Pass a fresh InMemoryMetadataCache
    (or let the constructor create one) to keep services isolated.

    Prefetching a whole user or organisation up front lets
    new_repository() answer from the cache instead of issuing one GET per
    repository, which matters for rate limits when provisioning many
    repositories in one go.
    """

    def __init__(
        self,
        host: IRepoHost,
        cache: InMemoryMetadataCache | None = None,
        options: RepositoryOptions | None = None,
        token: str | None = None,
    ) -> None:
        self._host    = host
        self._cache   = cache if cache is not None else InMemoryMetadataCache()
        self._options = options or RepositoryOptions()
        self._token   = token

    @property
    def cache(self) -> InMemoryMetadataCache:
        return self._cache

    # --- prefetch ---------------------------------------------------------

    async def prefetch_user_repositories(self, user: str) -> int:
        """Cache every repository of `user`. Returns how many were fetched."""
        return await self._prefetch(user, self._host.list_repositories_by_user)

    async def prefetch_org_repositories(self, org: str) -> int:
        """Cache every repository of organisation `org`. Returns how many were fetched."""
        return await self._prefetch(org, self._host.list_repositories_by_org)

    async def _prefetch(self, owner: str, list_page: ListPage) -> int:
        """
        Walk all pages, merging each one into the cache before asking for
        the next. A failing page propagates; pages already merged stay.
        """
        page  = 1
        total = 0
        while page > 0:
            records, page = await list_page(owner, page, MAX_PER_PAGE)
            self._cache.put_all(owner, records)
            total += len(records)
            log.info("Prefetched %d repositories of %s (next page: %d)", len(records), owner, page)
        return total

    # --- repositories -----------------------------------------------------

    async def new_repository(self, owner: str, name: str, **overrides: Any) -> Repository:
        """
        Open (or create, depending on the options) the repository
        base_dir/owner/name and link it to github.com/owner/name.

        `overrides` replace fields of the service's default
        RepositoryOptions for this call only.
        """
        opts = dataclasses.replace(self._options, **overrides)
        path = Path(opts.base_dir) / owner / name

        local, default_branch = await asyncio.to_thread(self._prepare_local, owner, name, path, opts)

        record = opts.github_record or self._cache.get(owner, name)
        if record is None:
            record = await self._fetch_or_create(owner, name, opts)
            self._cache.put(record)

        metadata = RepositoryMetadata(record, self._host, self._cache)
        return Repository(owner, name, local, default_branch, metadata, self._host, self._token)

    @staticmethod
    def _prepare_local(owner: str, name: str, path: Path, opts: RepositoryOptions) -> tuple[LocalWorkingCopy, ReferenceName]:
        if opts.mkdir_all:
            path.mkdir(parents=True, exist_ok=True)
        else:
            path.stat()

        try:
            local = LocalWorkingCopy.open(path)
        except NotAGitRepositoryError:
            if not opts.init_git:
                raise
            local = LocalWorkingCopy.init(path)

        try:
            default_branch = resolve_default_branch(local.refs)
        except NoDefaultBranchError:
            if not opts.init_git:
                raise
            local.checkout(MAIN, create=True)
            default_branch = MAIN

        if not local.has_remote(REMOTE_NAME):
            if not opts.create_remote:
                raise LocalRepositoryError(f"failed to get remote: remote {REMOTE_NAME!r} not found in {path}")
            local.create_remote(REMOTE_NAME, github_remote_url(owner, name))

        return local, default_branch

    async def _fetch_or_create(self, owner: str, name: str, opts: RepositoryOptions) -> RemoteRepositoryRecord:
        try:
            return await self._host.get_repository(owner, name)
        except RepositoryNotFoundError as not_found:
            if not opts.create_on_github:
                raise

            try:
                # Start out private until the repository is ready to be published.
                record = await self._host.create_repository(
                    name, org=owner if opts.owner_is_org else None, private=True
                )
            except GhRepoError as exc:
                raise exc from not_found

        log.info("Created GitHub repository %s", record.full_name)
        return record
