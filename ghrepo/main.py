"""
main.py — Dependency Wiring (Composition Root)
------------------------------------------------
The one place that knows which concrete class implements each interface:

  1. Reads configuration from environment variables
  2. Creates the httpx client and the GitHubClient on top of it
  3. Injects them, with a fresh metadata cache, into a Service

Library code never configures logging; configure_logging() is for
processes that embed ghrepo and for running this module directly, which
prefetches GHREPO_PREFETCH_USERS / GHREPO_PREFETCH_ORGS and reports how
many repositories ended up in the cache.

                      main.py  (wires everything)
                         │
                         ▼
                      Service ──────────► InMemoryMetadataCache
                         │
                         ▼
                GitHubClient (IRepoHost)
                         │
                         ▼
                 httpx.AsyncClient
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from ghrepo.application.metadata_cache import InMemoryMetadataCache
from ghrepo.application.service import Service
from ghrepo.config import Settings, load_settings
from ghrepo.domain.entities import RepositoryOptions
from ghrepo.domain.errors import ConfigError
from ghrepo.infrastructure.github_client import GitHubClient

log = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def build_service(settings: Settings, options: RepositoryOptions | None = None) -> AsyncIterator[Service]:
    """
    Wire a Service for `settings`. The HTTP client lives exactly as long
    as the `async with` block.
    """
    client = httpx.AsyncClient()
    try:
        github_client = GitHubClient(
            token      = settings.github_token,
            client     = client,       # injected, GitHubClient does not own it
            api_url    = settings.api_url,
            upload_url = settings.upload_url,
            timeout    = settings.http_timeout,
        )
        yield Service(
            host    = github_client,
            cache   = InMemoryMetadataCache(),
            options = options or RepositoryOptions(base_dir=settings.base_dir),
            token   = settings.github_token,
        )
    finally:
        # Always close the client, even if the block raised
        await client.aclose()


async def prefetch(settings: Settings) -> int:
    """Prefetch every configured owner concurrently; returns the cache size."""
    async with build_service(settings) as service:
        await asyncio.gather(
            *[service.prefetch_user_repositories(user) for user in settings.prefetch_users],
            *[service.prefetch_org_repositories(org) for org in settings.prefetch_orgs],
        )
        return service.cache.count()


if __name__ == "__main__":
    configure_logging()

    try:
        settings = load_settings()
    except ConfigError as exc:
        log.error("%s", exc)
        sys.exit(1)

    cached = asyncio.run(prefetch(settings))
    log.info("Cached metadata for %d repositories", cached)
