"""Shared fixtures: an in-memory GitHub stand-in and throwaway git repositories."""
from __future__ import annotations

import asyncio
import dataclasses
from pathlib import Path
from typing import AsyncIterable

import git
import pytest

from ghrepo.domain.entities import Release, ReleaseAsset, RemoteRepositoryRecord, RepositoryUpdate
from ghrepo.domain.errors import GitHubAPIError, RepositoryNotFoundError
from ghrepo.domain.interfaces import IRepoHost

TEST_ACTOR = git.Actor("Test User", "test@example.com")


@pytest.fixture(autouse=True)
def _git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    """Commits made by the code under test need an author, CI machines have none."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", TEST_ACTOR.name)
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", TEST_ACTOR.email)
    monkeypatch.setenv("GIT_COMMITTER_NAME", TEST_ACTOR.name)
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", TEST_ACTOR.email)


def make_record(owner: str = "acme", name: str = "widget", **fields) -> RemoteRepositoryRecord:
    defaults = {"description": "A widget", "topics": ("go", "cli"), "archived": False}
    defaults.update(fields)
    return RemoteRepositoryRecord(owner=owner, name=name, **defaults)


def commit_file(repo: git.Repo, name: str = "README.md", content: str = "hello\n", message: str = "initial") -> git.Commit:
    path = Path(repo.working_tree_dir) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.index.add([name])
    return repo.index.commit(message, author=TEST_ACTOR, committer=TEST_ACTOR)


class FakeHost(IRepoHost):
    """
    IRepoHost kept entirely in memory.

    `calls` records (method, args...) for every call so tests can assert
    how many live round trips happened.
    """

    def __init__(self) -> None:
        self.repos: dict[tuple[str, str], RemoteRepositoryRecord] = {}
        self.pages: dict[str, list[list[RemoteRepositoryRecord]]] = {}
        self.fail_on_page: dict[str, int] = {}
        self.calls: list[tuple] = []
        self.create_error: Exception | None = None
        self.edit_gate: asyncio.Event | None = None
        self.latest_tag = "v1.2.3"
        self.latest_error: Exception | None = None

    def add(self, record: RemoteRepositoryRecord) -> None:
        self.repos[(record.owner, record.name)] = record

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    async def get_repository(self, owner: str, name: str) -> RemoteRepositoryRecord:
        self.calls.append(("get_repository", owner, name))
        try:
            return self.repos[(owner, name)]
        except KeyError:
            raise RepositoryNotFoundError(404, "Not Found") from None

    async def _page(self, method: str, owner: str, page: int) -> tuple[list[RemoteRepositoryRecord], int]:
        self.calls.append((method, owner, page))
        await asyncio.sleep(0)
        if self.fail_on_page.get(owner) == page:
            raise GitHubAPIError(502, "Bad Gateway")
        pages = self.pages.get(owner, [[]])
        next_page = page + 1 if page < len(pages) else 0
        return list(pages[page - 1]), next_page

    async def list_repositories_by_user(self, user: str, page: int, per_page: int) -> tuple[list[RemoteRepositoryRecord], int]:
        return await self._page("list_repositories_by_user", user, page)

    async def list_repositories_by_org(self, org: str, page: int, per_page: int) -> tuple[list[RemoteRepositoryRecord], int]:
        return await self._page("list_repositories_by_org", org, page)

    async def create_repository(self, name: str, org: str | None = None, private: bool = True) -> RemoteRepositoryRecord:
        self.calls.append(("create_repository", name, org, private))
        if self.create_error is not None:
            raise self.create_error
        record = RemoteRepositoryRecord(owner=org or "me", name=name, private=private, topics=())
        self.add(record)
        return record

    async def edit_repository(self, owner: str, name: str, update: RepositoryUpdate) -> RemoteRepositoryRecord:
        self.calls.append(("edit_repository", owner, name, update))
        if self.edit_gate is not None:
            await self.edit_gate.wait()
        current = self.repos.get((owner, name)) or RemoteRepositoryRecord(owner=owner, name=name)
        updated = dataclasses.replace(current, **update.set_fields())
        self.add(updated)
        return updated

    async def replace_topics(self, owner: str, name: str, topics: list[str]) -> list[str]:
        self.calls.append(("replace_topics", owner, name, list(topics)))
        return list(topics)

    async def get_latest_release(self, owner: str, name: str) -> Release:
        self.calls.append(("get_latest_release", owner, name))
        if self.latest_error is not None:
            raise self.latest_error
        return Release(id=7, tag_name=self.latest_tag, name=self.latest_tag, draft=False, prerelease=False, upload_url=None)

    async def create_release(self, owner: str, name: str, tag_name: str, *, release_name: str | None = None, body: str | None = None, draft: bool = False, prerelease: bool = False) -> Release:
        self.calls.append(("create_release", owner, name, tag_name))
        return Release(id=8, tag_name=tag_name, name=release_name, draft=draft, prerelease=prerelease, upload_url=None)

    async def upload_release_asset(self, owner: str, name: str, release_id: int, asset_name: str, content: AsyncIterable[bytes], size: int, content_type: str) -> ReleaseAsset:
        body = b"".join([chunk async for chunk in content])
        self.calls.append(("upload_release_asset", asset_name, content_type, size, body))
        return ReleaseAsset(id=len(self.calls), name=asset_name, size=len(body), content_type=content_type, browser_download_url=None)


@pytest.fixture()
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture()
def git_repo(tmp_path: Path) -> git.Repo:
    """A fresh repository with no commits."""
    return git.Repo.init(tmp_path / "work")
