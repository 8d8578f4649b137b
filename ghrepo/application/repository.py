from __future__ import annotations

import base64
import logging
import os
from pathlib import Path
from typing import BinaryIO, Iterator, Mapping

import semver

from ghrepo.domain.entities import ReferenceName, Release, ReleaseAsset, RemoteRepositoryRecord, RepositoryUpdate
from ghrepo.domain.errors import GhRepoError, ReleaseVersionError
from ghrepo.domain.interfaces import IRepoHost
from ghrepo.infrastructure.command_runner import CommandRunner
from ghrepo.infrastructure.filesystem import RootedFileSystem
from ghrepo.infrastructure.git_worktree import LocalWorkingCopy
from .branch_resolver import REMOTE_NAME
from .metadata_editor import RepositoryMetadata
from .release_publisher import ReleasePublisher

log = logging.getLogger(__name__)

GITHUB_WEB_URL = "https://github.com"


def github_remote_url(owner: str, name: str) -> str:
    return f"{GITHUB_WEB_URL}/{owner}/{name}.git"


def parse_release_version(tag_name: str) -> semver.Version:
    """
    Semantic version from a release tag. A leading "v" is dropped and a
    missing minor or patch counts as 0 ("v1.4" → 1.4.0).
    """
    try:
        return semver.Version.parse(tag_name.removeprefix("v"), optional_minor_and_patch=True)
    except ValueError as exc:
        raise ReleaseVersionError(f"release tag {tag_name!r} is not a semantic version: {exc}") from exc


class Repository:
    """
    A local git repository linked to its GitHub counterpart.

    Built by Service.new_repository. Local operations go through the
    working copy, file access is confined to the repository directory,
    metadata reads and edits go through RepositoryMetadata (one lock per
    repository), and releases through ReleasePublisher.

    The default branch is resolved once, at construction, and never
    changes for the lifetime of the handle.
    """

    def __init__(
        self,
        owner: str,
        name: str,
        local: LocalWorkingCopy,
        default_branch: ReferenceName,
        metadata: RepositoryMetadata,
        host: IRepoHost,
        token: str | None = None,
    ) -> None:
        self._owner          = owner
        self._name           = name
        self._local          = local
        self._default_branch = default_branch
        self._metadata       = metadata
        self._host           = host
        self._token          = token
        self._path           = local.path
        self.fs              = RootedFileSystem(self._path)
        self._runner         = CommandRunner(self._path)
        self._publisher      = ReleasePublisher(host, self.fs, owner, name)

    def __str__(self) -> str:
        return f"{self._owner}/{self._name}"

    def __repr__(self) -> str:
        return f"Repository({self}, path={str(self._path)!r})"

    @property
    def owner(self) -> str:
        """User or organisation owning the repository."""
        return self._owner

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> Path:
        return self._path

    @property
    def default_branch(self) -> ReferenceName:
        return self._default_branch

    @property
    def remote_url(self) -> str:
        return github_remote_url(self._owner, self._name)

    # --- file system ------------------------------------------------------

    def open(self, path: str | os.PathLike[str]) -> BinaryIO:
        return self.fs.open(path)

    def stat(self, path: str | os.PathLike[str]) -> os.stat_result:
        return self.fs.stat(path)

    def remove(self, path: str | os.PathLike[str]) -> None:
        self.fs.remove(path)

    def walk(self, skip_dirs: tuple[str, ...] = ()) -> Iterator[Path]:
        return self.fs.walk(skip_dirs)

    # --- commands ---------------------------------------------------------

    async def exec_command(self, name: str, *args: str, env: Mapping[str, str] | None = None) -> bytes:
        """Run `name args...` in the repository root; returns combined stdout + stderr."""
        return await self._runner.run(name, *args, env=env)

    # --- working copy -----------------------------------------------------

    def has_changes(self) -> bool:
        """True unless the working tree and the index are completely clean."""
        return not self._local.is_clean()

    def changed_files(self) -> list[str]:
        return self._local.changed_files()

    def status(self) -> dict[str, str]:
        return self._local.status()

    def reset(self) -> None:
        self._local.reset()

    def is_default_branch(self) -> bool:
        return self._local.head_name() == self._default_branch

    def checkout_default(self) -> None:
        self._local.checkout(self._default_branch)

    def commit(self, paths: list[str], message: str) -> str | None:
        return self._local.commit(paths, message)

    def commit_all(self, message: str) -> str | None:
        return self.commit(["."], message)

    def _auth_env(self) -> dict[str, str]:
        # Passed through GIT_CONFIG_* so the token never shows up in argv.
        if not self._token:
            return {}
        basic = base64.b64encode(f"git:{self._token}".encode()).decode("ascii")
        return {
            "GIT_CONFIG_COUNT":   "1",
            "GIT_CONFIG_KEY_0":   f"http.{GITHUB_WEB_URL}/.extraheader",
            "GIT_CONFIG_VALUE_0": f"AUTHORIZATION: basic {basic}",
        }

    async def pull(self) -> None:
        """Fast-forward the current branch from origin. Already up to date is fine."""
        branch = self._local.head_name()
        await self.exec_command("git", "pull", "--ff-only", REMOTE_NAME, branch.short, env=self._auth_env())

    async def push(self) -> None:
        """Push all local branches to GitHub. Nothing to push is fine."""
        await self.exec_command("git", "push", self.remote_url, "refs/heads/*:refs/heads/*", env=self._auth_env())

    # --- metadata ---------------------------------------------------------

    async def record(self) -> RemoteRepositoryRecord:
        return await self._metadata.snapshot()

    async def description(self) -> str:
        return await self._metadata.description()

    async def topics(self) -> list[str]:
        return await self._metadata.topics()

    async def archived(self) -> bool:
        return await self._metadata.archived()

    async def edit(self, update: RepositoryUpdate) -> bool:
        return await self._metadata.edit(update)

    async def set_description(self, description: str) -> bool:
        return await self._metadata.set_description(description)

    async def set_topics(self, topics: list[str]) -> bool:
        return await self._metadata.set_topics(topics)

    # --- releases ---------------------------------------------------------

    async def latest_release(self) -> Release:
        return await self._host.get_latest_release(self._owner, self._name)

    async def latest_release_version(self) -> semver.Version:
        try:
            release = await self.latest_release()
        except GhRepoError as exc:
            raise ReleaseVersionError(f"getting latest release: {exc}") from exc
        return parse_release_version(release.tag_name)

    async def create_release(
        self,
        tag_name: str,
        name: str | None = None,
        body: str | None = None,
        draft: bool = False,
        prerelease: bool = False,
    ) -> Release:
        return await self._host.create_release(
            self._owner, self._name, tag_name,
            release_name=name, body=body, draft=draft, prerelease=prerelease,
        )

    async def upload_release_binary(
        self,
        release_id: int,
        path: str | os.PathLike[str],
        suffix: str = "",
        info: os.stat_result | None = None,
    ) -> tuple[ReleaseAsset, ReleaseAsset]:
        """
        Zip the binary at `path` (relative to the repository root) and
        upload it to the release together with its SHA-256 checksum.

        The zip holds a single entry named after the repository plus
        `suffix` (e.g. ".exe"). Returns the (zip, checksum) assets.
        """
        return await self._publisher.publish(release_id, path, suffix, info)
