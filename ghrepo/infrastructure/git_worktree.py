from __future__ import annotations

import logging
import os
from pathlib import Path

import git  # GitPython

from ghrepo.domain.entities import MAIN, ReferenceName
from ghrepo.domain.errors import LocalRepositoryError, NotAGitRepositoryError
from .git_refs import GitReferenceStore

log = logging.getLogger(__name__)


class LocalWorkingCopy:
    """
    The local side of a repository: a GitPython Repo plus the handful of
    working-tree operations ghrepo needs.

    Construction goes through open()/init(); both raise
    LocalRepositoryError instead of GitPython's own exceptions.
    """

    def __init__(self, repo: git.Repo) -> None:
        self._repo = repo
        self.refs  = GitReferenceStore(repo)

    @classmethod
    def open(cls, path: str | os.PathLike[str]) -> LocalWorkingCopy:
        try:
            return cls(git.Repo(path))
        except git.InvalidGitRepositoryError as exc:
            raise NotAGitRepositoryError(f"{path} is not a git repository") from exc
        except git.NoSuchPathError as exc:
            raise LocalRepositoryError(f"failed to open git repo at {path}: {exc}") from exc

    @classmethod
    def init(cls, path: str | os.PathLike[str]) -> LocalWorkingCopy:
        """`git init` with HEAD on main, whatever init.defaultBranch says."""
        try:
            repo = git.Repo.init(path)
            repo.git.symbolic_ref("HEAD", MAIN.full)
        except git.GitCommandError as exc:
            raise LocalRepositoryError(f"failed to init git repo at {path}: {exc}") from exc
        log.info("Initialised git repository at %s", path)
        return cls(repo)

    @property
    def path(self) -> Path:
        return Path(self._repo.working_tree_dir)

    # --- status -----------------------------------------------------------

    def status(self) -> dict[str, str]:
        """
        path → two-letter porcelain code ("M ", " M", "??", ...) for every
        file that is not unmodified in both the index and the worktree.
        """
        out = self._repo.git.status("--porcelain=v1", "-z", "--untracked-files=all")
        entries = out.split("\0")
        result: dict[str, str] = {}
        i = 0
        while i < len(entries):
            entry = entries[i]
            i += 1
            if len(entry) < 4:
                continue
            code, path = entry[:2], entry[3:]
            result[path] = code
            if code[0] in "RC":
                i += 1  # the rename/copy source follows as its own entry
        return result

    def is_clean(self) -> bool:
        return not self.status()

    def changed_files(self) -> list[str]:
        return sorted(self.status())

    def reset(self) -> None:
        """Mixed reset to HEAD: unstage everything, keep the worktree."""
        self._repo.head.reset(index=True, working_tree=False)

    # --- branches ---------------------------------------------------------

    def head_name(self) -> ReferenceName:
        """The branch HEAD is on ("HEAD" itself when detached)."""
        return ReferenceName(self.refs.resolve("HEAD"))

    def checkout(self, branch: ReferenceName, create: bool = False) -> None:
        try:
            if create:
                self._repo.git.checkout("-b", branch.short)
            else:
                self._repo.git.checkout(branch.short)
        except git.GitCommandError as exc:
            raise LocalRepositoryError(f"checking out {branch.short}: {exc}") from exc

    # --- commits ----------------------------------------------------------

    def commit(self, paths: list[str], message: str) -> str | None:
        """
        Stage `paths` (additions, modifications and deletions) and commit.

        Returns the new commit's sha, or None when nothing was staged:
        an empty commit is not an error, there is simply nothing to do.
        """
        for path in paths:
            try:
                self._repo.git.add("--all", "--", path)
            except git.GitCommandError as exc:
                raise LocalRepositoryError(f"failed to add {path!r} to worktree: {exc}") from exc

        if not self._has_staged_changes():
            log.debug("Nothing to commit in %s", self.path)
            return None

        try:
            commit = self._repo.index.commit(message)
        except (git.GitCommandError, OSError, ValueError) as exc:
            raise LocalRepositoryError(f"commit failed: {exc}") from exc
        return commit.hexsha

    def _has_staged_changes(self) -> bool:
        try:
            self._repo.git.diff("--cached", "--quiet")
        except git.GitCommandError as exc:
            if exc.status == 1:
                return True
            raise LocalRepositoryError(f"inspecting the index: {exc}") from exc
        return False

    # --- remotes ----------------------------------------------------------

    def has_remote(self, name: str) -> bool:
        return any(remote.name == name for remote in self._repo.remotes)

    def create_remote(self, name: str, url: str) -> None:
        try:
            self._repo.create_remote(name, url)
        except git.GitCommandError as exc:
            raise LocalRepositoryError(f"failed to create {name} remote: {exc}") from exc
        log.info("Added remote %s → %s", name, url)
