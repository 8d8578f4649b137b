from __future__ import annotations

import logging

import git  # GitPython

from ghrepo.domain.errors import ReferenceNotFoundError
from ghrepo.domain.interfaces import IReferenceStore

log = logging.getLogger(__name__)

# git itself gives up after this many symbolic hops.
MAX_SYMREF_DEPTH = 5


class GitReferenceStore(IReferenceStore):
    """
    IReferenceStore on top of GitPython's reference objects.

    Reads loose and packed refs straight from the .git directory; no git
    process is started.
    """

    def __init__(self, repo: git.Repo) -> None:
        self._repo = repo

    def resolve(self, name: str) -> str:
        ref = git.SymbolicReference(self._repo, name)
        for _ in range(MAX_SYMREF_DEPTH + 1):
            try:
                if ref.is_detached:
                    return str(ref.path)
                ref = ref.reference
            except ValueError as exc:
                # GitPython signals a missing ref with ValueError("Reference at ... does not exist");
                # other ValueErrors mean the ref file is unreadable.
                if "does not exist" in str(exc):
                    raise ReferenceNotFoundError(name) from exc
                raise
        raise ValueError(f"reference {name!r} nests more than {MAX_SYMREF_DEPTH} symbolic references")
