from __future__ import annotations

import logging

from ghrepo.domain.entities import MAIN, MASTER, ReferenceName
from ghrepo.domain.errors import NoDefaultBranchError, ReferenceNotFoundError
from ghrepo.domain.interfaces import IReferenceStore

log = logging.getLogger(__name__)

REMOTE_NAME = "origin"
REMOTE_HEAD = ReferenceName.remote(REMOTE_NAME, "HEAD")

# Tried in order when the remote gives no answer.
CANDIDATES = (MAIN, MASTER)


def resolve_default_branch(refs: IReferenceStore) -> ReferenceName:
    """
    Decide which local branch is the repository's default branch.

    First success wins:
      1. origin/HEAD, when it points into refs/remotes/origin/
      2. "main", when HEAD does not resolve yet (freshly initialised repo)
      3. the first of "main", "master" that exists

    Only ReferenceNotFoundError is treated as "try the next rule";
    anything else raised by the store aborts the lookup.
    """
    remote_prefix = ReferenceName.remote(REMOTE_NAME, "").full

    try:
        target = refs.resolve(REMOTE_HEAD.full)
    except ReferenceNotFoundError:
        pass
    else:
        if target.startswith(remote_prefix):
            branch = ReferenceName.branch(target[len(remote_prefix):])
            log.debug("Default branch %s taken from %s", branch, REMOTE_HEAD)
            return branch

    try:
        refs.resolve("HEAD")
    except ReferenceNotFoundError:
        log.debug("HEAD is unborn, assuming %s", MAIN)
        return MAIN

    for candidate in CANDIDATES:
        try:
            refs.resolve(candidate.full)
        except ReferenceNotFoundError:
            continue
        return candidate

    raise NoDefaultBranchError()
