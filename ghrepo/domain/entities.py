from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

# Length of a hex-encoded SHA-256 digest.
CHECKSUM_LENGTH = 64

# Fields GitHub lets us change through PATCH /repos/{owner}/{repo}.
# Topics are replaced through their own endpoint and are not listed here.
EDITABLE_FIELDS = (
    "description",
    "homepage",
    "private",
    "visibility",
    "archived",
    "default_branch",
    "has_issues",
    "has_projects",
    "has_wiki",
    "is_template",
    "allow_squash_merge",
    "allow_merge_commit",
    "allow_rebase_merge",
    "delete_branch_on_merge",
)


@dataclass(frozen=True)
class ReferenceName:
    """
    Full name of a git reference, e.g. "refs/heads/main".

    Immutable value object. Use the constructors below instead of
    formatting ref paths by hand.
    """
    full: str

    BRANCH_PREFIX = "refs/heads/"
    REMOTE_PREFIX = "refs/remotes/"

    @classmethod
    def branch(cls, name: str) -> ReferenceName:
        return cls(cls.BRANCH_PREFIX + name)

    @classmethod
    def remote(cls, remote: str, name: str) -> ReferenceName:
        return cls(f"{cls.REMOTE_PREFIX}{remote}/{name}")

    @property
    def is_branch(self) -> bool:
        return self.full.startswith(self.BRANCH_PREFIX)

    @property
    def short(self) -> str:
        """"refs/heads/main" → "main", "refs/remotes/origin/dev" → "origin/dev"."""
        for prefix in (self.BRANCH_PREFIX, self.REMOTE_PREFIX, "refs/tags/"):
            if self.full.startswith(prefix):
                return self.full[len(prefix):]
        return self.full

    def __str__(self) -> str:
        return self.full


MAIN   = ReferenceName.branch("main")
MASTER = ReferenceName.branch("master")


@dataclass(frozen=True)
class RemoteRepositoryRecord:
    """
    Immutable snapshot of a GitHub repository's metadata.

    Records are never mutated: an edit produces a brand new record built
    from the server's answer. `raw` keeps the full API payload for the
    fields we don't model.
    """
    owner:                  str
    name:                   str
    description:            str | None = None
    topics:                 tuple[str, ...] | None = None
    archived:               bool | None = None
    homepage:               str | None = None
    private:                bool | None = None
    visibility:             str | None = None
    default_branch:         str | None = None
    has_issues:             bool | None = None
    has_projects:           bool | None = None
    has_wiki:               bool | None = None
    is_template:            bool | None = None
    allow_squash_merge:     bool | None = None
    allow_merge_commit:     bool | None = None
    allow_rebase_merge:     bool | None = None
    delete_branch_on_merge: bool | None = None
    raw:                    Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class RepositoryUpdate:
    """
    Sparse change-set for a repository.

    Only the fields that are set (not None) are requested changes;
    everything left as None means "leave it alone".

    Topics are not part of it: GitHub replaces them through a separate
    endpoint, so they change only through RepositoryMetadata.set_topics.
    """
    description:            str | None = None
    homepage:               str | None = None
    private:                bool | None = None
    visibility:             str | None = None
    archived:               bool | None = None
    default_branch:         str | None = None
    has_issues:             bool | None = None
    has_projects:           bool | None = None
    has_wiki:               bool | None = None
    is_template:            bool | None = None
    allow_squash_merge:     bool | None = None
    allow_merge_commit:     bool | None = None
    allow_rebase_merge:     bool | None = None
    delete_branch_on_merge: bool | None = None

    def set_fields(self) -> dict[str, Any]:
        """The requested changes, as the JSON body of the edit call."""
        return {
            name: getattr(self, name)
            for name in EDITABLE_FIELDS
            if getattr(self, name) is not None
        }


@dataclass(frozen=True)
class Release:
    id:         int
    tag_name:   str
    name:       str | None
    draft:      bool
    prerelease: bool
    upload_url: str | None
    raw:        Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class ReleaseAsset:
    id:                   int
    name:                 str
    size:                 int
    content_type:         str | None
    browser_download_url: str | None
    raw:                  Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class RepositoryOptions:
    """
    How Service.new_repository should open (or create) a repository.

        base_dir          — local repositories live at base_dir/owner/name
        mkdir_all         — create the directory when it is missing
        init_git          — `git init` when the directory is not a repo yet
        create_remote     — add the "origin" remote when it is missing
        github_record     — use this record instead of fetching one
        create_on_github  — create the GitHub repository on a 404
        owner_is_org      — owner is an organisation, not the token's user
    """
    base_dir:         Path = Path(".")
    mkdir_all:        bool = False
    init_git:         bool = False
    create_remote:    bool = False
    github_record:    RemoteRepositoryRecord | None = None
    create_on_github: bool = False
    owner_is_org:     bool = False
