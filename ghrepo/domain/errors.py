from __future__ import annotations


class GhRepoError(Exception):
    """Base class for every error raised by ghrepo."""


class ConfigError(GhRepoError):
    """Raised when required configuration is missing or malformed."""


class ExecutionError(GhRepoError):
    """
    An external command exited unsuccessfully (or could not be started).

        cmd    — the full command line that was attempted, e.g. "go mod tidy"
        out    — combined stdout + stderr, stripped
        cause  — the underlying CalledProcessError / OSError
    """

    def __init__(self, cmd: str, out: str, cause: BaseException) -> None:
        self.cmd   = cmd
        self.out   = out
        self.cause = cause
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.out:
            return f'command "{self.cmd}" failed:\n{self.out}\n{self.cause}'
        return f'command "{self.cmd}" failed: {self.cause}'


class ReferenceNotFoundError(GhRepoError):
    """A git reference does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"reference not found: {name}")


class NoDefaultBranchError(GhRepoError):
    """None of origin/HEAD, an unborn HEAD, main or master gave a default branch."""

    def __init__(self) -> None:
        super().__init__("no default branch found")


class LocalRepositoryError(GhRepoError):
    """The local working copy could not be opened, initialised or configured."""


class NotAGitRepositoryError(LocalRepositoryError):
    """The directory exists but holds no git repository."""


class GitHubAPIError(GhRepoError):
    """A GitHub REST call answered with an unexpected status."""

    def __init__(self, status: int, message: str, body: str = "") -> None:
        self.status  = status
        self.message = message
        self.body    = body
        super().__init__(f"GitHub API error {status}: {message}")


class RepositoryNotFoundError(GitHubAPIError):
    """GET /repos/{owner}/{name} returned 404."""


class AssetUploadStatusError(GhRepoError):
    """Asset creation did not answer 201 Created. `body` is the raw response body."""

    def __init__(self, status: int, reason: str, body: str) -> None:
        self.status = status
        self.reason = reason
        self.body   = body
        super().__init__(f"upload failed with status {status} {reason}: {body}")


class AssetSizeMismatchError(GhRepoError):
    """The streamed byte count differs from the declared asset size."""

    def __init__(self, declared: int, actual: int) -> None:
        self.declared = declared
        self.actual   = actual
        relation = "more" if actual > declared else "fewer"
        super().__init__(
            f"asset stream produced {relation} bytes than declared "
            f"(declared {declared}, got {actual})"
        )


class ArchiveError(GhRepoError):
    """Building the temporary release archive failed."""


class ReleaseUploadError(GhRepoError):
    """Uploading one of the release assets failed."""

    def __init__(self, asset_name: str, cause: BaseException) -> None:
        self.asset_name = asset_name
        super().__init__(f"uploading {asset_name!r}: {cause}")


class CoverageParseError(GhRepoError):
    """`go tool cover -func` output did not contain a parsable total line."""


class ReleaseVersionError(GhRepoError):
    """The latest release could not be fetched, or its tag is not a semantic version."""
