from __future__ import annotations

import asyncio
import logging
import re

from ghrepo.domain.errors import CoverageParseError, ExecutionError
from .repository import Repository

log = logging.getLogger(__name__)

COVER_FILE = "cover.out"

# `go tool cover -func` ends with e.g. "total:\t\t\t(statements)\t\t42.5%"
COVER_TOTAL_RE = re.compile(r"^total:\t+\(statements\)\t+([0-9]+\.[0-9])%$")

# Outputs that mean "nothing to check here" rather than "check failed".
GO_VET_NO_PACKAGES = 'go: warning: "./..." matched no packages\nno packages to vet'
GOLANGCI_NO_PACKAGES = (
    'level=error msg="Running error: context loading failed: no go files to analyze: '
    'running `go mod tidy` may solve the problem"'
)


def parse_total_coverage(report: str) -> float:
    """Total statement coverage, in percent, from `go tool cover -func` output."""
    total_line = next((line for line in report.splitlines() if line.startswith("total:")), None)
    if total_line is None:
        raise CoverageParseError("no 'total:' line found in coverage report")

    match = COVER_TOTAL_RE.match(total_line)
    if match is None:
        raise CoverageParseError(f"failed to parse go coverage line {total_line!r}")

    return float(match.group(1))


class GoRepository:
    """
    Go tooling for a Repository: module maintenance, formatters, linters
    and test coverage. Every tool runs as a subprocess in the repository
    root through Repository.exec_command.
    """

    def __init__(self, repo: Repository) -> None:
        self.repo = repo

    def is_go_repo(self) -> bool:
        return self.repo.fs.exists("go.mod")

    async def _go(self, *args: str) -> bytes:
        return await self.repo.exec_command("go", *args)

    async def go_mod_init(self) -> None:
        await self._go("mod", "init")

    async def go_get_all(self) -> None:
        await self._go("get", "-u", "all")

    async def go_mod_tidy(self) -> None:
        await self._go("mod", "tidy")

    async def go_mod_vendor(self) -> None:
        await self._go("mod", "vendor")

    async def update_dependencies(self) -> None:
        """go get -u all, then go mod tidy, then go mod vendor."""
        await self.go_get_all()
        await self.go_mod_tidy()
        await self.go_mod_vendor()

    async def goimports(self) -> None:
        """
        Run `goimports -w` on every .go file outside vendor/ and .git/,
        concurrently. All runs complete before the first error is raised.
        """
        files = [
            path.as_posix()
            for path in self.repo.walk(skip_dirs=("vendor", ".git"))
            if path.suffix == ".go"
        ]
        results = await asyncio.gather(
            *[self.repo.exec_command("goimports", "-w", f) for f in files],
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def gofumpt(self) -> None:
        await self.repo.exec_command("gofumpt", "-extra", "-w", ".")

    async def go_fix(self) -> None:
        await self._go("fix", "./...")

    async def go_vet(self) -> None:
        try:
            await self._go("vet", "./...")
        except ExecutionError as exc:
            if exc.out != GO_VET_NO_PACKAGES:
                raise
            log.debug("go vet: no packages in %s", self.repo)

    async def golangci_lint(self) -> None:
        try:
            await self.repo.exec_command("golangci-lint", "run", "./...")
        except ExecutionError as exc:
            if exc.out != GOLANGCI_NO_PACKAGES:
                raise
            log.debug("golangci-lint: no go files in %s", self.repo)

    async def go_test_cover(self) -> float:
        """
        Run the test suite (race detector, shuffled, atomic coverage) and
        return total statement coverage in percent. cover.out is removed
        afterwards, also when the tests fail.
        """
        try:
            await self._go(
                "test", "./...",
                "-race",
                "-cover", "-covermode=atomic", f"-coverprofile={COVER_FILE}",
                "-v",
                "-shuffle=on",
            )
            out = await self._go("tool", "cover", f"-func={COVER_FILE}")
        finally:
            self.repo.fs.remove_quiet(COVER_FILE)

        return parse_total_coverage(out.decode(errors="replace"))
