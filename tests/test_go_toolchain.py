from __future__ import annotations

import asyncio
import subprocess
from pathlib import Path

import pytest

from ghrepo.application.go_toolchain import (
    COVER_FILE,
    GO_VET_NO_PACKAGES,
    GOLANGCI_NO_PACKAGES,
    GoRepository,
    parse_total_coverage,
)
from ghrepo.domain.errors import CoverageParseError, ExecutionError
from ghrepo.infrastructure.filesystem import RootedFileSystem

COVER_REPORT = (
    "example.com/widget/widget.go:10:\tNew\t\t100.0%\n"
    "example.com/widget/widget.go:20:\tRun\t\t33.3%\n"
    "total:\t\t\t(statements)\t\t42.5%\n"
)


class FakeRepo:
    """Just enough of Repository for GoRepository: a rooted fs and a scripted exec_command."""

    def __init__(self, root: Path) -> None:
        self.fs = RootedFileSystem(root)
        self.commands: list[tuple[str, ...]] = []
        self.failures: dict[tuple[str, ...], str] = {}
        self.outputs: dict[tuple[str, ...], bytes] = {}
        self.delays: dict[tuple[str, ...], float] = {}
        self.finished: list[tuple[str, ...]] = []

    def __str__(self) -> str:
        return "acme/widget"

    def walk(self, skip_dirs: tuple[str, ...] = ()):
        return self.fs.walk(skip_dirs)

    async def exec_command(self, name: str, *args: str, env=None) -> bytes:
        command = (name, *args)
        self.commands.append(command)
        await asyncio.sleep(self.delays.get(command, 0))
        self.finished.append(command)
        if command[:2] == ("go", "test"):
            (self.fs.root / COVER_FILE).write_text("mode: atomic\n")
        if command in self.failures:
            out = self.failures[command]
            raise ExecutionError(" ".join(command), out, subprocess.CalledProcessError(1, list(command)))
        return self.outputs.get(command, b"")


@pytest.fixture()
def repo(tmp_path: Path) -> FakeRepo:
    return FakeRepo(tmp_path)


# ── coverage parsing ───────────────────────────────────────────────────────────


def test_total_coverage_is_parsed() -> None:
    assert parse_total_coverage(COVER_REPORT) == 42.5


def test_report_without_total_line_is_an_error() -> None:
    with pytest.raises(CoverageParseError, match="no 'total:' line"):
        parse_total_coverage("example.com/widget/widget.go:10:\tNew\t\t100.0%\n")


@pytest.mark.parametrize("line", [
    "total:\t\t(statements)\t\t42%",
    "total:\t\t(statements)\t\t42.55%",
    "total: (statements) 42.5%",
    "total:\t\t(statements)\t\t42x5%",
])
def test_malformed_total_line_is_an_error(line: str) -> None:
    with pytest.raises(CoverageParseError, match="failed to parse"):
        parse_total_coverage(line)


# ── tools ──────────────────────────────────────────────────────────────────────


async def test_go_test_cover_returns_total_and_removes_profile(repo: FakeRepo) -> None:
    repo.outputs[("go", "tool", "cover", f"-func={COVER_FILE}")] = COVER_REPORT.encode()

    assert await GoRepository(repo).go_test_cover() == 42.5

    assert repo.commands[0][:3] == ("go", "test", "./...")
    assert "-race" in repo.commands[0] and "-shuffle=on" in repo.commands[0]
    assert not (repo.fs.root / COVER_FILE).exists()


async def test_go_test_cover_removes_profile_when_tests_fail(repo: FakeRepo) -> None:
    repo.failures[(
        "go", "test", "./...", "-race", "-cover", "-covermode=atomic",
        f"-coverprofile={COVER_FILE}", "-v", "-shuffle=on",
    )] = "--- FAIL: TestRun"

    with pytest.raises(ExecutionError, match="FAIL: TestRun"):
        await GoRepository(repo).go_test_cover()

    assert not (repo.fs.root / COVER_FILE).exists()
    assert len(repo.commands) == 1


async def test_go_vet_tolerates_no_packages(repo: FakeRepo) -> None:
    repo.failures[("go", "vet", "./...")] = GO_VET_NO_PACKAGES

    await GoRepository(repo).go_vet()


async def test_go_vet_reports_real_findings(repo: FakeRepo) -> None:
    repo.failures[("go", "vet", "./...")] = "./main.go:3:2: unreachable code"

    with pytest.raises(ExecutionError):
        await GoRepository(repo).go_vet()


async def test_golangci_lint_tolerates_no_go_files(repo: FakeRepo) -> None:
    repo.failures[("golangci-lint", "run", "./...")] = GOLANGCI_NO_PACKAGES

    await GoRepository(repo).golangci_lint()


async def test_golangci_lint_reports_findings(repo: FakeRepo) -> None:
    repo.failures[("golangci-lint", "run", "./...")] = "main.go:5:1: exported function should have comment"

    with pytest.raises(ExecutionError):
        await GoRepository(repo).golangci_lint()


async def test_goimports_runs_on_go_files_outside_vendor(repo: FakeRepo) -> None:
    for relative in ["main.go", "README.md", "pkg/a.go", "vendor/x/x.go", ".git/hooks/h.go"]:
        path = repo.fs.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("package x\n")

    await GoRepository(repo).goimports()

    assert sorted(repo.commands) == [("goimports", "-w", "main.go"), ("goimports", "-w", "pkg/a.go")]


async def test_goimports_waits_for_every_file_before_failing(repo: FakeRepo) -> None:
    for name in ["a.go", "b.go", "c.go"]:
        (repo.fs.root / name).write_text("package x\n")
    repo.failures[("goimports", "-w", "a.go")] = "a.go:1:1: expected 'package'"
    repo.delays[("goimports", "-w", "c.go")] = 0.05

    with pytest.raises(ExecutionError, match="a.go"):
        await GoRepository(repo).goimports()

    assert sorted(repo.finished) == [("goimports", "-w", f) for f in ["a.go", "b.go", "c.go"]]


async def test_update_dependencies_runs_in_order(repo: FakeRepo) -> None:
    await GoRepository(repo).update_dependencies()

    assert repo.commands == [
        ("go", "get", "-u", "all"),
        ("go", "mod", "tidy"),
        ("go", "mod", "vendor"),
    ]


async def test_failing_step_stops_dependency_update(repo: FakeRepo) -> None:
    repo.failures[("go", "mod", "tidy")] = "go: module lookup disabled"

    with pytest.raises(ExecutionError):
        await GoRepository(repo).update_dependencies()

    assert ("go", "mod", "vendor") not in repo.commands


def test_is_go_repo(repo: FakeRepo) -> None:
    assert not GoRepository(repo).is_go_repo()
    (repo.fs.root / "go.mod").write_text("module example.com/widget\n")
    assert GoRepository(repo).is_go_repo()
