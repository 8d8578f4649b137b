from __future__ import annotations

from pathlib import Path

import pytest

from ghrepo.infrastructure.filesystem import RootedFileSystem


@pytest.fixture()
def fs(tmp_path: Path) -> RootedFileSystem:
    root = tmp_path / "repo"
    for relative in ["main.go", "cmd/tool/main.go", "vendor/dep/dep.go", ".git/HEAD", "README.md"]:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(relative)
    return RootedFileSystem(root)


@pytest.mark.parametrize("path", ["../escape", "/etc/passwd", "cmd/../../escape"])
def test_paths_outside_the_root_are_refused(fs: RootedFileSystem, path: str) -> None:
    with pytest.raises(ValueError, match="escapes"):
        fs.resolve(path)


def test_symlink_out_of_the_root_is_refused(fs: RootedFileSystem, tmp_path: Path) -> None:
    (tmp_path / "secret").write_text("s3cr3t")
    (fs.root / "link").symlink_to(tmp_path / "secret")

    with pytest.raises(ValueError):
        fs.open("link")


def test_open_and_stat_are_relative_to_the_root(fs: RootedFileSystem) -> None:
    with fs.open("cmd/tool/main.go") as fh:
        assert fh.read() == b"cmd/tool/main.go"
    assert fs.stat("README.md").st_size == len("README.md")
    assert fs.exists("main.go")
    assert not fs.exists("missing.go")


def test_walk_skips_named_directories(fs: RootedFileSystem) -> None:
    files = [path.as_posix() for path in fs.walk(skip_dirs=("vendor", ".git"))]

    assert files == ["README.md", "main.go", "cmd/tool/main.go"]


def test_remove_quiet_ignores_missing_files(fs: RootedFileSystem) -> None:
    fs.remove_quiet("main.go")
    fs.remove_quiet("main.go")

    assert not fs.exists("main.go")
    with pytest.raises(FileNotFoundError):
        fs.remove("main.go")
