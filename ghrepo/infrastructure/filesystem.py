from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO, Iterator

log = logging.getLogger(__name__)


class RootedFileSystem:
    """
    File access confined to one directory (the repository root).

    All paths are relative to the root; a path that would escape it
    (through "..", an absolute path or a symlink) raises ValueError.
    """

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, path: str | os.PathLike[str]) -> Path:
        full = (self._root / path).resolve()
        if full != self._root and self._root not in full.parents:
            raise ValueError(f"path {os.fspath(path)!r} escapes {self._root}")
        return full

    def open(self, path: str | os.PathLike[str]) -> BinaryIO:
        return self.resolve(path).open("rb")

    def stat(self, path: str | os.PathLike[str]) -> os.stat_result:
        return self.resolve(path).stat()

    def exists(self, path: str | os.PathLike[str]) -> bool:
        return self.resolve(path).exists()

    def remove(self, path: str | os.PathLike[str]) -> None:
        self.resolve(path).unlink()

    def remove_quiet(self, path: str | os.PathLike[str]) -> None:
        """Remove `path`; a missing file is fine, other failures are logged."""
        try:
            self.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            log.warning("Could not remove %s: %s", path, exc)

    def walk(self, skip_dirs: tuple[str, ...] = ()) -> Iterator[Path]:
        """Yield every file below the root as a root-relative path."""
        for dirpath, dirnames, filenames in os.walk(self._root):
            dirnames[:] = sorted(d for d in dirnames if d not in skip_dirs)
            for filename in sorted(filenames):
                yield (Path(dirpath) / filename).relative_to(self._root)
