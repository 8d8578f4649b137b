from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
import time
import zipfile
from pathlib import Path
from typing import AsyncIterator, BinaryIO

from ghrepo.domain.errors import ArchiveError, AssetSizeMismatchError

log = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

# Earliest timestamp a zip header can hold.
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def new_temp_archive(prefix: str = "release-") -> Path:
    """Create an empty temporary .zip file and return its path; the caller removes it."""
    fd, tmp_name = tempfile.mkstemp(prefix=prefix, suffix=".zip")
    os.close(fd)
    return Path(tmp_name)


def zip_binary(src: BinaryIO, info: os.stat_result, entry_name: str, dest: Path) -> Path:
    """
    Write `src` into the zip file `dest` as its only entry.

    The entry is called `entry_name` whatever the source file was called,
    so the extracted file always has a predictable name ("myrepo.exe").
    Modification time and permission bits come from `info`. Content is
    streamed in CHUNK_SIZE pieces and deflated.

    The archive is fully closed (central directory written) before the
    path is returned. On failure `dest` is removed and ArchiveError is
    raised.
    """
    entry = zipfile.ZipInfo(entry_name, date_time=max(time.localtime(info.st_mtime)[:6], ZIP_EPOCH))
    entry.compress_type = zipfile.ZIP_DEFLATED
    entry.external_attr = (info.st_mode & 0xFFFF) << 16
    # Lets zipfile decide up front whether the entry needs ZIP64 headers.
    entry.file_size = info.st_size

    try:
        with dest.open("wb") as tmp, zipfile.ZipFile(tmp, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            with zf.open(entry, "w") as out:
                shutil.copyfileobj(src, out, CHUNK_SIZE)
    except Exception as exc:
        remove_quietly(dest)
        raise ArchiveError(f"writing {entry_name!r} to zip: {exc}") from exc

    log.debug("Archived %s into %s (%d bytes)", entry_name, dest, dest.stat().st_size)
    return dest


def remove_quietly(path: Path) -> None:
    """Best-effort delete; a failure is logged, never raised."""
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        log.warning("Could not remove temporary file %s: %s", path, exc)


class DigestingReader:
    """
    Tee between a file and the upload transport.

    Iterating yields the file's bytes chunk by chunk; every chunk is also
    folded into a SHA-256 accumulator, so the digest covers exactly the
    bytes that were sent. Memory use is one chunk plus the hash state.

    The declared `size` is enforced: producing more bytes, or hitting EOF
    early, raises AssetSizeMismatchError instead of sending a truncated
    or padded body.
    """

    def __init__(self, fileobj: BinaryIO, size: int, chunk_size: int = CHUNK_SIZE) -> None:
        self._fileobj    = fileobj
        self._size       = size
        self._chunk_size = chunk_size
        self._hash       = hashlib.sha256()
        self._sent       = 0
        self._done       = False

    @property
    def size(self) -> int:
        return self._size

    @property
    def bytes_sent(self) -> int:
        return self._sent

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while chunk := self._fileobj.read(self._chunk_size):
            if self._sent + len(chunk) > self._size:
                raise AssetSizeMismatchError(self._size, self._sent + len(chunk))
            self._sent += len(chunk)
            self._hash.update(chunk)
            yield chunk

        if self._sent != self._size:
            raise AssetSizeMismatchError(self._size, self._sent)
        self._done = True

    def hexdigest(self) -> str:
        """Lowercase hex SHA-256 of everything streamed. Only valid after EOF."""
        if not self._done:
            raise RuntimeError("digest requested before the stream was fully consumed")
        return self._hash.hexdigest()
