from __future__ import annotations

import asyncio
import io
import logging
import mimetypes
import os
from pathlib import Path, PurePosixPath

from ghrepo.domain.entities import CHECKSUM_LENGTH, ReleaseAsset
from ghrepo.domain.errors import ReleaseUploadError
from ghrepo.domain.interfaces import IRepoHost
from ghrepo.infrastructure.filesystem import RootedFileSystem
from .archiver import DigestingReader, new_temp_archive, remove_quietly, zip_binary

log = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def content_type_for(asset_name: str) -> str:
    """MIME type from the asset's extension ("x.zip" → "application/zip")."""
    content_type, _ = mimetypes.guess_type(asset_name, strict=False)
    return content_type or DEFAULT_CONTENT_TYPE


def checksum_asset_name(binary_name: str) -> str:
    return f"{binary_name}_checksum_sha256.txt"


async def _run_to_completion(func, *args):
    """
    Run `func` in a worker thread and return its result.

    A thread cannot be interrupted, so when the awaiting task is
    cancelled this still waits for the thread to finish before the
    CancelledError propagates. Whatever the thread was writing is then
    complete and safe to remove.
    """
    work = asyncio.ensure_future(asyncio.to_thread(func, *args))
    try:
        return await asyncio.shield(work)
    except asyncio.CancelledError:
        await asyncio.wait([work])
        if not work.cancelled() and work.exception() is not None:
            log.debug("%s failed after cancellation: %s", func.__name__, work.exception())
        raise


class ReleasePublisher:
    """
    Publishes a built binary as a pair of release assets:

        <binary>.zip                      — one deflated entry, <repo><suffix>
        <binary>_checksum_sha256.txt      — hex SHA-256 of the .zip above

    The checksum is computed while the zip is being uploaded, over the
    very bytes that went out, so it verifies the archive asset and not
    the raw binary.

    Steps run strictly in order: archive → stat → upload zip → upload
    checksum. The temporary zip is removed on every exit path. There is
    no rollback: a zip without its checksum asset is a visible, partial
    outcome the caller can detect.
    """

    def __init__(self, host: IRepoHost, fs: RootedFileSystem, owner: str, name: str) -> None:
        self._host  = host
        self._fs    = fs
        self._owner = owner
        self._name  = name

    async def publish(self, release_id: int, path: str | os.PathLike[str], suffix: str = "", info: os.stat_result | None = None) -> tuple[ReleaseAsset, ReleaseAsset]:
        binary_name = PurePosixPath(os.fspath(path)).name
        if info is None:
            info = self._fs.stat(path)

        tmp_path = new_temp_archive(prefix=f"{self._name}-")
        try:
            with self._fs.open(path) as src:
                await _run_to_completion(zip_binary, src, info, self._name + suffix, tmp_path)
            return await self._upload_pair(release_id, binary_name, tmp_path)
        finally:
            remove_quietly(tmp_path)

    async def _upload_pair(self, release_id: int, binary_name: str, zip_path: Path) -> tuple[ReleaseAsset, ReleaseAsset]:
        zip_name = binary_name + ".zip"

        with zip_path.open("rb") as archive:
            size   = os.fstat(archive.fileno()).st_size
            reader = DigestingReader(archive, size)
            zip_asset = await self.upload_asset(release_id, zip_name, reader)

        checksum = reader.hexdigest()
        if len(checksum) != CHECKSUM_LENGTH:
            raise RuntimeError(f"unexpected checksum length {len(checksum)}")

        checksum_name  = checksum_asset_name(binary_name)
        checksum_asset = await self.upload_asset(
            release_id, checksum_name,
            DigestingReader(io.BytesIO(checksum.encode("ascii")), CHECKSUM_LENGTH),
        )

        log.info(
            "Published %s and %s to release %d of %s/%s (sha256 %s)",
            zip_name, checksum_name, release_id, self._owner, self._name, checksum,
        )
        return zip_asset, checksum_asset

    async def upload_asset(self, release_id: int, asset_name: str, reader: DigestingReader) -> ReleaseAsset:
        """Upload one asset, declaring exactly reader.size bytes."""
        try:
            return await self._host.upload_release_asset(
                self._owner, self._name, release_id, asset_name,
                reader, reader.size, content_type_for(asset_name),
            )
        except Exception as exc:
            raise ReleaseUploadError(asset_name, exc) from exc
