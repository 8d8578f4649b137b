from __future__ import annotations

import asyncio
import logging
import os
import subprocess
from pathlib import Path
from typing import Mapping

from ghrepo.domain.errors import ExecutionError

log = logging.getLogger(__name__)


class CommandRunner:
    """
    Runs external programs inside one working directory.

    stdout and stderr are merged, exactly like a terminal would show them.
    Cancelling the awaiting task (directly or through asyncio.timeout)
    kills the child process before the CancelledError propagates, so an
    abandoned `go test` does not keep running in the background.
    """

    def __init__(self, cwd: str | os.PathLike[str]) -> None:
        self._cwd = Path(cwd)

    async def run(self, name: str, *args: str, env: Mapping[str, str] | None = None) -> bytes:
        cmd = " ".join([name, *args])
        log.debug("Running %r in %s", cmd, self._cwd)

        try:
            proc = await asyncio.create_subprocess_exec(
                name, *args,
                cwd    = self._cwd,
                stdout = asyncio.subprocess.PIPE,
                stderr = asyncio.subprocess.STDOUT,
                env    = {**os.environ, **env} if env else None,
            )
        except OSError as exc:
            raise ExecutionError(cmd, "", exc) from exc

        try:
            out, _ = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

        if proc.returncode != 0:
            cause = subprocess.CalledProcessError(proc.returncode, [name, *args], out)
            raise ExecutionError(cmd, out.decode(errors="replace").strip(), cause)

        return out
