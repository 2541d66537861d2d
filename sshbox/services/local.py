"""Local command execution.

LocalExecutor renders and aggregates exactly like a Connection but runs the
command line through ``/bin/sh`` on this machine, so callers can treat local
and remote execution the same way.
"""

import asyncio
import logging
import os
from typing import Any

from sshbox.errors import CommandTimeoutError
from sshbox.models import CommandResult, ResultAggregate
from sshbox.services.runner import BaseRunner
from sshbox.utils.shell import build_prelude

logger = logging.getLogger(__name__)


class LocalExecutor(BaseRunner):
    """Command runner for the local host."""

    def __init__(
        self,
        safe: bool = True,
        cwd: str | os.PathLike[str] | None = None,
        env: dict[str, Any] | None = None,
        timeout: float | None = None,
        info: bool = False,
    ) -> None:
        super().__init__(safe=safe, info=info)
        if cwd is not None:
            self._cwd = self._resolve_dir(os.fspath(cwd))
        for name, value in (env or {}).items():
            self.setenv(name, value)
        self._timeout = timeout or None

    def __repr__(self) -> str:
        return f"LocalExecutor(cwd={self._cwd!r}, safe={self._safe})"

    @property
    def label(self) -> str:
        return "localhost"

    async def run(self, name: str, *args: Any, **kwargs: Any) -> ResultAggregate:
        """Run the command registered as ``name`` locally."""
        return await self.execute(name, *args, **kwargs)

    def _resolve_dir(self, path: str) -> str:
        base = self._cwd or os.getcwd()
        return os.path.normpath(os.path.join(base, os.path.expanduser(path)))

    async def _run(self, line: str, env: dict[str, str]) -> CommandResult:
        # A missing directory fails inside the shell, as it does remotely
        proc = await asyncio.create_subprocess_shell(
            build_prelude(self._cwd) + line,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env={**os.environ, **env},
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), self._timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            logger.warning("[%s] Command timed out after %ss: %s", self.label, self._timeout, line)
            raise CommandTimeoutError(self._timeout or 0, command=line, host=self.label) from e

        return CommandResult(
            output=stdout.decode("utf-8", errors="replace"),
            error=stderr.decode("utf-8", errors="replace"),
            returncode=proc.returncode if proc.returncode is not None else 0,
        )
