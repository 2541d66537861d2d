"""Connection to one remote host.

A Connection is one SSH endpoint with persistent state: credentials, working
directory, environment overlay and safe mode. Every command is sent as a
fresh remote shell, so directory and environment are re-applied through a
``cd ... && export ... &&`` prelude on each dispatch.

Example:
    async with Connection("web1", keys=["~/.ssh/deploy"]) as conn:
        print(await conn.cd("/var/www").ls(flag("l")))
"""

import asyncio
import logging
import os
import posixpath
from typing import TYPE_CHECKING, Any

import asyncssh

from sshbox.errors import CommandTimeoutError, ConfigurationError
from sshbox.models import CommandResult, SSHHost, TransferResult
from sshbox.services import transfer
from sshbox.services.runner import BaseRunner
from sshbox.utils.shell import build_prelude
from sshbox.utils.validation import validate_host

if TYPE_CHECKING:
    from sshbox.config import Config
    from sshbox.protocols import SessionPool

logger = logging.getLogger(__name__)

ALLOWED_OPTIONS = frozenset({"safe", "keys", "info", "user", "port", "password", "timeout"})


def validate_options(options: dict[str, Any]) -> None:
    """Reject construction options that are not supported.

    Raises:
        ConfigurationError: On unknown option names or invalid values
    """
    unknown = sorted(set(options) - ALLOWED_OPTIONS)
    if unknown:
        raise ConfigurationError(
            f"Unsupported option(s): {', '.join(unknown)}. "
            f"Allowed: {', '.join(sorted(ALLOWED_OPTIONS))}"
        )

    port = options.get("port")
    if port is not None and (not isinstance(port, int) or not 0 < port < 65536):
        raise ConfigurationError(f"Invalid port: {port!r}")

    timeout = options.get("timeout")
    if timeout is not None and (not isinstance(timeout, (int, float)) or timeout < 0):
        raise ConfigurationError(f"Invalid timeout: {timeout!r}")


def normalize_keys(keys: Any) -> tuple[str, ...]:
    """Turn a key path or list of key paths into expanded path strings."""
    if not keys:
        return ()
    if isinstance(keys, (str, os.PathLike)):
        keys = [keys]
    return tuple(os.path.expanduser(os.fspath(k)) for k in keys)


def _decode(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class Connection(BaseRunner):
    """Persistent command-execution endpoint on one SSH host.

    Options:
        safe: Quote arguments so the remote shell does not interpret them
            (default True)
        keys: Private key path(s) added to the credential set
        info: Log every command line at INFO instead of DEBUG
        user: Login user (default: ~/.ssh/config or the local user)
        port: SSH port (default: ~/.ssh/config or 22)
        password: Password for password authentication
        timeout: Per-command timeout in seconds (default: SSHBOX_COMMAND_TIMEOUT)
    """

    def __init__(
        self,
        host: str = "localhost",
        *,
        pool: "SessionPool | None" = None,
        config: "Config | None" = None,
        **options: Any,
    ) -> None:
        validate_options(options)
        validate_host(host)
        super().__init__(safe=options.get("safe", True), info=options.get("info", False))

        if config is None:
            from sshbox.services.state import get_config

            config = get_config()

        self._config = config
        self._pool = pool
        self._host: SSHHost = config.resolve_host(
            host,
            user=options.get("user"),
            port=options.get("port"),
            keys=normalize_keys(options.get("keys")),
            password=options.get("password"),
        )
        timeout = options.get("timeout")
        if timeout is None:
            timeout = config.command_timeout
        self._timeout: float | None = timeout or None
        # Commands on one Connection run strictly in call order
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"Connection({self._host.address!r}, cwd={self._cwd!r}, safe={self._safe})"

    @property
    def label(self) -> str:
        return self._host.name

    @property
    def host(self) -> SSHHost:
        """Identity (address and credentials) of this connection."""
        return self._host

    @property
    def pool(self) -> "SessionPool":
        if self._pool is None:
            from sshbox.services.state import get_pool

            self._pool = get_pool()
        return self._pool

    @property
    def keys(self) -> tuple[str, ...]:
        return self._host.identity_files

    def add_keys(self, *paths: Any) -> "Connection":
        """Append private keys to the credential set.

        The next session opened for this connection authenticates with them.
        """
        self._host = self._host.with_keys(*normalize_keys(paths))
        logger.debug("Keys for %s: %s", self.label, ", ".join(self._host.identity_files))
        return self

    # Session lifecycle

    async def connect(self) -> asyncssh.SSHClientConnection:
        """Open (or reuse) the authenticated session.

        Authentication and transport errors from asyncssh propagate unchanged.
        """
        return await self.pool.get_connection(self._host)

    async def close(self) -> None:
        """Close the session shared by this connection and its scoped handles."""
        await self.pool.remove_connection(self._host.pool_key)

    async def __aenter__(self) -> "Connection":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # Execution

    def _resolve_dir(self, path: str) -> str:
        if self._cwd is not None and not posixpath.isabs(path) and not path.startswith("~"):
            path = posixpath.join(self._cwd, path)
        return posixpath.normpath(path)

    def resolve_path(self, path: str) -> str:
        """Resolve a remote path against the working directory."""
        return self._resolve_dir(os.fspath(path))

    async def _run(self, line: str, env: dict[str, str]) -> CommandResult:
        full_command = build_prelude(self._cwd, env) + line

        async with self._lock:
            conn = await self.connect()
            try:
                result = await conn.run(full_command, check=False, timeout=self._timeout)
            except asyncssh.TimeoutError as e:
                logger.warning("[%s] Command timed out after %ss: %s", self.label, self._timeout, line)
                raise CommandTimeoutError(
                    self._timeout or 0, command=line, host=self.label
                ) from e

        returncode = result.returncode
        if returncode is None:
            # Channel closed without reporting an exit status
            logger.warning("[%s] No exit status received: %s", self.label, line)
            returncode = -1
        return CommandResult(
            output=_decode(result.stdout),
            error=_decode(result.stderr),
            returncode=returncode,
        )

    # File transfer

    async def upload(self, *sources: Any, destination: str) -> TransferResult:
        """Upload local paths or in-memory buffers.

        Args:
            sources: Local file paths, bytes, or binary buffers
            destination: Remote directory (or file path for one source),
                relative to the working directory

        Returns:
            TransferResult
        """
        conn = await self.connect()
        target = self.resolve_path(destination)
        logger.info("Uploading %d source(s) to %s:%s", len(sources), self.label, target)
        return await transfer.upload(conn, list(sources), target)

    async def download(self, remote_path: str, sink: Any) -> TransferResult:
        """Download a remote file into a local path or a writable buffer.

        Returns:
            TransferResult
        """
        conn = await self.connect()
        source = self.resolve_path(remote_path)
        logger.info("Downloading %s:%s", self.label, source)
        return await transfer.download(conn, source, sink)
