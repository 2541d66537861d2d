"""SSH session pooling with lazy disconnect.

Sessions are keyed by connection identity (address plus credential set), so
Connections that only differ in working directory or environment share one
authenticated session.

Locking Strategy:
- `_meta_lock`: Protects _connections OrderedDict and _host_locks dict structure
- Per-key locks: Protect session creation/removal for one identity
- Lock acquisition order: Always per-key lock first, then meta-lock if needed

LRU Eviction:
- Uses OrderedDict with move_to_end() for O(1) LRU tracking
- Eviction happens when pool reaches max_size before creating a new session
- Oldest (first) session is evicted
"""

import asyncio
import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

import asyncssh

from sshbox.models import PooledConnection

if TYPE_CHECKING:
    from sshbox.models import SSHHost

logger = logging.getLogger(__name__)


class ConnectionPool:
    """SSH session pool with size limits and LRU eviction."""

    def __init__(
        self,
        idle_timeout: int = 60,
        max_size: int = 100,
        known_hosts: str | None = None,
        strict_host_key_checking: bool = True,
    ) -> None:
        """Initialize pool with idle timeout and size limits.

        Args:
            idle_timeout: Seconds before idle sessions are closed
            max_size: Maximum number of concurrent SSH sessions (must be > 0)
            known_hosts: Path to known_hosts file, or None to disable verification
            strict_host_key_checking: Whether to reject unknown host keys

        Raises:
            ValueError: If max_size is not positive
        """
        if max_size <= 0:
            raise ValueError(f"max_size must be > 0, got {max_size}")

        self.idle_timeout = idle_timeout
        self.max_size = max_size
        self._connections: OrderedDict[str, PooledConnection] = OrderedDict()
        self._host_locks: dict[str, asyncio.Lock] = {}
        self._meta_lock = asyncio.Lock()
        self._cleanup_task: asyncio.Task[Any] | None = None

        self._known_hosts = known_hosts
        self._strict_host_key = strict_host_key_checking

        if self._known_hosts is None:
            logger.warning(
                "SSH host key verification DISABLED - vulnerable to MITM attacks. "
                "Set SSHBOX_KNOWN_HOSTS to a valid known_hosts file path."
            )

        logger.debug(
            "ConnectionPool initialized (idle_timeout=%ds, max_size=%d)",
            idle_timeout,
            max_size,
        )

    async def _get_host_lock(self, key: str) -> asyncio.Lock:
        """Get or create lock for a specific session key."""
        async with self._meta_lock:
            if key not in self._host_locks:
                self._host_locks[key] = asyncio.Lock()
            return self._host_locks[key]

    async def _evict_lru_if_needed(self) -> None:
        """Evict least recently used sessions if at capacity.

        Sessions are closed outside the meta-lock to avoid blocking.
        """
        to_close: list[PooledConnection] = []

        async with self._meta_lock:
            while len(self._connections) >= self.max_size:
                oldest = next(iter(self._connections))
                logger.info(
                    "Pool at capacity (%d/%d), evicting LRU: %s",
                    len(self._connections),
                    self.max_size,
                    oldest,
                )
                to_close.append(self._connections.pop(oldest))

        for pooled in to_close:
            pooled.connection.close()

    async def _open(self, host: "SSHHost", known_hosts: Any) -> asyncssh.SSHClientConnection:
        kwargs: dict[str, Any] = {
            "port": host.port,
            "username": host.user,
            "known_hosts": known_hosts,
            "client_keys": list(host.identity_files) or None,
        }
        if host.password is not None:
            kwargs["password"] = host.password
        return await asyncssh.connect(host.hostname, **kwargs)

    async def get_connection(self, host: "SSHHost") -> asyncssh.SSHClientConnection:
        """Get or create a session for the host identity.

        Authentication errors from asyncssh propagate unchanged.
        """
        key = host.pool_key
        host_lock = await self._get_host_lock(key)

        async with host_lock:
            pooled = self._connections.get(key)

            if pooled and not pooled.is_stale:
                pooled.touch()
                async with self._meta_lock:
                    self._connections.move_to_end(key)
                logger.debug(
                    "Reusing existing session to %s (pool_size=%d)",
                    host.address,
                    len(self._connections),
                )
                return pooled.connection

            if pooled and pooled.is_stale:
                logger.info("Session to %s is stale, creating new session", host.address)

            await self._evict_lru_if_needed()

            logger.info("Opening SSH session to %s", host.address)

            try:
                conn = await self._open(host, self._known_hosts)
            except asyncssh.HostKeyNotVerifiable as e:
                if self._strict_host_key:
                    logger.error(
                        "Host key verification failed for %s: %s. "
                        "Add the host key to %s or set "
                        "SSHBOX_STRICT_HOST_KEY_CHECKING=false",
                        host.address,
                        e,
                        self._known_hosts,
                    )
                    raise
                logger.warning(
                    "Host key not verified for %s (strict mode disabled): %s",
                    host.address,
                    e,
                )
                conn = await self._open(host, None)

            async with self._meta_lock:
                self._connections[key] = PooledConnection(connection=conn)
                self._connections.move_to_end(key)

            logger.info(
                "SSH session established to %s (pool_size=%d/%d)",
                host.address,
                len(self._connections),
                self.max_size,
            )

            if self._cleanup_task is None or self._cleanup_task.done():
                self._cleanup_task = asyncio.create_task(self._cleanup_loop())
                logger.debug("Started session cleanup task")

            return conn

    async def _cleanup_loop(self) -> None:
        """Periodically clean up idle sessions."""
        interval = max(self.idle_timeout // 2, 1)
        while True:
            await asyncio.sleep(interval)
            await self._cleanup_idle()

            if not self._connections:
                logger.debug("Cleanup loop stopped - no sessions remaining")
                break

    async def _cleanup_idle(self) -> None:
        """Close sessions that have been idle too long."""
        async with self._meta_lock:
            keys = list(self._connections.keys())

        cutoff = datetime.now() - timedelta(seconds=self.idle_timeout)

        for key in keys:
            host_lock = await self._get_host_lock(key)
            async with host_lock:
                pooled = self._connections.get(key)
                if pooled and (pooled.last_used < cutoff or pooled.is_stale):
                    reason = "stale" if pooled.is_stale else "idle"
                    logger.info(
                        "Closing %s session to %s (pool_size=%d)",
                        reason,
                        key,
                        len(self._connections) - 1,
                    )
                    pooled.connection.close()
                    del self._connections[key]

    async def remove_connection(self, key: str) -> None:
        """Remove and close one session.

        Args:
            key: Pool key of the session (``SSHHost.pool_key``)
        """
        host_lock = await self._get_host_lock(key)
        async with host_lock:
            pooled = self._connections.pop(key, None)
            if pooled is None:
                logger.debug("No session to remove for %s (not in pool)", key)
                return
            logger.info(
                "Removing session to %s (pool_size=%d)", key, len(self._connections)
            )
            pooled.connection.close()

    async def close_all(self) -> None:
        """Close all sessions."""
        async with self._meta_lock:
            keys = list(self._connections.keys())

        if keys:
            logger.info("Closing all %d session(s)", len(keys))
            for key in keys:
                await self.remove_connection(key)

        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()

    def close_all_nowait(self) -> None:
        """Close every session without awaiting; used from the atexit hook."""
        while self._connections:
            _, pooled = self._connections.popitem(last=False)
            pooled.connection.close()

    @property
    def pool_size(self) -> int:
        """Return the current number of sessions in the pool."""
        return len(self._connections)

    @property
    def active_hosts(self) -> list[str]:
        """Return pool keys of open sessions."""
        return list(self._connections.keys())
