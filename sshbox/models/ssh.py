"""SSH-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import asyncssh


@dataclass(frozen=True)
class SSHHost:
    """Identity of one SSH endpoint: address plus credential set."""

    name: str
    hostname: str
    user: str = "root"
    port: int = 22
    identity_files: tuple[str, ...] = ()
    password: str | None = field(default=None, repr=False)

    @property
    def address(self) -> str:
        """Return ``user@hostname:port``."""
        return f"{self.user}@{self.hostname}:{self.port}"

    @property
    def pool_key(self) -> str:
        """Key under which the authenticated session is pooled.

        Two hosts share a session only if address and keys are identical.
        """
        if not self.identity_files:
            return self.address
        return f"{self.address}[{','.join(self.identity_files)}]"

    def with_keys(self, *paths: str) -> "SSHHost":
        """Return a copy with ``paths`` appended to the identity files."""
        merged = list(self.identity_files)
        for path in paths:
            if path not in merged:
                merged.append(path)
        return SSHHost(
            name=self.name,
            hostname=self.hostname,
            user=self.user,
            port=self.port,
            identity_files=tuple(merged),
            password=self.password,
        )


@dataclass
class PooledConnection:
    """A pooled SSH connection with last-used timestamp."""

    connection: "asyncssh.SSHClientConnection"
    last_used: datetime = field(default_factory=datetime.now)

    def touch(self) -> None:
        """Update last-used timestamp."""
        self.last_used = datetime.now()

    @property
    def is_stale(self) -> bool:
        """Check if connection was closed."""
        # asyncssh exposes is_closed() as a method
        is_closed = self.connection.is_closed
        if callable(is_closed):
            is_closed = is_closed()
        return bool(is_closed)
