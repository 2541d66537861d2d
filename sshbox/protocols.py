"""Protocol interfaces for dependency inversion.

Defines the structural contracts that components depend on, so that a
HostGroup can hold any runner and a Connection can use any session pool.

Usage Example:

    from sshbox.protocols import CommandRunner

    async def uptime_everywhere(runners: list[CommandRunner]):
        '''Works for Connection, LocalExecutor and HostGroup alike.'''
        return [await runner.execute("uptime") for runner in runners]

Protocol Benefits:
    - Dependency inversion: Depend on abstractions, not concrete classes
    - Easier testing: Mock implementations for unit tests
    - Runtime checking: @runtime_checkable enables isinstance() checks
"""

from typing import Any, Protocol, runtime_checkable

from sshbox.models import ResultAggregate, SSHHost


@runtime_checkable
class SessionPool(Protocol):
    """Protocol for SSH session pooling.

    Example implementation:
        class MyPool:
            async def get_connection(
                self, host: SSHHost
            ) -> asyncssh.SSHClientConnection:
                # Create or reuse session
                return connection

            async def remove_connection(self, key: str) -> None:
                pass

            async def close_all(self) -> None:
                pass
    """

    async def get_connection(self, host: SSHHost) -> Any:
        """Get or create a session for the host identity.

        Args:
            host: SSH host identity

        Returns:
            SSH connection object
        """
        ...

    async def remove_connection(self, key: str) -> None:
        """Remove and close a session.

        Args:
            key: Pool key of the session

        Note:
            Safe to call even if the session doesn't exist.
        """
        ...

    async def close_all(self) -> None:
        """Close all sessions in the pool."""
        ...


@runtime_checkable
class CommandRunner(Protocol):
    """Uniform command surface of Connection, LocalExecutor and HostGroup.

    Example implementation:
        class EchoRunner:
            label = "echo"

            async def execute(self, name: str, *args, **kwargs):
                return ResultAggregate.scalar(name, producer=self)

            def commands(self) -> set[str]:
                return {"anything"}
    """

    @property
    def label(self) -> str:
        """Short name used to attribute results and errors."""
        ...

    async def execute(self, name: str, *args: Any, **kwargs: Any) -> ResultAggregate:
        """Run a registered command.

        Raises:
            CommandNotFoundError: If ``name`` is not registered
            CommandError: If the command exits non-zero
        """
        ...

    def commands(self) -> set[str]:
        """Return the command names callable on this runner."""
        ...


__all__ = [
    "CommandRunner",
    "SessionPool",
]
