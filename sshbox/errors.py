"""Exception taxonomy for sshbox."""

from typing import Any


class SSHBoxError(Exception):
    """Base class for every error raised by sshbox itself."""


class ConfigurationError(SSHBoxError, ValueError):
    """Invalid or unsupported construction option."""


class CommandNotFoundError(SSHBoxError, KeyError):
    """Command name is not registered for this runner."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Command not registered: {self.name}"


class CommandError(SSHBoxError):
    """A command exited with a non-zero status.

    Attributes:
        exit_code: Exit status reported by the program
        stderr: Captured standard error text
        stdout: Captured standard output text
        command: Rendered command line that was executed
        host: Label of the runner that produced the failure
    """

    def __init__(
        self,
        exit_code: int,
        stderr: str = "",
        stdout: str = "",
        command: str = "",
        host: str | None = None,
    ):
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout
        self.command = command
        self.host = host
        super().__init__(self._message())

    def _message(self) -> str:
        where = f"[{self.host}] " if self.host else ""
        detail = self.stderr.strip() or self.stdout.strip()
        msg = f"{where}Command exited with code {self.exit_code}"
        if self.command:
            msg += f": {self.command}"
        if detail:
            msg += f"\n{detail}"
        return msg


class CommandTimeoutError(CommandError):
    """Command did not finish within the configured timeout."""

    def __init__(self, timeout: float, command: str = "", host: str | None = None):
        self.timeout = timeout
        super().__init__(
            exit_code=-1,
            stderr=f"Timed out after {timeout}s",
            command=command,
            host=host,
        )


class GroupCommandError(SSHBoxError):
    """One or more members of a fan-out failed.

    Only raised on request by ``ResultAggregate.raise_for_errors()``; a fan-out
    itself never aborts on a member's non-zero exit.
    """

    def __init__(self, errors: list[CommandError], group: str | None = None):
        self.errors = errors
        self.group = group
        hosts = ", ".join(e.host or "?" for e in errors)
        label = f"group {group!r}" if group else "group"
        super().__init__(f"{len(errors)} member(s) of {label} failed: {hosts}")


class GroupExecutionError(ExceptionGroup):
    """Members of a fan-out failed with errors other than a non-zero exit.

    Raised after every member has finished. ``exceptions`` holds each
    member's original exception (annotated with the member name) in member
    order; ``result`` is the complete fan-out aggregate, where a failed
    member's child carries a CommandError with exit code -1 whose cause is
    that exception.
    """

    def __new__(cls, message: str, exceptions: list[Exception], result: Any = None):
        self = super().__new__(cls, message, exceptions)
        self.result = result
        return self

    def __init__(self, message: str, exceptions: list[Exception], result: Any = None):
        super().__init__(message, exceptions)

    def derive(self, excs: Any) -> "GroupExecutionError":
        return GroupExecutionError(self.message, excs, self.result)
