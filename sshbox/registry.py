"""Process-wide command registry.

Maps command names to thunks. A thunk is an async callable that receives the
runner it was invoked on plus the caller's arguments and returns a
ResultAggregate::

    @commands.register("disk_usage")
    async def disk_usage(runner, *paths, **options):
        return await runner.command("du", Flag("s"), *paths, **options)

Every Connection, HostGroup and LocalExecutor reads this registry at dispatch
time, so a registration is visible to existing instances immediately.
Registration is meant to happen at configuration time; it is not
synchronized against a fan-out that is already running.
"""

import logging
import re
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from sshbox.errors import CommandNotFoundError

if TYPE_CHECKING:
    from sshbox.models import ResultAggregate

logger = logging.getLogger(__name__)

Thunk = Callable[..., Awaitable["ResultAggregate"]]

_NAME_PATTERN = re.compile(r"^[^\s\x00]+$")

# Non-destructive programs available on every runner. Programs that remove
# data or processes (rm, rmdir, kill, dd, ...) are deliberately absent and
# must be run through allow_command().
DEFAULT_PROGRAMS: tuple[str, ...] = (
    "awk",
    "basename",
    "cat",
    "chmod",
    "cp",
    "cut",
    "date",
    "df",
    "diff",
    "dirname",
    "du",
    "echo",
    "env",
    "false",
    "file",
    "find",
    "grep",
    "head",
    "hostname",
    "id",
    "ln",
    "ls",
    "mkdir",
    "mv",
    "printenv",
    "ps",
    "pwd",
    "sed",
    "sleep",
    "sort",
    "stat",
    "tail",
    "tar",
    "test",
    "touch",
    "true",
    "uname",
    "uniq",
    "uptime",
    "wc",
    "which",
    "whoami",
)


def program_thunk(program: str) -> Thunk:
    """Create a thunk that runs ``program`` with the caller's arguments."""

    async def thunk(runner: Any, *args: Any, **kwargs: Any) -> "ResultAggregate":
        return await runner.command(program, *args, **kwargs)

    thunk.__name__ = program
    thunk.__qualname__ = f"program_thunk.<{program}>"
    return thunk


class CommandRegistry:
    """Name to thunk table. Registering an existing name replaces it."""

    def __init__(self) -> None:
        self._commands: dict[str, Thunk] = {}

    @classmethod
    def with_defaults(cls) -> "CommandRegistry":
        """Create a registry holding DEFAULT_PROGRAMS."""
        registry = cls()
        for program in DEFAULT_PROGRAMS:
            registry.register_program(program)
        return registry

    def register(self, name: str, thunk: Thunk | None = None) -> Any:
        """Register a thunk under ``name``.

        Usable directly or as a decorator when ``thunk`` is omitted.

        Args:
            name: Command name
            thunk: Async callable ``(runner, *args, **kwargs) -> ResultAggregate``

        Returns:
            The thunk, or a decorator when ``thunk`` is None

        Raises:
            ValueError: If the name is empty or contains whitespace
        """
        if not name or not _NAME_PATTERN.match(name):
            raise ValueError(f"Invalid command name: {name!r}")

        if thunk is None:

            def decorator(func: Thunk) -> Thunk:
                self.register(name, func)
                return func

            return decorator

        if name in self._commands:
            logger.debug("Replacing registered command: %s", name)
        else:
            logger.debug("Registered command: %s", name)
        self._commands[name] = thunk
        return thunk

    def register_program(self, name: str, program: str | None = None) -> Thunk:
        """Register a command that runs a program of the same (or given) name.

        Args:
            name: Command name, e.g. ``ssh_keygen``
            program: Program to run, e.g. ``ssh-keygen`` (default: name)

        Returns:
            The generated thunk
        """
        return self.register(name, program_thunk(program or name))

    def unregister(self, name: str) -> None:
        """Remove a command.

        Raises:
            CommandNotFoundError: If the name is not registered
        """
        if self._commands.pop(name, None) is None:
            raise CommandNotFoundError(name)
        logger.debug("Unregistered command: %s", name)

    def resolve(self, name: str) -> Thunk:
        """Look up the thunk for ``name``.

        Raises:
            CommandNotFoundError: If the name is not registered
        """
        try:
            return self._commands[name]
        except KeyError:
            raise CommandNotFoundError(name) from None

    def names(self) -> set[str]:
        """Return the registered command names."""
        return set(self._commands)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)


# Shared by every runner in the process
commands = CommandRegistry.with_defaults()


def register(name: str, thunk: Thunk | None = None) -> Any:
    """Register a command on the process-wide registry."""
    return commands.register(name, thunk)


def register_program(name: str, program: str | None = None) -> Thunk:
    """Register a program on the process-wide registry."""
    return commands.register_program(name, program)
