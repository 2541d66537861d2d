"""Shared command dispatch for Connection and LocalExecutor.

A runner owns the per-endpoint state (safe mode, working directory,
environment overlay, instance-local commands) and turns a named command into
a rendered command line, an execution, and a ResultAggregate.
"""

import copy
import functools
import logging
from abc import ABC, abstractmethod
from typing import Any

from sshbox import registry
from sshbox.errors import CommandError
from sshbox.models import CommandResult, ResultAggregate
from sshbox.utils.shell import build_command
from sshbox.utils.validation import validate_env_name

logger = logging.getLogger(__name__)


class BaseRunner(ABC):
    """Base class implementing table-driven command dispatch."""

    def __init__(self, safe: bool = True, info: bool = False) -> None:
        self._safe = bool(safe)
        self._info = bool(info)
        self._cwd: str | None = None
        self._env: dict[str, str] = {}
        self._local_commands: dict[str, registry.Thunk] = {}

    @property
    @abstractmethod
    def label(self) -> str:
        """Short name used in logs and CommandError.host."""

    @abstractmethod
    async def _run(self, line: str, env: dict[str, str]) -> CommandResult:
        """Execute a rendered command line with working directory and ``env``."""

    @abstractmethod
    def _resolve_dir(self, path: str) -> str:
        """Resolve ``path`` against the current working directory."""

    # Safe mode

    @property
    def safe(self) -> bool:
        return self._safe

    def enable_safe_mode(self) -> "BaseRunner":
        self._safe = True
        return self

    def disable_safe_mode(self) -> "BaseRunner":
        """Let the shell interpret variables, globs, pipes and redirects."""
        self._safe = False
        return self

    # Working directory and environment

    @property
    def cwd(self) -> str | None:
        return self._cwd

    def cd(self, path: str) -> "BaseRunner":
        """Return a handle scoped to ``path``.

        The handle shares this runner's session and credentials; this runner
        keeps its own working directory.
        """
        scoped = self._derive()
        scoped._cwd = self._resolve_dir(str(path))
        return scoped

    def _derive(self) -> "BaseRunner":
        derived = copy.copy(self)
        derived._env = dict(self._env)
        derived._local_commands = dict(self._local_commands)
        return derived

    def setenv(self, name: str, value: Any) -> "BaseRunner":
        """Add ``name=value`` to the environment overlay of this runner."""
        validate_env_name(name)
        # Re-insert so the latest assignment is applied last
        self._env.pop(name, None)
        self._env[name] = str(value)
        return self

    @property
    def environment_overlay(self) -> dict[str, str]:
        return dict(self._env)

    async def getenv(self) -> list[str]:
        """Return the effective environment as ``NAME=value`` strings.

        The endpoint's default environment comes first, minus any names the
        overlay redefines; overlay entries follow in the order they were set.
        """
        result = await self.run_line("env", apply_env=False)
        defaults = [
            line
            for line in result.stdout_lines
            if "=" in line and line.split("=", 1)[0] not in self._env
        ]
        return defaults + [f"{key}={value}" for key, value in self._env.items()]

    # Command table

    def commands(self) -> set[str]:
        """Return global registry names plus instance-local commands."""
        return registry.commands.names() | set(self._local_commands)

    def add_command(self, name: str, thunk: registry.Thunk | None = None) -> registry.Thunk:
        """Register a command on this instance only.

        Without ``thunk`` the command runs the program of the same name.
        """
        if thunk is None:
            thunk = registry.program_thunk(name)
        self._local_commands[name] = thunk
        return thunk

    def _resolve(self, name: str) -> registry.Thunk:
        thunk = self._local_commands.get(name)
        if thunk is not None:
            return thunk
        return registry.commands.resolve(name)

    async def execute(self, name: str, *args: Any, **kwargs: Any) -> ResultAggregate:
        """Run the command registered as ``name``.

        Raises:
            CommandNotFoundError: If the name is not registered
            CommandError: If the command exits non-zero
        """
        thunk = self._resolve(name)
        return await thunk(self, *args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        # Fluent style: runner.ls(...) is runner.execute("ls", ...)
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self._local_commands or name in registry.commands:
            return functools.partial(self.execute, name)
        raise AttributeError(
            f"{type(self).__name__!r} object has no attribute or command {name!r}"
        )

    # Execution

    async def command(self, program: str, *args: Any, **kwargs: Any) -> ResultAggregate:
        """Render ``program`` with arguments in this runner's safe mode and run it.

        This is the primitive registered thunks call.
        """
        line = build_command(program, args, kwargs, safe=self._safe)
        return await self.run_line(line)

    async def allow_command(self, program: str, *args: Any, **kwargs: Any) -> ResultAggregate:
        """Run a program that is not in the command table.

        Used for programs left out of the default registry on purpose, such as
        ``rm``; the opt-in applies to this call on this instance only.
        """
        logger.info("Running unregistered program %s on %s", program, self.label)
        return await self.command(program, *args, **kwargs)

    async def run_line(self, line: str, apply_env: bool = True) -> ResultAggregate:
        """Run an already rendered command line.

        Raises:
            CommandError: If the command exits non-zero
        """
        logger.log(
            logging.INFO if self._info else logging.DEBUG,
            "[%s] %s%s",
            self.label,
            f"(cwd={self._cwd}) " if self._cwd else "",
            line,
        )
        result = await self._run(line, self._env if apply_env else {})
        result.command = line
        return self._aggregate(result)

    def _aggregate(self, result: CommandResult) -> ResultAggregate:
        if not result.success:
            logger.warning(
                "[%s] Command failed (exit_code=%d): %s",
                self.label,
                result.returncode,
                result.command,
            )
            raise CommandError(
                exit_code=result.returncode,
                stderr=result.error,
                stdout=result.output,
                command=result.command,
                host=self.label,
            )
        return ResultAggregate.scalar(
            stdout=result.output,
            stderr=result.error,
            exit_code=result.returncode,
            producer=self,
        )
