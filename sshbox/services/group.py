"""Fan-out of one command across a group of runners.

A HostGroup replays a command on every member, one after another or
concurrently, and returns a ``ResultAggregate`` of kind MANY whose children
follow member order regardless of completion order.

Failure policy:
    - A member's CommandError never stops its siblings. It becomes that
      member's child: a scalar aggregate carrying the exit code, stderr and
      the error itself (``child.error``), with ``error.host`` naming the
      member. ``result.errors`` and ``result.raise_for_errors()`` expose them.
    - Any other exception (authentication, network) also leaves its siblings
      running. Once every member has finished, a GroupExecutionError is
      raised carrying every such exception, each noted with its member, and
      the complete aggregate as ``error.result``. There, a failed member's
      child holds a CommandError with exit code -1 caused by the exception.
"""

import asyncio
import functools
import logging
from typing import TYPE_CHECKING, Any

from sshbox import registry
from sshbox.errors import CommandError, CommandNotFoundError, GroupExecutionError
from sshbox.models import ResultAggregate
from sshbox.protocols import CommandRunner
from sshbox.services.connection import Connection, normalize_keys, validate_options
from sshbox.services.runner import BaseRunner

if TYPE_CHECKING:
    from sshbox.config import Config
    from sshbox.protocols import SessionPool

logger = logging.getLogger(__name__)


class HostGroup:
    """Named set of runners on which commands are broadcast.

    Args:
        name: Group name (not required to be unique)
        hosts: Hostnames or runner objects to add
        parallel: Run members concurrently instead of one by one
        pool: Session pool for connections created from hostnames
        config: Config for connections created from hostnames
        options: Connection defaults shared by members created from hostnames
    """

    def __init__(
        self,
        name: str = "default",
        *hosts: Any,
        parallel: bool = False,
        pool: "SessionPool | None" = None,
        config: "Config | None" = None,
        **options: Any,
    ) -> None:
        validate_options(options)
        self.name = name
        self.parallel = parallel
        self._pool = pool
        self._config = config
        self._keys: list[str] = list(normalize_keys(options.pop("keys", None)))
        self._options = options
        self._env: dict[str, str] = {}
        self._members: list[CommandRunner] = []
        self.add(*hosts)

    def __repr__(self) -> str:
        mode = "parallel" if self.parallel else "sequential"
        return f"HostGroup({self.name!r}, members={[m.label for m in self._members]}, {mode})"

    @property
    def label(self) -> str:
        return self.name

    @property
    def members(self) -> tuple[CommandRunner, ...]:
        return tuple(self._members)

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self._keys)

    def __len__(self) -> int:
        return len(self._members)

    # Membership

    def add(self, *refs: Any) -> "HostGroup":
        """Add hostnames or runner objects.

        A hostname becomes a new Connection with the group's defaults. An
        existing Connection receives the group's keys, and an existing
        runner takes the group's ``safe`` option when one was given, so both
        forms end up configured alike. Every member receives the group's
        environment.

        Raises:
            TypeError: If a reference is neither a hostname nor a runner
        """
        for ref in refs:
            if isinstance(ref, str):
                member: CommandRunner = Connection(
                    ref,
                    pool=self._pool,
                    config=self._config,
                    keys=self._keys,
                    **self._options,
                )
            elif isinstance(ref, CommandRunner):
                member = ref
                if self._keys and isinstance(member, Connection):
                    member.add_keys(*self._keys)
                if "safe" in self._options and isinstance(member, BaseRunner):
                    if self._options["safe"]:
                        member.enable_safe_mode()
                    else:
                        member.disable_safe_mode()
            else:
                raise TypeError(f"Cannot add {type(ref).__name__} to a HostGroup")

            for env_name, value in self._env.items():
                if hasattr(member, "setenv"):
                    member.setenv(env_name, value)
            self._members.append(member)
            logger.debug("Added %s to group %s", member.label, self.name)
        return self

    def remove(self, ref: Any) -> "HostGroup":
        """Remove a member by object or by label.

        Raises:
            ValueError: If no member matches
        """
        for index, member in enumerate(self._members):
            if member is ref or member.label == ref:
                del self._members[index]
                return self
        raise ValueError(f"Not a member of group {self.name}: {ref!r}")

    def add_keys(self, *paths: Any) -> "HostGroup":
        """Add private keys to every current and future Connection member."""
        new_keys = normalize_keys(paths)
        self._keys.extend(k for k in new_keys if k not in self._keys)
        for member in self._members:
            if hasattr(member, "add_keys"):
                member.add_keys(*new_keys)
        return self

    def setenv(self, name: str, value: Any) -> "HostGroup":
        """Set an environment variable on every current and future member."""
        for member in self._members:
            if hasattr(member, "setenv"):
                member.setenv(name, value)
        self._env[name] = str(value)
        return self

    # Dispatch

    def commands(self) -> set[str]:
        """Commands callable on every member."""
        if not self._members:
            return registry.commands.names()
        return set.intersection(*(member.commands() for member in self._members))

    async def execute(self, name: str, *args: Any, **kwargs: Any) -> ResultAggregate:
        """Run ``name`` on every member and aggregate the results.

        Returns:
            ResultAggregate of kind MANY, one child per member in member order

        Raises:
            CommandNotFoundError: If the name is not callable on every member
            GroupExecutionError: If members failed with errors other than a
                non-zero exit, after all members have finished
        """
        if name not in self.commands():
            raise CommandNotFoundError(name)

        mode = "parallel" if self.parallel else "sequential"
        logger.info(
            "Running %s on group %s (%d members, %s)",
            name,
            self.name,
            len(self._members),
            mode,
        )

        if self.parallel:
            outcomes = await self._run_parallel(name, args, kwargs)
        else:
            outcomes = [
                await self._capture(member, name, args, kwargs) for member in self._members
            ]

        children = []
        failures: list[Exception] = []
        for member, outcome in zip(self._members, outcomes):
            if isinstance(outcome, Exception):
                failures.append(outcome)
                children.append(self._failure_child(member, name, outcome))
            else:
                children.append(outcome)

        result = ResultAggregate.many(children, producer=self)
        if failures:
            raise GroupExecutionError(
                f"{len(failures)} member(s) of group {self.name!r} raised",
                failures,
                result=result,
            )
        return result

    @staticmethod
    def _failure_child(
        member: CommandRunner, name: str, exc: Exception
    ) -> ResultAggregate:
        error = CommandError(
            exit_code=-1,
            stderr=f"{type(exc).__name__}: {exc}",
            command=name,
            host=member.label,
        )
        error.__cause__ = exc
        return ResultAggregate.scalar(
            stderr=error.stderr, exit_code=-1, producer=member, error=error
        )

    async def _run_parallel(
        self, name: str, args: tuple[Any, ...], kwargs: dict[str, Any]
    ) -> list[Any]:
        limit = self._max_parallel()
        semaphore = asyncio.Semaphore(limit) if limit else None

        async def bounded(member: CommandRunner) -> Any:
            if semaphore is None:
                return await self._capture(member, name, args, kwargs)
            async with semaphore:
                return await self._capture(member, name, args, kwargs)

        # gather preserves argument order, not completion order
        return await asyncio.gather(*(bounded(m) for m in self._members))

    def _max_parallel(self) -> int:
        if self._config is not None:
            return self._config.max_parallel
        from sshbox.services.state import get_config

        return get_config().max_parallel

    async def _capture(
        self,
        member: CommandRunner,
        name: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> ResultAggregate | Exception:
        """Run one member, turning its failure into a value."""
        try:
            return await member.execute(name, *args, **kwargs)
        except CommandError as e:
            if e.host is None:
                e.host = member.label
            logger.warning(
                "Member %s of group %s failed (exit_code=%d)",
                member.label,
                self.name,
                e.exit_code,
            )
            return ResultAggregate.scalar(
                stdout=e.stdout,
                stderr=e.stderr,
                exit_code=e.exit_code,
                producer=member,
                error=e,
            )
        except Exception as e:
            logger.error("Member %s of group %s failed: %s", member.label, self.name, e)
            e.add_note(f"raised by member {member.label!r} of group {self.name!r}")
            return e

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if name in registry.commands or any(
            name in member.commands() for member in self._members
        ):
            return functools.partial(self.execute, name)
        raise AttributeError(f"'HostGroup' object has no attribute or command {name!r}")

    # Lifecycle

    async def close(self) -> None:
        """Close the sessions of every Connection member."""
        await asyncio.gather(
            *(m.close() for m in self._members if isinstance(m, Connection))
        )

    async def __aenter__(self) -> "HostGroup":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
