"""Aggregated command results.

A ``ResultAggregate`` is a tagged variant:

- ``ResultKind.SCALAR`` wraps one command outcome. It iterates over stdout
  lines and stringifies to the joined stdout, so it can stand in for the
  plain output string a direct call would produce.
- ``ResultKind.MANY`` wraps the per-member aggregates of a fan-out, in member
  order, plus a reference to the coordinating group.

Every accessor branches on the tag instead of relying on overlap between
string and list behavior.
"""

import weakref
from collections.abc import Iterable, Iterator, Sequence
from enum import Enum
from typing import Any, overload

from sshbox.errors import CommandError, GroupCommandError


class ResultKind(Enum):
    """Variant tag of a ResultAggregate."""

    SCALAR = "scalar"
    MANY = "many"


def _as_lines(value: str | Iterable[str] | None) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(value.splitlines())
    return tuple(value)


def _weak(producer: Any) -> "weakref.ref[Any] | None":
    if producer is None:
        return None
    return weakref.ref(producer)


def _collapse(lines: tuple[str, ...]) -> str | list[str]:
    if len(lines) == 1:
        return lines[0]
    return list(lines)


class ResultAggregate(Sequence):
    """Immutable container for one or more command outcomes."""

    __slots__ = (
        "_kind",
        "_stdout",
        "_stderr",
        "_exit_code",
        "_children",
        "_producer",
        "_error",
        "__weakref__",
    )

    def __init__(
        self,
        kind: ResultKind,
        *,
        stdout: tuple[str, ...] = (),
        stderr: tuple[str, ...] = (),
        exit_code: int = 0,
        children: tuple["ResultAggregate", ...] = (),
        producer: Any = None,
        error: CommandError | None = None,
    ) -> None:
        self._kind = kind
        self._stdout = stdout
        self._stderr = stderr
        self._exit_code = exit_code
        self._children = children
        self._producer = _weak(producer)
        self._error = error

    @classmethod
    def scalar(
        cls,
        stdout: str | Iterable[str] | None = None,
        stderr: str | Iterable[str] | None = None,
        exit_code: int = 0,
        producer: Any = None,
        error: CommandError | None = None,
    ) -> "ResultAggregate":
        """Build the aggregate of a single command execution.

        Args:
            stdout: Captured output, as text or as a sequence of lines
            stderr: Captured error output, as text or lines
            exit_code: Exit status of the program
            producer: Runner that executed the command (held weakly)
            error: CommandError to attach when the command failed

        Returns:
            Scalar ResultAggregate
        """
        return cls(
            ResultKind.SCALAR,
            stdout=_as_lines(stdout),
            stderr=_as_lines(stderr),
            exit_code=exit_code,
            producer=producer,
            error=error,
        )

    @classmethod
    def many(
        cls,
        children: Iterable["ResultAggregate"],
        producer: Any = None,
    ) -> "ResultAggregate":
        """Build the aggregate of a fan-out from per-member aggregates.

        Args:
            children: Member aggregates in member order
            producer: Coordinating group (held weakly)

        Returns:
            Many-kind ResultAggregate
        """
        return cls(ResultKind.MANY, children=tuple(children), producer=producer)

    # Tag accessors

    @property
    def kind(self) -> ResultKind:
        return self._kind

    @property
    def is_scalar(self) -> bool:
        return self._kind is ResultKind.SCALAR

    # Outcome accessors

    @property
    def exit_code(self) -> int:
        """Exit status; for a fan-out, the first non-zero member status."""
        if self.is_scalar:
            return self._exit_code
        for child in self._children:
            if child.exit_code != 0:
                return child.exit_code
        return 0

    @property
    def stdout_lines(self) -> tuple[str, ...]:
        if self.is_scalar:
            return self._stdout
        return tuple(line for child in self._children for line in child.stdout_lines)

    @property
    def stderr_lines(self) -> tuple[str, ...]:
        if self.is_scalar:
            return self._stderr
        return tuple(line for child in self._children for line in child.stderr_lines)

    @property
    def stdout(self) -> str | list[str]:
        """Single string when there is exactly one line, else the list of lines."""
        return _collapse(self.stdout_lines)

    @property
    def stderr(self) -> str | list[str]:
        """Single string when there is exactly one line, else the list of lines."""
        return _collapse(self.stderr_lines)

    @property
    def children(self) -> tuple["ResultAggregate", ...]:
        return self._children

    @property
    def producer(self) -> Any:
        """Runner or group that produced this result, if still alive."""
        if self._producer is None:
            return None
        return self._producer()

    @property
    def error(self) -> CommandError | None:
        """CommandError attached to a failed scalar result."""
        return self._error

    @property
    def errors(self) -> list[CommandError]:
        """Every attached CommandError, in member order."""
        if self.is_scalar:
            return [self._error] if self._error is not None else []
        return [err for child in self._children for err in child.errors]

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.errors

    def raise_for_errors(self) -> None:
        """Raise GroupCommandError if any member failed.

        Raises:
            CommandError: For a failed scalar result
            GroupCommandError: For a fan-out with failing members
        """
        errors = self.errors
        if not errors:
            return
        if self.is_scalar:
            raise errors[0]
        group = getattr(self.producer, "name", None)
        raise GroupCommandError(errors, group=group)

    # Sequence protocol

    @property
    def size(self) -> int:
        return len(self)

    @property
    def first(self) -> "str | ResultAggregate | None":
        """First stdout line (scalar) or first member result (fan-out)."""
        if len(self) == 0:
            return None
        return self[0]

    def _items(self) -> tuple[Any, ...]:
        return self._stdout if self.is_scalar else self._children

    def __len__(self) -> int:
        return len(self._items())

    @overload
    def __getitem__(self, index: int) -> Any: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Any, ...]: ...

    def __getitem__(self, index: int | slice) -> Any:
        return self._items()[index]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items())

    # Scalar protocol

    def __str__(self) -> str:
        if self.is_scalar:
            return "\n".join(self._stdout)
        return "\n".join(str(child) for child in self._children)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ResultAggregate):
            if self._kind is not other._kind:
                return False
            if self.is_scalar:
                return (
                    self._stdout == other._stdout
                    and self._exit_code == other._exit_code
                )
            return self._children == other._children
        if isinstance(other, str):
            return str(self) == other
        if isinstance(other, (list, tuple)):
            return list(self) == list(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self.is_scalar:
            return (
                f"ResultAggregate(scalar, exit_code={self._exit_code}, "
                f"stdout={list(self._stdout)!r})"
            )
        return f"ResultAggregate(many, children={list(self._children)!r})"
