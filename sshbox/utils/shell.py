"""Shell command line rendering.

Arguments are rendered according to the connection's safe mode:

- safe: every value is quoted with :func:`shlex.quote`, so ``$``, ``|``,
  ``>``, ``*`` and friends reach the program literally.
- unsafe: values are joined verbatim and the shell interprets them exactly
  as if a human had typed the line.
"""

import os
import re
import shlex
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

_PROGRAM_PATTERN = re.compile(r"^[^\s\x00]+$")
_FLAG_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


@dataclass(frozen=True)
class Flag:
    """Option token: one character renders as ``-x``, longer as ``--name``."""

    name: str

    def render(self) -> str:
        """Render the option token.

        Raises:
            ValueError: If the name is empty or holds characters other than
                letters, digits, ``-`` and ``_``
        """
        name = self.name.lstrip("-")
        if not _FLAG_PATTERN.fullmatch(name):
            raise ValueError(f"Invalid flag name: {self.name!r}")
        name = name.replace("_", "-")
        if len(name) == 1:
            return f"-{name}"
        return f"--{name}"


@dataclass(frozen=True)
class Raw:
    """Text inserted into the command line verbatim, even in safe mode."""

    text: str


def flag(name: str) -> Flag:
    """Shorthand for ``Flag(name)``."""
    return Flag(name)


def quote_path(path: str) -> str:
    """Safely quote a path for shell commands.

    Args:
        path: File system path to quote

    Returns:
        Shell-safe quoted path
    """
    return shlex.quote(path)


def quote_arg(arg: str) -> str:
    """Safely quote a shell argument.

    Args:
        arg: Argument to quote

    Returns:
        Shell-safe quoted argument
    """
    return shlex.quote(arg)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        raise TypeError(f"Unsupported argument type: {type(value).__name__}")
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, os.PathLike):
        return os.fspath(value)
    raise TypeError(f"Unsupported argument type: {type(value).__name__}")


def render_arg(arg: Any, safe: bool = True) -> str:
    """Render a single positional argument."""
    if isinstance(arg, Flag):
        return arg.render()
    if isinstance(arg, Raw):
        return arg.text
    text = _stringify(arg)
    return quote_arg(text) if safe else text


def render_option(key: str, value: Any, safe: bool = True) -> list[str]:
    """Render a keyword argument as command line tokens.

    Single-character keys become ``-k VALUE``, longer keys ``--key=VALUE``.
    ``True`` renders the bare flag, ``False`` and ``None`` render nothing.
    """
    if value is None or value is False:
        return []
    option = Flag(key).render()
    if value is True:
        return [option]
    text = render_arg(value, safe)
    if option.startswith("--"):
        return [f"{option}={text}"]
    return [option, text]


def build_command(
    name: str,
    args: Iterable[Any] = (),
    kwargs: Mapping[str, Any] | None = None,
    safe: bool = True,
) -> str:
    """Render a program name and its arguments into a command line.

    Args:
        name: Program to run
        args: Positional arguments (str, int, float, PathLike, Flag, Raw)
        kwargs: Options, rendered before the positional arguments
        safe: Quote every value so the shell does not interpret it

    Returns:
        Command line string

    Raises:
        ValueError: If the program name is empty or contains whitespace, or
            a flag or option name is not a plain identifier
        TypeError: If an argument has an unsupported type
    """
    if not name or not _PROGRAM_PATTERN.match(name):
        raise ValueError(f"Invalid program name: {name!r}")

    tokens = [quote_arg(name) if safe else name]

    # Options precede positionals: `head -n 5 file`
    for key, value in (kwargs or {}).items():
        tokens.extend(render_option(key, value, safe))
    tokens.extend(render_arg(arg, safe) for arg in args)
    return " ".join(tokens)


def quote_dir(path: str) -> str:
    """Quote a directory, leaving a leading ``~`` free to expand."""
    if path == "~":
        return path
    if path.startswith("~/"):
        return "~/" + quote_path(path[2:])
    return quote_path(path)


def build_prelude(cwd: str | None, env: Mapping[str, str] | None = None) -> str:
    """Render the prefix that re-applies working directory and environment.

    Values are always quoted; the overlay is applied in insertion order.

    Returns:
        ``cd DIR && export K=V && `` or an empty string
    """
    parts = []
    if cwd:
        parts.append(f"cd {quote_dir(cwd)}")
    if env:
        assignments = " ".join(
            f"{key}={quote_arg(value)}" for key, value in env.items()
        )
        parts.append(f"export {assignments}")
    if not parts:
        return ""
    return " && ".join(parts) + " && "
