"""Utilities for sshbox."""

from sshbox.utils.console import ColorfulFormatter, EventFormatter
from sshbox.utils.shell import (
    Flag,
    Raw,
    build_command,
    build_prelude,
    flag,
    quote_arg,
    quote_path,
)
from sshbox.utils.validation import validate_env_name, validate_host

__all__ = [
    "ColorfulFormatter",
    "EventFormatter",
    "Flag",
    "Raw",
    "build_command",
    "build_prelude",
    "flag",
    "quote_arg",
    "quote_path",
    "validate_env_name",
    "validate_host",
]
