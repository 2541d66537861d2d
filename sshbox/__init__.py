"""sshbox: run shell commands on remote hosts over SSH as method calls.

Example:
    from sshbox import Connection, HostGroup, flag

    async with Connection("web1") as web:
        print(await web.uname(flag("a")))

    async with HostGroup("web", "web1", "web2", parallel=True) as group:
        for result in await group.uptime():
            print(result.producer.label, result)
"""

from sshbox.config import Config, Settings
from sshbox.errors import (
    CommandError,
    CommandNotFoundError,
    CommandTimeoutError,
    ConfigurationError,
    GroupCommandError,
    GroupExecutionError,
    SSHBoxError,
)
from sshbox.log import configure_logging
from sshbox.models import ResultAggregate, ResultKind, SSHHost, TransferResult
from sshbox.registry import CommandRegistry, commands, register, register_program
from sshbox.services import Connection, ConnectionPool, HostGroup, LocalExecutor
from sshbox.utils.shell import Flag, Raw, build_command, flag

__version__ = "0.1.0"

__all__ = [
    "CommandError",
    "CommandNotFoundError",
    "CommandRegistry",
    "CommandTimeoutError",
    "Config",
    "ConfigurationError",
    "Connection",
    "ConnectionPool",
    "Flag",
    "GroupCommandError",
    "GroupExecutionError",
    "HostGroup",
    "LocalExecutor",
    "Raw",
    "ResultAggregate",
    "ResultKind",
    "SSHBoxError",
    "SSHHost",
    "Settings",
    "TransferResult",
    "build_command",
    "commands",
    "configure_logging",
    "flag",
    "register",
    "register_program",
]
