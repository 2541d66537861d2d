"""Data models for sshbox."""

from sshbox.models.command import CommandResult
from sshbox.models.result import ResultAggregate, ResultKind
from sshbox.models.ssh import PooledConnection, SSHHost
from sshbox.models.transfer import TransferResult

__all__ = [
    "CommandResult",
    "PooledConnection",
    "ResultAggregate",
    "ResultKind",
    "SSHHost",
    "TransferResult",
]
