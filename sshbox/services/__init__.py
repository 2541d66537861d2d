"""Services for sshbox."""

from sshbox.services.connection import ALLOWED_OPTIONS, Connection
from sshbox.services.group import HostGroup
from sshbox.services.local import LocalExecutor
from sshbox.services.pool import ConnectionPool
from sshbox.services.runner import BaseRunner
from sshbox.services.state import (
    get_config,
    get_pool,
    reset_state,
    set_config,
    set_pool,
)
from sshbox.services.transfer import download, upload

__all__ = [
    "ALLOWED_OPTIONS",
    "BaseRunner",
    "Connection",
    "ConnectionPool",
    "HostGroup",
    "LocalExecutor",
    "download",
    "get_config",
    "get_pool",
    "reset_state",
    "set_config",
    "set_pool",
    "upload",
]
