"""Process-wide default config and session pool.

Connections created without an explicit pool share the default one. An
atexit hook closes whatever sessions are still open when the interpreter
exits; scoped teardown (``close()`` / ``async with``) remains the primary
mechanism.
"""

import atexit
import logging

from sshbox.config import Config
from sshbox.services.pool import ConnectionPool

logger = logging.getLogger(__name__)

# Global state (initialized on first access)
_config: Config | None = None
_pool: ConnectionPool | None = None
_atexit_registered = False


def get_config() -> Config:
    """Get or create config."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def get_pool() -> ConnectionPool:
    """Get or create the default session pool."""
    global _pool
    if _pool is None:
        config = get_config()
        _pool = ConnectionPool(
            idle_timeout=config.idle_timeout,
            max_size=config.max_pool_size,
            known_hosts=config.known_hosts_path,
            strict_host_key_checking=config.strict_host_key_checking,
        )
        _register_atexit()
    return _pool


def _register_atexit() -> None:
    global _atexit_registered
    if not _atexit_registered:
        atexit.register(_close_at_exit)
        _atexit_registered = True


def _close_at_exit() -> None:
    if _pool is not None and _pool.pool_size:
        logger.debug("Closing %d session(s) at exit", _pool.pool_size)
        _pool.close_all_nowait()


def reset_state() -> None:
    """Reset global state for testing.

    Clears the singleton instances, allowing tests to start with fresh
    state. Should only be used in test fixtures.
    """
    global _config, _pool
    _config = None
    _pool = None


def set_config(config: Config) -> None:
    """Set the global config instance.

    Args:
        config: Config instance to use globally.
    """
    global _config
    _config = config


def set_pool(pool: ConnectionPool) -> None:
    """Set the global pool instance.

    Args:
        pool: ConnectionPool instance to use globally.
    """
    global _pool
    _pool = pool
    _register_atexit()
