"""Library settings from environment variables.

Centralized environment variable parsing and validation.
"""

import getpass
import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


def _login_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "root"


@dataclass
class Settings:
    """Library settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Commands
    command_timeout: float = field(default=0)  # 0 disables the timeout

    # Connection pool
    idle_timeout: int = field(default=60)
    max_pool_size: int = field(default=100)

    # Fan-out
    max_parallel: int = field(default=0)  # 0 means unbounded

    # Defaults for new connections
    default_user: str = field(default_factory=_login_user)

    # Logging
    log_level: str = field(default="INFO")

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from SSHBOX_* environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            command_timeout=cls._get_float("SSHBOX_COMMAND_TIMEOUT", 0),
            idle_timeout=cls._get_int("SSHBOX_IDLE_TIMEOUT", 60, minimum=1),
            max_pool_size=cls._get_int("SSHBOX_MAX_POOL_SIZE", 100, minimum=1),
            max_parallel=cls._get_int("SSHBOX_MAX_PARALLEL", 0, minimum=0),
            default_user=os.getenv("SSHBOX_DEFAULT_USER") or _login_user(),
            log_level=os.getenv("SSHBOX_LOG_LEVEL", "INFO").upper(),
        )

    @staticmethod
    def _get_int(key: str, default: int, minimum: int | None = None) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid
            minimum: Smallest accepted value

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

        if minimum is not None and parsed < minimum:
            logger.warning(
                "%s must be >= %d, got %d. Using default: %d",
                key,
                minimum,
                parsed,
                default,
            )
            return default
        return parsed

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        """Get non-negative float from environment."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = float(value)
        except ValueError:
            logger.warning("Invalid number for %s: %s, using default %s", key, value, default)
            return default

        if parsed < 0:
            logger.warning("%s must be >= 0, got %s. Using default: %s", key, value, default)
            return default
        return parsed

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")
