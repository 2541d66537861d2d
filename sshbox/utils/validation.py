"""Input validation utilities."""

import re

from sshbox.errors import ConfigurationError

_ENV_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_host(host: str) -> str:
    """Validate a host name.

    Args:
        host: The host name to validate

    Returns:
        Validated host name

    Raises:
        ConfigurationError: If host name is invalid
    """
    if not host:
        raise ConfigurationError("Host cannot be empty")

    if len(host) > 253:
        raise ConfigurationError(f"Host name too long: {len(host)} chars")

    # Characters that could enable injection
    suspicious_chars = ["/", "\\", ";", "&", "|", "$", "`", " ", "\n", "\r", "\x00"]
    for char in suspicious_chars:
        if char in host:
            raise ConfigurationError(f"Host contains invalid characters: {host!r}")

    return host


def validate_env_name(name: str) -> str:
    """Validate an environment variable name.

    Raises:
        ConfigurationError: If the name is not a valid shell identifier
    """
    if not _ENV_NAME.match(name or ""):
        raise ConfigurationError(f"Invalid environment variable name: {name!r}")
    return name
