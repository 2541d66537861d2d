"""SSH config file parser.

Reads ~/.ssh/config so that host aliases resolve to real addresses,
users, ports and identity files.
"""

import logging
import os
import re
from pathlib import Path

from sshbox.models import SSHHost

logger = logging.getLogger(__name__)

_HOST_LINE = re.compile(r"^Host\s+(.+)$", re.IGNORECASE)
_KV_LINE = re.compile(r"^(\w+)(?:\s*=\s*|\s+)(.+)$")


class SSHConfigParser:
    """Parser for SSH config files.

    Supports ``Host *`` global defaults, several aliases on one ``Host`` line,
    and repeated ``IdentityFile`` entries. Wildcard patterns other than the
    bare ``*`` are skipped.
    """

    def __init__(
        self,
        config_path: Path | str | None = None,
        default_user: str = "root",
    ):
        """Initialize SSH config parser.

        Args:
            config_path: Path to SSH config file (default: ~/.ssh/config)
            default_user: User for hosts without a ``User`` entry
        """
        if config_path is None:
            config_path = Path.home() / ".ssh" / "config"

        self.config_path = Path(config_path)
        self.default_user = default_user

    def parse(self) -> dict[str, SSHHost]:
        """Parse SSH config and return host definitions.

        Returns:
            Dictionary mapping alias to SSHHost objects
        """
        if not self.config_path.exists():
            logger.debug("SSH config not found: %s", self.config_path)
            return {}

        try:
            content = self.config_path.read_text()
            logger.debug("Reading SSH config from %s", self.config_path)
        except OSError as e:
            logger.warning("Cannot read SSH config %s: %s", self.config_path, e)
            return {}

        blocks: list[tuple[list[str], dict[str, list[str]]]] = []
        global_defaults: dict[str, list[str]] = {}
        current: dict[str, list[str]] | None = None

        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            host_match = _HOST_LINE.match(line)
            if host_match:
                names = host_match.group(1).split()
                if names == ["*"]:
                    current = global_defaults
                    continue
                aliases = [n for n in names if "*" not in n and "?" not in n]
                current = {}
                blocks.append((aliases, current))
                continue

            kv_match = _KV_LINE.match(line)
            if kv_match and current is not None:
                key = kv_match.group(1).lower()
                value = kv_match.group(2).strip().strip('"')
                if key == "identityfile":
                    value = os.path.expanduser(value)
                current.setdefault(key, []).append(value)

        hosts: dict[str, SSHHost] = {}
        for aliases, data in blocks:
            for alias in aliases:
                hosts[alias] = self._build_host(alias, data, global_defaults)

        logger.info("Parsed %d hosts from %s", len(hosts), self.config_path)
        return hosts

    def _build_host(
        self,
        alias: str,
        data: dict[str, list[str]],
        defaults: dict[str, list[str]],
    ) -> SSHHost:
        """Merge a host block over ``Host *`` defaults.

        First value wins for scalar keys, as in OpenSSH.
        """

        def first(key: str, fallback: str) -> str:
            values = data.get(key) or defaults.get(key)
            return values[0] if values else fallback

        try:
            port = int(first("port", "22"))
        except ValueError:
            logger.warning("Invalid port for %s in %s, using 22", alias, self.config_path)
            port = 22

        identity_files = tuple(data.get("identityfile", [])) + tuple(
            defaults.get("identityfile", [])
        )
        return SSHHost(
            name=alias,
            hostname=first("hostname", alias),
            user=first("user", self.default_user),
            port=port,
            identity_files=identity_files,
        )
