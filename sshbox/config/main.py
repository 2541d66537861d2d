"""Library configuration.

Delegates to specialized components:
- SSHConfigParser: Reads ~/.ssh/config
- HostKeyVerifier: Manages known_hosts
- Settings: Environment variables
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from sshbox.config.host_keys import HostKeyVerifier
from sshbox.config.parser import SSHConfigParser
from sshbox.config.settings import Settings
from sshbox.models import SSHHost

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Library configuration.

    Aggregates settings from SSH config, known_hosts, and environment.
    """

    settings: Settings
    parser: SSHConfigParser
    host_keys: HostKeyVerifier
    _hosts_cache: dict[str, SSHHost] | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment.

        Returns:
            Configured instance with all components initialized
        """
        settings = Settings.from_env()
        parser = SSHConfigParser(
            config_path=os.getenv("SSHBOX_SSH_CONFIG") or None,
            default_user=settings.default_user,
        )
        host_keys = HostKeyVerifier(
            known_hosts_path=os.getenv("SSHBOX_KNOWN_HOSTS"),
            strict_checking=Settings._get_bool("SSHBOX_STRICT_HOST_KEY_CHECKING", True),
        )
        return cls(settings=settings, parser=parser, host_keys=host_keys)

    @classmethod
    def for_testing(
        cls,
        ssh_config_path: Path | str | None = None,
        settings: Settings | None = None,
    ) -> "Config":
        """Create config with host key verification disabled.

        Args:
            ssh_config_path: SSH config file to read (default: none)
            settings: Settings to use (default: Settings())

        Returns:
            Config that never reads ~/.ssh
        """
        settings = settings or Settings()
        parser = SSHConfigParser(
            config_path=ssh_config_path or Path(os.devnull),
            default_user=settings.default_user,
        )
        host_keys = HostKeyVerifier(known_hosts_path="none", strict_checking=False)
        return cls(settings=settings, parser=parser, host_keys=host_keys)

    def get_hosts(self) -> dict[str, SSHHost]:
        """Get SSH hosts from config.

        Lazy loads and caches hosts on first call.

        Returns:
            Dictionary of alias to SSHHost
        """
        if self._hosts_cache is None:
            self._hosts_cache = self.parser.parse()
        return self._hosts_cache

    def get_host(self, name: str) -> SSHHost | None:
        """Get host by alias.

        Args:
            name: Host alias to look up

        Returns:
            SSHHost if found, None otherwise
        """
        return self.get_hosts().get(name)

    def resolve_host(
        self,
        name: str,
        user: str | None = None,
        port: int | None = None,
        keys: tuple[str, ...] = (),
        password: str | None = None,
    ) -> SSHHost:
        """Resolve a hostname or alias into a full SSHHost.

        Explicit arguments override values from ~/.ssh/config. Keys given
        here come before identity files from the config.

        Args:
            name: Hostname, IP address, or ~/.ssh/config alias
            user: Login user override
            port: Port override
            keys: Private key paths
            password: Password for password authentication

        Returns:
            Resolved SSHHost
        """
        known = self.get_host(name)
        if known is None:
            known = SSHHost(name=name, hostname=name, user=self.settings.default_user)
        else:
            logger.debug("Resolved alias %s to %s", name, known.address)

        identity_files = tuple(dict.fromkeys(keys + known.identity_files))
        return SSHHost(
            name=name,
            hostname=known.hostname,
            user=user or known.user,
            port=port or known.port,
            identity_files=identity_files,
            password=password,
        )

    # Delegate to settings for convenience
    @property
    def command_timeout(self) -> float:
        """Per-command timeout in seconds (0 disables)."""
        return self.settings.command_timeout

    @property
    def idle_timeout(self) -> int:
        """Connection idle timeout in seconds."""
        return self.settings.idle_timeout

    @property
    def max_pool_size(self) -> int:
        """Maximum connection pool size."""
        return self.settings.max_pool_size

    @property
    def max_parallel(self) -> int:
        """Maximum concurrent members in a parallel fan-out (0 = unbounded)."""
        return self.settings.max_parallel

    @property
    def known_hosts_path(self) -> str | None:
        """Path to known_hosts file or None if disabled."""
        return self.host_keys.get_known_hosts_path()

    @property
    def strict_host_key_checking(self) -> bool:
        """Whether to reject unknown host keys."""
        return self.host_keys.strict_checking
