"""SSH host key verification.

Manages the known_hosts file handed to asyncssh.
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

_UNRESOLVED = object()


class HostKeyVerifier:
    """SSH host key verification manager.

    The known_hosts path is resolved on first use, so merely creating a
    Connection never touches the filesystem.
    """

    def __init__(
        self,
        known_hosts_path: str | None = None,
        strict_checking: bool = True,
    ):
        """Initialize host key verifier.

        Args:
            known_hosts_path: Path to known_hosts file or 'none' to disable
            strict_checking: Reject unknown host keys
        """
        self.strict_checking = strict_checking
        self._configured = known_hosts_path
        self._known_hosts: object = _UNRESOLVED

    def _resolve_known_hosts(self, value: str | None) -> str | None:
        """Resolve known_hosts path with security defaults.

        Returns:
            Path to known_hosts file or None to disable verification

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        if value and value.lower() == "none":
            logger.critical(
                "SSH host key verification DISABLED (SSHBOX_KNOWN_HOSTS=none). "
                "Connections are vulnerable to man-in-the-middle attacks."
            )
            return None

        path = Path(os.path.expanduser(value)) if value else Path.home() / ".ssh" / "known_hosts"
        if not path.exists():
            if self.strict_checking:
                raise FileNotFoundError(
                    f"SSH host key verification required but known_hosts "
                    f"not found at {path}.\n\n"
                    f"To fix this:\n"
                    f"1. Add host keys: ssh-keyscan <hostname> >> {path}\n"
                    f"2. Or point SSHBOX_KNOWN_HOSTS at another file\n"
                    f"3. Or disable verification (NOT RECOMMENDED): "
                    f"export SSHBOX_KNOWN_HOSTS=none"
                )
            logger.warning(
                "known_hosts not found at %s, verification disabled. "
                "This is insecure!",
                path,
            )
            return None

        return str(path)

    def get_known_hosts_path(self) -> str | None:
        """Get path to known_hosts file.

        Returns:
            Path string or None if verification disabled
        """
        if self._known_hosts is _UNRESOLVED:
            self._known_hosts = self._resolve_known_hosts(self._configured)
        return self._known_hosts  # type: ignore[return-value]

    def is_enabled(self) -> bool:
        """Check if host key verification is enabled."""
        return self.get_known_hosts_path() is not None
