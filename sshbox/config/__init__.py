"""Configuration module for sshbox.

Provides focused classes for different configuration concerns:
- Config: Main configuration class (aggregates all components)
- SSHConfigParser: Parses ~/.ssh/config files
- HostKeyVerifier: Manages SSH host key verification
- Settings: Environment variable configuration
"""

from sshbox.config.host_keys import HostKeyVerifier
from sshbox.config.main import Config
from sshbox.config.parser import SSHConfigParser
from sshbox.config.settings import Settings

__all__ = ["Config", "SSHConfigParser", "HostKeyVerifier", "Settings"]
