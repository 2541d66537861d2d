"""Logging setup for applications embedding sshbox.

The library itself only creates module loggers; call
:func:`configure_logging` from an application to get colored output.
"""

import logging
import os
import sys

from sshbox.config import Settings
from sshbox.utils.console import EventFormatter

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("asyncssh", "asyncssh.sftp")


def configure_logging(level: str | None = None, use_colors: bool | None = None) -> None:
    """Install the colorful formatter on the ``sshbox`` logger.

    Args:
        level: Log level name (default: SSHBOX_LOG_LEVEL or INFO)
        use_colors: Force colors on/off (default: SSHBOX_LOG_COLORS, TTY only)
    """
    if level is None:
        level = Settings.from_env().log_level
    if use_colors is None:
        use_colors = os.getenv("SSHBOX_LOG_COLORS", "true").lower() != "false"
        if not sys.stderr.isatty():
            use_colors = False

    sshbox_logger = logging.getLogger("sshbox")
    sshbox_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Only add handler if not already configured
    if not sshbox_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(EventFormatter(use_colors=use_colors))
        sshbox_logger.addHandler(handler)
        sshbox_logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
