"""Colorful console logging formatter."""

import logging
import re
from datetime import datetime

# ANSI color codes
COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "bg_red": "\033[41m",
}

LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
    "CRITICAL": COLORS["bg_red"] + COLORS["white"] + COLORS["bold"],
}

# Component colors for logger names
COMPONENT_COLORS = {
    "sshbox.services.connection": COLORS["bright_cyan"],
    "sshbox.services.pool": COLORS["bright_magenta"],
    "sshbox.services.group": COLORS["bright_blue"],
    "sshbox.services.local": COLORS["cyan"],
    "sshbox.services.transfer": COLORS["blue"],
    "sshbox.registry": COLORS["yellow"],
    "sshbox.config": COLORS["green"],
    "default": COLORS["white"],
}

_SSH_ADDRESS = re.compile(r"(\w[\w.\-]*@[\w.\-]+:\d+)")
_DURATION = re.compile(r"(\d+\.?\d*ms)")
_POOL_SIZE = re.compile(r"(pool_size=\d+(?:/\d+)?)")
_EXIT_CODE = re.compile(r"(exit_code=[1-9]\d*)")


class ColorfulFormatter(logging.Formatter):
    """Colorful log formatter with component highlighting."""

    def __init__(self, use_colors: bool = True) -> None:
        """Initialize the formatter.

        Args:
            use_colors: Whether to use ANSI colors.
        """
        super().__init__()
        self.use_colors = use_colors

    def _colorize(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if not self.use_colors:
            return text
        return f"{color}{text}{COLORS['reset']}"

    def _get_component_color(self, name: str) -> str:
        """Get color for a logger name/component."""
        for prefix, color in COMPONENT_COLORS.items():
            if prefix != "default" and name.startswith(prefix):
                return color
        return COMPONENT_COLORS["default"]

    def _format_timestamp(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created)
        return f"{dt:%H:%M:%S}.{int(record.msecs):03d} {dt:%m/%d}"

    def _format_level(self, record: logging.LogRecord) -> str:
        """Format log level with color and fixed width."""
        level = record.levelname
        color = LEVEL_COLORS.get(level, COLORS["white"])
        return self._colorize(f"{level:<8}", color)

    def _format_component(self, record: logging.LogRecord) -> str:
        """Format component/logger name with color."""
        name = record.name
        if name.startswith("sshbox."):
            name = name[len("sshbox.") :]
        color = self._get_component_color(record.name)
        return self._colorize(f"{name:<20}", color)

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with colors."""
        timestamp = self._colorize(self._format_timestamp(record), COLORS["dim"])
        level = self._format_level(record)
        component = self._format_component(record)
        sep = self._colorize("|", COLORS["dim"])
        message = self._highlight_message(record.getMessage())

        line = f"{timestamp} {sep} {level} {sep} {component} {sep} {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line

    def _highlight_message(self, message: str) -> str:
        """Highlight specific patterns in log messages."""
        if not self.use_colors:
            return message

        if "@" in message:
            message = _SSH_ADDRESS.sub(
                f"{COLORS['bright_magenta']}\\1{COLORS['reset']}", message
            )
        if "ms" in message:
            message = _DURATION.sub(
                f"{COLORS['bright_yellow']}\\1{COLORS['reset']}", message
            )
        if "pool_size=" in message:
            message = _POOL_SIZE.sub(f"{COLORS['cyan']}\\1{COLORS['reset']}", message)
        if "exit_code=" in message:
            message = _EXIT_CODE.sub(
                f"{COLORS['bright_red']}\\1{COLORS['reset']}", message
            )
        return message


class EventFormatter(ColorfulFormatter):
    """ColorfulFormatter with a leading marker for connection lifecycle events."""

    MARKERS = (
        (("failed", "error"), "!!", "bright_red"),
        (("opening", "connecting"), "+", "bright_cyan"),
        (("closing", "removing", "evicting"), "-", "bright_yellow"),
        (("reusing",), "~", "bright_magenta"),
        (("completed", "established"), "OK", "bright_green"),
    )

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not self.use_colors:
            return base

        message = record.getMessage().lower()
        for words, marker, color in self.MARKERS:
            if any(word in message for word in words):
                return f"{COLORS[color]}{marker:<3}{COLORS['reset']} {base}"
        return f"    {base}"
