"""Command execution data models."""

from dataclasses import dataclass


@dataclass
class CommandResult:
    """Raw outcome of one command line, before aggregation."""

    output: str
    error: str
    returncode: int
    command: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0
