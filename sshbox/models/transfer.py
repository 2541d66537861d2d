"""File transfer data models."""

from dataclasses import dataclass


@dataclass
class TransferResult:
    """Result of a file transfer operation."""

    success: bool
    message: str
    bytes_transferred: int = 0
