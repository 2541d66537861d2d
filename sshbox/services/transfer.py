"""SFTP file transfer.

Sources and sinks are either local paths or in-memory binary buffers.
Errors raised by the asyncssh SFTP client propagate unchanged.
"""

import logging
import os
import posixpath
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO, Union

from sshbox.models import TransferResult

if TYPE_CHECKING:
    import asyncssh

logger = logging.getLogger(__name__)

Source = Union[str, "os.PathLike[str]", bytes, bytearray, BinaryIO]
Sink = Union[str, "os.PathLike[str]", BinaryIO]


def is_buffer(obj: Any) -> bool:
    """Check whether ``obj`` is in-memory data rather than a local path."""
    return isinstance(obj, (bytes, bytearray)) or hasattr(obj, "read")


def _buffer_bytes(source: Any) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if hasattr(source, "seek"):
        source.seek(0)
    data = source.read()
    if isinstance(data, str):
        return data.encode("utf-8")
    return data


def _buffer_name(source: Any) -> str | None:
    name = getattr(source, "name", None)
    if isinstance(name, str) and name:
        return posixpath.basename(name)
    return None


async def upload(
    conn: "asyncssh.SSHClientConnection",
    sources: list[Source],
    destination: str,
) -> TransferResult:
    """Upload local files or buffers to the remote host.

    Args:
        conn: SSH connection to remote host
        sources: Local paths and/or binary buffers
        destination: Remote directory, or remote file path for a single source

    Returns:
        TransferResult with bytes transferred

    Raises:
        ValueError: If no source is given, several sources target a file,
            or a buffer without a name targets a directory
        FileNotFoundError: If a local source path does not exist
    """
    if not sources:
        raise ValueError("upload() needs at least one source")

    total = 0
    async with conn.start_sftp_client() as sftp:
        is_dir = await sftp.isdir(destination)
        if len(sources) > 1 and not is_dir:
            raise ValueError(
                f"Destination must be an existing directory for {len(sources)} sources: "
                f"{destination}"
            )

        for source in sources:
            if is_buffer(source):
                target = destination
                if is_dir:
                    name = _buffer_name(source)
                    if name is None:
                        raise ValueError(
                            "In-memory source needs a remote file path, "
                            f"got directory: {destination}"
                        )
                    target = posixpath.join(destination, name)
                data = _buffer_bytes(source)
                async with sftp.open(target, "wb") as remote_file:
                    await remote_file.write(data)
                total += len(data)
                logger.debug("Uploaded %d bytes from buffer to %s", len(data), target)
            else:
                local = Path(source)
                if not local.exists():
                    raise FileNotFoundError(f"Source file not found: {local}")
                await sftp.put(str(local), destination)
                total += local.stat().st_size
                logger.debug("Uploaded %s to %s", local, destination)

    return TransferResult(
        success=True,
        message=f"Uploaded {len(sources)} source(s) to {destination}",
        bytes_transferred=total,
    )


async def download(
    conn: "asyncssh.SSHClientConnection",
    remote_path: str,
    sink: Sink,
) -> TransferResult:
    """Download a remote file into a local path or a writable buffer.

    Args:
        conn: SSH connection to remote host
        remote_path: Remote file path
        sink: Local file/directory path or binary buffer

    Returns:
        TransferResult with bytes transferred
    """
    async with conn.start_sftp_client() as sftp:
        if hasattr(sink, "write"):
            async with sftp.open(remote_path, "rb") as remote_file:
                data = await remote_file.read()
            sink.write(data)
            size = len(data)
            target = "buffer"
        else:
            target = os.fspath(sink)
            await sftp.get(remote_path, target)
            local = Path(target)
            if local.is_dir():
                local = local / posixpath.basename(remote_path)
            size = local.stat().st_size if local.exists() else 0

    logger.debug("Downloaded %s to %s (%d bytes)", remote_path, target, size)
    return TransferResult(
        success=True,
        message=f"Downloaded {remote_path} to {target}",
        bytes_transferred=size,
    )
