"""SFTP client based on paramiko."""

import logging
import os
import posixpath
import socket
import stat
from datetime import datetime, timezone
from pathlib import Path

import paramiko

from icaresync.domain.errors import (
    RemoteAuthenticationError,
    RemoteConnectionLost,
    RemoteNotFound,
    RemotePermissionDenied,
)
from icaresync.domain.models import RemoteStat

logger = logging.getLogger(__name__)

DEFAULT_PORT = 22
DEFAULT_TIMEOUT = 30.0


class SFTPRemote:
    """`RemoteClient` over an SFTP session."""

    def __init__(self, transport: paramiko.Transport, sftp: paramiko.SFTPClient):
        self.transport = transport
        self.sftp = sftp

    @classmethod
    def connect(
        cls,
        host: str,
        user: str,
        password: str,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> "SFTPRemote":
        """Open an authenticated SFTP session.

        Raises:
            RemoteAuthenticationError: If the server rejects the credentials
            RemoteConnectionLost: If the server cannot be reached
        """
        logger.debug(f"Connecting to sftp://{user}@{host}:{port}")
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as e:
            raise RemoteConnectionLost(f"Cannot reach {host}:{port}: {e}") from e

        transport = paramiko.Transport(sock)
        try:
            transport.connect(username=user, password=password)
            sftp = paramiko.SFTPClient.from_transport(transport)
        except paramiko.AuthenticationException as e:
            transport.close()
            raise RemoteAuthenticationError(f"Login to {host} failed for {user}") from e
        except (paramiko.SSHException, EOFError, OSError) as e:
            transport.close()
            raise RemoteConnectionLost(f"SSH negotiation with {host} failed: {e}") from e
        if sftp is None:
            transport.close()
            raise RemoteConnectionLost(f"No SFTP channel on {host}")
        sftp.get_channel().settimeout(timeout)
        return cls(transport, sftp)

    def change_directory(self, path: str) -> None:
        with _RemoteErrors(path):
            self.sftp.chdir(path)

    def listdir(self, path: str) -> list[str]:
        with _RemoteErrors(path):
            return sorted(self.sftp.listdir(path))

    def statscan(self, path: str) -> list[RemoteStat]:
        with _RemoteErrors(path):
            attributes = self.sftp.listdir_attr(path)
        return sorted(
            (
                RemoteStat(
                    name=attr.filename,
                    size=attr.st_size or 0,
                    mtime=datetime.fromtimestamp(attr.st_mtime or 0, tz=timezone.utc),
                )
                for attr in attributes
                if attr.st_mode is not None and stat.S_ISREG(attr.st_mode)
            ),
            key=lambda s: s.name,
        )

    def download(self, remote_path: str, local_dir: Path) -> Path:
        """Fetch `remote_path` into `local_dir`; the file appears only when complete."""
        local_dir = Path(local_dir)
        local_dir.mkdir(parents=True, exist_ok=True)
        destination = local_dir / posixpath.basename(remote_path)
        partial = destination.with_name(destination.name + ".part")
        try:
            with _RemoteErrors(remote_path):
                self.sftp.get(remote_path, str(partial))
            os.replace(partial, destination)
        finally:
            partial.unlink(missing_ok=True)
        return destination

    def close(self) -> None:
        self.sftp.close()
        self.transport.close()


class _RemoteErrors:
    """Map paramiko and OS errors onto the remote error hierarchy."""

    def __init__(self, path: str):
        self.path = path

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, _traceback):
        if exc_type is None:
            return False
        if issubclass(exc_type, FileNotFoundError):
            raise RemoteNotFound(f"{self.path} not found") from exc_value
        if issubclass(exc_type, PermissionError):
            raise RemotePermissionDenied(f"{self.path}: permission denied") from exc_value
        if issubclass(exc_type, (paramiko.SSHException, EOFError, socket.timeout, OSError)):
            raise RemoteConnectionLost(f"{self.path}: {exc_value}") from exc_value
        return False
