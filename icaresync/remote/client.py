"""Interface of transfer-protocol clients."""

from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from icaresync.domain.models import RemoteStat


class RemoteClient(Protocol):
    """Minimal surface of a file-transfer client.

    Implementations raise `RemoteNotFound`, `RemotePermissionDenied` and
    `RemoteConnectionLost` so callers can tell missing folders from access
    problems and dropped connections.
    """

    def change_directory(self, path: str) -> None: ...

    def listdir(self, path: str) -> list[str]: ...

    def statscan(self, path: str) -> list[RemoteStat]: ...

    def download(self, remote_path: str, local_dir: Path) -> Path: ...

    def close(self) -> None: ...


# Opens a client session: (host, user, password) -> client
ClientFactory = Callable[[str, str, str], RemoteClient]
