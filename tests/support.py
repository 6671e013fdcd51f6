"""Test doubles for the remote server and converters."""

import os
import posixpath
import shutil
from datetime import date, datetime, timezone
from pathlib import Path

from icaresync.domain.errors import (
    ConversionFailure,
    RemoteAuthenticationError,
    RemoteConnectionLost,
    RemoteNotFound,
)
from icaresync.domain.models import RemoteStat, date_folders
from icaresync.operations.convert import Converter

REMOTE_ROOT = "/SPACEBORNE/CALIOP"
PRODUCT = "05kmCPro"
VERSION = 4.51
PRODUCT_FOLDER = "05kmCPro.v4.51"


def granule(day: date, hour: int = 0) -> str:
    """Return a granule file name of `day`."""
    return f"CAL_LID_L2_05kmCPro-Standard-V4-51.{day:%Y-%m-%d}T{hour:02d}-00-00ZN.hdf"


class LocalTreeClient:
    """RemoteClient serving a local directory as the remote server."""

    def __init__(self, root: Path, failures: dict[str, int] | None = None):
        self.root = Path(root)
        self.failures = failures if failures is not None else {}
        self.downloads: list[str] = []
        self.closed = False

    def _local(self, path: str) -> Path:
        return self.root / path.lstrip("/")

    def change_directory(self, path: str) -> None:
        if not self._local(path).is_dir():
            raise RemoteNotFound(f"{path} not found")

    def listdir(self, path: str) -> list[str]:
        folder = self._local(path)
        if not folder.is_dir():
            raise RemoteNotFound(f"{path} not found")
        return sorted(entry.name for entry in folder.iterdir())

    def statscan(self, path: str) -> list[RemoteStat]:
        folder = self._local(path)
        if not folder.is_dir():
            raise RemoteNotFound(f"{path} not found")
        return [
            RemoteStat(
                name=entry.name,
                size=entry.stat().st_size,
                mtime=datetime.fromtimestamp(entry.stat().st_mtime, tz=timezone.utc),
            )
            for entry in sorted(folder.iterdir())
            if entry.is_file()
        ]

    def download(self, remote_path: str, local_dir: Path) -> Path:
        name = posixpath.basename(remote_path)
        self.downloads.append(remote_path)
        if self.failures.get(name, 0) > 0:
            self.failures[name] -= 1
            raise RemoteConnectionLost(f"{remote_path}: connection reset")
        source = self._local(remote_path)
        if not source.is_file():
            raise RemoteNotFound(f"{remote_path} not found")
        destination = Path(local_dir) / name
        shutil.copyfile(source, destination)
        return destination

    def close(self) -> None:
        self.closed = True


class RemoteServer:
    """Directory tree laid out like the ICARE server, plus a client factory."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.product_root = self.root / REMOTE_ROOT.lstrip("/") / PRODUCT_FOLDER
        self.product_root.mkdir(parents=True)
        self.clients: list[LocalTreeClient] = []
        self.failures: dict[str, int] = {}
        self.reject_login = False
        self.unreachable = 0

    def add_file(self, day: date, name: str | None = None, size: int = 64) -> Path:
        """Create a remote file of `size` bytes, modified at noon on `day`."""
        year, folder = date_folders(day)
        path = self.product_root / year / folder / (name or granule(day))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x" * size)
        noon = datetime(day.year, day.month, day.day, 12, tzinfo=timezone.utc).timestamp()
        os.utime(path, (noon, noon))
        return path

    def add_folder(self, day: date) -> Path:
        """Create an empty remote date folder."""
        year, folder = date_folders(day)
        path = self.product_root / year / folder
        path.mkdir(parents=True, exist_ok=True)
        return path

    def remove_file(self, day: date, name: str | None = None) -> None:
        year, folder = date_folders(day)
        (self.product_root / year / folder / (name or granule(day))).unlink()

    def connect(self, host: str, user: str, password: str) -> LocalTreeClient:
        if self.reject_login:
            raise RemoteAuthenticationError(f"Login to {host} failed for {user}")
        if self.unreachable > 0:
            self.unreachable -= 1
            raise RemoteConnectionLost(f"Cannot reach {host}")
        client = LocalTreeClient(self.root, self.failures)
        self.clients.append(client)
        return client

    @property
    def downloads(self) -> list[str]:
        return [path for client in self.clients for path in client.downloads]


class CopyConverter(Converter):
    """Converter writing a tagged copy of the input."""

    def __init__(self):
        self.calls: list[Path] = []

    def target_extension(self) -> str:
        return ".h5"

    def convert(self, input_path: Path, output_path: Path) -> None:
        self.calls.append(Path(input_path))
        output_path.write_bytes(b"h5:" + Path(input_path).read_bytes())


class FailingConverter(CopyConverter):
    """Converter that always fails."""

    def convert(self, input_path: Path, output_path: Path) -> None:
        self.calls.append(Path(input_path))
        raise ConversionFailure(f"cannot convert {input_path}")


