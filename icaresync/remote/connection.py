"""Session handling on top of a transfer-protocol client."""

import contextlib
import logging
import posixpath
import time
from collections.abc import Callable
from pathlib import Path

from icaresync.domain.errors import (
    AuthenticationFailed,
    InvalidProduct,
    RemoteAuthenticationError,
    RemoteConnectionLost,
    RemoteError,
    RemoteNotFound,
    RemotePermissionDenied,
    ServerConnectionError,
)
from icaresync.domain.models import RemoteStat
from icaresync.remote.client import ClientFactory, RemoteClient

logger = logging.getLogger(__name__)

MAX_RETRIES = 5
RETRY_DELAY = 5.0


class Session:
    """Connected client positioned on a product folder.

    Paths passed to the helpers are relative to the product folder.
    """

    def __init__(self, client: RemoteClient, root: str, productpath: str):
        self.client = client
        self.root = root
        self.productpath = productpath

    def path(self, *parts: str) -> str:
        return posixpath.join(self.productpath, *parts)

    def listdir(self, *parts: str) -> list[str]:
        return self.client.listdir(self.path(*parts))

    def statscan(self, *parts: str) -> list[RemoteStat]:
        return self.client.statscan(self.path(*parts))

    def download(self, remote_path: str, local_dir: Path) -> Path:
        return self.client.download(remote_path, local_dir)

    def close(self) -> None:
        with contextlib.suppress(RemoteError, OSError):
            self.client.close()


class ConnectionManager:
    """Opens sessions with bounded retries.

    Transient network errors are retried up to `retries` times with a fixed
    delay. Rejected credentials and missing product folders fail at once.
    """

    def __init__(
        self,
        host: str,
        user: str,
        password: str,
        remote_root: str,
        product: str,
        client_factory: ClientFactory | None = None,
        retries: int = MAX_RETRIES,
        delay: float = RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the connection manager.

        Args:
            host: Server host name
            user: Login name
            password: Login password
            remote_root: Remote folder holding all products
            product: Product folder name below `remote_root`
            client_factory: Opens a client; defaults to `SFTPRemote.connect`
            retries: Maximum number of connection attempts
            delay: Seconds to wait between attempts
            sleep: Sleep function, replaceable in tests
        """
        if client_factory is None:
            from icaresync.remote.sftp import SFTPRemote

            client_factory = SFTPRemote.connect
        self.host = host
        self.user = user
        self.password = password
        self.remote_root = remote_root
        self.product = product
        self.productpath = posixpath.join(remote_root, product)
        self.client_factory = client_factory
        self.retries = max(1, retries)
        self.delay = delay
        self.sleep = sleep

    def connect(self) -> Session:
        """Open a session on the product folder.

        Raises:
            AuthenticationFailed: If the server rejects the credentials
            InvalidProduct: If the remote root or product folder does not exist
            ServerConnectionError: If no connection succeeded within `retries` attempts
        """
        last_error: Exception | None = None
        for attempt in range(1, self.retries + 1):
            client = None
            try:
                client = self.client_factory(self.host, self.user, self.password)
                return self._open_product(client)
            except RemoteAuthenticationError as e:
                raise AuthenticationFailed(f"Login to {self.host} rejected for {self.user}") from e
            except RemoteConnectionLost as e:
                last_error = e
                if client is not None:
                    with contextlib.suppress(RemoteError, OSError):
                        client.close()
                logger.warning(
                    f"Connection to {self.host} failed (attempt {attempt}/{self.retries}): {e}"
                )
                if attempt < self.retries:
                    self.sleep(self.delay)

        raise ServerConnectionError(
            f"No connection to {self.host} after {self.retries} attempts"
        ) from last_error

    def reconnect(self, session: Session | None) -> Session:
        """Close `session` and open a new one."""
        if session is not None:
            session.close()
        return self.connect()

    def _open_product(self, client: RemoteClient) -> Session:
        """Check the remote root and product folder and return a session on it."""
        for folder, description in (
            (self.remote_root, "remote root"),
            (self.productpath, "product folder"),
        ):
            try:
                client.change_directory(folder)
            except RemoteNotFound as e:
                client.close()
                raise InvalidProduct(f"{description} {folder} does not exist on {self.host}") from e
            except RemotePermissionDenied:
                logger.warning(f"Cannot verify {description} {folder}; assuming it exists")

        return Session(client, self.remote_root, self.productpath)
