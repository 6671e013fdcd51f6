"""Remote server access.

Public API:
    - ConnectionManager: Connect/reconnect with bounded retries
    - Session: Client positioned on a product folder
    - RemoteTreeWalker: Year/date folder listing and stat scans
    - RemoteClient: Interface of transfer-protocol clients
"""

from icaresync.remote.client import ClientFactory, RemoteClient
from icaresync.remote.connection import ConnectionManager, Session
from icaresync.remote.walker import RemoteTreeWalker

__all__ = [
    "ClientFactory",
    "ConnectionManager",
    "RemoteClient",
    "RemoteTreeWalker",
    "Session",
]
