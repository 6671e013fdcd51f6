"""Exception hierarchy.

Fatal errors abort a run and propagate out of the engine. Per-file errors
(`TransferFailure`, `ConversionFailure`) are caught, counted and logged by the
download orchestrator.
"""


class IcareError(Exception):
    """Base class for all icaresync errors."""


# Fatal


class ServerConnectionError(IcareError, ConnectionError):
    """No session could be established after the bounded number of retries."""


class AuthenticationFailed(ServerConnectionError):
    """The server rejected the credentials; never retried."""


class InvalidProduct(IcareError):
    """The product folder does not exist on the remote server."""


class CorruptCatalog(IcareError):
    """The inventory document is unreadable or misses required structure."""


class InvalidDateFormat(IcareError, ValueError):
    """A date integer is not a valid yyyy, yyyymm or yyyymmdd value."""


# Per file


class TransferFailure(IcareError):
    """A single file could not be transferred."""


class ConversionFailure(IcareError):
    """A downloaded file could not be converted."""


# Remote client


class RemoteError(IcareError):
    """Base class for errors raised by transfer-protocol clients."""


class RemoteNotFound(RemoteError):
    """Remote path does not exist."""


class RemotePermissionDenied(RemoteError):
    """Remote path exists but may not be accessed."""


class RemoteConnectionLost(RemoteError):
    """The connection dropped or could not be opened."""


class RemoteAuthenticationError(RemoteError):
    """Login rejected by the server."""
