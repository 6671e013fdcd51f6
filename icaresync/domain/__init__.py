"""Domain models and business logic."""

from icaresync.domain.dates import DateRange, parse_daterange
from icaresync.domain.models import (
    Catalog,
    Counter,
    DataFile,
    FileStats,
    RemoteStat,
)
from icaresync.domain.types import DownloadProgressHook

__all__ = [
    "Catalog",
    "Counter",
    "DataFile",
    "DateRange",
    "FileStats",
    "RemoteStat",
    "DownloadProgressHook",
    "parse_daterange",
]
