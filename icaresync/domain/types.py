"""Shared type definitions."""

from collections.abc import Callable

# Progress hook for download operations (processed units, total units)
DownloadProgressHook = Callable[[int, int], None]
