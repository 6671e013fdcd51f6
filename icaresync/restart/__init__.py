"""Recovery of interrupted download sessions."""

from icaresync.restart.session import (
    DownloadSession,
    PendingDownload,
    ResumeChoice,
    init_restart,
)

__all__ = ["DownloadSession", "PendingDownload", "ResumeChoice", "init_restart"]
