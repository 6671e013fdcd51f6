"""Download session files for resuming interrupted runs.

Before transfers start, the pending downloads are written next to the log
file as ``<log stem>.dsl``. The file is removed when the run completes. If a
run dies, the next run finds the session file and, once confirmed, resumes
with the files not yet logged as completed.
"""

import logging
import posixpath
from collections.abc import Callable, Iterable
from enum import Enum
from pathlib import Path

import orjson
from atomicwrites import atomic_write
from pydantic import BaseModel, TypeAdapter, ValidationError

from icaresync.domain.models import DataFile

logger = logging.getLogger(__name__)

SESSION_SUFFIX = ".dsl"
COMPLETED_MARKER = "download completed:"


class ResumeChoice(str, Enum):
    """Answer to the resume prompt."""

    RESUME = "yes"
    DISCARD = "no"
    LATER = "later"


class PendingDownload(BaseModel):
    remote: str
    local: Path


_PENDING_LIST = TypeAdapter(list[PendingDownload])


class DownloadSession:
    """Session file belonging to the log file `logfile`."""

    def __init__(self, logfile: str | Path):
        self.logfile = Path(logfile)
        self.path = self.logfile.with_suffix(SESSION_SUFFIX)

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, units: Iterable[DataFile]) -> None:
        """Write the pending downloads atomically."""
        pending = [
            PendingDownload(remote=file.location.remote, local=file.location.target) for file in units
        ]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with atomic_write(self.path, mode="wb", overwrite=True) as f:
            f.write(orjson.dumps(_PENDING_LIST.dump_python(pending, mode="json"), option=orjson.OPT_INDENT_2))
        logger.debug(f"Saved {len(pending)} pending downloads to {self.path}")

    def load(self) -> list[PendingDownload]:
        """Read the pending downloads; an unreadable file counts as empty."""
        try:
            return _PENDING_LIST.validate_python(orjson.loads(self.path.read_bytes()))
        except (orjson.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable download session {self.path}: {e}")
            return []

    def completed(self) -> set[str]:
        """Return basenames logged as completed in the log file."""
        if not self.logfile.is_file():
            return set()
        done = set()
        with self.logfile.open(encoding="utf-8", errors="replace") as f:
            for line in f:
                _, marker, name = line.partition(COMPLETED_MARKER)
                if marker and name.strip():
                    done.add(name.strip())
        return done

    def remaining(self) -> list[PendingDownload]:
        """Return the pending downloads not yet completed."""
        done = self.completed()
        return [p for p in self.load() if posixpath.basename(p.remote) not in done]

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


def init_restart(
    session: DownloadSession,
    decide: Callable[[Path], ResumeChoice],
) -> list[PendingDownload] | None:
    """Offer to resume an interrupted download session.

    Args:
        session: Session of the current log file
        decide: Asked with the session file path if one exists

    Returns:
        Remaining downloads when resuming, None otherwise. Discarding deletes
        the session file; answering later keeps it.
    """
    if not session.exists():
        return None

    choice = decide(session.path)
    if choice is ResumeChoice.RESUME:
        remaining = session.remaining()
        logger.info(f"Resuming download session {session.path} with {len(remaining)} files left")
        return remaining
    if choice is ResumeChoice.DISCARD:
        session.clear()
        logger.info(f"Previous download session {session.path} deleted")
    else:
        logger.info(f"Keeping download session {session.path} for later")
    return None
