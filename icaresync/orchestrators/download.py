"""Download orchestrator.

Transfers files missing locally over a worker pool, converts them and keeps
the inventory's converted sizes current.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from icaresync.domain.dates import DateRange
from icaresync.domain.errors import (
    ConversionFailure,
    IcareError,
    RemoteError,
    TransferFailure,
)
from icaresync.domain.models import Catalog, Counter, DataFile, FileStats, date_folders
from icaresync.domain.services import FreshnessService
from icaresync.domain.types import DownloadProgressHook
from icaresync.operations.convert import Converter
from icaresync.remote.connection import ConnectionManager, Session
from icaresync.restart.session import COMPLETED_MARKER

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2


def _resolve_worker_count(max_workers: int | None) -> int:
    """Resolve worker count, falling back to CPU count when unset."""
    if max_workers and max_workers > 0:
        return max_workers
    return max(1, min(8, os.cpu_count() or 1))


class DownloadOrchestrator:
    """Downloads and converts inventory files concurrently.

    Every mutation of the shared inventory and counter happens under
    `state_lock`. Each worker thread opens its own session on first use.
    """

    def __init__(
        self,
        connections: ConnectionManager,
        converter: Converter | None = None,
        update: bool = False,
        resync: bool = False,
        max_workers: int | None = None,
    ):
        """Initialize the download orchestrator.

        Args:
            connections: Opens worker sessions
            converter: Optional converter applied after download
            update: Redownload files older than the remote version
            resync: The inventory was resynced in this run; skip stat refreshes
            max_workers: Worker pool size (defaults to CPU count, at most 8)
        """
        self.connections = connections
        self.converter = converter
        self.update = update
        self.resync = resync
        self.max_workers = _resolve_worker_count(max_workers)
        self.freshness = FreshnessService()
        self.state_lock = threading.Lock()
        self._local = threading.local()
        self._sessions: list[Session] = []

    @property
    def target_extension(self) -> str:
        return self.converter.target_extension() if self.converter is not None else ""

    def plan(
        self,
        catalog: Catalog,
        daterange: DateRange,
        only: set[str] | None = None,
    ) -> list[DataFile]:
        """List download units for all inventory files in `daterange`.

        Args:
            catalog: Inventory
            daterange: Dates to download
            only: Restrict to these remote paths (resumed session)

        Returns:
            Download units in date and name order; tombstones excluded
        """
        units = []
        for day in catalog.sorted_dates():
            if day not in daterange:
                continue
            for name, stats in catalog.dates[day].items():
                if stats.is_tombstone:
                    continue
                file = DataFile.build(catalog, day, name, self.target_extension)
                if only is not None and file.location.remote not in only:
                    continue
                units.append(file)
        return units

    def pending(self, catalog: Catalog, units: list[DataFile]) -> list[DataFile]:
        """Return units that would be downloaded or converted, without network access."""
        return [
            file
            for file in units
            if not self.freshness.is_satisfied(file, self._stats(catalog, file), self.update)
        ]

    def run(
        self,
        catalog: Catalog,
        units: list[DataFile],
        progress_hook: DownloadProgressHook | None = None,
    ) -> Counter:
        """Process all `units` over the worker pool.

        Args:
            catalog: Shared inventory, updated with converted sizes and refreshed stats
            units: Download units from `plan`
            progress_hook: Optional callback(processed, total)

        Returns:
            Counter of downloads, conversions, skipped and failed files

        Raises:
            ServerConnectionError: If a worker cannot (re)connect
        """
        counter = Counter()
        total = len(units)
        processed = 0
        if progress_hook:
            progress_hook(processed, total)

        logger.info(f"Processing {total} files with {self.max_workers} workers")
        try:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [
                    executor.submit(self._process_file, catalog, file, counter) for file in units
                ]
                try:
                    for future in as_completed(futures):
                        future.result()
                        processed += 1
                        if progress_hook:
                            progress_hook(processed, total)
                except IcareError:
                    for future in futures:
                        future.cancel()
                    raise
        finally:
            self._close_sessions()

        logger.info(f"Download complete: {counter!r}")
        return counter

    def _process_file(self, catalog: Catalog, file: DataFile, counter: Counter) -> None:
        """Skip, download and/or convert a single file, retrying once with fresh stats."""
        if self.freshness.is_satisfied(file, self._stats(catalog, file), self.update):
            with self.state_lock:
                counter.skipped += 1
            logger.debug(f"{file} up to date")
            return

        original_existed = file.location.download.is_file()
        transferred = converted = satisfied = removed = False
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                fetched, did_convert = self._fetch(catalog, file)
                transferred |= fetched
                converted |= did_convert
            except TransferFailure as e:
                logger.warning(f"Download of {file} failed (attempt {attempt}/{MAX_ATTEMPTS}): {e}")
            except ConversionFailure as e:
                logger.warning(f"Conversion of {file} failed (attempt {attempt}/{MAX_ATTEMPTS}): {e}")

            stats = self._stats(catalog, file)
            satisfied = self.freshness.is_satisfied(file, stats, self.update)
            if satisfied or attempt == MAX_ATTEMPTS:
                break

            session = self._reconnect()
            if self.refresh_stats(catalog, file, session):
                removed = True
                break

        if not satisfied:
            with self.state_lock:
                counter.failed += 1
            if removed:
                logger.error(f"Failed to download {file}: no longer available on server")
            else:
                logger.error(f"Failed to download {file} from {file.location.remote}")
            return

        if converted and file.is_converted and not original_existed:
            try:
                file.location.download.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Cannot remove {file.location.download} after conversion: {e}")

        with self.state_lock:
            if transferred:
                counter.downloads += 1
            elif converted:
                counter.conversions += 1
            else:
                counter.skipped += 1

    def _fetch(self, catalog: Catalog, file: DataFile) -> tuple[bool, bool]:
        """Download the original if needed, then convert it if needed.

        Returns:
            Tuple of (transferred, converted)
        """
        stats = self._stats(catalog, file)
        transferred = False
        if not self.freshness.is_downloaded(file, stats, self.update):
            self._transfer(file)
            transferred = True

        converted = False
        if file.is_converted:
            converted = self._convert(catalog, file, stats)
        return transferred, converted

    def _transfer(self, file: DataFile) -> None:
        session = self._session()
        try:
            file.directory.dst.mkdir(parents=True, exist_ok=True)
            session.download(file.location.remote, file.directory.dst)
        except (RemoteError, OSError) as e:
            raise TransferFailure(f"{file.location.remote}: {e}") from e
        logger.info(f"{COMPLETED_MARKER} {Path(file.location.remote).name}")

    def _convert(self, catalog: Catalog, file: DataFile, stats: FileStats) -> bool:
        """Convert the download to the target unless the target already matches.

        Returns:
            True if a conversion ran
        """
        target = file.location.target
        if (
            stats.converted is not None
            and target.is_file()
            and target.stat().st_size == stats.converted
        ):
            return False

        try:
            target.unlink(missing_ok=True)
            self.converter.convert(file.location.download, target)
            if not target.is_file():
                raise ConversionFailure(f"No output written to {target}")
        except Exception as e:
            self._set_converted(catalog, file, None)
            if isinstance(e, ConversionFailure):
                raise
            raise ConversionFailure(f"{file.location.download}: {e}") from e

        self._set_converted(catalog, file, target.stat().st_size)
        logger.info(f"Converted {file.location.download.name} to {target.name}")
        return True

    def _set_converted(self, catalog: Catalog, file: DataFile, size: int | None) -> None:
        with self.state_lock:
            record = catalog.dates[file.date][file.name]
            if record.converted != size:
                record.converted = size
                catalog.touch()

    def refresh_stats(self, catalog: Catalog, file: DataFile, session: Session) -> bool:
        """Re-read remote stats of the file's date into the inventory.

        Files no longer on the server are kept with size 0 and no converted
        size. Skipped after a resync, when stats are already current.

        Returns:
            True if `file` was found missing on the server
        """
        if self.resync:
            return False
        try:
            remote = {stat.stem: stat for stat in session.statscan(*date_folders(file.date))}
        except RemoteError as e:
            logger.warning(f"Cannot refresh stats for {file.date}: {e}")
            return False

        with self.state_lock:
            records = catalog.dates[file.date]
            obsolete = [
                name for name, record in records.items() if name not in remote and not record.is_tombstone
            ]
            for name in obsolete:
                records[name].size = 0
                records[name].converted = None
            if obsolete:
                logger.warning(f"Resetting file stats for {file.date}: {', '.join(obsolete)}")

            changed = bool(obsolete)
            for name in sorted(remote):
                stat = remote[name]
                mtime = stat.mtime.date()
                record = records.get(name)
                if record is None:
                    records[name] = FileStats(size=stat.size, mtime=mtime)
                    changed = True
                elif record.size != stat.size or record.mtime != mtime:
                    record.size = stat.size
                    record.mtime = mtime
                    changed = True

            if changed:
                catalog.touch()
                logger.info(f"Updated file stats for {file.date}")
            return records[file.name].is_tombstone

    def _stats(self, catalog: Catalog, file: DataFile) -> FileStats:
        """Return a snapshot of the inventory stats of `file`."""
        with self.state_lock:
            return catalog.dates[file.date][file.name].model_copy()

    def _session(self) -> Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self.connections.connect()
            self._local.session = session
            with self.state_lock:
                self._sessions.append(session)
        return session

    def _reconnect(self) -> Session:
        old = getattr(self._local, "session", None)
        session = self.connections.reconnect(old)
        self._local.session = session
        with self.state_lock:
            if old in self._sessions:
                self._sessions.remove(old)
            self._sessions.append(session)
        return session

    def _close_sessions(self) -> None:
        with self.state_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
