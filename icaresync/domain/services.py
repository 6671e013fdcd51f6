"""Business logic services for the inventory."""

import logging
import shutil
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from icaresync.domain.dates import DateRange
from icaresync.domain.models import (
    EMPTY_START,
    EMPTY_STOP,
    Catalog,
    DataFile,
    FileStats,
    RemoteStat,
)

logger = logging.getLogger(__name__)


class InventoryService:
    """Service for reconciling the inventory with the remote tree."""

    @staticmethod
    def filter_years(catalog: Catalog, years: list[int]) -> list[int]:
        """Keep years that are unknown to the inventory or only partly known.

        Years strictly inside the known date range are fully known and skipped.
        The first and last known year are kept, unless the known range starts
        on Jan 1 or ends on Dec 31 of that year, respectively.

        Args:
            catalog: Current inventory
            years: Year folders available on the server

        Returns:
            Sorted list of years to query
        """
        database = catalog.metadata.database
        start, stop = database.start, database.stop
        kept = []
        for year in years:
            if year < start.year or year > stop.year:
                kept.append(year)
            elif year == start.year and (start.month, start.day) != (1, 1):
                kept.append(year)
            elif year == stop.year and (stop.month, stop.day) != (12, 31):
                kept.append(year)
        return sorted(kept)

    @staticmethod
    def clear_dates(catalog: Catalog) -> None:
        """Reset all dates for a resync, stashing converted sizes in `catalog.temp`."""
        converted = {}
        for files in catalog.dates.values():
            for name, stats in files.items():
                if stats.converted is not None:
                    converted[name] = stats.converted
        catalog.temp = converted

        catalog.dates.clear()
        catalog.gaps.clear()
        metadata = catalog.metadata
        metadata.file.count = 0
        metadata.file.converted = 0
        metadata.database.dates = 0
        metadata.database.missing = 0
        metadata.database.start = EMPTY_START
        metadata.database.stop = EMPTY_STOP

    @staticmethod
    def record_date(catalog: Catalog, day: date, stats: list[RemoteStat]) -> bool:
        """Store remote `stats` for `day`, unless the date is a gap or already known.

        Returns:
            True if the inventory changed
        """
        if day in catalog.gaps or catalog.dates.get(day):
            return False
        if not stats:
            return False

        files = {}
        for stat in sorted(stats, key=lambda s: s.name):
            record = FileStats(size=stat.size, mtime=stat.mtime.date())
            if catalog.temp and stat.stem in catalog.temp:
                record.converted = catalog.temp[stat.stem]
            files[stat.stem] = record
        catalog.dates[day] = files

        if catalog.metadata.file.ext is None:
            catalog.metadata.file.ext = stats[0].suffix
        return True

    @staticmethod
    def update_envelope(catalog: Catalog) -> None:
        """Set start/stop of the inventory to the first and last known date."""
        if not catalog.dates:
            return
        database = catalog.metadata.database
        database.start = min(catalog.dates)
        database.stop = max(catalog.dates)

    @staticmethod
    def data_gaps(catalog: Catalog) -> list[date]:
        """Add dates in the inventory range without data to the gaps.

        Returns:
            Sorted list of all gaps
        """
        database = catalog.metadata.database
        if not catalog.dates:
            catalog.gaps = []
            database.missing = 0
            return catalog.gaps

        known = DateRange(database.start, database.stop)
        gaps = set(catalog.gaps)
        gaps.update(day for day in known.days() if day not in catalog.dates)
        catalog.gaps = sorted(day for day in gaps if day in known and day not in catalog.dates)
        database.missing = len(catalog.gaps)
        return catalog.gaps

    @staticmethod
    def gap_ranges(gaps: list[date], daterange: DateRange) -> list[tuple[date, date]]:
        """Collapse contiguous gap dates inside `daterange` to (first, last) ranges."""
        ranges: list[tuple[date, date]] = []
        for day in sorted(g for g in gaps if g in daterange):
            if ranges and ranges[-1][1] + timedelta(days=1) == day:
                ranges[-1] = (ranges[-1][0], day)
            else:
                ranges.append((day, day))
        return ranges

    @staticmethod
    def format_range(first: date, last: date) -> str:
        return str(first) if first == last else f"{first} to {last}"

    @staticmethod
    def refresh_statistics(catalog: Catalog) -> None:
        """Recompute derived counts in the metadata."""
        metadata = catalog.metadata
        metadata.database.dates = len(catalog.dates)
        metadata.database.missing = len(catalog.gaps)
        metadata.file.count = sum(len(files) for files in catalog.dates.values())
        metadata.file.converted = sum(
            1
            for files in catalog.dates.values()
            for stats in files.values()
            if stats.converted is not None
        )


class FreshnessService:
    """Service deciding whether a local file still matches the inventory."""

    @staticmethod
    def is_downloaded(
        file: DataFile,
        stats: FileStats,
        update: bool = False,
        converted: bool = False,
    ) -> bool:
        """Check a local file against its inventory stats.

        Args:
            file: Download unit
            stats: Inventory stats of the file
            update: Also require the local file to be at least as new as the remote file
            converted: Check the converted target instead of the downloaded file

        Returns:
            True if the file exists, has the expected size and, with `update`,
            is not older than the remote modification date
        """
        path = file.location.target if converted else file.location.download
        expected = stats.converted if converted else stats.size
        if expected is None or not path.is_file():
            return False

        local = path.stat()
        if local.st_size != expected:
            return False
        modified = datetime.fromtimestamp(local.st_mtime, tz=timezone.utc).date()
        if update and modified < stats.mtime:
            return False
        return True

    @staticmethod
    def is_satisfied(file: DataFile, stats: FileStats, update: bool = False) -> bool:
        """Check the final artifact of `file`, converted or not."""
        return FreshnessService.is_downloaded(file, stats, update, converted=file.is_converted)


class InventoryQueryService:
    """Service for querying inventory contents."""

    @staticmethod
    def get_statistics(catalog: Catalog) -> dict:
        """Summarize an inventory.

        Returns:
            Dictionary with product, dates, files, converted, tombstones, gaps,
            start, stop, created, updated and total_size
        """
        metadata = catalog.metadata
        records = [stats for files in catalog.dates.values() for stats in files.values()]
        return {
            "product": metadata.server.product,
            "path": Path(metadata.local.path),
            "dates": len(catalog.dates),
            "files": len(records),
            "converted": sum(1 for stats in records if stats.converted is not None),
            "tombstones": sum(1 for stats in records if stats.is_tombstone),
            "gaps": len(catalog.gaps),
            "start": None if metadata.database.is_empty else metadata.database.start,
            "stop": None if metadata.database.is_empty else metadata.database.stop,
            "created": metadata.database.created,
            "updated": metadata.database.updated,
            "total_size": sum(stats.size for stats in records),
        }


class CleanupService:
    """Service for local files the server does not hold."""

    @staticmethod
    def find_misplaced(catalog: Catalog, daterange: DateRange, target_ext: str = "") -> list[Path]:
        """List local entries of date folders in `daterange` that are absent on the server.

        In a date with remote files, every file is misplaced unless it is the
        download or the converted target of a file still on the server. The
        folder of a date without remote data is misplaced as a whole. Dates the
        inventory does not know yet and hidden entries are left alone.

        Args:
            catalog: Synced inventory
            daterange: Dates to check
            target_ext: Extension of converted files

        Returns:
            Sorted paths of misplaced files and folders
        """
        root = Path(catalog.metadata.local.path)
        if not root.is_dir():
            return []

        ext = catalog.metadata.file.ext or ""
        gaps = set(catalog.gaps)
        misplaced = []
        for year_dir in sorted(root.iterdir()):
            if not (year_dir.is_dir() and len(year_dir.name) == 4 and year_dir.name.isdigit()):
                continue
            for date_dir in sorted(year_dir.iterdir()):
                try:
                    day = datetime.strptime(date_dir.name, "%Y_%m_%d").date()
                except ValueError:
                    continue
                if not date_dir.is_dir() or day not in daterange:
                    continue

                if day in gaps:
                    misplaced.append(date_dir)
                    continue
                records = catalog.dates.get(day)
                if records is None:
                    continue

                expected = set()
                for name, stats in records.items():
                    if stats.is_tombstone:
                        continue
                    expected.add(f"{name}{ext}")
                    if target_ext:
                        expected.add(f"{name}{target_ext}")
                misplaced.extend(
                    path
                    for path in sorted(date_dir.iterdir())
                    if not path.name.startswith(".") and path.name not in expected
                )
        return misplaced

    @staticmethod
    def remove_misplaced(paths: list[Path], dry_run: bool = False) -> dict:
        """Delete misplaced files and folders.

        Args:
            paths: Paths from `find_misplaced`
            dry_run: If True, only count what would be deleted

        Returns:
            Dictionary with total_misplaced, total_deleted and failed paths
        """
        deleted = 0
        failed = []
        for path in paths:
            if dry_run or not path.exists():
                continue
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                else:
                    path.unlink()
            except OSError as e:
                logger.warning(f"Cannot remove misplaced {path}: {e}")
                failed.append(path)
                continue
            logger.info(f"Removed misplaced {path}")
            deleted += 1

        return {
            "total_misplaced": len(paths),
            "total_deleted": deleted,
            "failed": failed,
        }
