"""Inventory synchronization orchestrator.

Reconciles the local inventory with the remote <year>/<date> tree.
"""

import logging
from datetime import date

from icaresync.domain.dates import DateRange
from icaresync.domain.errors import (
    RemoteConnectionLost,
    RemoteNotFound,
    RemotePermissionDenied,
    ServerConnectionError,
)
from icaresync.domain.models import Catalog
from icaresync.domain.services import InventoryService
from icaresync.remote.walker import RemoteTreeWalker

logger = logging.getLogger(__name__)


class InventorySync:
    """Orchestrates the inventory update against the server.

    This orchestrator coordinates:
    1. Listing year folders on the server
    2. Selecting years that are not yet fully known (all years on resync)
    3. Stat scans of unknown date folders, year by year
    4. Date envelope and data gap bookkeeping
    """

    def __init__(self, service: InventoryService | None = None):
        self.service = service if service is not None else InventoryService()

    def sync(
        self,
        catalog: Catalog,
        walker: RemoteTreeWalker,
        daterange: DateRange,
        resync: bool = False,
        is_new: bool = False,
    ) -> bool:
        """Sync the inventory with the server.

        Args:
            catalog: Inventory to update in place
            walker: Lister of the remote product tree
            daterange: Requested dates, used for gap reporting
            resync: Re-verify all dates instead of only unknown ones
            is_new: The inventory was just created

        Returns:
            True if the inventory changed

        Raises:
            ServerConnectionError: If the connection drops while listing
        """
        years = self._list(walker.years, "product folder")
        if is_new:
            logger.info("Initialising new inventory from all remote years")
        elif resync:
            logger.info("Checking inventory dates for updates")
            self.service.clear_dates(catalog)
            catalog.touch()
        else:
            logger.info("Checking for new data not yet considered in the inventory")
            years = self.service.filter_years(catalog, years)

        updated = False
        unavailable: list[int] = []
        try:
            for year in sorted(years):
                try:
                    dates = self._list(lambda: walker.dates(year), f"year {year}")
                except (RemoteNotFound, RemotePermissionDenied):
                    unavailable.append(year)
                    continue

                year_updated = False
                for day in dates:
                    year_updated |= self._sync_date(catalog, walker, day)

                if year_updated:
                    # Keep complete years in the inventory, should a later year fail
                    self.service.update_envelope(catalog)
                    catalog.touch()
                    updated = True
        finally:
            catalog.temp = None

        gaps_before = list(catalog.gaps)
        self.service.data_gaps(catalog)
        if catalog.gaps != gaps_before:
            catalog.touch()
            updated = True

        if unavailable:
            logger.warning(
                f"Skipped unavailable year folders: {', '.join(str(y) for y in unavailable)}"
            )
        self.report_gaps(catalog, daterange)

        if updated:
            database = catalog.metadata.database
            logger.info(
                f"Inventory synced with server in date range {database.start} to {database.stop}"
            )
        return updated

    def _sync_date(self, catalog: Catalog, walker: RemoteTreeWalker, day: date) -> bool:
        """Stat-scan `day` if it is neither a gap nor already known."""
        if day in catalog.gaps or catalog.dates.get(day):
            return False

        try:
            stats = self._list(lambda: walker.stats(day), f"date {day}")
        except (RemoteNotFound, RemotePermissionDenied) as e:
            logger.warning(f"Cannot scan date folder {day}: {e}")
            return False
        if not stats:
            logger.debug(f"No files on server for {day}")
            return False
        return self.service.record_date(catalog, day, stats)

    def report_gaps(self, catalog: Catalog, daterange: DateRange) -> list[str]:
        """Log data gaps inside `daterange` and requests beyond the known dates.

        Returns:
            Gap ranges formatted for display
        """
        database = catalog.metadata.database
        if not catalog.dates:
            logger.warning("No data available on server")
            return []

        # date.min/date.max request the whole history; no warning then
        if date.min < daterange.start < database.start:
            logger.warning(f"No data available before {database.start}")
        if date.max > daterange.stop > database.stop:
            logger.warning(f"No data available after {database.stop}")

        ranges = [
            self.service.format_range(first, last)
            for first, last in self.service.gap_ranges(catalog.gaps, daterange)
        ]
        if ranges:
            logger.info(f"Data gaps in {daterange}: {'; '.join(ranges)}")
        return ranges

    @staticmethod
    def _list(call, what: str):
        """Run a listing call, turning a lost connection into a fatal error."""
        try:
            return call()
        except RemoteConnectionLost as e:
            raise ServerConnectionError(f"Connection lost while listing {what}") from e
