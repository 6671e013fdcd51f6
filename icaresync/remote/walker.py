"""Listing of the remote <year>/<yyyy_mm_dd> tree."""

import logging
from datetime import date, datetime

from icaresync.domain.models import RemoteStat, date_folders
from icaresync.remote.connection import Session

logger = logging.getLogger(__name__)


class RemoteTreeWalker:
    """Lists year and date folders of a product and stats their files."""

    def __init__(self, session: Session):
        self.session = session

    def years(self) -> list[int]:
        """Return all year folders of the product."""
        return sorted(
            int(name) for name in self.session.listdir() if len(name) == 4 and name.isdigit()
        )

    def dates(self, year: int) -> list[date]:
        """Return all date folders of `year`; other folder names are ignored."""
        dates = []
        for name in self.session.listdir(f"{year:04d}"):
            try:
                dates.append(datetime.strptime(name, "%Y_%m_%d").date())
            except ValueError:
                logger.debug(f"Ignoring remote folder {year}/{name}")
        return sorted(dates)

    def stats(self, day: date) -> list[RemoteStat]:
        """Return stats of all files of `day`, sorted by name."""
        return sorted(self.session.statscan(*date_folders(day)), key=lambda s: s.name)
