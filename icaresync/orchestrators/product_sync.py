"""Product synchronization orchestrator.

Coordinates the complete end-to-end workflow for one product.
"""

import logging
from collections.abc import Callable
from datetime import date
from functools import partial
from pathlib import Path

from icaresync.config import Settings
from icaresync.domain.dates import DateRange, parse_daterange
from icaresync.domain.models import Catalog, Counter
from icaresync.domain.services import CleanupService
from icaresync.operations.convert import Converter, ExternalToolConverter
from icaresync.orchestrators.download import DownloadOrchestrator
from icaresync.orchestrators.inventory_sync import InventorySync
from icaresync.remote.client import ClientFactory
from icaresync.remote.connection import ConnectionManager
from icaresync.remote.sftp import SFTPRemote
from icaresync.remote.walker import RemoteTreeWalker
from icaresync.restart.session import DownloadSession, ResumeChoice, init_restart
from icaresync.state.manager import CatalogStore
from icaresync.ui import Reporter

logger = logging.getLogger(__name__)

ResumeDecision = Callable[[Path], ResumeChoice]
CleanDecision = Callable[[list[Path]], bool]


def fixed_choice(answer: str) -> ResumeDecision:
    """Return a resume decision that always gives `answer`; "ask" keeps the session."""
    choice = ResumeChoice.LATER if answer == "ask" else ResumeChoice(answer)
    return lambda _path: choice


def fixed_clean(answer: str) -> CleanDecision:
    """Return a cleanup decision that deletes only for "yes"."""
    delete = answer == "yes"
    return lambda _paths: delete


class ProductSync:
    """Orchestrates the synchronization of one product.

    This orchestrator coordinates the entire workflow:
    1. Parse the requested dates
    2. Offer to resume an interrupted download session
    3. Connect and load (or create) the inventory
    4. Sync the inventory with the server
    5. Report and optionally delete local files absent on the server
    6. Download and convert files of the requested dates
    7. Save the inventory, also when a step fails
    """

    def __init__(
        self,
        config: Settings | None = None,
        converter: Converter | None = None,
        client_factory: ClientFactory | None = None,
        resume_decision: ResumeDecision | None = None,
        clean_decision: CleanDecision | None = None,
    ):
        """Initialize the product sync orchestrator.

        Args:
            config: Download configuration. If None, creates new Settings() from environment.
            converter: Converter for downloaded files. Defaults to the configured
                command-line tool when conversion is enabled.
            client_factory: Opens transfer clients; defaults to SFTP on the configured port
            resume_decision: Answers the resume prompt; defaults to the configured answer
            clean_decision: Decides whether misplaced local files are deleted;
                defaults to the configured answer
        """
        self.config = config if config is not None else Settings()
        if converter is None and self.config.convert:
            converter = ExternalToolConverter(self.config.converter_command, self.config.target_ext)
        self.converter = converter if self.config.convert else None
        self.client_factory = client_factory or partial(SFTPRemote.connect, port=self.config.port)
        self.resume_decision = resume_decision or fixed_choice(self.config.resume)
        self.clean_decision = clean_decision or fixed_clean(self.config.clean)
        self.inventory_sync = InventorySync()

    def run(
        self,
        product: str,
        start: int,
        stop: int | None = None,
        reporter: Reporter | None = None,
        dry_run: bool = False,
    ) -> Counter:
        """Sync the inventory of `product` and download the requested dates.

        Args:
            product: Product name without version, e.g. ``05kmCPro``
            start: First date as yyyy, yyyymm or yyyymmdd
            stop: Last date in the same formats; defaults to `start`
            reporter: Optional reporter for progress. Defaults to Reporter().
            dry_run: Only report the files that would be downloaded

        Returns:
            Outcome counts of the download phase

        Raises:
            InvalidDateFormat: If a date cannot be parsed
            ServerConnectionError: If the server cannot be reached
            InvalidProduct: If the product folder does not exist
            CorruptCatalog: If the local inventory cannot be read
        """
        if reporter is None:
            reporter = Reporter()
        config = self.config

        # Step 1: Validate dates before any network or disk work
        daterange = parse_daterange(start, stop)
        folder = config.product_folder(product)

        # Step 2: Resume check
        download_session = DownloadSession(config.logfile) if config.logfile else None
        resumed = None
        keep_session = False
        if download_session is not None and not dry_run:
            resumed = init_restart(download_session, self.resume_decision)
            keep_session = resumed is None and download_session.exists()

        # Step 3: Connect
        connections = ConnectionManager(
            config.host,
            config.user,
            config.password,
            config.remote_root,
            folder,
            client_factory=self.client_factory,
            retries=config.connect_retries,
            delay=config.retry_delay,
        )
        session = connections.connect()

        counter = Counter()
        try:
            def factory():
                return CatalogStore.new_empty(
                    config.remote_root, connections.productpath, config.local_root, folder
                )

            with CatalogStore.for_product(config.product_path(product), factory) as store:
                catalog = store.catalog

                # Step 4: Follow a moved local root
                if CatalogStore.mark_moved(catalog, config.local_root, folder):
                    message = f"Local root moved, inventory paths updated to {catalog.metadata.local.path}"
                    logger.warning(message)
                    reporter.report_warning(message)

                # Step 5: Sync the inventory
                reporter.report_sync_start(folder, daterange)
                updated = self.inventory_sync.sync(
                    catalog,
                    RemoteTreeWalker(session),
                    daterange,
                    resync=config.resync,
                    is_new=store.is_new,
                )
                reporter.report_inventory(len(catalog.dates), len(catalog.gaps), updated)

                # Step 6: Misplaced local files
                self._clean(catalog, daterange, reporter, dry_run)

                # Step 7: Plan downloads
                downloader = DownloadOrchestrator(
                    connections,
                    converter=self.converter,
                    update=config.update,
                    resync=config.resync,
                    max_workers=config.max_workers,
                )
                if resumed is not None:
                    reporter.report_resume(len(resumed))
                    units = downloader.plan(
                        catalog,
                        DateRange(date.min, date.max),
                        only={pending.remote for pending in resumed},
                    )
                else:
                    units = downloader.plan(catalog, daterange)

                if dry_run:
                    reporter.report_pending(downloader.pending(catalog, units))
                    return counter

                # Step 8: Download, keeping a session file until all units are done
                if download_session is not None and not keep_session:
                    download_session.save(units)
                reporter.report_files_to_download(len(units))
                with reporter.download_context():
                    counter = downloader.run(
                        catalog, units, reporter.create_download_progress_hook()
                    )
                if download_session is not None and not keep_session:
                    download_session.clear()
        finally:
            session.close()

        reporter.report_summary(counter)
        logger.info(f"{folder} {daterange}: {counter!r}")
        return counter

    def _clean(
        self, catalog: Catalog, daterange: DateRange, reporter: Reporter, dry_run: bool
    ) -> None:
        """Report misplaced local entries and delete them if the decision allows."""
        misplaced = CleanupService.find_misplaced(catalog, daterange, self.config.target_ext)
        if not misplaced:
            return

        logger.warning(f"{len(misplaced)} misplaced entries in local data folders")
        for path in misplaced:
            logger.info(f"Misplaced: {path}")
        reporter.report_misplaced(misplaced)

        if dry_run or not self.clean_decision(misplaced):
            return
        result = CleanupService.remove_misplaced(misplaced)
        reporter.report_cleanup(result["total_deleted"])
