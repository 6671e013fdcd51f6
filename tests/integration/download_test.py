"""Integration tests for concurrent downloads against a local server tree."""

import logging
import os
from datetime import date, datetime
from pathlib import Path

import pytest

from icaresync.domain.dates import DateRange, parse_daterange
from icaresync.orchestrators.download import DownloadOrchestrator
from icaresync.orchestrators.inventory_sync import InventorySync
from icaresync.remote.connection import ConnectionManager
from icaresync.remote.walker import RemoteTreeWalker

from tests.support import (
    PRODUCT_FOLDER,
    REMOTE_ROOT,
    CopyConverter,
    FailingConverter,
    granule,
)

JUNE = parse_daterange(202006)
DAY = date(2020, 6, 10)


def _manager(server) -> ConnectionManager:
    return ConnectionManager(
        "sftp.example.org",
        "tester",
        "secret",
        REMOTE_ROOT,
        PRODUCT_FOLDER,
        client_factory=server.connect,
        retries=2,
        delay=0,
    )


@pytest.fixture
def june_server(remote_server):
    """Server with four granules between 06-10 and 06-13."""
    remote_server.add_file(date(2020, 6, 10), size=10)
    remote_server.add_file(date(2020, 6, 11), size=11)
    remote_server.add_file(date(2020, 6, 11), granule(date(2020, 6, 11), 12), size=12)
    remote_server.add_file(date(2020, 6, 13), size=13)
    return remote_server


@pytest.fixture
def catalog(june_server, empty_catalog):
    """Inventory synced with the June server."""
    session = _manager(june_server).connect()
    InventorySync().sync(empty_catalog, RemoteTreeWalker(session), JUNE, is_new=True)
    session.close()
    return empty_catalog


def _run(server, catalog, converter=None, update=False, daterange=JUNE):
    orchestrator = DownloadOrchestrator(
        _manager(server), converter=converter, update=update, max_workers=2
    )
    return orchestrator.run(catalog, orchestrator.plan(catalog, daterange))


def _local(catalog, day: date, suffix: str = ".hdf", hour: int = 0) -> Path:
    return (
        catalog.metadata.local.path
        / f"{day:%Y}"
        / f"{day:%Y_%m_%d}"
        / granule(day, hour).replace(".hdf", suffix)
    )


class TestPlan:
    """Test download unit planning."""

    def test_units_in_date_order(self, june_server, catalog):
        orchestrator = DownloadOrchestrator(_manager(june_server))

        units = orchestrator.plan(catalog, JUNE)

        assert [u.date for u in units] == [
            date(2020, 6, 10),
            date(2020, 6, 11),
            date(2020, 6, 11),
            date(2020, 6, 13),
        ]
        assert units[0].location.remote == (
            f"{REMOTE_ROOT}/{PRODUCT_FOLDER}/2020/2020_06_10/{granule(DAY)}"
        )
        assert units[0].location.download == _local(catalog, DAY)

    def test_plan_respects_daterange_and_tombstones(self, june_server, catalog):
        name = next(iter(catalog.dates[date(2020, 6, 13)]))
        catalog.dates[date(2020, 6, 13)][name].size = 0
        orchestrator = DownloadOrchestrator(_manager(june_server))

        assert orchestrator.plan(catalog, parse_daterange(20200612, 20200630)) == []
        assert len(orchestrator.plan(catalog, JUNE)) == 3

    def test_plan_restricted_to_remote_paths(self, june_server, catalog):
        orchestrator = DownloadOrchestrator(_manager(june_server))
        wanted = orchestrator.plan(catalog, JUNE)[1].location.remote

        units = orchestrator.plan(catalog, DateRange(date.min, date.max), only={wanted})

        assert [u.location.remote for u in units] == [wanted]

    def test_converted_target(self, june_server, catalog):
        orchestrator = DownloadOrchestrator(_manager(june_server), converter=CopyConverter())

        unit = orchestrator.plan(catalog, JUNE)[0]

        assert unit.location.target == _local(catalog, DAY, ".h5")
        assert unit.is_converted

    def test_pending_without_network(self, june_server, catalog):
        orchestrator = DownloadOrchestrator(_manager(june_server))
        units = orchestrator.plan(catalog, JUNE)
        units[0].directory.dst.mkdir(parents=True)
        units[0].location.download.write_bytes(b"x" * 10)
        clients = len(june_server.clients)

        pending = orchestrator.pending(catalog, units)

        assert pending == units[1:]
        assert len(june_server.clients) == clients


class TestDownload:
    """Test transfers without conversion."""

    def test_fresh_download(self, june_server, catalog, caplog):
        caplog.set_level(logging.INFO, logger="icaresync")

        counter = _run(june_server, catalog)

        assert (counter.downloads, counter.skipped, counter.failed) == (4, 0, 0)
        assert _local(catalog, DAY).stat().st_size == 10
        assert _local(catalog, date(2020, 6, 11), hour=12).stat().st_size == 12
        assert f"download completed: {granule(DAY)}" in caplog.text

    def test_second_run_skips_everything(self, june_server, catalog):
        _run(june_server, catalog)
        transfers = len(june_server.downloads)

        counter = _run(june_server, catalog)

        assert (counter.downloads, counter.skipped) == (0, 4)
        assert len(june_server.downloads) == transfers

    def test_sessions_closed(self, june_server, catalog):
        clients = len(june_server.clients)

        _run(june_server, catalog)

        assert all(client.closed for client in june_server.clients[clients:])

    def test_transient_failure_retried(self, june_server, catalog):
        june_server.failures[granule(DAY)] = 1

        counter = _run(june_server, catalog)

        assert (counter.downloads, counter.failed) == (4, 0)
        assert _local(catalog, DAY).exists()

    def test_persistent_failure_counted(self, june_server, catalog, caplog):
        june_server.failures[granule(DAY)] = 5

        counter = _run(june_server, catalog)

        assert (counter.downloads, counter.failed) == (3, 1)
        assert not _local(catalog, DAY).exists()
        assert "Failed to download" in caplog.text

    def test_stale_stats_refreshed(self, june_server, catalog):
        """A file changed on the server after the inventory sync is fetched on retry."""
        june_server.add_file(DAY, size=99)

        counter = _run(june_server, catalog)

        assert (counter.downloads, counter.failed) == (4, 0)
        assert next(iter(catalog.dates[DAY].values())).size == 99
        assert _local(catalog, DAY).stat().st_size == 99

    def test_file_removed_from_server_tombstoned(self, june_server, catalog, caplog):
        june_server.remove_file(DAY)

        counter = _run(june_server, catalog)

        record = next(iter(catalog.dates[DAY].values()))
        assert (counter.downloads, counter.skipped, counter.failed) == (3, 0, 1)
        assert "no longer available on server" in caplog.text
        assert record.size == 0
        assert record.is_tombstone
        assert record.converted is None
        assert len(DownloadOrchestrator(_manager(june_server)).plan(catalog, JUNE)) == 3

    def test_blocked_date_folder_counted_as_failure(self, june_server, catalog, caplog):
        folder = _local(catalog, DAY).parent
        folder.parent.mkdir(parents=True)
        folder.write_bytes(b"not a folder")

        counter = _run(june_server, catalog)

        assert (counter.downloads, counter.failed) == (3, 1)
        assert folder.read_bytes() == b"not a folder"
        assert "Failed to download" in caplog.text

    def test_update_redownloads_outdated_files(self, june_server, catalog):
        _run(june_server, catalog)
        old = datetime(2020, 6, 1, 12).timestamp()
        os.utime(_local(catalog, DAY), (old, old))

        assert _run(june_server, catalog).downloads == 0
        counter = _run(june_server, catalog, update=True)

        assert (counter.downloads, counter.skipped) == (1, 3)


class TestConversion:
    """Test transfers followed by conversion."""

    def test_converts_and_removes_original(self, june_server, catalog):
        converter = CopyConverter()

        counter = _run(june_server, catalog, converter)

        record = next(iter(catalog.dates[DAY].values()))
        target = _local(catalog, DAY, ".h5")
        assert (counter.downloads, counter.failed) == (4, 0)
        assert target.read_bytes() == b"h5:" + b"x" * 10
        assert record.converted == target.stat().st_size
        assert not _local(catalog, DAY).exists()
        assert len(converter.calls) == 4

    def test_converted_files_not_reconverted(self, june_server, catalog):
        converter = CopyConverter()
        _run(june_server, catalog, converter)

        counter = _run(june_server, catalog, converter)

        assert counter.skipped == 4
        assert len(converter.calls) == 4

    def test_existing_original_kept(self, june_server, catalog):
        _run(june_server, catalog)
        converter = CopyConverter()
        transfers = len(june_server.downloads)

        counter = _run(june_server, catalog, converter)

        assert (counter.downloads, counter.conversions) == (0, 4)
        assert len(june_server.downloads) == transfers
        assert _local(catalog, DAY).exists()
        assert _local(catalog, DAY, ".h5").exists()

    def test_stale_target_replaced(self, june_server, catalog):
        _run(june_server, catalog, CopyConverter())
        target = _local(catalog, DAY, ".h5")
        target.write_bytes(b"truncated")

        counter = _run(june_server, catalog, CopyConverter())

        assert (counter.downloads, counter.skipped) == (1, 3)
        assert target.read_bytes() == b"h5:" + b"x" * 10

    def test_conversion_failure(self, june_server, catalog, caplog):
        converter = FailingConverter()

        counter = _run(june_server, catalog, converter, daterange=parse_daterange(20200610))

        record = next(iter(catalog.dates[DAY].values()))
        assert (counter.downloads, counter.failed) == (0, 1)
        assert record.converted is None
        assert _local(catalog, DAY).exists()
        assert not _local(catalog, DAY, ".h5").exists()
        assert "Conversion of" in caplog.text
