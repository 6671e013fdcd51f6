"""Configure tests."""

from datetime import date

import pytest

from icaresync.config import Settings
from icaresync.domain.models import Catalog, FileStats
from icaresync.state.manager import CatalogStore

from tests.support import PRODUCT_FOLDER, REMOTE_ROOT, VERSION, RemoteServer, granule


@pytest.fixture
def remote_server(tmp_path):
    """Create an empty remote product tree."""
    return RemoteServer(tmp_path / "server")


@pytest.fixture
def local_root(tmp_path):
    root = tmp_path / "data"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def settings(tmp_path, local_root):
    """Create settings for an offline run without conversion."""
    return Settings(
        _env_file=None,
        host="sftp.example.org",
        user="tester",
        password="secret",
        remote_root=REMOTE_ROOT,
        local_root=local_root,
        version=VERSION,
        convert=False,
        logfile=tmp_path / "logs" / "downloads.log",
        resume="no",
        max_workers=2,
        connect_retries=2,
        retry_delay=0,
    )


@pytest.fixture
def empty_catalog(local_root):
    """Create an empty inventory of the test product."""
    return CatalogStore.new_empty(
        REMOTE_ROOT, f"{REMOTE_ROOT}/{PRODUCT_FOLDER}", local_root, PRODUCT_FOLDER
    )


@pytest.fixture
def sample_catalog(empty_catalog) -> Catalog:
    """Create an inventory covering 2020-06-10 to 2020-06-14 with a gap on 06-12."""
    catalog = empty_catalog
    for day in (date(2020, 6, 10), date(2020, 6, 11), date(2020, 6, 13), date(2020, 6, 14)):
        catalog.dates[day] = {
            granule(day).removesuffix(".hdf"): FileStats(size=64, mtime=day),
        }
    catalog.gaps = [date(2020, 6, 12)]
    catalog.metadata.file.ext = ".hdf"
    catalog.metadata.database.start = date(2020, 6, 10)
    catalog.metadata.database.stop = date(2020, 6, 14)
    return catalog
