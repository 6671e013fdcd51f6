"""ICARE Sync SDK.

A Python library for mirroring ICARE satellite products, with a local
inventory of remote file stats, concurrent downloads and optional format
conversion.

Quick Start (High-Level API):
    >>> from icaresync import download_product
    >>> download_product("05kmCPro", 2020, 202006, user="me", password="secret")

Quick Start (SDK API):
    >>> from icaresync import ProductSync, Settings
    >>> config = Settings(user="me", password="secret", version=4.51)
    >>> orchestrator = ProductSync(config)
    >>> counter = orchestrator.run("05kmCPro", 20200601, 20200630)

Configuration:
    >>> import os
    >>> os.environ["ICARE_LOCAL_ROOT"] = "/data/caliop"
    >>> config = Settings()  # Loads from environment

Public API:
    High-level functions:
        - download_product: Sync inventory and download a date range

    Orchestrators:
        - ProductSync: Full workflow for one product
        - InventorySync: Inventory reconciliation with the server
        - DownloadOrchestrator: Concurrent download and conversion

    Configuration:
        - Settings: Configuration model

    Domain Models:
        - Catalog: Inventory of remote file stats
        - DataFile: Download unit
        - Counter: Run outcome counts
        - DateRange / parse_daterange: Date range parsing

    State Management:
        - CatalogStore: Inventory persistence

    Conversion:
        - Converter / ExternalToolConverter

    Reporters (for custom UIs):
        - Reporter: Progress reporter (use silent=True for headless mode)
"""

# Configuration
from icaresync.config import Settings

# Domain models
from icaresync.domain import (
    Catalog,
    Counter,
    DataFile,
    DateRange,
    FileStats,
    parse_daterange,
)

# Conversion
from icaresync.operations import Converter, ExternalToolConverter

# Orchestrators
from icaresync.orchestrators import DownloadOrchestrator, InventorySync, ProductSync

# State management
from icaresync.state.manager import CatalogStore

# UI Reporters
from icaresync.ui import Reporter

__all__ = [
    # High-level functions
    "download_product",
    # Orchestrators
    "ProductSync",
    "InventorySync",
    "DownloadOrchestrator",
    # Configuration
    "Settings",
    # Domain models
    "Catalog",
    "Counter",
    "DataFile",
    "DateRange",
    "FileStats",
    "parse_daterange",
    # Conversion
    "Converter",
    "ExternalToolConverter",
    # State management
    "CatalogStore",
    # Reporters
    "Reporter",
]

# Version
__version__ = "0.1.0"


def download_product(
    product: str,
    start: int,
    stop: int | None = None,
    config: Settings | None = None,
    reporter: Reporter | None = None,
    converter: Converter | None = None,
    **options,
) -> None:
    """Sync the inventory of a product and download a date range (high-level convenience function).

    Args:
        product: Product name without version, e.g. ``05kmCPro``
        start: First date as yyyy, yyyymm or yyyymmdd
        stop: Last date in the same formats; defaults to `start`
        config: Configuration. If None, built from environment and `options`.
        reporter: Progress reporter. If None, uses Reporter().
        converter: Converter for downloaded files; defaults to the configured tool
        **options: Settings fields overriding the environment, e.g. ``user``, ``version``

    Example:
        >>> from icaresync import download_product
        >>> download_product("05kmCPro", 2020, user="me", password="secret", convert=False)
    """
    if config is None:
        config = Settings(**options)
    ProductSync(config, converter=converter).run(product, start, stop, reporter=reporter)
