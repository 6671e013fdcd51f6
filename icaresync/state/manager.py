"""Inventory persistence for tracking remote file stats."""

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import orjson
from atomicwrites import atomic_write
from pydantic import ValidationError

from icaresync.domain.errors import CorruptCatalog
from icaresync.domain.models import (
    Catalog,
    CatalogMetadata,
    LocalSection,
    ServerSection,
)
from icaresync.domain.services import InventoryService

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("metadata", "dates", "gaps")


class CatalogStore:
    """Context manager for the inventory of one product folder.

    Loads the inventory document on entry (or creates a new inventory with
    `factory`) and saves it on exit whenever it changed, also when the block
    raised. Writes are atomic.

    Example:
        with CatalogStore(path, factory=lambda: CatalogStore.new_empty(...)) as store:
            InventorySync().sync(store.catalog, walker, daterange)
    """

    FILENAME = "inventory.json"
    LEGACY_FILENAME = ".inventory.json"

    def __init__(self, path: str | Path, factory: Callable[[], Catalog] | None = None):
        """Initialize the store.

        Args:
            path: Path to the inventory document
            factory: Creates a new inventory if the document does not exist
        """
        self.path = Path(path)
        self.factory = factory
        self.catalog: Catalog | None = None
        self.is_new = False
        self._loaded_at: datetime | None = None

    @classmethod
    def for_product(cls, product_path: Path, factory: Callable[[], Catalog] | None = None):
        """Create a store for the inventory inside `product_path`."""
        return cls(Path(product_path) / cls.FILENAME, factory)

    def __enter__(self) -> "CatalogStore":
        """Enter context manager, loading the existing inventory if available."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        legacy = self.path.with_name(self.LEGACY_FILENAME)

        if self.path.exists():
            self.catalog = self.load(self.path)
        elif legacy.exists():
            logger.info(f"Loading legacy inventory {legacy}")
            self.catalog = self.load(legacy)
            self._loaded_at = None  # migrate to the current file name on exit
            return self
        elif self.factory is not None:
            logger.info(f"No inventory at {self.path}, initialising new, empty inventory")
            self.catalog = self.factory()
            self.is_new = True
        else:
            raise FileNotFoundError(f"No inventory at {self.path}")

        self._loaded_at = self.catalog.metadata.database.updated
        return self

    def __exit__(self, exc_type, _exc_value, _traceback) -> bool:
        """Exit context manager, saving the inventory if it changed.

        Returns:
            False to propagate any exceptions
        """
        if self.catalog is not None and (
            self.is_new or self.is_dirty_since(self.catalog, self._loaded_at)
        ):
            if exc_type is not None:
                logger.warning(f"Saving inventory after error: {exc_type.__name__}")
            self.save(self.catalog, self.path)
            self._loaded_at = self.catalog.metadata.database.updated
            self.is_new = False

        return False  # Don't propagate suppression

    @staticmethod
    def new_empty(
        remote_root: str,
        productpath: str,
        local_root: str | Path,
        product: str,
    ) -> Catalog:
        """Create an empty inventory with zero counters and an empty date range.

        Args:
            remote_root: Remote root folder of all products
            productpath: Remote product folder
            local_root: Local root folder of all products
            product: Product folder name
        """
        root = Path(local_root).resolve()
        return Catalog(
            metadata=CatalogMetadata(
                server=ServerSection(product=product, root=remote_root, productpath=productpath),
                local=LocalSection(root=root, path=root / product),
            )
        )

    @classmethod
    def load(cls, path: str | Path) -> Catalog:
        """Read an inventory document.

        Raises:
            CorruptCatalog: If the document is unreadable or misses required keys
        """
        path = Path(path)
        logger.info(f"Loading local inventory {path}")
        try:
            payload = orjson.loads(path.read_bytes())
        except orjson.JSONDecodeError as e:
            logger.error(f"Failed to parse inventory {path}: {e}")
            raise CorruptCatalog(f"Failed to parse inventory {path}: {e}") from e
        except OSError as e:
            logger.error(f"Failed to read inventory {path}: {e}")
            raise CorruptCatalog(f"Failed to read inventory {path}: {e}") from e

        try:
            return Catalog.model_validate(cls._check_raw_catalog(payload, path))
        except ValidationError as e:
            logger.error(f"Invalid inventory structure in {path}: {e}")
            raise CorruptCatalog(f"Invalid inventory structure in {path}") from e

    @staticmethod
    def save(catalog: Catalog, path: str | Path) -> None:
        """Write the inventory atomically, refreshing derived statistics first."""
        path = Path(path)
        logger.info(f"Saving inventory to {path}")
        InventoryService.refresh_statistics(catalog)
        payload = orjson.dumps(
            catalog.model_dump(mode="json", exclude_none=True),
            option=orjson.OPT_INDENT_2,
        )
        try:
            with atomic_write(path, mode="wb", overwrite=True) as f:
                f.write(payload)
                f.write(b"\n")  # Add trailing newline
        except OSError as e:
            logger.error(f"Failed to write inventory {path}: {e}")
            raise

    @staticmethod
    def mark_moved(catalog: Catalog, local_root: str | Path, product: str) -> bool:
        """Update the local paths, if the product folder was moved.

        Returns:
            True if the stored root differed from the resolved `local_root`
        """
        root = Path(local_root).resolve()
        local = catalog.metadata.local
        if Path(local.root) == root:
            return False

        local.root = root
        local.path = root / product
        catalog.touch()
        return True

    @staticmethod
    def is_dirty_since(catalog: Catalog, t: datetime | None) -> bool:
        """Return True if the inventory was updated after `t`."""
        return t is None or catalog.metadata.database.updated > t

    @classmethod
    def _check_raw_catalog(_cls, payload: Any, path: Path) -> dict[str, Any]:
        """Ensure the payload carries the required top-level structure."""
        if not isinstance(payload, dict):
            raise CorruptCatalog(f"Inventory {path} is not a document")

        missing = [key for key in REQUIRED_KEYS if key not in payload]
        if missing:
            raise CorruptCatalog(f"Inventory {path} misses {', '.join(missing)}")
        if not isinstance(payload["dates"], dict) or not isinstance(payload["gaps"], list):
            raise CorruptCatalog(f"Inventory {path} has malformed dates or gaps")
        return payload
