"""Orchestration layer.

This module contains high-level workflow orchestrators that coordinate
inventory syncs and downloads.
"""

from icaresync.orchestrators.download import DownloadOrchestrator
from icaresync.orchestrators.inventory_sync import InventorySync
from icaresync.orchestrators.product_sync import ProductSync

__all__ = [
    "DownloadOrchestrator",
    "InventorySync",
    "ProductSync",
]
