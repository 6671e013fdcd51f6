"""Example: Using icaresync as an SDK.

This example demonstrates how to use icaresync programmatically
as a Python library (SDK) rather than via the CLI.
"""

import os
from pathlib import Path

from icaresync import (
    CatalogStore,
    Converter,
    ProductSync,
    Reporter,
    Settings,
    download_product,
)
from icaresync.domain.services import InventoryQueryService


def example_simple_usage():
    """Simplest usage - download one month with credentials from the environment."""
    print("=" * 60)
    print("Example 1: Simple Usage")
    print("=" * 60)

    # ICARE_USER and ICARE_PASSWORD must be set
    download_product("05kmCPro", 202006)


def example_with_environment_config():
    """Load configuration from environment variables."""
    print("\n" + "=" * 60)
    print("Example 2: Environment Configuration")
    print("=" * 60)

    os.environ["ICARE_LOCAL_ROOT"] = "data/caliop"
    os.environ["ICARE_VERSION"] = "4.20"
    os.environ["ICARE_MAX_WORKERS"] = "4"

    settings = Settings()
    print(f"Loaded config: root={settings.local_root}, version={settings.version}")

    download_product("05kmCLay", 2019, config=settings)


def example_headless_mode():
    """Use silent reporter for headless/server mode."""
    print("\n" + "=" * 60)
    print("Example 3: Headless Mode (No Terminal Output)")
    print("=" * 60)

    settings = Settings(local_root=Path("data/caliop"), convert=False, resume="no")

    # Use silent mode for no output (good for cron jobs, servers)
    reporter = Reporter(silent=True)
    counter = ProductSync(settings).run("05kmAPro", 20200101, 20200131, reporter=reporter)
    print(f"Done: {counter!r}")


class CopyConverter(Converter):
    """Stand-in converter that only copies the file."""

    def target_extension(self) -> str:
        return ".copy"

    def convert(self, input_path: Path, output_path: Path) -> None:
        output_path.write_bytes(input_path.read_bytes())


def example_custom_converter():
    """Plug in a custom converter."""
    print("\n" + "=" * 60)
    print("Example 4: Custom Converter")
    print("=" * 60)

    orchestrator = ProductSync(Settings(), converter=CopyConverter())
    orchestrator.run("05kmCPro", 20200601)


def example_inventory_statistics():
    """Inspect a local inventory."""
    print("\n" + "=" * 60)
    print("Example 5: Inventory Statistics")
    print("=" * 60)

    settings = Settings()
    with CatalogStore.for_product(settings.product_path("05kmCPro")) as store:
        stats = InventoryQueryService.get_statistics(store.catalog)

    print(f"  Dates: {stats['dates']} ({stats['start']} to {stats['stop']})")
    print(f"  Files: {stats['files']}, converted: {stats['converted']}")
    print(f"  Gaps: {stats['gaps']}")


if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("icaresync SDK Examples")
    print("=" * 60)
    print("\nThese examples show different ways to use icaresync")
    print("as a Python library (SDK) in your own code.\n")

    # Uncomment the examples you want to run:

    # example_simple_usage()
    # example_with_environment_config()
    # example_headless_mode()
    # example_custom_converter()
    # example_inventory_statistics()

    print("\nTo run an example, uncomment it in the __main__ section.")
