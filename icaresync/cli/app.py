"""Typer-based CLI for ICARE product downloads."""

import json
from pathlib import Path

import typer

from icaresync.config import Settings
from icaresync.domain.dates import parse_daterange
from icaresync.domain.errors import IcareError
from icaresync.domain.models import Catalog
from icaresync.domain.services import InventoryQueryService, InventoryService
from icaresync.logging_setup import init_logging
from icaresync.orchestrators import ProductSync
from icaresync.restart.session import ResumeChoice
from icaresync.state.manager import CatalogStore
from icaresync.ui import Reporter
from icaresync.ui.tables import create_gap_table, create_statistics_table

app = typer.Typer(help="ICARE satellite data downloads")
inventory_app = typer.Typer(help="Query local product inventories")
app.add_typer(inventory_app, name="inventory")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _settings(**overrides) -> Settings:
    """Build settings from environment, with command-line options taking precedence."""
    return Settings(**{key: value for key, value in overrides.items() if value is not None})


def _prompt_resume(path: Path) -> ResumeChoice:
    """Ask on the terminal whether to resume the session in `path`."""
    typer.echo(f"Unfinished download session detected: {path}")
    typer.echo("- 'yes' resume the old session instead of the new download")
    typer.echo("- 'no' delete the old session and continue")
    typer.echo("- 'later' keep the old session for later use and continue")
    while True:
        answer = typer.prompt("Resume? (yes/no/later)", default="yes").strip().lower()
        for choice in ResumeChoice:
            if answer and choice.value.startswith(answer):
                return choice
        typer.echo("Please answer 'yes', 'no' or 'later'")


def _prompt_clean(paths: list[Path]) -> bool:
    """Ask on the terminal whether to delete misplaced local files."""
    return typer.confirm(f"Delete {len(paths)} misplaced entries?", default=False)


def _load_inventory(config: Settings, product: str) -> Catalog:
    """Read the inventory of `product` without modifying it."""
    path = config.product_path(product) / CatalogStore.FILENAME
    for candidate in (path, path.with_name(CatalogStore.LEGACY_FILENAME)):
        if candidate.exists():
            return CatalogStore.load(candidate)
    raise FileNotFoundError(f"No inventory at {path}")


@app.command()
def download(
    product: str = typer.Argument(..., help="Product name without version, e.g. 05kmCPro"),
    start: int = typer.Argument(..., help="First date as yyyy, yyyymm or yyyymmdd (0: all)"),
    stop: int | None = typer.Argument(None, help="Last date, defaults to START (9999: all)"),
    user: str | None = typer.Option(None, "--user", "-u", help="ICARE login"),
    password: str | None = typer.Option(
        None, "--password", "-p", help="ICARE password (or ICARE_PASSWORD)"
    ),
    version: float | None = typer.Option(None, "--version", "-v", help="Product version"),
    remote_root: str | None = typer.Option(None, "--remote-root", help="Remote product root"),
    local_root: Path | None = typer.Option(None, "--local-root", help="Local data root"),
    convert: bool | None = typer.Option(
        None, "--convert/--no-convert", help="Convert downloaded files"
    ),
    resync: bool = typer.Option(False, "--resync", help="Re-check all inventory dates"),
    update: bool = typer.Option(
        False, "--update", help="Redownload files with newer remote versions"
    ),
    logfile: Path | None = typer.Option(None, "--logfile", help="Log file"),
    loglevel: str | None = typer.Option(None, "--loglevel", help="Log file level"),
    resume: str | None = typer.Option(
        None, "--resume", help="Answer for an unfinished session: ask, yes, no or later"
    ),
    clean: str | None = typer.Option(
        None, "--clean", help="Delete local files missing on the server: ask, yes or no"
    ),
    workers: int | None = typer.Option(None, "--workers", "-w", help="Download workers"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what would be downloaded without downloading"
    ),
):
    """Sync the inventory of PRODUCT and download the requested dates."""
    reporter = Reporter()
    try:
        config = _settings(
            user=user,
            password=password,
            version=version,
            remote_root=remote_root,
            local_root=local_root,
            convert=convert,
            resync=resync or None,
            update=update or None,
            logfile=logfile,
            loglevel=loglevel,
            resume=resume,
            clean=clean,
            max_workers=workers,
        )
    except ValueError as e:
        reporter.report_error(f"Invalid configuration: {e}")
        raise typer.Exit(1)

    init_logging(config.logfile, config.loglevel)
    orchestrator = ProductSync(
        config,
        resume_decision=_prompt_resume if config.resume == "ask" else None,
        clean_decision=_prompt_clean if config.clean == "ask" else None,
    )
    try:
        counter = orchestrator.run(product, start, stop, reporter=reporter, dry_run=dry_run)
    except IcareError as e:
        reporter.report_error(str(e))
        raise typer.Exit(1)

    if counter.failed:
        raise typer.Exit(2)


# Inventory subcommands
@inventory_app.command("stats")
def inventory_stats(
    product: str = typer.Argument(..., help="Product name without version"),
    version: float | None = typer.Option(None, "--version", "-v", help="Product version"),
    local_root: Path | None = typer.Option(None, "--local-root", help="Local data root"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show statistics about a local inventory."""
    config = _settings(version=version, local_root=local_root)
    reporter = Reporter()

    try:
        catalog = _load_inventory(config, product)
    except (FileNotFoundError, IcareError) as e:
        reporter.report_error(str(e))
        raise typer.Exit(1)

    stats = InventoryQueryService.get_statistics(catalog)
    if json_output:
        typer.echo(json.dumps(stats, indent=2, ensure_ascii=False, default=str))
    else:
        reporter.console.print(create_statistics_table(stats))


@inventory_app.command("gaps")
def inventory_gaps(
    product: str = typer.Argument(..., help="Product name without version"),
    start: int = typer.Argument(0, help="First date as yyyy, yyyymm or yyyymmdd"),
    stop: int = typer.Argument(9999, help="Last date as yyyy, yyyymm or yyyymmdd"),
    version: float | None = typer.Option(None, "--version", "-v", help="Product version"),
    local_root: Path | None = typer.Option(None, "--local-root", help="Local data root"),
):
    """List dates without remote data in a local inventory."""
    config = _settings(version=version, local_root=local_root)
    reporter = Reporter()

    try:
        daterange = parse_daterange(start, stop)
        catalog = _load_inventory(config, product)
    except (FileNotFoundError, IcareError) as e:
        reporter.report_error(str(e))
        raise typer.Exit(1)

    ranges = InventoryService.gap_ranges(catalog.gaps, daterange)
    if not ranges:
        reporter.console.print("[dim]No data gaps[/dim]")
        return

    reporter.console.print(create_gap_table(ranges))


if __name__ == "__main__":
    app()
