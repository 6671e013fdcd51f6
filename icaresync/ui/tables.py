"""Table rendering utilities for CLI output."""

from datetime import date

from rich.table import Table


def create_statistics_table(stats: dict) -> Table:
    """Create a table for displaying inventory statistics.

    Args:
        stats: Statistics dict from InventoryQueryService.get_statistics

    Returns:
        Rich Table object ready for display
    """
    table = Table(title=f"Inventory {stats['product']}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")

    envelope = (
        f"{stats['start']} to {stats['stop']}" if stats["start"] is not None else "[dim]empty[/dim]"
    )
    table.add_row("Local path", str(stats["path"]))
    table.add_row("Date range", envelope)
    table.add_row("Dates", str(stats["dates"]))
    table.add_row("Gaps", f"[yellow]{stats['gaps']}[/yellow]" if stats["gaps"] else "-")
    table.add_row("Files", str(stats["files"]))
    table.add_row("Converted", f"[green]{stats['converted']}[/green]" if stats["converted"] else "-")
    table.add_row(
        "Removed on server",
        f"[red]{stats['tombstones']}[/red]" if stats["tombstones"] else "-",
    )
    table.add_row("Remote size", f"{stats['total_size'] / 1024 / 1024:.1f} MB")
    table.add_section()
    table.add_row("Created", stats["created"].strftime("%Y-%m-%d %H:%M"))
    table.add_row("Updated", stats["updated"].strftime("%Y-%m-%d %H:%M"))
    return table


def create_gap_table(ranges: list[tuple[date, date]], title_suffix: str = "") -> Table:
    """Create a table of collapsed data gaps.

    Args:
        ranges: (first, last) date pairs
        title_suffix: Optional suffix for table title

    Returns:
        Rich Table object ready for display
    """
    days = sum((last - first).days + 1 for first, last in ranges)
    table = Table(title=f"Data gaps ({days} days){title_suffix}")
    table.add_column("First", style="yellow")
    table.add_column("Last", style="yellow")
    table.add_column("Days", justify="right", style="dim")

    for first, last in ranges:
        table.add_row(str(first), str(last), str((last - first).days + 1))

    return table
