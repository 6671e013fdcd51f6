"""Reporter for download output and progress tracking."""

from pathlib import Path

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
)

from icaresync.domain.dates import DateRange
from icaresync.domain.models import Counter, DataFile
from icaresync.domain.types import DownloadProgressHook


class Reporter:
    """Reporter with a rich progress bar and formatted output."""

    PENDING_PREVIEW_LIMIT = 10

    def __init__(self, silent: bool = False) -> None:
        """Initialize reporter.

        Args:
            silent: If True, suppress all output (for testing/automation).
        """
        self.silent = silent
        self.console = Console(quiet=silent)
        self._download_progress: Progress | None = None
        self._download_task_id: int | None = None

    def report_sync_start(self, product: str, daterange: DateRange) -> None:
        """Report the product and dates being synced."""
        if not self.silent:
            self.console.print(f"Syncing [bold]{product}[/bold] for {daterange}...")

    def report_inventory(self, dates: int, gaps: int, updated: bool) -> None:
        """Report the inventory size after the sync."""
        if self.silent:
            return
        state = "updated" if updated else "unchanged"
        self.console.print(f"Inventory {state}: {dates} dates, {gaps} gaps")

    def report_files_to_download(self, count: int) -> None:
        """Report how many files are considered for download."""
        if not self.silent:
            self.console.print(f"Checking {count} files...")

    def report_resume(self, count: int) -> None:
        if not self.silent:
            self.console.print(f"Resuming previous download session with {count} files")

    def download_context(self):
        """Context manager for download progress display."""
        if self.silent:

            class NoOpContext:
                def __enter__(self):
                    return self

                def __exit__(self, *args):
                    pass

            return NoOpContext()

        class DownloadContext:
            def __init__(ctx_self, reporter):
                ctx_self.reporter = reporter

            def __enter__(ctx_self):
                progress = Progress(
                    TextColumn("{task.description}"),
                    BarColumn(),
                    MofNCompleteColumn(),
                    TimeRemainingColumn(),
                    console=ctx_self.reporter.console,
                )
                progress.__enter__()
                ctx_self.reporter._download_progress = progress
                ctx_self.reporter._download_task_id = progress.add_task("Downloading", total=None)
                return progress

            def __exit__(ctx_self, *args):
                if ctx_self.reporter._download_progress:
                    ctx_self.reporter._download_progress.__exit__(*args)
                    ctx_self.reporter._download_progress = None
                    ctx_self.reporter._download_task_id = None

        return DownloadContext(self)

    def create_download_progress_hook(self) -> DownloadProgressHook:
        """Create a progress hook counting processed files."""
        if self.silent:

            def hook(processed: int, total: int) -> None:
                pass

            return hook

        if self._download_progress is None:
            raise RuntimeError("Must be called within download_context")

        def hook(processed: int, total: int) -> None:
            if self._download_progress is None or self._download_task_id is None:
                return
            self._download_progress.update(self._download_task_id, completed=processed, total=total)

        return hook

    def report_pending(self, files: list[DataFile]) -> None:
        """Report the files a dry run would download."""
        if self.silent:
            return

        if not files:
            self.console.print("[dim]All files up to date[/dim]")
            return

        count = len(files)
        preview = files[: self.PENDING_PREVIEW_LIMIT]
        self.console.print(f"[yellow]Would download {count} files:[/yellow]")
        for file in preview:
            self.console.print(f"      {file.location.remote}")

        remaining = count - len(preview)
        if remaining > 0:
            self.console.print(f"      ... (+{remaining} more)")

    def report_misplaced(self, paths: list[Path]) -> None:
        """Report local files and folders that are not on the server."""
        if self.silent or not paths:
            return

        preview = paths[: self.PENDING_PREVIEW_LIMIT]
        self.console.print(
            f"[yellow]Found {len(paths)} misplaced entries in local data folders:[/yellow]"
        )
        for path in preview:
            self.console.print(f"      {path}")

        remaining = len(paths) - len(preview)
        if remaining > 0:
            self.console.print(f"      ... (+{remaining} more)")

    def report_cleanup(self, deleted: int) -> None:
        """Report how many misplaced entries were deleted."""
        if not self.silent:
            self.console.print(f"Deleted {deleted} misplaced entries")

    def report_summary(self, counter: Counter) -> None:
        """Report the outcome counts of a run."""
        if self.silent:
            return
        color = "red" if counter.failed else "green"
        self.console.print(
            f"\n[{color}]{counter.downloads} downloaded, {counter.conversions} converted, "
            f"{counter.skipped} skipped, {counter.failed} failed[/{color}]"
        )

    def report_warning(self, message: str) -> None:
        """Report a warning message."""
        if not self.silent:
            self.console.print(f"\n[yellow]Warning:[/yellow] {message}")

    def report_error(self, message: str) -> None:
        """Report an error message."""
        if not self.silent:
            self.console.print(f"\n[red]Error:[/red] {message}")
