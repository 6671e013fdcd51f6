"""Log configuration for command-line runs."""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def init_logging(
    logfile: str | Path | None,
    level: str = "INFO",
    console: Console | None = None,
) -> logging.Logger:
    """Route package logs to `logfile` and warnings to the console.

    The file handler appends, so a later run can parse completed downloads
    of an interrupted one. Calling this again replaces previous handlers.

    Args:
        logfile: Log file path; None logs to the console only
        level: Minimum level written to the log file
        console: Console for warnings and errors

    Returns:
        The package logger
    """
    logger = logging.getLogger("icaresync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(level)
    logger.propagate = False

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    console_handler.setLevel(logging.WARNING if logfile else level)
    logger.addHandler(console_handler)

    if logfile:
        path = Path(logfile)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    return logger
