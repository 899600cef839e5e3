"""
Logging setup for server-tuning.

Console output goes through rich; the same records are written to
<state_dir>/logs/tuning.log. The monitor additionally logs to
performance-monitor.log.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

TUNING_LOG = "tuning.log"
MONITOR_LOG = "performance-monitor.log"
MONITOR_LOGGER = "server_tuning.telemetry.monitor"

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _file_handler(path: Path, level: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def configure_logging(
    level: str = "INFO",
    logs_dir: Optional[Path] = None,
    quiet: bool = False,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Log level name for console and files
        logs_dir: Directory for log files (None for console only)
        quiet: Only warnings and errors on the console
        console: Rich console for the handler (default: stderr)

    Returns:
        The package logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("server_tuning")
    logger.setLevel(numeric_level)

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    monitor_logger = logging.getLogger(MONITOR_LOGGER)
    for handler in monitor_logger.handlers[:]:
        monitor_logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(logging.WARNING if quiet else numeric_level)
    logger.addHandler(console_handler)

    if logs_dir is not None:
        try:
            logger.addHandler(_file_handler(Path(logs_dir) / TUNING_LOG, numeric_level))
            monitor_logger.addHandler(_file_handler(Path(logs_dir) / MONITOR_LOG, numeric_level))
        except OSError as e:
            logger.warning("File logging disabled, cannot write to %s: %s", logs_dir, e)

    return logger
