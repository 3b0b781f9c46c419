"""Logging utilities with rich console output.

Combines Python's standard logging with rich's console handler so that
measurement progress and failures read cleanly on a terminal.

Usage:
    from common.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Measuring 12 commits...")
    logger.debug("git archive %s", commit_hash)
"""

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

from common.env import env

# Shared console so log records and CLI output interleave correctly
console = Console(stderr=False)
error_console = Console(stderr=True)


def _rich_handler(show_time: bool = False, show_path: bool = False) -> RichHandler:
    return RichHandler(
        console=error_console,
        show_time=show_time,
        show_path=show_path,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        markup=False,
    )


def get_logger(
    name: str,
    level: str | None = None,
    show_time: bool = False,
    show_path: bool = False,
) -> logging.Logger:
    """Get a logger configured with a rich handler.

    Args:
        name: Logger name (typically __name__ of the module)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               If None, uses environment variable LOG_LEVEL or defaults to INFO.
        show_time: Show timestamp in log output
        show_path: Show source location in log output

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid stacking handlers when a module asks twice
    if logger.handlers:
        return logger

    if level is None:
        level = env.log_level()

    logger.setLevel(level.upper())

    handler = _rich_handler(show_time=show_time, show_path=show_path)
    handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)

    # pytest's caplog captures through propagation
    logger.propagate = True

    return logger


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure the root logger once at the CLI entry point.

    Args:
        level: Default logging level; LOG_LEVEL in the environment wins
        log_file: Optional file path that also receives every record
    """
    level = env.log_level(default=level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = _rich_handler(show_time=True)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)


def progress(message: str) -> None:
    """Print a plain progress line."""
    console.print(message)


def success(message: str) -> None:
    """Print a success line with a green checkmark."""
    console.print(f"[green]✓[/green] {message}")


def warning(message: str) -> None:
    """Print a warning line with a yellow marker."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def error(message: str) -> None:
    """Print an error line with a red cross to stderr."""
    error_console.print(f"[red]✗[/red] {message}")
    sys.stderr.flush()
