"""
Logging configuration for auditscore.

Log records go to stderr through rich so they never mix with ``--json``
output on stdout.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

from auditscore import __app_name__


def setup_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """
    Configure logging with a rich handler for colored output.

    Args:
        verbose: Enable DEBUG level logging
        quiet: Suppress all but ERROR level logging

    Returns:
        Configured logger instance for auditscore
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        markup=False,
        show_time=verbose,
        show_path=verbose,
    )

    logger = logging.getLogger(__app_name__)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)

    return logger
