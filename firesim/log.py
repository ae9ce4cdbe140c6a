"""Logging setup for firesim.

Every module logs through ``logging.getLogger(__name__)``. Applications (the
CLI, a notebook, a test run) call :func:`setup_logging` once to route the
``firesim`` logger hierarchy to a rich console handler.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "firesim"
CONSOLE = Console(stderr=True)

_handler: logging.Handler | None = None


def setup_logging(level: str | int = "INFO", console: Console | None = None) -> logging.Logger:
    """Attach a :class:`rich.logging.RichHandler` to the ``firesim`` logger.

    Calling this again replaces the previously installed handler instead of
    stacking a second one, so repeated runs in one process do not duplicate lines.

    Args:
        level: Logging level name or number.
        console: Console to render to. Defaults to a stderr console.

    Returns:
        logging.Logger: The configured ``firesim`` logger.
    """
    global _handler

    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)

    _handler = RichHandler(
        console=console or CONSOLE,
        show_path=False,
        log_time_format="[%X]",
        markup=False,
    )
    _handler.setFormatter(logging.Formatter("%(threadName)s | %(message)s"))
    logger.addHandler(_handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False
    return logger
