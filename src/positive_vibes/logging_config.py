"""Logging setup for the command-line entry point.

Library modules only create loggers with ``logging.getLogger(__name__)``;
handlers are attached here, once, by the CLI callback.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

# Package root logger
_root_logger = logging.getLogger("positive_vibes")


def setup_logging(verbose: bool = False) -> None:
    """Route package logs to stderr through rich.

    Args:
        verbose: Emit DEBUG records; otherwise only warnings and errors.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    _root_logger.setLevel(level)
    _root_logger.handlers.clear()

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=verbose,
        show_path=verbose,
        markup=False,
        rich_tracebacks=verbose,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    _root_logger.addHandler(handler)
