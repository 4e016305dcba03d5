"""Console logging via Rich."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

# Libraries that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def setup_logging(level: str = "INFO") -> None:
    """Install a Rich handler on the root logger.

    Safe to call more than once; previous handlers are replaced.
    """
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["setup_logging"]
