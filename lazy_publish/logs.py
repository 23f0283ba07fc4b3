"""Logging helpers.

The library logs under the ``lazy_publish`` namespace and stays silent
until ``setup_logging`` installs a handler (the CLI does this).
"""

from __future__ import annotations

import logging
import sys
from typing import IO

ROOT_LOGGER = "lazy_publish"
DEFAULT_FORMAT = "%(message)s"
VERBOSE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger within the lazy_publish namespace.

    Args:
        name: Logger name, usually ``__name__``.
    """
    if not name or name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    if name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(
    *,
    level: int = logging.INFO,
    verbose: bool = False,
    stream: IO[str] | None = None,
) -> None:
    """Send lazy_publish logs to stderr (or stream).

    Safe to call more than once; previous handlers are replaced.

    Args:
        level: Minimum level to emit.
        verbose: Add timestamps, levels and logger names to each line.
        stream: Output stream; defaults to sys.stderr.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.handlers.clear()
    root.setLevel(level)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(VERBOSE_FORMAT if verbose else DEFAULT_FORMAT))
    root.addHandler(handler)


logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())
