"""Logging helpers for multicov.

All modules obtain their logger through :func:`get_logger` so that a single
call to :func:`configure_logging` controls the verbosity of the whole package.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

ROOT_LOGGER_NAME = "multicov"

_LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the ``multicov`` namespace.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        Configured logger instance.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    stream: Optional[TextIO] = None,
) -> None:
    """Configure the package logger.

    Precedence: debug > verbose > quiet > default (warnings only).

    Args:
        debug: Enable DEBUG level output.
        verbose: Enable INFO level output.
        quiet: Only show errors.
        stream: Stream to write to (default: stderr).
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    # Replace our own handler on reconfiguration instead of stacking them.
    for handler in list(logger.handlers):
        if getattr(handler, "_multicov_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    handler._multicov_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
