from __future__ import annotations

import logging
import sys
from typing import IO, Optional

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_HANDLER_TAG = "_stampslot_handler"


def level_for_verbosity(verbose_count: int) -> int:
    """0 -> WARNING, 1 -> INFO, 2 or more -> DEBUG."""
    if verbose_count <= 0:
        return logging.WARNING
    if verbose_count == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(
    verbose_count: int = 0,
    logger_name: str = "stampslot",
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """Attach a single stderr handler to the package logger; safe to call repeatedly."""
    level = level_for_verbosity(verbose_count)
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)

    handler = next((h for h in logger.handlers if getattr(h, _HANDLER_TAG, False)), None)
    if handler is None:
        handler = logging.StreamHandler(stream=stream or sys.stderr)
        setattr(handler, _HANDLER_TAG, True)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(handler)
    else:
        # stderr may have been swapped since the first call (tests, embedding)
        handler.setStream(stream or sys.stderr)
    handler.setLevel(level)
    return logger
