"""Logging setup for scripts and notebooks.

Library modules only create `logging.getLogger(__name__)` loggers and never
configure handlers; call `init_logging()` from an entry point to see them.
"""
from __future__ import annotations

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def init_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Attach a stream handler to the `gmsim` logger (once) and set its level."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger = logging.getLogger("gmsim")
    if not any(getattr(h, "_gmsim", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._gmsim = True
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


__all__ = ["init_logging", "LOG_FORMAT"]
