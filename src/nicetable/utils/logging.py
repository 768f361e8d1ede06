"""
Logging for nicetable.

Every module logs through ``get_logger(__name__)``, so records land under the
``nicetable`` logger tree:

- ``nicetable.table_controller.controller``: controller creation, fetch
  start / stale discard / transport failure, the switch to fixed mode,
  column initialization and URL reconciliation (INFO / DEBUG / WARNING)
- ``nicetable.table_controller.events``: subscribers that raised (ERROR)
- ``nicetable.table_controller.adapters``: unreadable settings files (WARNING)
- ``nicetable.table_controller.nicegui_adapters``: binding registration and
  failed debounced searches
- ``nicetable.table_controller.filters`` / ``schema``: matching and
  inference details (DEBUG)

The package installs only a ``NullHandler``. An application that configured
logging receives these records through its own handlers; a standalone demo
calls :func:`configure_logging` to print them on stderr:

    from nicetable.utils.logging import configure_logging
    configure_logging(level="DEBUG")

Nothing here touches the root logger or writes files.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, Union

ROOT_LOGGER_NAME = "nicetable"
LEVEL_ENV_VAR = "NICETABLE_LOG_LEVEL"

DEFAULT_FMT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
DEFAULT_DATEFMT = "%H:%M:%S"


def _resolve_level(level: Optional[Union[str, int]]) -> int:
    if level is None:
        level = os.environ.get(LEVEL_ENV_VAR, "INFO")
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _stderr_handler(logger: logging.Logger) -> Optional[logging.Handler]:
    for h in logger.handlers:
        if isinstance(h, logging.StreamHandler) and h.stream is sys.stderr:
            return h
    return None


def configure_logging(
    level: Optional[Union[str, int]] = None,
    *,
    fmt: Optional[str] = None,
    datefmt: Optional[str] = None,
    force: bool = False,
) -> None:
    """
    Print nicetable records on stderr.

    Parameters
    ----------
    level:
        Level name or number; defaults to ``$NICETABLE_LOG_LEVEL`` or INFO.
        Applied to the ``nicetable`` logger and its stderr handler.
    fmt, datefmt:
        Formatter overrides.
    force:
        Drop the handlers already on the ``nicetable`` logger first. Without
        it a second call only updates the level of the existing stderr handler.
    """
    resolved = _resolve_level(level)
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(resolved)

    if force:
        for h in logger.handlers[:]:
            h.close()
            logger.removeHandler(h)

    handler = _stderr_handler(logger)
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=fmt or DEFAULT_FMT, datefmt=datefmt or DEFAULT_DATEFMT))
        logger.addHandler(handler)
    handler.setLevel(resolved)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger *name*, or the ``nicetable`` package logger when omitted."""
    return logging.getLogger(name or ROOT_LOGGER_NAME)
