# === FILE: link_scout/logger.py ===
"""Logging for LinkScout.

All records go through the ``"LinkScout"`` logger tree:

* ``LinkScout.controller`` – frontier outcomes (404s, redirects, fragment
  problems) and, at DEBUG, every out-of-scope link that was refused;
* ``LinkScout.crawler`` – fetches, retries and the worker pool.

Handlers are attached to the parent only, so one :func:`init_logging` call
from the CLI configures every component.  Console output goes to stderr:
stdout carries the JSON frontier printed by ``link_scout crawl``.

Scope decisions are logged once per discovered link and drown everything
else on a large site, so ``admission_level`` lets the CLI keep them quiet
while the rest of the controller logs at ``level``.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Optional, Union

ROOT_NAME: Final[str] = "LinkScout"
DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_LevelT = Union[int, str]


def get_logger(component: Optional[str] = None) -> logging.Logger:
    """``LinkScout`` itself, or its child for *component* (``"controller"``...)."""
    return logging.getLogger(f"{ROOT_NAME}.{component}" if component else ROOT_NAME)


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
    admission_level: Optional[_LevelT] = None,
) -> logging.Logger:
    """Replace the handlers of the ``LinkScout`` tree and return its root.

    Parameters
    ----------
    level
        Level of the whole tree (e.g. ``"DEBUG"``).
    log_file
        Optional log file, rotated at 5 MiB with three backups.
    log_format
        Format string for :class:`logging.Formatter`.
    admission_level
        Level of ``LinkScout.controller.admission``; defaults to ``level``.
    """
    root = get_logger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_format)
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file is not None:
        file_handler = RotatingFileHandler(
            filename=str(log_file), maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    admission = get_logger("controller.admission")
    admission.setLevel(admission_level if admission_level is not None else logging.NOTSET)

    root.propagate = False
    return root


logger: logging.Logger = init_logging()

__all__ = ["logger", "get_logger", "init_logging", "ROOT_NAME", "DEFAULT_FORMAT"]
