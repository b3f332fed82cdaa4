"""Logging for the ``expense_import`` package.

Modules log through ``get_logger(__name__)``-style children of the
``"expense_import"`` logger and never attach handlers themselves. The CLI calls
``configure_logging()`` once at startup; embedding applications may skip it and
route the records through their own root logger instead.

Messages use a ``stage:event key=value`` layout, e.g.
``parse:done valid=3 errors=1``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

LOGGER_NAME = "expense_import"
LEVEL_ENV_VAR = "EXPENSE_IMPORT_LOG_LEVEL"
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_CONFIGURED = False


def _level_from_env() -> int:
    raw = os.getenv(LEVEL_ENV_VAR, "").strip().upper()
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelNamesMapping().get(raw)
    return level if level is not None else logging.INFO


def configure_logging(level: int | None = None, *, stream: IO[str] = sys.stderr) -> None:
    """Send package records to ``stream`` at ``level`` (default from the env).

    Only the first call has any effect.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    if level is None:
        level = _level_from_env()

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(_FORMAT))

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers[:] = [h for h in logger.handlers if not isinstance(h, logging.NullHandler)]
    logger.addHandler(handler)
    logger.setLevel(level)
    # The CLI owns stderr; keep records away from the root logger.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    pkg = logging.getLogger(LOGGER_NAME)
    if not _CONFIGURED and not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)
