"""Simple logging utilities for mdkanban.

Modules use the standard pattern::

    import logging
    logger = logging.getLogger(__name__)

Configuration is left to the application. ``setup_logging()`` is a
convenience for scripts and tools embedding the task core.
"""

import logging
import sys
from typing import Optional

from ..config.settings import get_log_level

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stderr handler to the ``mdkanban`` logger.

    The level defaults to ``MDKANBAN_LOG_LEVEL``. Calling it twice does not
    add a second handler.
    """
    logger = logging.getLogger("mdkanban")
    resolved = (level or get_log_level()).upper()

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(handler)

    logger.setLevel(resolved)
    for handler in logger.handlers:
        handler.setLevel(resolved)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``mdkanban`` namespace."""
    if name != "mdkanban" and not name.startswith("mdkanban."):
        name = f"mdkanban.{name}"
    return logging.getLogger(name)
