from __future__ import annotations
import logging
import sys

from skinscan.config import settings

_ROOT_NAME = "skinscan"
_configured = False


def _configure_root() -> logging.Logger:
    global _configured
    root = logging.getLogger(_ROOT_NAME)
    if not _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        root.addHandler(handler)
        root.setLevel(settings.log_level.upper())
        root.propagate = False
        _configured = True
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a child of the service logger, e.g. ``skinscan.scans``."""
    _configure_root()
    return logging.getLogger(f"{_ROOT_NAME}.{name}")
