"""Logging configuration helpers."""

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once; ``LOG_LEVEL`` is used when ``level`` is omitted."""
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level_name)
        return
    logging.basicConfig(level=level_name, format=LOG_FORMAT)
