"""Logging setup shared by the command-line entry points."""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_LEVEL_ENV = "SENTINEL_SYNC_DNS_LOG_LEVEL"


def setup_logging(level: Optional[str] = None) -> None:
    level = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()
    if level not in LOG_LEVELS:
        level = "INFO"
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)
