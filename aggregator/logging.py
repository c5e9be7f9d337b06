from __future__ import annotations

import logging

from aggregator.config import get_settings

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    resolved = (level or get_settings().log_level).upper()
    logging.basicConfig(level=resolved, format=_LOG_FORMAT)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
