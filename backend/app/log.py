from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.config import Settings

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def resolve_log_level(settings: Settings) -> int:
    """DEBUG when debug is on, otherwise the named level (INFO if unknown)."""
    if settings.debug:
        return logging.DEBUG
    level = logging.getLevelName(settings.log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(settings: Settings) -> None:
    """Send application logs to stderr at the configured level."""
    level = resolve_log_level(settings)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("app").setLevel(level)
