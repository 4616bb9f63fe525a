from __future__ import annotations

import logging
import sys

from loguru import logger

from booking_engine.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _forward_to_stdlib(message) -> None:
    record = message.record
    logging.getLogger(record["name"] or "loguru").log(
        record["level"].no, record["message"]
    )


def setup_logging(settings: Settings) -> None:
    """Настраивает stdlib logging и направляет в него записи loguru."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout, force=True)
    # httpx пишет каждый запрос на INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    logger.remove()
    logger.add(_forward_to_stdlib, level=level, format="{message}")


__all__ = ["setup_logging"]
