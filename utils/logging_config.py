"""Logging setup for the API process and the maintenance scripts."""

import logging
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

from config import Config

NOISY_LOGGERS = ("aiohttp.access", "sqlalchemy.engine", "uvicorn.access")


def setup_logging(config: Optional[Config] = None) -> None:
    config = config or Config.from_env()
    level = getattr(logging, config.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if config.log_format == "json":
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
