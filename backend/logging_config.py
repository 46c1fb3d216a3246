"""Logging setup shared by the API process and the uvicorn loggers."""

from __future__ import annotations

import logging
import os
from logging.config import dictConfig
from typing import Any, Dict

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _level(variable: str, default: str) -> str:
    return (os.getenv(variable, "").strip() or default).upper()


def build_logging_config() -> Dict[str, Any]:
    """Return the ``dictConfig`` payload for the current environment.

    ``SESSION_DASH_LOG_LEVEL`` drives the root and uvicorn loggers;
    ``SESSION_DASH_SQL_LOG_LEVEL`` drives SQLAlchemy's statement echo.
    """
    level = _level("SESSION_DASH_LOG_LEVEL", "INFO")
    console_only = {"handlers": ["console"], "level": level, "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": level,
            },
        },
        "root": {"handlers": ["console"], "level": level},
        "loggers": {
            "uvicorn": dict(console_only),
            "uvicorn.error": dict(console_only),
            "uvicorn.access": {
                **console_only,
                "level": _level("UVICORN_ACCESS_LOG_LEVEL", "INFO"),
            },
            "sqlalchemy.engine": {"level": _level("SESSION_DASH_SQL_LOG_LEVEL", "WARNING")},
        },
    }


def configure_logging() -> None:
    """Apply the logging configuration once at application start."""
    config = build_logging_config()
    dictConfig(config)
    logging.getLogger(__name__).debug("Logging configured at %s level", config["root"]["level"])
