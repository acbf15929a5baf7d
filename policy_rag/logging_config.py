"""Application logging configuration utilities."""

from __future__ import annotations

import logging.config


def configure_logging(level: str = "INFO") -> None:
    """Install a single timestamped stream handler on the root logger."""

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S%z",
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                },
            },
            "root": {
                "level": level.upper(),
                "handlers": ["default"],
            },
            "loggers": {
                "httpx": {"level": "WARNING"},
            },
        }
    )
