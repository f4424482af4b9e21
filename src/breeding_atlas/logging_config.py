"""Central logging configuration for the CLI and flows."""

from __future__ import annotations

import logging
import logging.config
import os

_CONFIGURED = False


def configure_logging(default_level: str | None = None) -> None:
    """Ensure the application logs to stdout with a consistent formatter."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    level_name = (default_level or os.getenv("LOG_LEVEL", "INFO")).upper()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                }
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "stream": "ext://sys.stdout",
                }
            },
            "loggers": {
                "breeding_atlas": {
                    "level": level_name,
                    "handlers": ["stdout"],
                    "propagate": False,
                },
            },
        }
    )

    _CONFIGURED = True
