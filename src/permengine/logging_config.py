"""Logging setup."""

import logging.config

from permengine.config import Settings


def setup_logging(settings: Settings) -> None:
    """Configure console logging; DEBUG when settings.debug is set."""
    level = "DEBUG" if settings.debug else settings.log_level.upper()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "detailed": {
                    "format": "%(asctime)s - %(name)s - %(levelname)s - "
                    "%(module)s - %(funcName)s:%(lineno)d - %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": level,
                    "formatter": "detailed" if settings.debug else "default",
                    "stream": "ext://sys.stdout",
                },
                "audit": {
                    "class": "logging.StreamHandler",
                    "level": "INFO",
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {
                "permengine": {"level": level, "handlers": ["console"], "propagate": False},
                "permengine.audit": {"level": "INFO", "handlers": ["audit"], "propagate": False},
                "psycopg": {"level": "WARNING"},
            },
            "root": {"level": level, "handlers": ["console"]},
        }
    )
