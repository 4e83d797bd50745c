"""Logging configuration applied once at app (or worker) startup."""

import logging.config

from app.core.config import settings


def setup_logging(level: str | None = None) -> None:
    """Configure root logging with a single console handler."""
    log_level = (level or settings.LOG_LEVEL).upper()
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "root": {"handlers": ["console"], "level": log_level},
        "loggers": {
            # Provider SDKs log every request at INFO
            "twilio.http_client": {"level": "WARNING"},
            "httpx": {"level": "WARNING"},
        },
    })
