"""
Logging setup for the Signals & Feed API.

Application loggers write to stdout through one handler. The store
client and the per-request access log stay at WARNING so auth events
are not buried. Passwords, tokens and request bodies are never logged.
"""

import logging
import logging.config

from config import Settings

QUIET_LOGGERS = ("uvicorn.access", "pymongo")


def logging_dict(level: str) -> dict:
    level = level.upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "api": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "api",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"level": level, "handlers": ["stdout"]},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    }


def configure_logging(settings: Settings) -> None:
    """Apply the logging config for the configured LOG_LEVEL."""
    logging.config.dictConfig(logging_dict(settings.log_level))
    logging.getLogger(__name__).debug("Logging configured at %s", settings.log_level)
