"""Logging setup driven by application settings."""

import json
import logging
import logging.config
from datetime import datetime, timezone

from researchvault.config import Settings, get_settings

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def build_logging_config(settings: Settings) -> dict:
    """Build a dictConfig mapping for the configured level and format."""
    level = "DEBUG" if settings.debug else settings.log_level.upper()
    formatter = "json" if settings.log_format.lower() == "json" else "text"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JsonFormatter},
            "text": {"format": TEXT_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "level": level,
                "stream": "ext://sys.stderr",
            },
        },
        "root": {
            "handlers": ["console"],
            "level": level,
        },
        "loggers": {
            # SQL echo is controlled by Settings.sql_echo, keep the engine quiet otherwise
            "sqlalchemy.engine": {"level": "INFO" if settings.sql_echo else "WARNING"},
        },
    }


def configure_logging(settings: Settings | None = None) -> None:
    """Apply logging configuration for the process."""
    if settings is None:
        settings = get_settings()
    logging.config.dictConfig(build_logging_config(settings))
