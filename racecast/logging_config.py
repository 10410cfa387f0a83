"""
Structured Logging Configuration

Provides JSON-formatted logging for production use and text format for development.
Integrates with the application's settings to determine log format and level.

Usage:
    from racecast.logging_config import setup_logging

    # In application startup
    setup_logging()

    # Then use standard logging
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Message", extra={"key": "value"})
"""

import logging
import sys
from datetime import datetime
from zoneinfo import ZoneInfo

from pythonjsonlogger.json import JsonFormatter

SERVICE_NAME = "racecast"


def _local_tz() -> ZoneInfo:
    from racecast.settings import settings

    return ZoneInfo(settings.tz)


class LocalTimeFormatter(logging.Formatter):
    """Formatter that renders timestamps in the configured racing timezone."""

    def formatTime(self, record, datefmt=None):
        ct = datetime.fromtimestamp(record.created, tz=_local_tz())
        if datefmt:
            return ct.strftime(datefmt)
        return ct.isoformat()


class CustomJsonFormatter(JsonFormatter):
    """
    JSON formatter with local timestamps and service metadata.

    Output example:
    {
        "timestamp": "2026-01-28T12:00:00+13:00",
        "level": "INFO",
        "logger": "racecast.scheduler.race_predictor",
        "message": "Prediction cycle completed",
        "service": "racecast"
    }
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(
            record.created, tz=_local_tz()
        ).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = SERVICE_NAME

        # Location info for errors
        if record.levelno >= logging.ERROR:
            log_record["file"] = record.pathname
            log_record["line"] = record.lineno
            log_record["function"] = record.funcName

        # Move message to end for readability
        if "message" in log_record:
            msg = log_record.pop("message")
            log_record["message"] = msg


def get_text_formatter() -> logging.Formatter:
    """Get text formatter for development."""
    return LocalTimeFormatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def get_json_formatter() -> logging.Formatter:
    """Get JSON formatter for production."""
    return CustomJsonFormatter(fmt="%(timestamp)s %(level)s %(logger)s %(message)s")


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to settings.log_level.
        format_type: Log format ('json' or 'text').
                     Defaults to settings.log_format.
    """
    from racecast.settings import settings

    level = level or settings.log_level
    format_type = format_type or settings.log_format

    if format_type.lower() == "json":
        formatter = get_json_formatter()
    else:
        formatter = get_text_formatter()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Reduce noise from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

