"""
Structured logging configuration.

Development logs are human-readable console lines; production logs are
JSON lines on stdout, one object per record, for the log shipper.

Environment variables:
- LOG_FORMAT: "json" or "console" (default: json unless DEBUG)
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO, DEBUG when DEBUG)
"""
import json
import logging
import os
from datetime import datetime, timezone


# Loggers of this project's apps; module loggers are children of these
APP_LOGGERS = ("accounting", "accounts", "events", "projections", "ops", "celery")

_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _formatters(log_format: str) -> dict:
    if log_format == "json":
        return {"json": {"()": "ops.logging_config.JsonFormatter"}}
    return {
        "verbose": {
            "format": "[{asctime}] {levelname} {name} {message}",
            "style": "{",
        },
    }


def get_logging_config(debug: bool = False) -> dict:
    """
    Build the Django LOGGING dict.

    Args:
        debug: settings.DEBUG; selects console output and DEBUG level
            unless LOG_FORMAT / LOG_LEVEL say otherwise
    """
    log_level = os.environ.get("LOG_LEVEL", "DEBUG" if debug else "INFO")
    log_format = os.environ.get("LOG_FORMAT", "console" if debug else "json")
    formatter = "json" if log_format == "json" else "verbose"

    def app_logger(level=log_level):
        return {"handlers": ["console"], "level": level, "propagate": False}

    loggers = {
        "": {"handlers": ["console"], "level": log_level},
        "django": app_logger(),
        "django.request": app_logger(log_level if debug else "ERROR"),
        # SQL echo only while debugging
        "django.db.backends": {
            "handlers": ["console"] if debug else ["null"],
            "level": "DEBUG" if debug else "INFO",
            "propagate": False,
        },
    }
    for name in APP_LOGGERS:
        loggers[name] = app_logger()

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": _formatters(log_format),
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": "ext://sys.stdout",
            },
            "null": {"class": "logging.NullHandler"},
        },
        "loggers": loggers,
    }


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    Fields: timestamp (UTC, ISO 8601), level, logger, message, location,
    exception when present, and `extra` for anything passed through
    logger.info(..., extra={...}).
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extras = {
            key: value for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        }
        if extras:
            entry["extra"] = extras

        return json.dumps(entry, default=str)
