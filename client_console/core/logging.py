"""Structured logging configuration."""

import logging
import re
import sys
from typing import Any

from pythonjsonlogger import jsonlogger

from client_console.core.config import settings

REDACTED = "***REDACTED***"

# Live-session URLs carry the access token as a query parameter
TOKEN_QUERY_PATTERN = re.compile(r"(token=)[^&\s\"']+")


class SanitizingFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that redacts contact details and credentials from logs."""

    SENSITIVE_FIELDS = {
        "password",
        "token",
        "secret",
        "api_key",
        "authorization",
        "email",
        "mobile",
        "phone",
        "contact",
    }

    def process_log_record(self, log_record: dict[str, Any]) -> dict[str, Any]:
        """Redact sensitive extra fields and token query parameters in the message."""
        for key in list(log_record.keys()):
            if any(field in key.lower() for field in self.SENSITIVE_FIELDS):
                log_record[key] = REDACTED

        message = log_record.get("message")
        if isinstance(message, str):
            log_record["message"] = TOKEN_QUERY_PATTERN.sub(rf"\g<1>{REDACTED}", message)

        log_record["service"] = settings.APP_NAME
        log_record["environment"] = settings.APP_ENV
        log_record["version"] = settings.APP_VERSION

        return log_record


def setup_logging() -> logging.Logger:
    """Configure the root logger with JSON output on stdout."""
    level = settings.LOG_LEVEL or ("DEBUG" if settings.APP_DEBUG else "INFO")

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        SanitizingFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)

    # Suppress noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logger
