"""
Structured logging configuration.

JSON lines in production (or with LOG_FORMAT=json), plain text otherwise.
Structured data rides on the ``extra_fields`` attribute:

    logger.info("Created map activity", extra=log_fields(user_id=1, steps=1006))
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from core.config import settings

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries that log every statement / connection at INFO.
QUIET_LOGGERS = ("sqlalchemy.engine", "urllib3", "multipart")


def log_fields(**fields: Any) -> Dict[str, Dict[str, Any]]:
    """Build the ``extra`` mapping understood by JSONFormatter."""
    return {"extra_fields": fields}


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
            "environment": settings.ENVIRONMENT,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_data.update(extra_fields)

        return json.dumps(log_data, default=str)


def _wants_json(log_format: str) -> bool:
    return log_format.lower() == "json" or settings.ENVIRONMENT == "production"


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger once at startup.

    ``level`` and ``log_format`` default to LOG_LEVEL / LOG_FORMAT.
    """
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    formatter = (
        JSONFormatter()
        if _wants_json(log_format or settings.LOG_FORMAT)
        else logging.Formatter(TEXT_FORMAT)
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
