import logging
from logging.config import dictConfig
from typing import Any, Dict

from .request_context import RequestIdFilter

PLAIN_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s"
JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(request_id)s %(message)s"

# Loggers that are too chatty at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "twilio.http_client", "passlib")


def build_logging_config(level: str = "INFO", json_logs: bool = True) -> Dict[str, Any]:
    formatter: Dict[str, Any]
    if json_logs:
        formatter = {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "fmt": JSON_FIELDS,
            "rename_fields": {"levelname": "level", "name": "logger"},
        }
    else:
        formatter = {"format": PLAIN_FORMAT}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"app": formatter},
        "filters": {"request_id": {"()": RequestIdFilter}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "app",
                "filters": ["request_id"],
            }
        },
        "loggers": {
            **{name: {"level": "WARNING"} for name in QUIET_LOGGERS},
            # uvicorn lines go through our handler instead of its own
            "uvicorn": {"handlers": [], "propagate": True},
            "uvicorn.error": {"handlers": [], "propagate": True},
            "uvicorn.access": {"handlers": [], "propagate": True},
        },
        "root": {"handlers": ["console"], "level": level.upper()},
    }


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """Send all application, uvicorn and library logs to stderr, tagged with the request id."""
    dictConfig(build_logging_config(level, json_logs))
    logging.captureWarnings(True)
