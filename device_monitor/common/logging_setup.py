"""
Structured Logging Setup

All monitor loggers hang off the "device_monitor" logger, which owns the only
handler. Every record carries the emitting service and, for alert records,
the unit / notification type / outcome as top-level JSON fields.

Environment:
- DEVICE_MONITOR_LOG_LEVEL (default INFO)
- DEVICE_MONITOR_LOG_FORMAT: json (default) or text
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

ROOT_LOGGER = "device_monitor"

# Attributes every LogRecord has; anything else came in through extra=
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "service", "taskName"}

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(service)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, service, message, logger + extras"""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", "unknown"),
            "message": record.getMessage(),
            "logger": record.name,
        }
        log_data.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Stamps the service name on every record, keeping the caller's extra fields"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs["extra"] = {**kwargs.get("extra", {}), "service": self.extra["service"]}
        return msg, kwargs


def configure_logging(
    log_level: str | None = None,
    json_format: bool | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    (Re)configure the package logger. Unset arguments come from the environment.

    Safe to call repeatedly; the previous handler is replaced.
    """
    if log_level is None:
        log_level = os.environ.get("DEVICE_MONITOR_LOG_LEVEL", "INFO")
    if json_format is None:
        json_format = os.environ.get("DEVICE_MONITOR_LOG_FORMAT", "json").lower() == "json"

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)

    # Don't propagate to root logger
    root.propagate = False
    return root


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """Logger for one monitor component, e.g. "detectors.battery" """
    if not logging.getLogger(ROOT_LOGGER).handlers:
        configure_logging()
    logger = logging.getLogger(f"{ROOT_LOGGER}.{service_name}")
    return ServiceLoggerAdapter(logger, {"service": service_name})


def log_notification(
    logger: logging.LoggerAdapter,
    unit_id: str,
    notification_type: str,
    outcome: str,
    user_id: str | None = None,
    sent: int = 0,
    error: str | None = None,
) -> None:
    """Log the outcome of a single notification attempt"""
    extra: dict[str, Any] = {
        "unit_id": unit_id,
        "notification_type": notification_type,
        "outcome": outcome,
        "user_id": user_id,
        "sent": sent,
    }
    if error:
        extra["error"] = error
        logger.error(
            f"Notification {notification_type} for unit {unit_id} failed: {error}",
            extra=extra,
        )
    elif outcome == "sent":
        logger.info(
            f"Notification {notification_type} sent for unit {unit_id} ({sent} receivers)",
            extra=extra,
        )
    else:
        logger.info(
            f"Notification {notification_type} for unit {unit_id}: {outcome}",
            extra=extra,
        )
