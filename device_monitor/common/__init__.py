"""
Common Utilities

Shared modules used across the monitor:
- config.py - Data model dataclasses and alerting policy
- settings.py - Environment-driven settings
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
"""

from .config import (
    Unit,
    NotificationRecord,
    NotificationType,
    MonitorPolicy,
    PushMessage,
    DispatchResult,
    StageCounts,
    EvaluationSummary,
    SKIP_NO_TOKENS,
    SKIP_DISABLED_BY_USER,
    parse_timestamp,
    format_timestamp,
)
from .exceptions import (
    DeviceMonitorError,
    ConfigError,
    StoreError,
    StoreReadError,
    StoreWriteError,
    DispatchError,
)
from .logging_setup import (
    configure_logging,
    get_service_logger,
    log_notification,
)
from .settings import MonitorSettings, get_settings

__all__ = [
    # Config
    "Unit",
    "NotificationRecord",
    "NotificationType",
    "MonitorPolicy",
    "PushMessage",
    "DispatchResult",
    "StageCounts",
    "EvaluationSummary",
    "SKIP_NO_TOKENS",
    "SKIP_DISABLED_BY_USER",
    "parse_timestamp",
    "format_timestamp",
    # Exceptions
    "DeviceMonitorError",
    "ConfigError",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    "DispatchError",
    # Logging
    "configure_logging",
    "get_service_logger",
    "log_notification",
    # Settings
    "MonitorSettings",
    "get_settings",
]
