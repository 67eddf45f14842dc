"""
Data Model Dataclasses

Type-safe structures shared by the stores, detectors and evaluation pass.
Rows coming back from Supabase or SQLite are converted into these before
any decision logic sees them.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from .exceptions import ConfigError


class NotificationType(str, Enum):
    """Ledger notification types - must match notification_ledger.notification_type"""
    OFFLINE = "offline"
    BATTERY_LOW = "battery_low"
    ONLINE = "online"

    @property
    def push_type(self) -> str:
        """Type name used in push payloads and notification_preferences columns"""
        return {
            NotificationType.OFFLINE: "device_offline",
            NotificationType.BATTERY_LOW: "battery_low",
            NotificationType.ONLINE: "device_online",
        }[self]


# Dispatch skip reasons reported by the gateway
SKIP_NO_TOKENS = "no_tokens"
SKIP_DISABLED_BY_USER = "disabled_by_user"

# Fractional seconds of any precision (PostgREST trims trailing zeros)
_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a stored timestamp into an aware UTC datetime.

    Accepts datetime objects and ISO-8601 strings (PostgREST returns
    "+00:00" offsets, older rows may carry a trailing "Z"). Fractional
    seconds are padded or cut to microseconds. Naive values are assumed
    to be UTC.

    Raises:
        ValueError: the string is not a valid timestamp
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime | None) -> str | None:
    """Format a datetime as ISO-8601 UTC for storage"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


@dataclass
class Unit:
    """A deployed hardware unit as seen by the monitor"""
    id: str
    owner_id: str | None = None       # Unowned units are never evaluated
    display_name: str = ""
    last_seen_at: datetime | None = None
    battery_level: int | None = None  # 0-100
    is_online: bool = False

    @property
    def name(self) -> str:
        """User-facing name, falling back to the unit id"""
        return self.display_name or self.id

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Unit":
        """Convert a units table row to a Unit"""
        battery = row.get("battery_level")
        return cls(
            id=str(row["id"]),
            owner_id=str(row["owner_id"]) if row.get("owner_id") else None,
            display_name=row.get("display_name") or "",
            last_seen_at=parse_timestamp(row.get("last_seen_at")),
            battery_level=int(battery) if battery is not None else None,
            is_online=bool(row.get("is_online", False)),
        )


@dataclass
class NotificationRecord:
    """Ledger entry - last notification sent per (unit, type)"""
    unit_id: str
    notification_type: NotificationType
    user_id: str
    last_sent_at: datetime
    context_data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "NotificationRecord":
        """Convert a notification_ledger row to a NotificationRecord"""
        last_sent_at = parse_timestamp(row["last_sent_at"])
        if last_sent_at is None:
            raise ValueError("last_sent_at is empty")
        return cls(
            unit_id=str(row["unit_id"]),
            notification_type=NotificationType(row["notification_type"]),
            user_id=str(row.get("user_id") or ""),
            last_sent_at=last_sent_at,
            context_data=row.get("context_data") or {},
        )


@dataclass(frozen=True)
class MonitorPolicy:
    """Alerting policy constants (see MonitorSettings for the env overrides)"""
    offline_threshold: timedelta = timedelta(minutes=10)
    offline_cooldown: timedelta = timedelta(hours=24)
    battery_low_threshold: int = 20
    battery_recovery_threshold: int = 30
    battery_cooldown: timedelta = timedelta(hours=12)
    recovery_window: timedelta = timedelta(minutes=2)

    def validate(self) -> "MonitorPolicy":
        """Raise ConfigError if the policy is inconsistent"""
        for name in ("offline_threshold", "offline_cooldown", "battery_cooldown", "recovery_window"):
            if getattr(self, name) <= timedelta(0):
                raise ConfigError(f"{name} must be positive", recoverable=False)
        if not 0 <= self.battery_low_threshold <= 100:
            raise ConfigError("battery_low_threshold must be within 0-100", recoverable=False)
        if not 0 <= self.battery_recovery_threshold <= 100:
            raise ConfigError("battery_recovery_threshold must be within 0-100", recoverable=False)
        # Hysteresis band must be non-empty
        if self.battery_low_threshold >= self.battery_recovery_threshold:
            raise ConfigError(
                "battery_low_threshold must be below battery_recovery_threshold",
                recoverable=False,
            )
        return self


@dataclass
class PushMessage:
    """Message handed to the delivery gateway"""
    type: str
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)
    channel: str = "device_alerts"


@dataclass
class DispatchResult:
    """Outcome reported by the delivery gateway"""
    sent: int = 0
    skipped: str | None = None

    @property
    def no_receivers(self) -> bool:
        return self.sent == 0 and self.skipped == SKIP_NO_TOKENS

    @property
    def occurred(self) -> bool:
        """True when the attempt must be recorded in the ledger"""
        return self.sent > 0 or self.no_receivers


@dataclass
class StageCounts:
    """Per-detector counts"""
    checked: int = 0
    notified: int = 0
    rearmed: int | None = None  # battery stage only

    def to_dict(self) -> dict[str, int]:
        result = {"checked": self.checked, "notified": self.notified}
        if self.rearmed is not None:
            result["rearmed"] = self.rearmed
        return result


@dataclass
class EvaluationSummary:
    """Result of one evaluation pass"""
    offline: StageCounts = field(default_factory=StageCounts)
    battery_low: StageCounts = field(default_factory=lambda: StageCounts(rearmed=0))
    online: StageCounts = field(default_factory=StageCounts)
    marked_offline: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "offline": self.offline.to_dict(),
            "battery_low": self.battery_low.to_dict(),
            "online": self.online.to_dict(),
            "marked_offline": self.marked_offline,
        }
