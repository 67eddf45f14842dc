"""
Store Interfaces

The decision logic only ever talks to these two interfaces. Backends
(Supabase for production, SQLite for local operation) implement them and
wrap every driver failure in StoreReadError / StoreWriteError.

Rows are converted to dataclasses inside the backend with convert_rows(); a
row that can't be parsed is logged and dropped, the rest of the result is kept.
"""

from datetime import datetime
from typing import Any, Callable, Iterable, Protocol, TypeVar

from ...common.config import NotificationRecord, NotificationType, Unit
from ...common.logging_setup import get_service_logger

logger = get_service_logger("store")

T = TypeVar("T")


def convert_rows(
    rows: Iterable[dict[str, Any]],
    convert: Callable[[dict[str, Any]], T],
    operation: str,
    table: str | None = None,
) -> list[T]:
    """Convert raw rows, skipping malformed ones"""
    converted = []
    for row in rows:
        try:
            converted.append(convert(row))
        except (KeyError, TypeError, ValueError) as e:
            row_id = row.get("id", row.get("unit_id"))
            logger.warning(
                f"Skipping malformed row {row_id} from {table} ({operation}): {e}",
                extra={"operation": operation, "table": table, "row_id": row_id},
            )
    return converted


class UnitStore(Protocol):
    """Read access to unit liveness state, plus the staleness flag write"""

    def list_stale(self, cutoff: datetime) -> list[Unit]:
        """Owned units with a known last_seen_at older than cutoff"""
        ...

    def list_recently_seen(self, cutoff: datetime) -> list[Unit]:
        """Owned units with last_seen_at newer than cutoff"""
        ...

    def list_low_battery(self, threshold: int) -> list[Unit]:
        """Owned units with a known battery_level below threshold"""
        ...

    def list_charged(self, threshold: int) -> list[Unit]:
        """Owned units with a known battery_level at or above threshold"""
        ...

    def mark_offline(self, cutoff: datetime) -> int:
        """Set is_online=false where is_online and last_seen_at < cutoff; return rows changed"""
        ...


class NotificationLedger(Protocol):
    """Last notification sent per (unit_id, notification_type)"""

    def get(
        self, unit_id: str, notification_type: NotificationType
    ) -> NotificationRecord | None:
        ...

    def get_many(
        self, unit_ids: list[str], notification_type: NotificationType
    ) -> dict[str, NotificationRecord]:
        ...

    def upsert(
        self,
        unit_id: str,
        notification_type: NotificationType,
        user_id: str,
        sent_at: datetime,
        context_data: dict[str, Any],
    ) -> None:
        """Insert or overwrite the record keyed on (unit_id, notification_type)"""
        ...

    def record_context(
        self,
        unit_id: str,
        notification_type: NotificationType,
        context_data: dict[str, Any],
    ) -> bool:
        """Overwrite context_data of an existing record; False if none exists"""
        ...
