"""
Supabase Store

UnitStore and NotificationLedger backed by Supabase tables:
- units(id, owner_id, display_name, last_seen_at, battery_level, is_online)
- notification_ledger(unit_id, notification_type, user_id, last_sent_at,
  context_data, UNIQUE(unit_id, notification_type))

Every query is a single bounded PostgREST request. Driver errors are
re-raised as StoreReadError / StoreWriteError.
"""

from datetime import datetime
from typing import Any

from supabase import Client

from ...common.config import (
    NotificationRecord,
    NotificationType,
    Unit,
    format_timestamp,
)
from ...common.exceptions import StoreReadError, StoreWriteError
from .base import convert_rows

UNIT_FIELDS = "id, owner_id, display_name, last_seen_at, battery_level, is_online"
LEDGER_FIELDS = "unit_id, notification_type, user_id, last_sent_at, context_data"


def _execute(query, operation: str, table: str, write: bool = False):
    """Run a PostgREST query, wrapping any failure in a StoreError"""
    try:
        return query.execute()
    except Exception as e:
        error_cls = StoreWriteError if write else StoreReadError
        raise error_cls(f"{operation} on {table} failed: {e}", operation=operation, table=table) from e


class SupabaseUnitStore:
    """Unit liveness state in Supabase"""

    def __init__(self, client: Client, table: str = "units"):
        self.client = client
        self.table = table

    def _owned(self):
        return self.client.table(self.table).select(UNIT_FIELDS).not_.is_("owner_id", "null")

    def list_stale(self, cutoff: datetime) -> list[Unit]:
        query = self._owned().not_.is_("last_seen_at", "null").lt(
            "last_seen_at", format_timestamp(cutoff)
        )
        result = _execute(query, "list_stale", self.table)
        return convert_rows(result.data or [], Unit.from_row, "list_stale", self.table)

    def list_recently_seen(self, cutoff: datetime) -> list[Unit]:
        query = self._owned().not_.is_("last_seen_at", "null").gt(
            "last_seen_at", format_timestamp(cutoff)
        )
        result = _execute(query, "list_recently_seen", self.table)
        return convert_rows(result.data or [], Unit.from_row, "list_recently_seen", self.table)

    def list_low_battery(self, threshold: int) -> list[Unit]:
        query = self._owned().not_.is_("battery_level", "null").lt("battery_level", threshold)
        result = _execute(query, "list_low_battery", self.table)
        return convert_rows(result.data or [], Unit.from_row, "list_low_battery", self.table)

    def list_charged(self, threshold: int) -> list[Unit]:
        query = self._owned().not_.is_("battery_level", "null").gte("battery_level", threshold)
        result = _execute(query, "list_charged", self.table)
        return convert_rows(result.data or [], Unit.from_row, "list_charged", self.table)

    def mark_offline(self, cutoff: datetime) -> int:
        # Predicate-guarded update: only rows still online and still stale flip
        query = self.client.table(self.table).update({
            "is_online": False
        }).eq("is_online", True).lt("last_seen_at", format_timestamp(cutoff))
        result = _execute(query, "mark_offline", self.table, write=True)
        return len(result.data or [])


class SupabaseNotificationLedger:
    """Notification ledger in Supabase"""

    def __init__(self, client: Client, table: str = "notification_ledger"):
        self.client = client
        self.table = table

    def get(
        self, unit_id: str, notification_type: NotificationType
    ) -> NotificationRecord | None:
        query = self.client.table(self.table).select(LEDGER_FIELDS).eq(
            "unit_id", unit_id
        ).eq(
            "notification_type", notification_type.value
        ).limit(1)
        result = _execute(query, "get", self.table)
        records = convert_rows(result.data or [], NotificationRecord.from_row, "get", self.table)
        return records[0] if records else None

    def get_many(
        self, unit_ids: list[str], notification_type: NotificationType
    ) -> dict[str, NotificationRecord]:
        if not unit_ids:
            return {}
        query = self.client.table(self.table).select(LEDGER_FIELDS).in_(
            "unit_id", list(unit_ids)
        ).eq("notification_type", notification_type.value)
        result = _execute(query, "get_many", self.table)
        records = convert_rows(result.data or [], NotificationRecord.from_row, "get_many", self.table)
        return {record.unit_id: record for record in records}

    def upsert(
        self,
        unit_id: str,
        notification_type: NotificationType,
        user_id: str,
        sent_at: datetime,
        context_data: dict[str, Any],
    ) -> None:
        query = self.client.table(self.table).upsert({
            "unit_id": unit_id,
            "notification_type": notification_type.value,
            "user_id": user_id,
            "last_sent_at": format_timestamp(sent_at),
            "context_data": context_data,
        }, on_conflict="unit_id,notification_type")
        _execute(query, "upsert", self.table, write=True)

    def record_context(
        self,
        unit_id: str,
        notification_type: NotificationType,
        context_data: dict[str, Any],
    ) -> bool:
        query = self.client.table(self.table).update({
            "context_data": context_data
        }).eq("unit_id", unit_id).eq("notification_type", notification_type.value)
        result = _execute(query, "record_context", self.table, write=True)
        return bool(result.data)
