"""
Local SQLite Database

UnitStore and NotificationLedger backed by a local SQLite file, for running
the monitor without Supabase (bench setups, offline operation, tests).
Schema mirrors database/schema.sql.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ...common.config import NotificationRecord, NotificationType, Unit
from ...common.exceptions import StoreReadError, StoreWriteError
from ...common.logging_setup import get_service_logger
from .base import convert_rows

logger = get_service_logger("store.local_db")

# Default database path
DEFAULT_DB_PATH = Path("device_monitor.db")


def _ts(value: datetime | None) -> str | None:
    """Fixed-width UTC timestamp so string comparison matches time order"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


class LocalDatabase:
    """
    SQLite database holding the units and notification_ledger tables.

    Features:
    - Automatic table creation
    - Upserts keyed on (unit_id, notification_type)
    - Ingestion helpers (save_unit, record_heartbeat) for the writer side
    """

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH

        # Ensure directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema"""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS units (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT,
                    display_name TEXT,
                    last_seen_at TEXT,
                    battery_level INTEGER,
                    is_online INTEGER NOT NULL DEFAULT 0
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS notification_ledger (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    unit_id TEXT NOT NULL,
                    notification_type TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    last_sent_at TEXT NOT NULL,
                    context_data TEXT,
                    UNIQUE (unit_id, notification_type)
                )
            """)

            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_units_last_seen ON units(last_seen_at)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_units_battery ON units(battery_level)"
            )

            conn.commit()

        logger.debug(f"Local database ready at {self.db_path}")

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager"""
        # timeout=10.0: Fail fast on lock contention instead of blocking forever
        conn = sqlite3.connect(str(self.db_path), timeout=10.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def query(self, sql: str, params: tuple | list = (), operation: str = "query") -> list[dict]:
        """Run a SELECT and return rows as dicts"""
        try:
            with self._get_connection() as conn:
                rows = conn.execute(sql, params).fetchall()
                return [dict(row) for row in rows]
        except sqlite3.Error as e:
            raise StoreReadError(f"{operation} failed: {e}", operation=operation) from e

    def execute(self, sql: str, params: tuple | list = (), operation: str = "execute") -> int:
        """Run a write statement and return the affected row count"""
        try:
            with self._get_connection() as conn:
                cursor = conn.execute(sql, params)
                conn.commit()
                return cursor.rowcount
        except sqlite3.Error as e:
            raise StoreWriteError(f"{operation} failed: {e}", operation=operation) from e

    # Ingestion side

    def save_unit(self, unit: Unit) -> None:
        """Insert or replace a unit row"""
        self.execute("""
            INSERT INTO units (id, owner_id, display_name, last_seen_at, battery_level, is_online)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                owner_id = excluded.owner_id,
                display_name = excluded.display_name,
                last_seen_at = excluded.last_seen_at,
                battery_level = excluded.battery_level,
                is_online = excluded.is_online
        """, (
            unit.id,
            unit.owner_id,
            unit.display_name,
            _ts(unit.last_seen_at),
            unit.battery_level,
            1 if unit.is_online else 0,
        ), operation="save_unit")

    def record_heartbeat(
        self,
        unit_id: str,
        seen_at: datetime,
        battery_level: int | None = None,
    ) -> None:
        """Apply a heartbeat: bump last_seen_at, set is_online, update battery if reported"""
        self.execute("""
            UPDATE units
            SET last_seen_at = ?,
                is_online = 1,
                battery_level = COALESCE(?, battery_level)
            WHERE id = ?
        """, (_ts(seen_at), battery_level, unit_id), operation="record_heartbeat")

    def set_battery_level(self, unit_id: str, battery_level: int | None) -> None:
        self.execute(
            "UPDATE units SET battery_level = ? WHERE id = ?",
            (battery_level, unit_id),
            operation="set_battery_level",
        )

    def get_unit(self, unit_id: str) -> Unit | None:
        rows = self.query("SELECT * FROM units WHERE id = ?", (unit_id,), operation="get_unit")
        return Unit.from_row(rows[0]) if rows else None


class LocalUnitStore:
    """UnitStore over LocalDatabase"""

    def __init__(self, db: LocalDatabase):
        self.db = db

    def _owned(self, where: str, params: tuple, operation: str) -> list[Unit]:
        rows = self.db.query(
            f"SELECT * FROM units WHERE owner_id IS NOT NULL AND {where}",
            params,
            operation=operation,
        )
        return convert_rows(rows, Unit.from_row, operation, "units")

    def list_stale(self, cutoff: datetime) -> list[Unit]:
        return self._owned(
            "last_seen_at IS NOT NULL AND last_seen_at < ?", (_ts(cutoff),), "list_stale"
        )

    def list_recently_seen(self, cutoff: datetime) -> list[Unit]:
        return self._owned(
            "last_seen_at IS NOT NULL AND last_seen_at > ?", (_ts(cutoff),), "list_recently_seen"
        )

    def list_low_battery(self, threshold: int) -> list[Unit]:
        return self._owned(
            "battery_level IS NOT NULL AND battery_level < ?", (threshold,), "list_low_battery"
        )

    def list_charged(self, threshold: int) -> list[Unit]:
        return self._owned(
            "battery_level IS NOT NULL AND battery_level >= ?", (threshold,), "list_charged"
        )

    def mark_offline(self, cutoff: datetime) -> int:
        return self.db.execute("""
            UPDATE units
            SET is_online = 0
            WHERE is_online = 1 AND last_seen_at IS NOT NULL AND last_seen_at < ?
        """, (_ts(cutoff),), operation="mark_offline")


class LocalNotificationLedger:
    """NotificationLedger over LocalDatabase"""

    def __init__(self, db: LocalDatabase):
        self.db = db

    @staticmethod
    def _to_record(row: dict) -> NotificationRecord:
        row = dict(row)
        row["context_data"] = json.loads(row["context_data"]) if row.get("context_data") else {}
        return NotificationRecord.from_row(row)

    def get(
        self, unit_id: str, notification_type: NotificationType
    ) -> NotificationRecord | None:
        rows = self.db.query("""
            SELECT * FROM notification_ledger
            WHERE unit_id = ? AND notification_type = ?
        """, (unit_id, notification_type.value), operation="ledger_get")
        records = convert_rows(rows, self._to_record, "ledger_get", "notification_ledger")
        return records[0] if records else None

    def get_many(
        self, unit_ids: list[str], notification_type: NotificationType
    ) -> dict[str, NotificationRecord]:
        if not unit_ids:
            return {}
        placeholders = ",".join("?" for _ in unit_ids)
        rows = self.db.query(f"""
            SELECT * FROM notification_ledger
            WHERE notification_type = ? AND unit_id IN ({placeholders})
        """, [notification_type.value] + list(unit_ids), operation="ledger_get_many")
        records = convert_rows(rows, self._to_record, "ledger_get_many", "notification_ledger")
        return {record.unit_id: record for record in records}

    def upsert(
        self,
        unit_id: str,
        notification_type: NotificationType,
        user_id: str,
        sent_at: datetime,
        context_data: dict[str, Any],
    ) -> None:
        self.db.execute("""
            INSERT INTO notification_ledger (
                unit_id, notification_type, user_id, last_sent_at, context_data
            ) VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(unit_id, notification_type) DO UPDATE SET
                user_id = excluded.user_id,
                last_sent_at = excluded.last_sent_at,
                context_data = excluded.context_data
        """, (
            unit_id,
            notification_type.value,
            user_id,
            _ts(sent_at),
            json.dumps(context_data),
        ), operation="ledger_upsert")

    def record_context(
        self,
        unit_id: str,
        notification_type: NotificationType,
        context_data: dict[str, Any],
    ) -> bool:
        changed = self.db.execute("""
            UPDATE notification_ledger
            SET context_data = ?
            WHERE unit_id = ? AND notification_type = ?
        """, (json.dumps(context_data), unit_id, notification_type.value),
            operation="ledger_record_context")
        return changed > 0
