"""
Store Backends

- base.py - UnitStore / NotificationLedger interfaces
- supabase_store.py - Supabase (production)
- local_db.py - SQLite (local operation)
"""

from .base import UnitStore, NotificationLedger
from .local_db import LocalDatabase, LocalUnitStore, LocalNotificationLedger
from .supabase_store import SupabaseUnitStore, SupabaseNotificationLedger

__all__ = [
    "UnitStore",
    "NotificationLedger",
    "LocalDatabase",
    "LocalUnitStore",
    "LocalNotificationLedger",
    "SupabaseUnitStore",
    "SupabaseNotificationLedger",
]
