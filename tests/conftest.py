"""Pytest configuration for the device monitor test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from device_monitor.common.config import MonitorPolicy, Unit
from device_monitor.common.settings import get_settings
from device_monitor.services.evaluation import EvaluationPass
from device_monitor.services.store.local_db import (
    LocalDatabase,
    LocalNotificationLedger,
    LocalUnitStore,
)
from fakes import FakeDispatcher

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
OWNER = "user-1"


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep a developer's .env / environment out of the tests."""
    for name in (
        "OFFLINE_THRESHOLD_MINUTES",
        "OFFLINE_COOLDOWN_HOURS",
        "BATTERY_LOW_THRESHOLD",
        "BATTERY_RECOVERY_THRESHOLD",
        "BATTERY_COOLDOWN_HOURS",
        "RECOVERY_WINDOW_MINUTES",
        "STORE_BACKEND",
        "CRON_SECRET",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def policy() -> MonitorPolicy:
    return MonitorPolicy()


@pytest.fixture
def db(tmp_path) -> LocalDatabase:
    return LocalDatabase(tmp_path / "monitor.db")


@pytest.fixture
def units(db: LocalDatabase) -> LocalUnitStore:
    return LocalUnitStore(db)


@pytest.fixture
def ledger(db: LocalDatabase) -> LocalNotificationLedger:
    return LocalNotificationLedger(db)


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def evaluation(units, ledger, dispatcher, policy) -> EvaluationPass:
    return EvaluationPass(units, ledger, dispatcher, policy)


@pytest.fixture
def add_unit(db: LocalDatabase):
    """Insert a unit; last_seen_ago is a timedelta before NOW (None = never seen)."""

    def _add(
        unit_id: str,
        last_seen_ago: timedelta | None = timedelta(seconds=30),
        battery_level: int | None = 80,
        is_online: bool = True,
        owner_id: str | None = OWNER,
        display_name: str = "",
    ) -> Unit:
        unit = Unit(
            id=unit_id,
            owner_id=owner_id,
            display_name=display_name or f"Unit {unit_id}",
            last_seen_at=NOW - last_seen_ago if last_seen_ago is not None else None,
            battery_level=battery_level,
            is_online=is_online,
        )
        db.save_unit(unit)
        return unit

    return _add
