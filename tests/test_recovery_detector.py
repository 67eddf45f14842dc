"""Tests for back-online detection and offline/online pairing."""

from __future__ import annotations

from datetime import timedelta

from device_monitor.common.config import NotificationType
from device_monitor.services.detectors import RecoveryDetector
from fakes import FailingUnitStore


def _ids(units) -> set[str]:
    return {u.id for u in units}


def test_heartbeating_unit_with_open_offline_episode_recovers(units, ledger, policy, now, add_unit) -> None:
    add_unit("u1", last_seen_ago=timedelta(minutes=1))
    ledger.upsert("u1", NotificationType.OFFLINE, "user-1", now - timedelta(minutes=5), {})

    assert _ids(RecoveryDetector(units, ledger, policy).find_candidates(now)) == {"u1"}


def test_requires_recent_heartbeat(units, ledger, policy, now, add_unit) -> None:
    add_unit("u1", last_seen_ago=timedelta(minutes=3))
    ledger.upsert("u1", NotificationType.OFFLINE, "user-1", now - timedelta(minutes=30), {})

    assert RecoveryDetector(units, ledger, policy).find_candidates(now) == []


def test_requires_offline_record(units, ledger, policy, now, add_unit) -> None:
    add_unit("u1", last_seen_ago=timedelta(seconds=10))

    assert RecoveryDetector(units, ledger, policy).find_candidates(now) == []


def test_offline_record_outside_cooldown_is_closed(units, ledger, policy, now, add_unit) -> None:
    add_unit("u1", last_seen_ago=timedelta(seconds=10))
    ledger.upsert("u1", NotificationType.OFFLINE, "user-1", now - timedelta(hours=25), {})

    assert RecoveryDetector(units, ledger, policy).find_candidates(now) == []


def test_online_record_newer_than_offline_excludes(units, ledger, policy, now, add_unit) -> None:
    add_unit("u1", last_seen_ago=timedelta(seconds=10))
    ledger.upsert("u1", NotificationType.OFFLINE, "user-1", now - timedelta(hours=2), {})
    ledger.upsert("u1", NotificationType.ONLINE, "user-1", now - timedelta(hours=1), {})

    assert RecoveryDetector(units, ledger, policy).find_candidates(now) == []


def test_online_record_older_than_new_offline_episode_includes(units, ledger, policy, now, add_unit) -> None:
    add_unit("u1", last_seen_ago=timedelta(seconds=10))
    ledger.upsert("u1", NotificationType.ONLINE, "user-1", now - timedelta(hours=3), {})
    ledger.upsert("u1", NotificationType.OFFLINE, "user-1", now - timedelta(hours=1), {})

    assert _ids(RecoveryDetector(units, ledger, policy).find_candidates(now)) == {"u1"}


def test_unowned_units_are_skipped(units, ledger, policy, now, add_unit) -> None:
    add_unit("u1", last_seen_ago=timedelta(seconds=10), owner_id=None)
    ledger.upsert("u1", NotificationType.OFFLINE, "user-1", now - timedelta(minutes=5), {})

    assert RecoveryDetector(units, ledger, policy).find_candidates(now) == []


def test_store_read_failure_returns_empty(ledger, policy, now) -> None:
    assert RecoveryDetector(FailingUnitStore(), ledger, policy).find_candidates(now) == []
