"""Tests for offline candidate detection."""

from __future__ import annotations

from datetime import timedelta

from device_monitor.common.config import NotificationType
from device_monitor.services.detectors import OfflineDetector
from fakes import FailingUnitStore


def _ids(units) -> set[str]:
    return {u.id for u in units}


def test_never_notified_stale_unit_is_candidate(units, ledger, policy, now, add_unit) -> None:
    add_unit("stale", last_seen_ago=timedelta(minutes=11))
    add_unit("fresh", last_seen_ago=timedelta(minutes=9))

    candidates = OfflineDetector(units, ledger, policy).find_candidates(now)

    assert _ids(candidates) == {"stale"}


def test_staleness_ignores_online_flag(units, ledger, policy, now, add_unit) -> None:
    """Detection works from the timestamp even if the sweeper hasn't run."""
    add_unit("still-flagged", last_seen_ago=timedelta(minutes=30), is_online=True)
    add_unit("already-flagged", last_seen_ago=timedelta(minutes=30), is_online=False)

    candidates = OfflineDetector(units, ledger, policy).find_candidates(now)

    assert _ids(candidates) == {"still-flagged", "already-flagged"}


def test_unowned_and_never_seen_units_are_skipped(units, ledger, policy, now, add_unit) -> None:
    add_unit("unowned", last_seen_ago=timedelta(hours=1), owner_id=None)
    add_unit("never-seen", last_seen_ago=None)

    assert OfflineDetector(units, ledger, policy).find_candidates(now) == []


def test_cooldown_suppresses_then_expires(units, ledger, policy, now, add_unit) -> None:
    add_unit("u1", last_seen_ago=timedelta(hours=3))
    ledger.upsert("u1", NotificationType.OFFLINE, "user-1", now - timedelta(hours=2), {})
    detector = OfflineDetector(units, ledger, policy)

    assert detector.find_candidates(now) == []
    # 22h later the last alert is exactly one cooldown old
    assert _ids(detector.find_candidates(now + timedelta(hours=22))) == {"u1"}


def test_other_notification_types_do_not_suppress(units, ledger, policy, now, add_unit) -> None:
    add_unit("u1", last_seen_ago=timedelta(hours=1))
    ledger.upsert("u1", NotificationType.BATTERY_LOW, "user-1", now, {"battery_level": 10})

    assert _ids(OfflineDetector(units, ledger, policy).find_candidates(now)) == {"u1"}


def test_store_read_failure_returns_empty(ledger, policy, now) -> None:
    assert OfflineDetector(FailingUnitStore(), ledger, policy).find_candidates(now) == []
