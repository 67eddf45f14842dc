"""Tests for low-battery detection, hysteresis and re-arming."""

from __future__ import annotations

from datetime import timedelta

import pytest

from device_monitor.common.config import NotificationRecord, NotificationType
from device_monitor.services.detectors import BatteryDetector
from fakes import FailingUnitStore


def _ids(units) -> set[str]:
    return {u.id for u in units}


def _record(sent_at, level=None) -> NotificationRecord:
    context = {} if level is None else {"battery_level": level}
    return NotificationRecord("u1", NotificationType.BATTERY_LOW, "user-1", sent_at, context)


def test_low_battery_without_record_is_candidate(units, ledger, policy, now, add_unit) -> None:
    add_unit("low", battery_level=15)
    add_unit("ok", battery_level=20)
    add_unit("unknown", battery_level=None)
    add_unit("unowned", battery_level=5, owner_id=None)

    assert _ids(BatteryDetector(units, ledger, policy).find_candidates(now)) == {"low"}


@pytest.mark.parametrize(
    ("sent_ago", "level", "expected"),
    [
        (timedelta(hours=1), 15, False),   # in cooldown, never recovered
        (timedelta(hours=1), 29, False),   # in cooldown, under recovery line
        (timedelta(hours=1), 30, True),    # recovered to the line re-arms
        (timedelta(hours=1), None, True),  # in cooldown, nothing recorded
        (timedelta(hours=12), 15, True),   # cooldown elapsed
    ],
)
def test_is_due(units, ledger, policy, now, sent_ago, level, expected) -> None:
    detector = BatteryDetector(units, ledger, policy)

    assert detector.is_due(_record(now - sent_ago, level), now) is expected


def test_rearm_records_recovered_level(units, ledger, db, policy, now, add_unit) -> None:
    add_unit("u1", battery_level=35)
    ledger.upsert("u1", NotificationType.BATTERY_LOW, "user-1", now - timedelta(hours=1), {"battery_level": 15})
    detector = BatteryDetector(units, ledger, policy)

    assert detector.rearm(now) == 1

    record = ledger.get("u1", NotificationType.BATTERY_LOW)
    assert record.context_data["battery_level"] == 35
    assert record.last_sent_at == now - timedelta(hours=1)
    # Already armed: nothing more to record
    assert detector.rearm(now) == 0


def test_rearm_ignores_units_never_alerted(units, ledger, policy, now, add_unit) -> None:
    add_unit("u1", battery_level=90)

    assert BatteryDetector(units, ledger, policy).rearm(now) == 0
    assert ledger.get("u1", NotificationType.BATTERY_LOW) is None


def test_hysteresis_recharge_above_recovery_line_rearms(units, ledger, db, policy, now, add_unit) -> None:
    """15% alerted, charged to 35%, dropped to 18% inside the cooldown: alert again."""
    add_unit("u1", battery_level=15)
    detector = BatteryDetector(units, ledger, policy)
    assert _ids(detector.find_candidates(now)) == {"u1"}
    ledger.upsert("u1", NotificationType.BATTERY_LOW, "user-1", now, {"battery_level": 15})

    db.set_battery_level("u1", 35)
    detector.rearm(now + timedelta(hours=1))

    db.set_battery_level("u1", 18)
    detector.rearm(now + timedelta(hours=2))
    assert _ids(detector.find_candidates(now + timedelta(hours=2))) == {"u1"}


def test_hysteresis_hovering_under_recovery_line_stays_suppressed(units, ledger, db, policy, now, add_unit) -> None:
    """15% alerted, rose to 22%, dropped to 18% inside the cooldown: no alert."""
    add_unit("u1", battery_level=15)
    ledger.upsert("u1", NotificationType.BATTERY_LOW, "user-1", now, {"battery_level": 15})
    detector = BatteryDetector(units, ledger, policy)

    db.set_battery_level("u1", 22)
    assert detector.rearm(now + timedelta(hours=1)) == 0

    db.set_battery_level("u1", 18)
    assert detector.find_candidates(now + timedelta(hours=2)) == []
    # Cooldown elapses
    assert _ids(detector.find_candidates(now + timedelta(hours=12))) == {"u1"}


def test_unsampled_peak_does_not_rearm(units, ledger, db, policy, now, add_unit) -> None:
    """A recharge that is never observed by a pass can't re-arm the alert."""
    add_unit("u1", battery_level=15)
    ledger.upsert("u1", NotificationType.BATTERY_LOW, "user-1", now, {"battery_level": 15})
    detector = BatteryDetector(units, ledger, policy)

    db.set_battery_level("u1", 40)
    db.set_battery_level("u1", 18)  # dropped again before the next pass

    detector.rearm(now + timedelta(minutes=1))
    assert detector.find_candidates(now + timedelta(minutes=1)) == []


def test_store_read_failure_returns_empty(ledger, policy, now) -> None:
    detector = BatteryDetector(FailingUnitStore(), ledger, policy)

    assert detector.find_candidates(now) == []
    assert detector.rearm(now) == 0


def test_record_without_level_does_not_suppress(units, ledger, policy, now, add_unit) -> None:
    add_unit("u1", battery_level=15)
    ledger.upsert("u1", NotificationType.BATTERY_LOW, "user-1", now - timedelta(hours=1), {})
    detector = BatteryDetector(units, ledger, policy)

    assert _ids(detector.find_candidates(now)) == {"u1"}


def test_rearm_skips_record_without_level(units, ledger, policy, now, add_unit) -> None:
    add_unit("u1", battery_level=90)
    ledger.upsert("u1", NotificationType.BATTERY_LOW, "user-1", now - timedelta(hours=1), {})

    assert BatteryDetector(units, ledger, policy).rearm(now) == 0
    assert ledger.get("u1", NotificationType.BATTERY_LOW).context_data == {}
