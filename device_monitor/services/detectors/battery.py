"""
Battery Detector

Finds owned units under the low-battery threshold that are due for an alert.

Hysteresis + cooldown:
- Never notified -> alert
- Last alert older than battery_cooldown -> alert
- Last alert has no recorded level, or it is >= battery_recovery_threshold -> alert
  (the unit charged back up and dropped again; re-arms inside the cooldown)
- Otherwise suppressed

The recorded level is only ever the level at the last alert, or a recovered
level sampled by rearm() on a later pass. A unit that charges above the
recovery threshold and drops again between two passes is never sampled at
its peak and does not re-arm; this is a precision bound of the polling
interval.
"""

from datetime import datetime

from ...common.config import MonitorPolicy, NotificationRecord, NotificationType, Unit
from ...common.exceptions import StoreError, StoreReadError
from ...common.logging_setup import get_service_logger
from ..store.base import NotificationLedger, UnitStore

logger = get_service_logger("detectors.battery")


def recorded_level(record: NotificationRecord) -> int | None:
    """Battery level stored in a battery_low record's context, if any"""
    level = record.context_data.get("battery_level")
    if level is None:
        return None
    try:
        return int(level)
    except (TypeError, ValueError):
        return None


class BatteryDetector:
    """Low-battery units due for an alert"""

    notification_type = NotificationType.BATTERY_LOW

    def __init__(self, units: UnitStore, ledger: NotificationLedger, policy: MonitorPolicy):
        self.units = units
        self.ledger = ledger
        self.policy = policy

    def is_due(self, record: NotificationRecord | None, now: datetime) -> bool:
        """Decide whether a low-battery unit with this prior record gets an alert"""
        if record is None:
            return True
        if record.last_sent_at <= now - self.policy.battery_cooldown:
            return True
        level = recorded_level(record)
        # No recorded level: nothing to hold the alert back
        return level is None or level >= self.policy.battery_recovery_threshold

    def find_candidates(self, now: datetime) -> list[Unit]:
        """
        Args:
            now: Evaluation time

        Returns:
            Units to alert, or [] if the stores couldn't be read this pass
        """
        try:
            low = self.units.list_low_battery(self.policy.battery_low_threshold)
            if not low:
                return []

            records = self.ledger.get_many([u.id for u in low], self.notification_type)
        except StoreReadError as e:
            logger.error(f"Error finding low battery devices: {e}")
            return []

        return [unit for unit in low if self.is_due(records.get(unit.id), now)]

    def rearm(self, now: datetime) -> int:
        """
        Record recovered battery levels on suppressed battery_low records.

        For owned units currently at or above the recovery threshold whose
        last alert recorded a level below it, overwrite the recorded level
        with the observed one. last_sent_at is untouched.

        Returns:
            Number of records re-armed
        """
        threshold = self.policy.battery_recovery_threshold
        try:
            charged = self.units.list_charged(threshold)
            if not charged:
                return 0
            records = self.ledger.get_many([u.id for u in charged], self.notification_type)
        except StoreReadError as e:
            logger.error(f"Error fetching recovered battery levels: {e}")
            return 0

        rearmed = 0
        for unit in charged:
            record = records.get(unit.id)
            if record is None:
                continue
            level = recorded_level(record)
            if level is None or level >= threshold:
                continue  # already armed

            context = {**record.context_data, "battery_level": unit.battery_level}
            try:
                if self.ledger.record_context(unit.id, self.notification_type, context):
                    rearmed += 1
            except StoreError as e:
                logger.warning(
                    f"Failed to re-arm battery alert for unit {unit.id}: {e}",
                    extra={"unit_id": unit.id},
                )

        if rearmed:
            logger.info(f"Re-armed {rearmed} battery alerts", extra={"rearmed": rearmed})
        return rearmed
