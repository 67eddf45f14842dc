"""
Recovery Detector

Finds units that are heartbeating again after an offline alert and haven't
yet had a matching back-online alert.

A unit is recovered if:
1. Its last heartbeat is within recovery_window of now
2. It has an offline record sent within offline_cooldown of now (an open episode)
3. It has no online record, or its online record is older than that offline record
"""

from datetime import datetime

from ...common.config import MonitorPolicy, NotificationType, Unit
from ...common.exceptions import StoreReadError
from ...common.logging_setup import get_service_logger
from ..store.base import NotificationLedger, UnitStore

logger = get_service_logger("detectors.recovery")


class RecoveryDetector:
    """Units closing an open offline episode"""

    notification_type = NotificationType.ONLINE

    def __init__(self, units: UnitStore, ledger: NotificationLedger, policy: MonitorPolicy):
        self.units = units
        self.ledger = ledger
        self.policy = policy

    def find_candidates(self, now: datetime) -> list[Unit]:
        """
        Args:
            now: Evaluation time

        Returns:
            One entry per un-acknowledged recovery, or [] if the stores
            couldn't be read this pass
        """
        recent_cutoff = now - self.policy.recovery_window
        cooldown_cutoff = now - self.policy.offline_cooldown

        try:
            active = self.units.list_recently_seen(recent_cutoff)
            if not active:
                return []

            offline_records = self.ledger.get_many(
                [u.id for u in active], NotificationType.OFFLINE
            )
            open_episodes = {
                unit_id: record for unit_id, record in offline_records.items()
                if record.last_sent_at > cooldown_cutoff
            }
            if not open_episodes:
                return []

            online_records = self.ledger.get_many(list(open_episodes), NotificationType.ONLINE)
        except StoreReadError as e:
            logger.error(f"Error fetching recently active devices: {e}")
            return []

        recovered = []
        for unit in active:
            offline_record = open_episodes.get(unit.id)
            if offline_record is None:
                continue
            online_record = online_records.get(unit.id)
            if online_record and online_record.last_sent_at >= offline_record.last_sent_at:
                continue  # recovery already sent for this episode
            recovered.append(unit)

        return recovered
