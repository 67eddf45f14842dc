"""
Offline Detector

Finds owned units whose heartbeat is stale and that are due for an offline
alert. Staleness is re-derived from last_seen_at rather than the is_online
flag, so the result is correct even if the sweeper hasn't run this cycle.

A unit that stays offline is re-alerted once per offline_cooldown window.
"""

from datetime import datetime

from ...common.config import MonitorPolicy, NotificationType, Unit
from ...common.exceptions import StoreReadError
from ...common.logging_setup import get_service_logger
from ..store.base import NotificationLedger, UnitStore

logger = get_service_logger("detectors.offline")


class OfflineDetector:
    """Stale units outside the offline cooldown"""

    notification_type = NotificationType.OFFLINE

    def __init__(self, units: UnitStore, ledger: NotificationLedger, policy: MonitorPolicy):
        self.units = units
        self.ledger = ledger
        self.policy = policy

    def find_candidates(self, now: datetime) -> list[Unit]:
        """
        Args:
            now: Evaluation time

        Returns:
            Units to alert, or [] if the stores couldn't be read this pass
        """
        stale_cutoff = now - self.policy.offline_threshold
        cooldown_cutoff = now - self.policy.offline_cooldown

        try:
            stale = self.units.list_stale(stale_cutoff)
            if not stale:
                return []

            records = self.ledger.get_many([u.id for u in stale], self.notification_type)
        except StoreReadError as e:
            logger.error(f"Error fetching offline candidates: {e}")
            return []

        logger.debug(
            f"Found {len(stale)} units with stale heartbeats (threshold: {stale_cutoff.isoformat()})"
        )

        # Drop units notified within the cooldown window
        return [
            unit for unit in stale
            if unit.id not in records or records[unit.id].last_sent_at <= cooldown_cutoff
        ]
