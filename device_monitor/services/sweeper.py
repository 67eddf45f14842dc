"""
Staleness Sweeper

Flips is_online to false for units whose heartbeat is older than the
offline threshold. Pure state transition, no notification side effect.
"""

from datetime import datetime

from ..common.config import MonitorPolicy
from ..common.exceptions import StoreError
from ..common.logging_setup import get_service_logger
from .store.base import UnitStore

logger = get_service_logger("sweeper")


class StalenessSweeper:
    """Marks stale units offline"""

    def __init__(self, units: UnitStore, policy: MonitorPolicy):
        self.units = units
        self.policy = policy

    def sweep(self, now: datetime) -> int:
        """
        Mark every online unit with last_seen_at < now - offline_threshold as offline.

        Idempotent: a second call with no new heartbeats in between returns 0.

        Returns:
            Number of units changed (0 if the write failed; retried next pass)
        """
        cutoff = now - self.policy.offline_threshold
        try:
            changed = self.units.mark_offline(cutoff)
        except StoreError as e:
            logger.error(f"Staleness sweep failed: {e}", extra={"cutoff": cutoff.isoformat()})
            return 0

        if changed:
            logger.info(
                f"Marked {changed} units offline (threshold: {cutoff.isoformat()})",
                extra={"marked_offline": changed},
            )
        return changed
