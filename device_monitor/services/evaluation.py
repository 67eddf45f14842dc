"""
Evaluation Pass

One scheduled reconciliation cycle:
1. Sweep stale units offline
2. Offline alerts
3. Low-battery alerts (after re-arming recovered batteries)
4. Back-online alerts

For each candidate the message is dispatched and the ledger is upserted when
the dispatch "occurred": at least one receiver got it, or the user has no
registered receivers at all (otherwise the unit would be recomputed as a
candidate on every pass forever). Any other failure leaves the ledger alone,
so the unit is simply a candidate again next pass; that is the only retry
mechanism.

Store read failures are contained inside each detector; ledger write and
dispatch failures are contained per unit. Anything else aborts the pass.
"""

from datetime import datetime
from typing import Any, Callable

from ..common.config import (
    EvaluationSummary,
    MonitorPolicy,
    NotificationType,
    StageCounts,
    Unit,
    format_timestamp,
)
from ..common.exceptions import DispatchError, StoreError
from ..common.logging_setup import get_service_logger, log_notification
from ..common.settings import MonitorSettings, get_settings
from .detectors import BatteryDetector, OfflineDetector, RecoveryDetector
from .messages import DEFAULT_CHANNEL, format_message
from .push import Dispatcher, PushGateway
from .store.base import NotificationLedger, UnitStore
from .store.local_db import LocalDatabase, LocalNotificationLedger, LocalUnitStore
from .store.supabase_store import SupabaseNotificationLedger, SupabaseUnitStore
from .supabase import get_supabase
from .sweeper import StalenessSweeper

logger = get_service_logger("evaluation")


def _offline_context(unit: Unit, now: datetime) -> dict[str, Any]:
    return {"last_seen_at": format_timestamp(unit.last_seen_at)}


def _battery_context(unit: Unit, now: datetime) -> dict[str, Any]:
    return {"battery_level": unit.battery_level}


def _online_context(unit: Unit, now: datetime) -> dict[str, Any]:
    return {"recovered_at": format_timestamp(now)}


CONTEXT_BUILDERS: dict[NotificationType, Callable[[Unit, datetime], dict[str, Any]]] = {
    NotificationType.OFFLINE: _offline_context,
    NotificationType.BATTERY_LOW: _battery_context,
    NotificationType.ONLINE: _online_context,
}


class EvaluationPass:
    """Runs sweeper + detectors, dispatches alerts and maintains the ledger"""

    def __init__(
        self,
        units: UnitStore,
        ledger: NotificationLedger,
        dispatcher: Dispatcher,
        policy: MonitorPolicy | None = None,
        channel: str = DEFAULT_CHANNEL,
    ):
        self.units = units
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.policy = (policy or MonitorPolicy()).validate()
        self.channel = channel

        self.sweeper = StalenessSweeper(units, self.policy)
        self.offline_detector = OfflineDetector(units, ledger, self.policy)
        self.battery_detector = BatteryDetector(units, ledger, self.policy)
        self.recovery_detector = RecoveryDetector(units, ledger, self.policy)

    async def run(self, now: datetime) -> EvaluationSummary:
        """
        Run one evaluation pass.

        Args:
            now: Evaluation time (aware UTC); never read from the clock here

        Returns:
            Per-stage checked/notified counts and the number of units marked offline
        """
        logger.info("Starting device status check...", extra={"now": now.isoformat()})
        summary = EvaluationSummary()

        # Step 1: staleness flag
        summary.marked_offline = self.sweeper.sweep(now)

        # Step 2: offline alerts
        offline = self.offline_detector.find_candidates(now)
        logger.info(f"Found {len(offline)} newly offline devices")
        await self._notify_all(NotificationType.OFFLINE, offline, summary.offline, now)

        # Step 3: battery alerts
        summary.battery_low.rearmed = self.battery_detector.rearm(now)
        low_battery = self.battery_detector.find_candidates(now)
        logger.info(f"Found {len(low_battery)} low battery devices")
        await self._notify_all(NotificationType.BATTERY_LOW, low_battery, summary.battery_low, now)

        # Step 4: recovery alerts
        recovered = self.recovery_detector.find_candidates(now)
        logger.info(f"Found {len(recovered)} recovered devices")
        await self._notify_all(NotificationType.ONLINE, recovered, summary.online, now)

        logger.info("Device status check complete", extra={"results": summary.to_dict()})
        return summary

    async def _notify_all(
        self,
        notification_type: NotificationType,
        candidates: list[Unit],
        counts: StageCounts,
        now: datetime,
    ) -> None:
        counts.checked = len(candidates)
        for unit in candidates:
            if await self.notify(notification_type, unit, now):
                counts.notified += 1

    async def notify(self, notification_type: NotificationType, unit: Unit, now: datetime) -> bool:
        """
        Dispatch one alert and record it in the ledger if it occurred.

        Returns:
            True if at least one receiver got the message
        """
        user_id = unit.owner_id
        message = format_message(notification_type, unit, self.channel)

        try:
            result = await self.dispatcher.send(user_id, message, unit.id)
        except DispatchError as e:
            # Transient: no ledger write, unit stays a candidate
            log_notification(
                logger, unit.id, notification_type.value, "failed",
                user_id=user_id, error=str(e),
            )
            return False

        if result.sent > 0:
            outcome = "sent"
        elif result.skipped:
            outcome = result.skipped
        else:
            outcome = "undelivered"
        log_notification(logger, unit.id, notification_type.value, outcome, user_id=user_id, sent=result.sent)

        if result.occurred:
            try:
                self.ledger.upsert(
                    unit.id,
                    notification_type,
                    user_id,
                    now,
                    CONTEXT_BUILDERS[notification_type](unit, now),
                )
            except StoreError as e:
                # Not durable this pass; the condition persists so it's retried
                logger.warning(
                    f"Failed to record {notification_type.value} notification for unit {unit.id}: {e}",
                    extra={"unit_id": unit.id},
                )

        return result.sent > 0


def create_evaluation_pass(settings: MonitorSettings | None = None) -> EvaluationPass:
    """Wire an EvaluationPass from settings (store backend, push gateway, policy)"""
    settings = settings or get_settings()
    policy = settings.to_policy()
    settings.validate_backend()

    client = get_supabase()
    if settings.store_backend == "sqlite":
        db = LocalDatabase(settings.sqlite_path)
        units: UnitStore = LocalUnitStore(db)
        ledger: NotificationLedger = LocalNotificationLedger(db)
    else:
        units = SupabaseUnitStore(client, settings.units_table)
        ledger = SupabaseNotificationLedger(client, settings.ledger_table)

    gateway = PushGateway(
        client,
        project_id=settings.fcm_project_id,
        access_token=settings.fcm_access_token,
        timeout_seconds=settings.push_timeout_seconds,
    )
    return EvaluationPass(units, ledger, gateway, policy, channel=settings.push_channel_id)
