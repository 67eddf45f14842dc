"""
Push Gateway - FCM Delivery

Delivers a push message to every active device token of a user:
1. Checks the user's notification_preferences (missing row = enabled)
2. Loads active push_notification_tokens
3. Sends to each token via the FCM HTTP v1 API (httpx)
4. Logs each delivery to notification_delivery_log

Reports {sent, skipped}; skipped is "no_tokens" when the user has no
registered receiver, "disabled_by_user" when the type is switched off.
Token registration/deactivation is owned by the app backend, not here.
"""

from datetime import datetime, timezone
from typing import Protocol

import httpx
from supabase import Client

from ..common.config import (
    DispatchResult,
    PushMessage,
    SKIP_DISABLED_BY_USER,
    SKIP_NO_TOKENS,
)
from ..common.exceptions import DispatchError
from ..common.logging_setup import get_service_logger

logger = get_service_logger("push")

FCM_SEND_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"

# Map push types to notification_preferences columns
PREFERENCE_COLUMNS = {
    "device_offline": "device_offline_enabled",
    "device_online": "device_online_enabled",
    "battery_low": "battery_low_enabled",
}


class Dispatcher(Protocol):
    """Delivery gateway consumed by the evaluation pass"""

    async def send(self, user_id: str, message: PushMessage, unit_id: str) -> DispatchResult:
        ...


class PushGateway:
    """Sends push notifications through Firebase Cloud Messaging"""

    def __init__(
        self,
        client: Client,
        project_id: str = "",
        access_token: str = "",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = client
        self.project_id = project_id
        self.access_token = access_token
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.project_id and self.access_token)

    def is_enabled(self, user_id: str, push_type: str) -> bool:
        """Check the user's preference for this type (default: enabled)"""
        column = PREFERENCE_COLUMNS.get(push_type)
        if not column:
            return True

        result = self.client.table("notification_preferences").select(column).eq(
            "user_id", user_id
        ).limit(1).execute()

        if not result.data:
            return True
        return result.data[0].get(column) is True

    def get_tokens(self, user_id: str) -> list[dict]:
        """Get all active push tokens for a user"""
        result = self.client.table("push_notification_tokens").select(
            "id, user_id, token, platform"
        ).eq("user_id", user_id).eq("is_active", True).execute()
        return result.data or []

    async def send(self, user_id: str, message: PushMessage, unit_id: str) -> DispatchResult:
        """
        Send a push message to all of a user's active tokens.

        Raises:
            DispatchError: preferences or tokens couldn't be read
        """
        try:
            if not self.is_enabled(user_id, message.type):
                logger.info(f"Notification type {message.type} disabled for user {user_id}")
                return DispatchResult(sent=0, skipped=SKIP_DISABLED_BY_USER)

            tokens = self.get_tokens(user_id)
        except Exception as e:
            raise DispatchError(
                f"Failed to load push targets: {e}", user_id=user_id, unit_id=unit_id
            ) from e

        if not tokens:
            logger.info(f"No push tokens for user {user_id}")
            return DispatchResult(sent=0, skipped=SKIP_NO_TOKENS)

        sent = 0
        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout_seconds) as http:
            for token in tokens:
                try:
                    await self._send_fcm(http, token, message)
                except httpx.HTTPError as e:
                    logger.error(
                        f"Push failed for token {token.get('id')}: {e}",
                        extra={"user_id": user_id, "unit_id": unit_id},
                    )
                    self._log_delivery(user_id, message, unit_id, token, "failed", str(e))
                    continue

                self._log_delivery(user_id, message, unit_id, token, "sent")
                sent += 1

        return DispatchResult(sent=sent)

    async def _send_fcm(self, http: httpx.AsyncClient, token: dict, message: PushMessage) -> None:
        """Send one message to one token via FCM v1"""
        if not self.configured:
            logger.warning("FCM not configured, skipping push")
            return

        data = {
            "type": message.type,
            "click_action": "FLUTTER_NOTIFICATION_CLICK",
            **message.data,
        }
        body = {
            "message": {
                "token": token["token"],
                "notification": {
                    "title": message.title,
                    "body": message.body,
                },
                "data": data,
            }
        }
        # iOS is handled by the notification object
        if token.get("platform") == "android":
            body["message"]["android"] = {
                "priority": "high",
                "notification": {
                    "channel_id": message.channel or "default",
                    "sound": "default",
                },
            }

        response = await http.post(
            FCM_SEND_URL.format(project_id=self.project_id),
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Content-Type": "application/json",
            },
            json=body,
        )
        response.raise_for_status()

    def _log_delivery(
        self,
        user_id: str,
        message: PushMessage,
        unit_id: str,
        token: dict,
        status: str,
        error_message: str | None = None,
    ) -> None:
        row = {
            "user_id": user_id,
            "notification_type": message.type,
            "source_id": unit_id,
            "token_id": token.get("id"),
            "status": status,
        }
        if status == "sent":
            row["sent_at"] = datetime.now(timezone.utc).isoformat()
        if error_message:
            row["error_message"] = error_message

        try:
            self.client.table("notification_delivery_log").insert(row).execute()
        except Exception as e:
            logger.warning(f"Failed to log delivery for token {token.get('id')}: {e}")
