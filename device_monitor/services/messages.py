"""
Push Message Templates

Builds the type-specific push message for each detector's candidates.
All data values are strings (FCM data payloads only carry strings).
"""

from ..common.config import NotificationType, PushMessage, Unit

DEFAULT_CHANNEL = "device_alerts"


def format_offline_message(unit: Unit, channel: str = DEFAULT_CHANNEL) -> PushMessage:
    return PushMessage(
        type=NotificationType.OFFLINE.push_type,
        title=f"{unit.name} is offline",
        body="Your device hasn't been seen for a while. Check the connection.",
        data={
            "unit_id": unit.id,
            "device_name": unit.name,
        },
        channel=channel,
    )


def format_battery_low_message(unit: Unit, channel: str = DEFAULT_CHANNEL) -> PushMessage:
    return PushMessage(
        type=NotificationType.BATTERY_LOW.push_type,
        title=f"{unit.name} battery low",
        body=f"Battery is at {unit.battery_level}%. Charge your device soon.",
        data={
            "unit_id": unit.id,
            "device_name": unit.name,
            "battery_level": str(unit.battery_level),
        },
        channel=channel,
    )


def format_online_message(unit: Unit, channel: str = DEFAULT_CHANNEL) -> PushMessage:
    return PushMessage(
        type=NotificationType.ONLINE.push_type,
        title=f"{unit.name} is back online",
        body="Your device is connected again.",
        data={
            "unit_id": unit.id,
            "device_name": unit.name,
        },
        channel=channel,
    )


MESSAGE_BUILDERS = {
    NotificationType.OFFLINE: format_offline_message,
    NotificationType.BATTERY_LOW: format_battery_low_message,
    NotificationType.ONLINE: format_online_message,
}


def format_message(
    notification_type: NotificationType,
    unit: Unit,
    channel: str = DEFAULT_CHANNEL,
) -> PushMessage:
    """Build the push message for a notification type"""
    return MESSAGE_BUILDERS[notification_type](unit, channel)
