"""
Monitor Settings

Application settings loaded from environment variables (or a .env file).

Alerting cadence is an operational tuning knob, so every policy constant
can be overridden without a code change, e.g.:
- OFFLINE_THRESHOLD_MINUTES=15
- BATTERY_COOLDOWN_HOURS=6
"""

from datetime import timedelta
from functools import lru_cache

from pydantic_settings import BaseSettings

from .config import MonitorPolicy
from .exceptions import ConfigError


class MonitorSettings(BaseSettings):
    """
    Settings for the device status monitor.

    Create a .env file with:
    - SUPABASE_URL=https://xxx.supabase.co
    - SUPABASE_SERVICE_KEY=your-service-role-key
    """
    # Policy
    offline_threshold_minutes: float = 10
    offline_cooldown_hours: float = 24
    battery_low_threshold: int = 20
    battery_recovery_threshold: int = 30
    battery_cooldown_hours: float = 12
    recovery_window_minutes: float = 2

    # Storage
    store_backend: str = "supabase"  # supabase, sqlite
    supabase_url: str = ""
    supabase_service_key: str = ""
    sqlite_path: str = "device_monitor.db"
    units_table: str = "units"
    ledger_table: str = "notification_ledger"

    # Trigger
    cron_secret: str = ""

    # Push delivery
    fcm_project_id: str = ""
    fcm_access_token: str = ""
    push_channel_id: str = "device_alerts"
    push_timeout_seconds: float = 10.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def supabase_key(self) -> str:
        """Get the Supabase key (from SUPABASE_SERVICE_KEY env var)."""
        return self.supabase_service_key

    @property
    def fcm_configured(self) -> bool:
        return bool(self.fcm_project_id and self.fcm_access_token)

    def to_policy(self) -> MonitorPolicy:
        """Build and validate the alerting policy from the configured knobs"""
        policy = MonitorPolicy(
            offline_threshold=timedelta(minutes=self.offline_threshold_minutes),
            offline_cooldown=timedelta(hours=self.offline_cooldown_hours),
            battery_low_threshold=self.battery_low_threshold,
            battery_recovery_threshold=self.battery_recovery_threshold,
            battery_cooldown=timedelta(hours=self.battery_cooldown_hours),
            recovery_window=timedelta(minutes=self.recovery_window_minutes),
        )
        return policy.validate()

    def validate_backend(self) -> None:
        """Raise ConfigError if the selected store backend can't be built.

        Supabase credentials are needed with either backend: push tokens and
        notification preferences always live in Supabase.
        """
        if self.store_backend not in ("supabase", "sqlite"):
            raise ConfigError(
                f"Unknown STORE_BACKEND '{self.store_backend}' (expected supabase or sqlite)",
                recoverable=False,
            )
        if not (self.supabase_url and self.supabase_key):
            raise ConfigError(
                "Supabase credentials not configured. "
                "Set SUPABASE_URL and SUPABASE_SERVICE_KEY in .env file.",
                recoverable=False,
            )


@lru_cache()
def get_settings() -> MonitorSettings:
    """Get cached settings."""
    return MonitorSettings()
