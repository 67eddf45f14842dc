"""Tests for environment-driven settings."""

from __future__ import annotations

from datetime import timedelta

import pytest

from device_monitor.common.config import MonitorPolicy
from device_monitor.common.exceptions import ConfigError
from device_monitor.common.settings import MonitorSettings


def test_defaults_match_policy_defaults() -> None:
    assert MonitorSettings().to_policy() == MonitorPolicy()


def test_env_overrides_feed_policy(monkeypatch) -> None:
    monkeypatch.setenv("OFFLINE_THRESHOLD_MINUTES", "15")
    monkeypatch.setenv("BATTERY_COOLDOWN_HOURS", "6")
    monkeypatch.setenv("BATTERY_LOW_THRESHOLD", "10")

    policy = MonitorSettings().to_policy()

    assert policy.offline_threshold == timedelta(minutes=15)
    assert policy.battery_cooldown == timedelta(hours=6)
    assert policy.battery_low_threshold == 10
    assert policy.battery_recovery_threshold == 30


@pytest.mark.parametrize(
    "overrides",
    [
        {"battery_low_threshold": 30, "battery_recovery_threshold": 30},
        {"battery_recovery_threshold": 120},
        {"offline_cooldown_hours": 0},
        {"recovery_window_minutes": -1},
    ],
)
def test_invalid_policy_is_rejected(overrides) -> None:
    with pytest.raises(ConfigError):
        MonitorSettings(**overrides).to_policy()


def test_validate_backend() -> None:
    configured = {"supabase_url": "https://demo.supabase.co", "supabase_service_key": "key"}

    MonitorSettings(**configured).validate_backend()
    MonitorSettings(store_backend="sqlite", **configured).validate_backend()

    with pytest.raises(ConfigError):
        MonitorSettings(store_backend="redis", **configured).validate_backend()
    with pytest.raises(ConfigError) as exc_info:
        MonitorSettings(supabase_url="", supabase_service_key="").validate_backend()
    assert exc_info.value.recoverable is False
