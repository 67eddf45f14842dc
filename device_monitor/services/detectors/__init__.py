"""
Detectors

Each detector's find_candidates() is a read-only query over unit state +
the ledger at an explicit `now`:
- offline.py - stale heartbeats outside the offline cooldown
- battery.py - low battery with hysteresis + cooldown
- recovery.py - heartbeating again after an offline alert
"""

from .offline import OfflineDetector
from .battery import BatteryDetector
from .recovery import RecoveryDetector

__all__ = ["OfflineDetector", "BatteryDetector", "RecoveryDetector"]
