"""
Custom Exception Classes for the Device Monitor

Hierarchical exception structure for error handling across the evaluation pass.
"""


class DeviceMonitorError(Exception):
    """Base exception for all device monitor errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(DeviceMonitorError):
    """Configuration-related errors"""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(f"Config Error: {message}", recoverable)


class StoreError(DeviceMonitorError):
    """Unit store / ledger access errors"""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        table: str | None = None,
    ):
        self.operation = operation
        self.table = table
        super().__init__(f"Store Error: {message}", recoverable=True)


class StoreReadError(StoreError):
    """A query against the unit store or ledger failed"""


class StoreWriteError(StoreError):
    """An update or upsert against the unit store or ledger failed"""


class DispatchError(DeviceMonitorError):
    """Transient notification delivery failure"""

    def __init__(
        self,
        message: str,
        user_id: str | None = None,
        unit_id: str | None = None,
    ):
        self.user_id = user_id
        self.unit_id = unit_id
        super().__init__(f"Dispatch Error: {message}", recoverable=True)
