"""Device state and its persistence."""
from .state import DeviceState, Task, TaskState, mask, DEFAULT_RETENTION_DAYS
from .store import StateStore

__all__ = [
    "DeviceState",
    "Task",
    "TaskState",
    "mask",
    "DEFAULT_RETENTION_DAYS",
    "StateStore",
]
