"""Task lifecycle: submit, run, settle, roll back and poll."""
from .manager import TaskManager
from .response import TaskResponse, STATUS_CODES_LEGACY, STATUS_CODES_EXPERIMENTAL, SHOW_FULL

__all__ = [
    "TaskManager",
    "TaskResponse",
    "STATUS_CODES_LEGACY",
    "STATUS_CODES_EXPERIMENTAL",
    "SHOW_FULL",
]
