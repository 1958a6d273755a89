"""Declarative device onboarding.

Reconciles a declaration against what a device already has, applies the
difference through ordered appliers and rolls the device back on failure.
"""
from .engine import Applier, DeclarationProcessor, DeviceClient, HandlerContext, HandlerResult
from .errors import (
    ApplierError,
    DeviceBusyError,
    DeviceCommunicationError,
    OnboardingError,
    StateError,
    TelemetryError,
    ValidationError,
)
from .tasks import TaskManager, TaskResponse

__version__ = "0.1.0"

__all__ = [
    "Applier",
    "DeclarationProcessor",
    "DeviceClient",
    "HandlerContext",
    "HandlerResult",
    "TaskManager",
    "TaskResponse",
    "OnboardingError",
    "ValidationError",
    "DeviceCommunicationError",
    "ApplierError",
    "TelemetryError",
    "DeviceBusyError",
    "StateError",
]
