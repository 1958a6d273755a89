"""Exception types raised while processing a declaration.

Every error carries the HTTP-style result code the task settles with.
Messages are surfaced to the caller verbatim, so they are never wrapped.
"""
from typing import Optional


class OnboardingError(Exception):
    """Base class for all onboarding failures."""

    code: int = 500
    rollback: bool = True

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(OnboardingError):
    """The declaration contradicts itself. Raised before any device call."""

    code = 422
    rollback = False


class DeviceCommunicationError(OnboardingError):
    """A device client call failed."""

    code = 422


class ApplierError(OnboardingError):
    """An applier rejected its slice of the change set."""

    code = 422


class TelemetryError(OnboardingError):
    """The usage record could not be delivered. Never surfaced to callers."""

    rollback = False


class DeviceBusyError(OnboardingError):
    """Another task is already running against the device."""

    code = 503
    rollback = False


class StateError(OnboardingError):
    """Unknown task or device in the state store."""

    code = 404
    rollback = False
