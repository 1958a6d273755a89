"""Utility modules for the onboarding engine."""
from .logging_config import setup_logging, timed, timed_section, timed_section_sync
from .retry import with_retry, call_with_retry, RETRYABLE_EXCEPTIONS

__all__ = [
    "setup_logging",
    "timed",
    "timed_section",
    "timed_section_sync",
    "with_retry",
    "call_with_retry",
    "RETRYABLE_EXCEPTIONS",
]
