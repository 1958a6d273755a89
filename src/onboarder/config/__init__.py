"""Engine configuration."""
from .settings import Settings, TelemetrySettings, RetrySettings, load_settings, find_settings_file

__all__ = ["Settings", "TelemetrySettings", "RetrySettings", "load_settings", "find_settings_file"]
