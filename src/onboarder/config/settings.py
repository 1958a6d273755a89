"""Engine settings loaded from YAML with environment overrides."""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class TelemetrySettings:
    """Where usage records are sent."""
    enabled: bool = True
    url: str = "https://product.apis.f5.com/ee/v1/telemetry"
    api_key: str = ""
    timeout: float = 10.0


@dataclass
class RetrySettings:
    """Backoff policy for device client reads."""
    attempts: int = 3
    min_wait: float = 1
    max_wait: float = 10


@dataclass
class Settings:
    """Runtime settings for the engine.

    ```yaml
    state_dir: ~/.onboarder/state
    trace_dir: /tmp
    task_retention_days: 7
    telemetry:
      enabled: false
    retry:
      attempts: 5
    ```
    """
    state_dir: Path = field(default_factory=lambda: Path.home() / ".onboarder" / "state")
    trace_dir: Path = field(default_factory=lambda: Path("/tmp"))
    task_retention_days: int = 7
    telemetry: TelemetrySettings = field(default_factory=TelemetrySettings)
    retry: RetrySettings = field(default_factory=RetrySettings)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        settings = cls()
        if "state_dir" in data:
            settings.state_dir = Path(data["state_dir"]).expanduser()
        if "trace_dir" in data:
            settings.trace_dir = Path(data["trace_dir"]).expanduser()
        if "task_retention_days" in data:
            settings.task_retention_days = int(data["task_retention_days"])

        telemetry = data.get("telemetry") or {}
        for key, value in telemetry.items():
            if hasattr(settings.telemetry, key):
                setattr(settings.telemetry, key, value)

        retry = data.get("retry") or {}
        for key, value in retry.items():
            if hasattr(settings.retry, key):
                setattr(settings.retry, key, value)

        return settings

    def apply_env(self) -> "Settings":
        """Override values from ONBOARDER_* environment variables."""
        env = os.environ
        if "ONBOARDER_STATE_DIR" in env:
            self.state_dir = Path(env["ONBOARDER_STATE_DIR"]).expanduser()
        if "ONBOARDER_TRACE_DIR" in env:
            self.trace_dir = Path(env["ONBOARDER_TRACE_DIR"]).expanduser()
        if "ONBOARDER_TASK_RETENTION_DAYS" in env:
            self.task_retention_days = int(env["ONBOARDER_TASK_RETENTION_DAYS"])
        if "ONBOARDER_TELEMETRY_ENABLED" in env:
            self.telemetry.enabled = env["ONBOARDER_TELEMETRY_ENABLED"].lower() in ("1", "true", "yes")
        if "ONBOARDER_TELEMETRY_URL" in env:
            self.telemetry.url = env["ONBOARDER_TELEMETRY_URL"]
        if "ONBOARDER_TELEMETRY_API_KEY" in env:
            self.telemetry.api_key = env["ONBOARDER_TELEMETRY_API_KEY"]
        if "ONBOARDER_RETRY_ATTEMPTS" in env:
            self.retry.attempts = int(env["ONBOARDER_RETRY_ATTEMPTS"])
        return self


def find_settings_file() -> Optional[Path]:
    """Find onboarder.yaml in the usual places, or None."""
    search_paths = [
        Path.cwd() / "configs" / "onboarder.yaml",
        Path.cwd() / "onboarder.yaml",
        Path.home() / ".config" / "onboarder" / "onboarder.yaml",
        Path("/etc/onboarder/onboarder.yaml"),
    ]

    for path in search_paths:
        if path.exists():
            return path
    return None


def load_settings(config_path: Optional[str] = None) -> Settings:
    """Load settings from YAML (if any) and apply environment overrides.

    An explicit ``config_path`` that does not exist is an error; a missing
    file on the search path just means defaults.
    """
    path = Path(config_path) if config_path else find_settings_file()
    data: dict[str, Any] = {}

    if path is not None:
        if not path.exists():
            raise FileNotFoundError(f"Settings file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        logger.debug(f"Loaded settings from {path}")

    return Settings.from_dict(data).apply_env()
