"""YAML persistence for device state.

Layout:
    <state_dir>/
    ├── bigip-1.yaml
    └── bigip-2.yaml
"""
import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from ..utils.logging_config import timed_section_sync
from ..utils.retry import with_retry
from .state import DeviceState

logger = logging.getLogger(__name__)


class StateStore:
    """Load and save :class:`DeviceState` records."""

    def __init__(self, state_dir: Path):
        self.state_dir = Path(state_dir)
        self.state_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, device_id: str) -> Path:
        safe_id = device_id.replace("/", "_")
        return self.state_dir / f"{safe_id}.yaml"

    def exists(self, device_id: str) -> bool:
        return self._path(device_id).exists()

    def load(self, device_id: str) -> Optional[DeviceState]:
        """Load state for a device, or None if it was never saved."""
        path = self._path(device_id)
        if not path.exists():
            return None
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        data.setdefault("device_id", device_id)
        return DeviceState.from_dict(data)

    @with_retry(max_attempts=3, min_wait=0.1, max_wait=1, exceptions=(OSError,))
    def save(self, state: DeviceState) -> Path:
        """Write state atomically (temp file + rename)."""
        path = self._path(state.device_id)
        tmp_path = path.with_suffix(".yaml.tmp")
        with timed_section_sync("state:save", state.device_id):
            with open(tmp_path, "w") as f:
                yaml.safe_dump(state.to_dict(), f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, path)
        logger.debug(f"Saved state for {state.device_id} to {path}")
        return path

    def delete(self, device_id: str) -> bool:
        path = self._path(device_id)
        if path.exists():
            path.unlink()
            return True
        return False

    def list_devices(self) -> list[str]:
        return sorted(p.stem for p in self.state_dir.glob("*.yaml"))
