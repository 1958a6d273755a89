"""Debug tracing of what a run saw and decided.

``controls.trace`` writes the masked current config, desired config and
diff as JSON files. ``controls.traceResponse`` keeps them on the task so
they come back in the poll response.
"""
import json
import logging
from pathlib import Path
from typing import Any, Optional

from ..state.state import Task, mask

logger = logging.getLogger(__name__)

CURRENT_CONFIG_FILE = "DO_current.json"
DESIRED_CONFIG_FILE = "DO_desired.json"
DIFF_FILE = "DO_diff.json"


class TraceManager:
    """Write traces to disk and/or onto a task."""

    def __init__(
        self,
        controls: Optional[dict[str, Any]],
        trace_dir: Path,
        task: Optional[Task] = None,
    ):
        controls = controls or {}
        self.trace = bool(controls.get("trace", False))
        self.trace_response = bool(controls.get("traceResponse", False))
        self.trace_dir = Path(trace_dir)
        self.task = task

    def trace_configs(self, current: dict[str, Any], desired: dict[str, Any]) -> None:
        masked_current = mask(current)
        masked_desired = mask(desired)

        if self.trace_response and self.task is not None:
            self.task.traces["current"] = masked_current
            self.task.traces["desired"] = masked_desired

        if self.trace:
            self._write(CURRENT_CONFIG_FILE, masked_current)
            self._write(DESIRED_CONFIG_FILE, masked_desired)

    def trace_diff(self, diff: list[dict[str, Any]]) -> None:
        masked_diff = mask(diff)

        if self.trace_response and self.task is not None:
            self.task.traces["diff"] = masked_diff

        if self.trace:
            self._write(DIFF_FILE, masked_diff)

    def _write(self, file_name: str, contents: Any) -> None:
        path = self.trace_dir / file_name
        try:
            path.write_text(json.dumps(contents, indent=2))
        except OSError as e:
            logger.error(f"Error writing trace file {path}: {e}")
