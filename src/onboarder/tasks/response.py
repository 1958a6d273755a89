"""Poll responses for onboarding tasks.

Body layout::

    {
        "id": "...",
        "selfLink": "https://localhost/mgmt/shared/declarative-onboarding/task/<id>",
        "result": {"class": "Result", "code": 200, "status": "OK",
                   "message": "success", "dryRun": False, "errors": [...]},
        "declaration": {...},
        "currentConfig": {...},
    }

Failed tasks repeat ``code``, ``status``, ``message`` and ``errors`` at the
top level of the body.
"""
import copy
from dataclasses import dataclass, field
from typing import Any, Optional

from ..engine.constants import MESSAGE_BUSY, MESSAGE_NOT_FOUND
from ..state.state import DeviceState, Task

BASE_URL = "https://localhost/mgmt/shared/declarative-onboarding"
TASK_ENDPOINT = "task"

STATUS_CODES_LEGACY = "legacy"
STATUS_CODES_EXPERIMENTAL = "experimental"
SHOW_FULL = "full"


@dataclass
class TaskResponse:
    """Transport status plus body, as returned to the caller."""
    status_code: int
    body: Any = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"statusCode": self.status_code, "body": self.body}


def self_link(task_id: str) -> str:
    return f"{BASE_URL}/{TASK_ENDPOINT}/{task_id}"


def transport_status(task: Task, status_codes: str = STATUS_CODES_LEGACY) -> int:
    """HTTP status for a poll of ``task``.

    ``legacy`` answers 202 until the task settles and 200 afterwards, with
    the outcome only in the body. ``experimental`` answers with the task's
    own result code.
    """
    if status_codes == STATUS_CODES_EXPERIMENTAL:
        return task.code
    return 200 if task.settled else 202


def task_body(task: Task, state: DeviceState, show: Optional[str] = None) -> dict[str, Any]:
    result: dict[str, Any] = {
        "class": "Result",
        "code": task.code,
        "status": task.state.value,
        "message": task.message,
        "dryRun": task.dry_run,
    }
    if task.errors:
        result["errors"] = list(task.errors)
    if task.warnings:
        result["warnings"] = list(task.warnings)

    body: dict[str, Any] = {"id": task.id, "selfLink": self_link(task.id)}
    if task.code >= 300:
        body.update({
            "code": task.code,
            "status": task.state.value,
            "message": task.message,
            "errors": list(task.errors),
        })
    body["result"] = result
    body["declaration"] = copy.deepcopy(task.declaration)
    body["currentConfig"] = copy.deepcopy(task.current_config)
    if task.traces:
        body["traces"] = copy.deepcopy(task.traces)

    if show == SHOW_FULL:
        body["originalConfig"] = copy.deepcopy(state.original_config)
        body["lastUpdate"] = task.last_update.isoformat()
    return body


def not_found(task_id: Optional[str]) -> TaskResponse:
    return TaskResponse(
        status_code=404,
        body={
            "id": task_id,
            "result": {
                "code": 404,
                "message": MESSAGE_NOT_FOUND,
                "errors": [MESSAGE_NOT_FOUND],
            },
        },
    )


def busy(device_id: str) -> TaskResponse:
    return TaskResponse(
        status_code=503,
        body={
            "code": 503,
            "message": MESSAGE_BUSY,
            "result": {
                "class": "Result",
                "code": 503,
                "status": "ERROR",
                "message": MESSAGE_BUSY,
                "errors": [f"Device {device_id} is busy"],
            },
        },
    )
