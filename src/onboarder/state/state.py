"""Per-device onboarding state: configs and the task history."""
import copy
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from ..errors import StateError

MASK_REGEX = re.compile(r"pass(word|phrase)|secret", re.IGNORECASE)

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 7


class TaskState(str, Enum):
    """Lifecycle state of a task."""
    RUNNING = "RUNNING"
    ROLLING_BACK = "ROLLING_BACK"
    OK = "OK"
    ERROR = "ERROR"


def mask(data: Any) -> Any:
    """Copy of ``data`` with password, passphrase and secret keys removed."""
    if isinstance(data, dict):
        return {
            key: mask(value) for key, value in data.items()
            if not MASK_REGEX.search(str(key))
        }
    if isinstance(data, list):
        return [mask(item) for item in data]
    return data


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Task:
    """One declaration submission."""
    id: str
    state: TaskState = TaskState.RUNNING
    code: int = 202
    message: str = "processing"
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    dry_run: bool = False
    declaration: dict[str, Any] = field(default_factory=dict)
    current_config: Optional[dict[str, Any]] = None
    reboot_required: bool = False
    rollback_info: dict[str, Any] = field(default_factory=dict)
    traces: dict[str, Any] = field(default_factory=dict)
    last_update: datetime = field(default_factory=_now)
    # effective declaration of the run, kept in memory for rollback only
    attempted_config: Optional[dict[str, Any]] = field(default=None, repr=False)

    @property
    def settled(self) -> bool:
        return self.state in (TaskState.OK, TaskState.ERROR)

    def update_result(
        self,
        code: int,
        state: TaskState,
        message: str,
        errors: Optional[list[str]] = None,
    ) -> None:
        self.code = code
        self.state = state
        self.message = message
        if errors is not None:
            self.errors = list(errors)
        self.last_update = _now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "state": self.state.value,
            "code": self.code,
            "message": self.message,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "dryRun": self.dry_run,
            "declaration": self.declaration,
            "currentConfig": self.current_config,
            "rebootRequired": self.reboot_required,
            "rollbackInfo": self.rollback_info,
            "traces": self.traces,
            "lastUpdate": self.last_update.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        last_update = _now()
        if data.get("lastUpdate"):
            try:
                last_update = datetime.fromisoformat(data["lastUpdate"])
            except (ValueError, TypeError):
                logger.warning(f"Bad lastUpdate on task {data.get('id')}: {data['lastUpdate']!r}")
        return cls(
            id=data["id"],
            state=TaskState(data.get("state", TaskState.RUNNING.value)),
            code=data.get("code", 202),
            message=data.get("message", ""),
            errors=list(data.get("errors") or []),
            warnings=list(data.get("warnings") or []),
            dry_run=bool(data.get("dryRun", False)),
            declaration=data.get("declaration") or {},
            current_config=data.get("currentConfig"),
            reboot_required=bool(data.get("rebootRequired", False)),
            rollback_info=data.get("rollbackInfo") or {},
            traces=data.get("traces") or {},
            last_update=last_update,
        )


@dataclass
class DeviceState:
    """Everything the engine remembers about one device.

    ``original_config`` is captured once, the first time the device is
    seen, and never changes. ``current_config`` is replaced only when a run
    settles successfully.
    """
    device_id: str
    original_config: Optional[dict[str, Any]] = None
    current_config: Optional[dict[str, Any]] = None
    tasks: dict[str, Task] = field(default_factory=dict)
    most_recent_task: Optional[str] = None
    retention_days: int = DEFAULT_RETENTION_DAYS

    def capture_original(self, config: dict[str, Any]) -> None:
        """Record the baseline config. Later calls keep the first baseline."""
        if self.original_config is None:
            self.original_config = copy.deepcopy(config)
            logger.info(f"Captured original config for {self.device_id}")
        if self.current_config is None:
            self.current_config = copy.deepcopy(config)

    def add_task(self, declaration: dict[str, Any]) -> Task:
        """Start a new task. The stored declaration has secrets masked."""
        self.prune_tasks()
        task = Task(id=str(uuid.uuid4()), declaration=mask(declaration))
        task.dry_run = bool((declaration.get("controls") or {}).get("dryRun", False))
        self.tasks[task.id] = task
        self.most_recent_task = task.id
        return task

    def get_task(self, task_id: Optional[str] = None) -> Task:
        """Return a task, or the most recent one when no id is given.

        Raises:
            StateError: no such task
        """
        task_id = task_id or self.most_recent_task
        if not task_id or task_id not in self.tasks:
            raise StateError(f"Task {task_id} does not exist")
        return self.tasks[task_id]

    def task_ids(self) -> list[str]:
        return list(self.tasks)

    def delete_task(self, task_id: str) -> None:
        self.tasks.pop(task_id, None)
        if self.most_recent_task == task_id:
            self.most_recent_task = None

    def prune_tasks(self, now: Optional[datetime] = None) -> list[str]:
        """Drop settled tasks older than the retention window."""
        now = now or _now()
        cutoff = now - timedelta(days=self.retention_days)
        expired = [
            task_id for task_id, task in self.tasks.items()
            if task.settled and task.last_update < cutoff and task_id != self.most_recent_task
        ]
        for task_id in expired:
            del self.tasks[task_id]
        if expired:
            logger.debug(f"Pruned {len(expired)} expired tasks for {self.device_id}")
        return expired

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "original_config": self.original_config,
            "current_config": self.current_config,
            "most_recent_task": self.most_recent_task,
            "retention_days": self.retention_days,
            "tasks": [task.to_dict() for task in self.tasks.values()],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeviceState":
        tasks = [Task.from_dict(item) for item in data.get("tasks") or []]
        return cls(
            device_id=data["device_id"],
            original_config=data.get("original_config"),
            current_config=data.get("current_config"),
            tasks={task.id: task for task in tasks},
            most_recent_task=data.get("most_recent_task"),
            retention_days=int(data.get("retention_days", DEFAULT_RETENTION_DAYS)),
        )
