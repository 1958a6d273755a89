"""Task manager - the submit/run/settle/rollback/poll lifecycle.

One declaration submission becomes one Task. Each device runs at most one
task at a time; a submission while a task is running is turned away with
503 rather than queued.

Lifecycle:
    RUNNING -> OK                      (200, "success")
    RUNNING -> ERROR                   (validation failure, message verbatim)
    RUNNING -> ROLLING_BACK -> ERROR   (422 rolled back, or 500 rollback failed)
"""
import asyncio
import copy
import dataclasses
import logging
from typing import Any, Awaitable, Callable, Optional

from ..config.settings import Settings
from ..engine.constants import MESSAGE_ROLLBACK_FAILED, MESSAGE_ROLLED_BACK, MESSAGE_SUCCESS
from ..engine.handlers import DeviceClient
from ..engine.processor import DeclarationProcessor
from ..errors import DeviceBusyError, StateError
from ..state.state import DeviceState, Task, TaskState
from ..state.store import StateStore
from .response import (
    STATUS_CODES_LEGACY,
    TaskResponse,
    busy,
    not_found,
    task_body,
    transport_status,
)

logger = logging.getLogger(__name__)

ConfigReader = Callable[[DeviceClient], Awaitable[dict[str, Any]]]


def _as_parsed(config: Optional[dict[str, Any]]) -> dict[str, Any]:
    config = copy.deepcopy(config or {})
    config.pop("controls", None)
    config["parsed"] = True
    return config


class TaskManager:
    """
    Run declarations against devices and keep their task history.

    Usage:
        manager = TaskManager(processor, store=StateStore(settings.state_dir))
        manager.register_device("bigip-1", original_config)
        response = await manager.submit("bigip-1", declaration, client)
        response = manager.poll(response.body["id"])
    """

    def __init__(
        self,
        processor: DeclarationProcessor,
        settings: Optional[Settings] = None,
        store: Optional[StateStore] = None,
        config_reader: Optional[ConfigReader] = None,
    ):
        """
        Args:
            processor: Runs one declaration against one device
            settings: Engine settings
            store: Where device state is persisted; None keeps it in memory
            config_reader: Reads the device config back after a successful
                run. Without one, the applied declaration becomes the
                current config.
        """
        self.processor = processor
        self.settings = settings or Settings()
        self.store = store
        self.config_reader = config_reader
        self._states: dict[str, DeviceState] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._task_index: dict[str, str] = {}  # task id -> device id
        self._background: set[asyncio.Task] = set()

    # =========================================================================
    # Device state
    # =========================================================================

    def get_state(self, device_id: str) -> DeviceState:
        """State for a device, loaded from the store on first use."""
        if device_id in self._states:
            return self._states[device_id]

        state = self.store.load(device_id) if self.store else None
        if state is None:
            state = DeviceState(device_id=device_id)
        state.retention_days = self.settings.task_retention_days

        self._states[device_id] = state
        for task_id in state.task_ids():
            self._task_index[task_id] = device_id
        return state

    def register_device(
        self,
        device_id: str,
        original_config: dict[str, Any],
        current_config: Optional[dict[str, Any]] = None,
    ) -> DeviceState:
        """Record the baseline config of a device.

        The first baseline recorded for a device is kept for good.
        """
        state = self.get_state(device_id)
        state.capture_original(_as_parsed(original_config))
        if current_config is not None:
            state.current_config = _as_parsed(current_config)
        self._save(state)
        return state

    def _save(self, state: DeviceState) -> None:
        if self.store is not None:
            self.store.save(state)

    async def _acquire(self, device_id: str) -> asyncio.Lock:
        """Take the device lock without waiting.

        Raises:
            DeviceBusyError: a task is already running on the device
        """
        lock = self._locks.setdefault(device_id, asyncio.Lock())
        if lock.locked():
            raise DeviceBusyError(f"Device {device_id} is busy")
        # an unlocked lock is acquired without suspending
        await lock.acquire()
        return lock

    # =========================================================================
    # Submit and run
    # =========================================================================

    async def submit(
        self,
        device_id: str,
        declaration: dict[str, Any],
        client: DeviceClient,
    ) -> TaskResponse:
        """Start a task for ``declaration``.

        With ``controls.async`` the task runs in the background and the
        response is 202 with the task id. Otherwise the call returns once the
        task has settled.
        """
        try:
            lock = await self._acquire(device_id)
        except DeviceBusyError as e:
            logger.warning(f"Rejecting declaration: {e}")
            return busy(device_id)

        try:
            state = self.get_state(device_id)
            task = state.add_task(declaration)
            self._task_index[task.id] = device_id
            self._save(state)
        except Exception:
            lock.release()
            raise

        logger.info(f"Task {task.id} created for {device_id}")
        controls = declaration.get("controls") or {}

        if controls.get("async"):
            background = asyncio.create_task(self._run_locked(lock, state, task, declaration, client))
            self._background.add(background)
            background.add_done_callback(self._background.discard)
            return TaskResponse(status_code=202, body=task_body(task, state))

        await self._run_locked(lock, state, task, declaration, client)
        return TaskResponse(status_code=task.code, body=task_body(task, state))

    async def _run_locked(
        self,
        lock: asyncio.Lock,
        state: DeviceState,
        task: Task,
        declaration: dict[str, Any],
        client: DeviceClient,
    ) -> None:
        try:
            await self._run(state, task, declaration, client)
        finally:
            lock.release()

    async def _run(
        self,
        state: DeviceState,
        task: Task,
        declaration: dict[str, Any],
        client: DeviceClient,
    ) -> None:
        snapshot = _as_parsed(state.current_config)

        try:
            result = await self.processor.process(declaration, state, client, task=task)
            current = result.declaration
            if self.config_reader is not None and not result.dry_run:
                current = await self.config_reader(client)
        except Exception as e:
            await self._fail(e, state, task, client, snapshot)
        else:
            if not result.dry_run:
                state.current_config = _as_parsed(current)

            task.current_config = copy.deepcopy(state.current_config)
            task.reboot_required = result.reboot_required
            task.rollback_info = copy.deepcopy(result.rollback_info)
            task.warnings = list(result.warnings)
            task.update_result(200, TaskState.OK, MESSAGE_SUCCESS)
            logger.info(f"Task {task.id} succeeded")
        finally:
            task.attempted_config = None
            self._save(state)

    async def _fail(
        self,
        error: Exception,
        state: DeviceState,
        task: Task,
        client: DeviceClient,
        snapshot: dict[str, Any],
    ) -> None:
        """Settle a failed task, rolling the device back when the error calls for it."""
        message = getattr(error, "message", None) or str(error)
        code = getattr(error, "code", 500)
        logger.error(f"Task {task.id} failed: {message}")
        task.update_result(code, TaskState.ERROR, message, errors=[message])
        task.current_config = copy.deepcopy(state.current_config)

        if not getattr(error, "rollback", True):
            return

        if task.attempted_config is None:
            # nothing was sent to the device
            task.update_result(422, TaskState.ERROR, MESSAGE_ROLLED_BACK, errors=[message])
            return

        logger.info(f"Rolling back task {task.id}")
        task.update_result(code, TaskState.ROLLING_BACK, message)
        rollback_state = dataclasses.replace(
            state,
            current_config=copy.deepcopy(task.attempted_config),
        )

        try:
            await self.processor.process(
                snapshot,
                rollback_state,
                client,
                rollback_info=task.rollback_info,
            )
        except Exception as e:
            logger.exception(f"Rollback of task {task.id} failed: {e}")
            task.update_result(
                500,
                TaskState.ERROR,
                MESSAGE_ROLLBACK_FAILED,
                errors=[message, str(e)],
            )
            return

        task.update_result(422, TaskState.ERROR, MESSAGE_ROLLED_BACK, errors=[message])
        logger.info(f"Task {task.id} rolled back")

    async def drain(self) -> None:
        """Wait for every background task to settle."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # =========================================================================
    # Poll
    # =========================================================================

    def _load_all(self) -> None:
        if self.store is None:
            return
        for device_id in self.store.list_devices():
            self.get_state(device_id)

    def _find_task(self, task_id: str) -> tuple[DeviceState, Task]:
        if task_id not in self._task_index:
            self._load_all()
        device_id = self._task_index.get(task_id)
        if device_id is None:
            raise StateError(f"Task {task_id} does not exist")
        state = self.get_state(device_id)
        return state, state.get_task(task_id)

    def poll(
        self,
        task_id: Optional[str] = None,
        status_codes: str = STATUS_CODES_LEGACY,
        show: Optional[str] = None,
    ) -> TaskResponse:
        """Report on a task, or on every known task when no id is given."""
        if task_id is None:
            bodies = []
            for known_id in self.list_tasks():
                state, task = self._find_task(known_id)
                bodies.append(task_body(task, state, show))
            return TaskResponse(status_code=200, body=bodies)

        try:
            state, task = self._find_task(task_id)
        except StateError as e:
            logger.debug(f"Poll of unknown task: {e}")
            return not_found(task_id)

        return TaskResponse(
            status_code=transport_status(task, status_codes),
            body=task_body(task, state, show),
        )

    def list_tasks(self) -> list[str]:
        """Ids of all tasks still retained, across devices."""
        self._load_all()
        task_ids = []
        for device_id in list(self._states):
            state = self._states[device_id]
            task_ids.extend(state.task_ids())
        return task_ids

    def delete_task(self, task_id: str) -> bool:
        try:
            state, task = self._find_task(task_id)
        except StateError:
            return False
        state.delete_task(task.id)
        self._task_index.pop(task.id, None)
        self._save(state)
        return True
