"""Declaration processor - runs one declaration against one device.

Workflow:
1. List provisioned modules (the parser needs them)
2. Parse the new declaration and the current config unless already parsed
3. Normalize, strip volatile fields, diff
4. Stop here on dry run
5. Run the appliers in fixed order and merge their results
6. Report usage telemetry for user submissions, best effort
"""
import copy
import logging
from typing import Any, Optional

from ..config.settings import Settings
from ..errors import DeviceCommunicationError
from ..state.state import DeviceState, Task
from ..utils.logging_config import timed_section
from ..utils.retry import call_with_retry
from .diff import DiffEngine
from .handlers import DELETE_APPLIERS, Applier, DeviceClient, order_appliers
from .normalizer import Normalizer, prune_empty, strip_volatile
from .parser import DeclarationParser
from .schema import HandlerContext, HandlerResult, TaskResult
from .telemetry import TelemetryReporter, build_usage_record
from .trace import TraceManager

logger = logging.getLogger(__name__)

PROVISION_PATH = "/tm/sys/provision"
GLOBAL_SETTINGS_PATH = "/tm/sys/global-settings"


class DeclarationProcessor:
    """
    Reconcile a declaration with a device.

    Usage:
        processor = DeclarationProcessor(appliers)
        result = await processor.process(declaration, device_state, client)
    """

    def __init__(
        self,
        appliers: dict[str, Applier],
        settings: Optional[Settings] = None,
        telemetry: Optional[TelemetryReporter] = None,
    ):
        """
        Args:
            appliers: One applier per name in APPLIER_ORDER
            settings: Engine settings (trace dir, retry policy)
            telemetry: Usage reporter; None disables reporting
        """
        self.appliers = order_appliers(appliers)
        self.settings = settings or Settings()
        self.telemetry = telemetry
        self.normalizer = Normalizer()
        self.diff_engine = DiffEngine()

    async def process(
        self,
        declaration: dict[str, Any],
        state: DeviceState,
        client: DeviceClient,
        task: Optional[Task] = None,
        rollback_info: Optional[dict[str, Any]] = None,
    ) -> TaskResult:
        """
        Process a declaration.

        Args:
            declaration: Raw or parsed (``parsed: True``) declaration
            state: Device state; only read here
            client: Device REST client
            task: Task to record traces and rollback info on
            rollback_info: Rollback info from a failed run, for rollbacks

        Returns:
            TaskResult with the merged applier results

        Raises:
            ValidationError: the declaration contradicts itself
            DeviceCommunicationError: a device call made here failed
            Exception: whatever an applier raised, unchanged
        """
        logger.info(f"Processing declaration for {state.device_id}")
        modules = await self._list_modules(client)

        try:
            return await self._process(declaration, state, client, task, rollback_info, modules)
        except Exception as e:
            logger.error(f"Error processing declaration: {e}")
            raise
        finally:
            if not declaration.get("parsed"):
                await self._report_usage(declaration, modules)

    async def _process(
        self,
        declaration: dict[str, Any],
        state: DeviceState,
        client: DeviceClient,
        task: Optional[Task],
        rollback_info: Optional[dict[str, Any]],
        modules: dict[str, str],
    ) -> TaskResult:
        controls = declaration.get("controls") or {}
        parsed_current = self._parse(state.current_config or {}, modules)
        parsed_new = self._parse(declaration, modules)

        effective = strip_volatile(
            self.normalizer.normalize(parsed_new, parsed_current, state.original_config)
        )
        current = strip_volatile(parsed_current)
        if task is not None:
            task.attempted_config = copy.deepcopy(effective)

        tracer = TraceManager(controls, self.settings.trace_dir, task)
        tracer.trace_configs(current, effective)

        changes = self.diff_engine.diff(effective, current)
        prune_empty(changes.to_update)
        tracer.trace_diff([entry.to_dict() for entry in changes.trace])

        result = TaskResult(
            dry_run=bool(controls.get("dryRun", False)),
            diff=changes.trace,
            declaration=effective,
        )
        if result.dry_run:
            logger.info(f"Dry run: {len(changes.trace)} changes, device left untouched")
            return result

        try:
            await client.modify(GLOBAL_SETTINGS_PATH, {"guiSetup": "disabled"})
        except Exception as e:
            raise DeviceCommunicationError(str(e)) from e

        for name, applier in self.appliers:
            context = HandlerContext(
                declaration=changes.to_delete if name in DELETE_APPLIERS else changes.to_update,
                client=client,
                state=state,
                device_id=state.device_id,
                rollback_info=copy.deepcopy(rollback_info or {}),
            )
            async with timed_section(f"apply:{name}", state.device_id):
                status = await applier.process(context)
            result.merge(HandlerResult.coerce(status))
            if task is not None:
                task.rollback_info = copy.deepcopy(result.rollback_info)

        logger.info(f"Done processing declaration for {state.device_id}")
        return result

    async def _list_modules(self, client: DeviceClient) -> dict[str, str]:
        """Provisioning level per module available on the device."""
        retry = self.settings.retry
        try:
            provisioned = await call_with_retry(
                client.list,
                PROVISION_PATH,
                max_attempts=retry.attempts,
                min_wait=retry.min_wait,
                max_wait=retry.max_wait,
            )
        except Exception as e:
            raise DeviceCommunicationError(str(e)) from e
        return {item["name"]: item.get("level", "none") for item in provisioned or []}

    def _parse(self, declaration: dict[str, Any], modules: dict[str, str]) -> dict[str, Any]:
        if declaration.get("parsed"):
            return copy.deepcopy(declaration)
        return DeclarationParser(declaration, list(modules)).parse()

    async def _report_usage(self, declaration: dict[str, Any], modules: dict[str, str]) -> None:
        if self.telemetry is None:
            return
        try:
            await self.telemetry.report(build_usage_record(declaration, modules))
        except Exception as e:
            # usage reporting never changes the outcome of a run
            logger.warning(f"Unable to send device report: {e}")
