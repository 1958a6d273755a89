"""Diff engine for computing changes between the effective declaration and current config.

Only classes of truth are compared. Everything else in the declaration is
passed through to the update set untouched, since the engine does not own
it. Equality is exact and structural; volatile fields must already be gone.
"""
import copy
import logging
from typing import Any, Iterable, Optional

from .constants import CLASSES_OF_TRUTH, NAMELESS_CLASSES
from .normalizer import tenants_of
from .schema import ChangeSet, TraceEntry, TraceKind

logger = logging.getLogger(__name__)


def deep_equal(lhs: Any, rhs: Any) -> bool:
    """JSON equality: ``True`` and ``1`` differ, ``1`` and ``1.0`` do not."""
    if isinstance(lhs, bool) or isinstance(rhs, bool):
        return type(lhs) is type(rhs) and lhs == rhs
    if isinstance(lhs, (int, float)) and isinstance(rhs, (int, float)):
        return lhs == rhs
    if type(lhs) is not type(rhs):
        return False
    if isinstance(lhs, dict):
        return lhs.keys() == rhs.keys() and all(deep_equal(lhs[k], rhs[k]) for k in lhs)
    if isinstance(lhs, list):
        return len(lhs) == len(rhs) and all(deep_equal(a, b) for a, b in zip(lhs, rhs))
    return lhs == rhs


def _ordered_union(first: Iterable[str], second: Iterable[str]) -> list[str]:
    keys = list(first)
    keys.extend(key for key in second if key not in keys)
    return keys


class DiffEngine:
    """Calculate the update and delete sets.

    Usage:
        changes = DiffEngine().diff(effective, current_config)
        if changes.no_change:
            ...
    """

    def __init__(
        self,
        classes_of_truth: Optional[list[str]] = None,
        nameless_classes: Optional[list[str]] = None,
    ):
        truth = classes_of_truth if classes_of_truth is not None else CLASSES_OF_TRUTH
        # hostname is folded into System before we get here
        self.classes_of_truth = [c for c in truth if c != "hostname"]
        self.nameless_classes = list(nameless_classes if nameless_classes is not None else NAMELESS_CLASSES)

    def diff(self, effective: dict[str, Any], current: Optional[dict[str, Any]]) -> ChangeSet:
        """Compare ``effective`` against ``current``.

        Returns:
            ChangeSet whose trace is empty iff nothing needs to change
        """
        current = current or {}
        changes = ChangeSet()

        for tenant in _ordered_union(tenants_of(effective), tenants_of(current)):
            desired = effective.get(tenant) or {}
            actual = current.get(tenant) or {}
            update, delete = self._diff_tenant(tenant, desired, actual, changes.trace)
            if tenant in effective or update:
                changes.to_update[tenant] = update
            if delete:
                changes.to_delete[tenant] = delete

        logger.debug(f"Diff produced {len(changes.trace)} trace entries")
        return changes

    def _diff_tenant(
        self,
        tenant: str,
        desired: dict[str, Any],
        actual: dict[str, Any],
        trace: list[TraceEntry],
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        update = {
            key: copy.deepcopy(value) for key, value in desired.items()
            if key not in self.classes_of_truth
        }
        delete: dict[str, Any] = {}

        for class_name in _ordered_union(desired, actual):
            if class_name not in self.classes_of_truth:
                continue

            path = [tenant, class_name]
            desired_class = desired.get(class_name)
            actual_class = actual.get(class_name)

            if self._is_named(class_name, desired_class, actual_class):
                changed, deleted = self._diff_named(path, desired_class or {}, actual_class or {}, trace)
                if changed:
                    update[class_name] = changed
                if deleted:
                    delete[class_name] = deleted
            elif class_name in desired:
                if class_name not in actual:
                    trace.append(TraceEntry(TraceKind.NEW, path, rhs=copy.deepcopy(desired_class)))
                    update[class_name] = copy.deepcopy(desired_class)
                elif not deep_equal(desired_class, actual_class):
                    self._walk(path, actual_class, desired_class, trace)
                    update[class_name] = copy.deepcopy(desired_class)
            # a singleton class missing from the declaration is never deleted

        return update, delete

    def _is_named(self, class_name: str, desired: Any, actual: Any) -> bool:
        if class_name in self.nameless_classes:
            return False
        return all(value is None or isinstance(value, dict) for value in (desired, actual))

    def _diff_named(
        self,
        path: list[str],
        desired: dict[str, Any],
        actual: dict[str, Any],
        trace: list[TraceEntry],
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        changed: dict[str, Any] = {}
        deleted: dict[str, Any] = {}

        for name, body in desired.items():
            if name not in actual:
                trace.append(TraceEntry(TraceKind.NEW, path + [name], rhs=copy.deepcopy(body)))
                changed[name] = copy.deepcopy(body)
            elif not deep_equal(body, actual[name]):
                self._walk(path + [name], actual[name], body, trace)
                changed[name] = copy.deepcopy(body)

        for name, body in actual.items():
            if name not in desired:
                trace.append(TraceEntry(TraceKind.DELETED, path + [name], lhs=copy.deepcopy(body)))
                deleted[name] = {}

        return changed, deleted

    def _walk(self, path: list[str], lhs: Any, rhs: Any, trace: list[TraceEntry]) -> None:
        """Record property-level differences. Lists are compared whole."""
        if isinstance(lhs, dict) and isinstance(rhs, dict):
            for key, value in rhs.items():
                if key not in lhs:
                    trace.append(TraceEntry(TraceKind.NEW, path + [key], rhs=copy.deepcopy(value)))
                else:
                    self._walk(path + [key], lhs[key], value, trace)
            for key, value in lhs.items():
                if key not in rhs:
                    trace.append(TraceEntry(TraceKind.DELETED, path + [key], lhs=copy.deepcopy(value)))
        elif not deep_equal(lhs, rhs):
            trace.append(TraceEntry(TraceKind.EDITED, path, lhs=copy.deepcopy(lhs), rhs=copy.deepcopy(rhs)))
