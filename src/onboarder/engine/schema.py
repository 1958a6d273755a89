"""Data model shared by the normalizer, diff engine and processor."""
import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class TraceKind(str, Enum):
    """Kind of a single difference in the change trace."""
    NEW = "N"
    DELETED = "D"
    EDITED = "E"


@dataclass
class TraceEntry:
    """One difference between the effective declaration and current config."""
    kind: TraceKind
    path: list[str]
    lhs: Any = None   # current value
    rhs: Any = None   # desired value

    def to_dict(self) -> dict[str, Any]:
        entry: dict[str, Any] = {"kind": self.kind.value, "path": list(self.path)}
        if self.kind != TraceKind.NEW:
            entry["lhs"] = self.lhs
        if self.kind != TraceKind.DELETED:
            entry["rhs"] = self.rhs
        return entry


@dataclass
class ChangeSet:
    """Result of diffing an effective declaration against current config.

    ``to_update`` and ``to_delete`` have the shape of a parsed declaration:
    ``{tenant: {Class: {name: body}}}``. Objects to delete have empty bodies.
    """
    to_update: dict[str, Any] = field(default_factory=dict)
    to_delete: dict[str, Any] = field(default_factory=dict)
    trace: list[TraceEntry] = field(default_factory=list)

    @property
    def no_change(self) -> bool:
        return len(self.trace) == 0


@dataclass
class HandlerResult:
    """What one applier reports back after processing its slice."""
    reboot_required: bool = False
    rollback_info: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def coerce(cls, value: Any) -> "HandlerResult":
        """Accept a HandlerResult, a plain dict in applier wire form, or None."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls(
                reboot_required=bool(value.get("rebootRequired", False)),
                rollback_info=dict(value.get("rollbackInfo") or {}),
                warnings=list(value.get("warnings") or []),
            )
        raise TypeError(f"Unsupported applier result: {type(value).__name__}")


@dataclass
class TaskResult:
    """Aggregated outcome of one declaration run."""
    dry_run: bool = False
    reboot_required: bool = False
    rollback_info: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    diff: list[TraceEntry] = field(default_factory=list)
    declaration: Optional[dict[str, Any]] = None  # effective declaration

    def merge(self, result: HandlerResult) -> None:
        """Fold one applier result into this one."""
        if result.reboot_required:
            self.reboot_required = True
        for key, value in result.rollback_info.items():
            self.rollback_info[key] = copy.deepcopy(value)
        self.warnings.extend(result.warnings)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "dryRun": self.dry_run,
            "rebootRequired": self.reboot_required,
            "rollbackInfo": self.rollback_info,
            "warnings": list(self.warnings),
            "diff": [entry.to_dict() for entry in self.diff],
        }
        return data


@dataclass
class HandlerContext:
    """Everything an applier gets to work with."""
    declaration: dict[str, Any]
    client: Any
    state: Any
    device_id: str = ""
    rollback_info: dict[str, Any] = field(default_factory=dict)
