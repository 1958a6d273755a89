"""Reconciliation engine: parse, normalize, diff and apply a declaration."""
from .diff import DiffEngine, deep_equal
from .handlers import APPLIER_ORDER, Applier, DeviceClient, order_appliers
from .normalizer import Normalizer, apply_defaults, prune_empty, strip_volatile
from .parser import DeclarationParser, ParseError
from .processor import DeclarationProcessor
from .schema import ChangeSet, HandlerContext, HandlerResult, TaskResult, TraceEntry, TraceKind
from .telemetry import TelemetryReporter, build_usage_record
from .trace import TraceManager

__all__ = [
    "DiffEngine",
    "deep_equal",
    "APPLIER_ORDER",
    "Applier",
    "DeviceClient",
    "order_appliers",
    "Normalizer",
    "apply_defaults",
    "prune_empty",
    "strip_volatile",
    "DeclarationParser",
    "ParseError",
    "DeclarationProcessor",
    "ChangeSet",
    "HandlerContext",
    "HandlerResult",
    "TaskResult",
    "TraceEntry",
    "TraceKind",
    "TelemetryReporter",
    "build_usage_record",
    "TraceManager",
]
