"""Normalizer - turns a parsed declaration into the effective declaration.

Steps, in order:
1. Baseline defaulting from the original config (:func:`apply_defaults`)
2. Pruning of empty classes (:func:`prune_empty`)
3. Per-class fixups from ``FIXUP_REGISTRY``, for every tenant

The result depends only on (parsed, current, original). Inputs are never
modified.
"""
import copy
import logging
from typing import Any, Optional

from .constants import CLASSES_OF_TRUTH, COMMON, VOLATILE_KEYS
from .fixups import FIXUP_REGISTRY, Fixup, FixupContext

logger = logging.getLogger(__name__)

NON_TENANT_KEYS = ("controls",)


def tenants_of(declaration: dict[str, Any]) -> list[str]:
    """Tenant names in a parsed declaration or config."""
    return [
        key for key, value in declaration.items()
        if isinstance(value, dict) and key not in NON_TENANT_KEYS
    ]


def apply_defaults(declaration: dict[str, Any], original: Optional[dict[str, Any]]) -> None:
    """Fill omitted classes of truth from the original config, in place.

    Precedence for each class is: declared, then original, then absent. A
    class declared as an empty object counts as omitted. Authentication
    declared without ``remoteUsersDefaults`` inherits them.

    The legacy top-level ``hostname`` is folded into ``System.hostname``.
    A hostname declared on System itself wins over the alias, and the alias
    wins over a hostname restored from the original config.
    """
    common = declaration.setdefault(COMMON, {})
    original_common = copy.deepcopy((original or {}).get(COMMON) or {})

    declared_system = common.get("System")
    explicit_hostname = (
        declared_system.get("hostname") if isinstance(declared_system, dict) else None
    )

    for key in CLASSES_OF_TRUTH:
        if key not in original_common:
            continue
        item = common.get(key)
        if key not in common or (isinstance(item, dict) and not item):
            common[key] = original_common[key]
        elif key == "Authentication" and isinstance(item, dict):
            if "remoteUsersDefaults" not in item and "remoteUsersDefaults" in original_common[key]:
                item["remoteUsersDefaults"] = original_common[key]["remoteUsersDefaults"]

    hostname = common.pop("hostname", None)
    if hostname is not None and not explicit_hostname:
        system = common.get("System")
        if not isinstance(system, dict):
            system = {}
        common["System"] = {**system, "hostname": hostname}


def prune_empty(declaration: dict[str, Any]) -> None:
    """Drop classes whose body is an empty object, in place."""
    for tenant in tenants_of(declaration):
        body = declaration[tenant]
        for key in [k for k, v in body.items() if isinstance(v, dict) and not v]:
            del body[key]


def strip_volatile(config: Any) -> Any:
    """Copy of ``config`` without the keys the device changes on every read."""
    if isinstance(config, dict):
        return {
            key: strip_volatile(value) for key, value in config.items()
            if key not in VOLATILE_KEYS
        }
    if isinstance(config, list):
        return [strip_volatile(item) for item in config]
    return config


class Normalizer:
    """Build the effective declaration.

    Usage:
        effective = Normalizer().normalize(parsed, current_config, original_config)
    """

    def __init__(self, registry: Optional[list[tuple[str, Fixup]]] = None):
        self.registry = registry if registry is not None else FIXUP_REGISTRY

    def normalize(
        self,
        parsed: dict[str, Any],
        current: Optional[dict[str, Any]],
        original: Optional[dict[str, Any]],
    ) -> dict[str, Any]:
        """Return the effective declaration.

        Raises:
            ValidationError: the declaration contradicts itself
        """
        declaration = copy.deepcopy(parsed)
        current = copy.deepcopy(current or {})

        apply_defaults(declaration, original)
        prune_empty(declaration)

        for tenant in tenants_of(declaration):
            context = FixupContext(
                tenant=tenant,
                declaration=declaration[tenant],
                current=current.get(tenant) or {},
                current_config=current,
            )
            for tag, fixup in self.registry:
                logger.debug(f"Applying {tag} fixup to tenant {tenant}")
                fixup(context)

        return declaration

    strip_volatile = staticmethod(strip_volatile)
