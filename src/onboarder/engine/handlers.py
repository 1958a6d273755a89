"""Interfaces for the collaborators the processor drives.

Appliers turn their slice of the change set into device REST calls. The
device client is the REST handle they (and the processor) talk through.
Neither is implemented here.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional

from .schema import HandlerContext, HandlerResult

# Fixed run order. System settings and auth come first, modules are
# provisioned before anything that needs them, and analytics state plus
# deletions are cleared before modules are deprovisioned.
APPLIER_ORDER = (
    "System",
    "Auth",
    "Provision",
    "Network",
    "Dsc",
    "Analytics",
    "Delete",
    "Deprovision",
)

# Appliers that consume the delete set instead of the update set.
DELETE_APPLIERS = frozenset({"Delete"})


class DeviceClient(ABC):
    """REST handle to one device."""

    @abstractmethod
    async def list(self, path: str) -> Any:
        """GET a collection or object."""
        pass

    @abstractmethod
    async def modify(self, path: str, body: dict[str, Any]) -> Any:
        """PATCH an object."""
        pass

    async def create(self, path: str, body: dict[str, Any]) -> Any:
        """POST a new object."""
        raise NotImplementedError

    async def replace(self, path: str, body: dict[str, Any]) -> Any:
        """PUT an object."""
        raise NotImplementedError

    async def delete(self, path: str) -> Any:
        """DELETE an object."""
        raise NotImplementedError


class Applier(ABC):
    """One domain of device configuration (network, auth, provisioning, ...)."""

    name: str = ""

    @abstractmethod
    async def process(self, context: HandlerContext) -> Optional[HandlerResult]:
        """Apply ``context.declaration`` to the device.

        Raise :class:`~onboarder.errors.ApplierError` to abort the run; its
        message reaches the caller unchanged.
        """
        pass


def order_appliers(appliers: dict[str, Applier]) -> list[tuple[str, Applier]]:
    """Return appliers in run order.

    Raises:
        ValueError: an applier is missing or an unknown name was given
    """
    missing = [name for name in APPLIER_ORDER if name not in appliers]
    if missing:
        raise ValueError(f"Missing appliers: {', '.join(missing)}")
    unknown = sorted(set(appliers) - set(APPLIER_ORDER))
    if unknown:
        raise ValueError(f"Unknown appliers: {', '.join(unknown)}")
    return [(name, appliers[name]) for name in APPLIER_ORDER]
