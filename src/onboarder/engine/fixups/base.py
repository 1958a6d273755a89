"""Shared pieces for per-class fixups."""
from dataclasses import dataclass, field
from typing import Any


@dataclass
class FixupContext:
    """What a fixup function sees.

    ``declaration`` is the tenant being normalized and is edited in place.
    ``current`` is the same tenant in the current config; ``current_config``
    is the whole current config.
    """
    tenant: str
    declaration: dict[str, Any]
    current: dict[str, Any] = field(default_factory=dict)
    current_config: dict[str, Any] = field(default_factory=dict)

    @property
    def prefix(self) -> str:
        return f"/{self.tenant}/"

    def with_prefix(self, name: str) -> str:
        """Prefix a bare object name with the tenant's partition."""
        if not name or name.startswith("/"):
            return name
        return f"{self.prefix}{name}"


def strip_common(name: Any) -> Any:
    """Drop a leading ``/Common/``."""
    if isinstance(name, str) and name.startswith("/Common/"):
        return name[len("/Common/"):]
    return name


def parse_path(path: str, default_partition: str = "Common") -> tuple[str, str, str]:
    """Split ``/Partition/folder/name`` into (partition, folder, name).

    A bare name belongs to the default partition with no folder.
    """
    if not path.startswith("/"):
        return default_partition, "", path
    parts = path.split("/")
    partition = parts[1] if len(parts) > 1 else default_partition
    if len(parts) > 3 and parts[3]:
        return partition, parts[2], parts[3]
    return partition, "", parts[2] if len(parts) > 2 else ""


def full_path(partition: str, folder: str, name: str) -> str:
    if folder:
        return f"/{partition}/{folder}/{name}"
    return f"/{partition}/{name}"
