"""Default declaration parser.

Turns a raw declaration into the class-grouped shape the normalizer works on::

    {"Common": {"class": "Tenant", "myDns": {"class": "DNS", "nameServers": [...]},
                "vlan1": {"class": "VLAN", "tag": 10}}}

becomes::

    {"parsed": True,
     "Common": {"DNS": {"nameServers": [...]},
                "VLAN": {"vlan1": {"name": "vlan1", "tag": 10}}}}

String values that look like pointers into the declaration
(``/Common/mySelfIp/address``) are replaced by the string they point at.
Pointers that resolve to anything else are left alone, so object paths
such as ``/Common/myVlan`` survive.
"""
import copy
import logging
from typing import Any, Optional

from ..errors import ValidationError
from .constants import NAMELESS_CLASSES

logger = logging.getLogger(__name__)

IGNORED_KEYS = ("class", "schemaVersion")


class ParseError(ValidationError):
    """Error parsing a declaration."""
    pass


def dereference_pointer(declaration: dict[str, Any], pointer: str) -> Any:
    """Follow a ``/a/b/c`` pointer through the declaration."""
    if not pointer.startswith("/"):
        return pointer

    value: Any = declaration
    for key in pointer.split("/"):
        if not key:
            continue
        if isinstance(value, dict):
            value = value.get(key)
        elif isinstance(value, list) and key.isdigit():
            index = int(key)
            value = value[index] if index < len(value) else None
        else:
            # path continues past a scalar or a missing key
            return None
    return value


def dereference(declaration: dict[str, Any], value: Any) -> Any:
    if isinstance(value, dict):
        return {k: dereference(declaration, v) for k, v in value.items()}
    if isinstance(value, list):
        return [dereference(declaration, v) for v in value]
    if isinstance(value, str) and value.startswith("/"):
        resolved = dereference_pointer(declaration, value)
        if isinstance(resolved, str):
            return resolved
    return value


class DeclarationParser:
    """Group tenant objects by class.

    Args:
        declaration: Raw declaration
        modules: Modules available for provisioning on the device. Every
            module not mentioned in a Provision object is set to ``none``.
    """

    def __init__(self, declaration: dict[str, Any], modules: Optional[list[str]] = None):
        self.declaration = copy.deepcopy(declaration or {})
        self.modules = list(modules or [])

    def tenants(self) -> list[str]:
        """Names of the top-level keys that are tenants."""
        return [
            key for key, value in self.declaration.items()
            if key not in IGNORED_KEYS
            and isinstance(value, dict)
            and value.get("class") == "Tenant"
        ]

    def parse(self) -> dict[str, Any]:
        """Return the parsed declaration."""
        parsed: dict[str, Any] = {}
        try:
            for tenant in self.tenants():
                parsed[tenant] = self._parse_tenant(tenant, self.declaration[tenant])
        except ParseError as e:
            logger.error(f"Error parsing declaration: {e}")
            raise
        parsed["parsed"] = True
        return parsed

    def _parse_tenant(self, tenant: str, body: dict[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = {}

        for key, value in body.items():
            if key in IGNORED_KEYS:
                continue

            if not isinstance(value, dict):
                # plain tenant property, e.g. the legacy top-level hostname
                result[key] = value
                continue

            class_name = value.get("class")
            if not class_name:
                raise ParseError(f"Object '{key}' in tenant {tenant} has no class")

            properties = dereference(
                self.declaration,
                {k: v for k, v in value.items() if k != "class"},
            )

            if class_name == "Provision":
                for module in self.modules:
                    if not properties.get(module):
                        properties[module] = "none"

            if class_name in NAMELESS_CLASSES:
                # several objects of a singleton class merge into one
                result.setdefault(class_name, {}).update(properties)
            else:
                objects = result.setdefault(class_name, {})
                # a user supplied name wins; it may hold characters keys cannot
                if not properties.get("name"):
                    properties["name"] = key
                objects[key] = properties

        logger.debug(f"Parsed tenant {tenant}: classes={sorted(result)}")
        return result
