"""GSLB server and prober pool fixups."""
import ipaddress
from typing import Any

from .base import FixupContext, strip_common


def compress_ipv6(address: Any) -> Any:
    """Shortest form of an IPv6 address; anything else is returned as is."""
    if not isinstance(address, str) or ":" not in address:
        return address
    try:
        return ipaddress.IPv6Address(address).compressed
    except ValueError:
        return address


def _fix_virtual_server(index: int, virtual_server: dict[str, Any]) -> dict[str, Any]:
    fixed = {key: value for key, value in virtual_server.items() if key != "label"}
    fixed.setdefault("name", str(index))
    for key in ("address", "translationAddress"):
        if key in fixed:
            fixed[key] = compress_ipv6(fixed[key])
    fixed.setdefault("monitor", [])
    return fixed


def fix_gslb_servers(ctx: FixupContext) -> None:
    servers = ctx.declaration.get("GSLBServer")
    if not servers:
        return
    for name, server in servers.items():
        fixed = {key: value for key, value in server.items() if key != "label"}
        for key in ("datacenter", "proberPool"):
            if key in fixed:
                fixed[key] = strip_common(fixed[key])
        if "monitor" not in fixed:
            fixed["monitor"] = ["/Common/bigip"] if fixed.get("product") == "bigip" else []
        fixed["virtualServers"] = [
            _fix_virtual_server(index, vs)
            for index, vs in enumerate(fixed.get("virtualServers") or [])
        ]
        servers[name] = fixed


def fix_gslb_prober_pools(ctx: FixupContext) -> None:
    pools = ctx.declaration.get("GSLBProberPool")
    if not pools:
        return
    for name, pool in pools.items():
        fixed = {key: value for key, value in pool.items() if key not in ("label", "members")}
        members = []
        for order, member in enumerate(pool.get("members") or []):
            entry = {"name": strip_common(member.get("name"))}
            for key in ("description", "enabled"):
                if member.get(key) is not None:
                    entry[key] = member[key]
            entry["order"] = order
            members.append(entry)
        fixed["members"] = members
        pools[name] = fixed
