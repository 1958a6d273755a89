"""Fixups for dynamic routing classes (route maps, prefix/access lists, BGP).

The device stores these with full partition paths, zero-filled ranges and
sorted members. Declarations are rewritten into that form so an unchanged
declaration compares equal to what the device reports.
"""
import copy
import ipaddress
from typing import Any, Optional

from .base import FixupContext

ADDRESS_FAMILIES = ("ipv4", "ipv6")

PEER_FAMILY_DEFAULTS = {"routeMap": {}, "softReconfigurationInbound": False}


def fix_route_maps(ctx: FixupContext) -> None:
    for route_map in (ctx.declaration.get("RouteMap") or {}).values():
        for entry in route_map.get("entries") or []:
            match = entry.get("match")
            if not match:
                continue
            if match.get("asPath"):
                match["asPath"] = ctx.with_prefix(match["asPath"])
            for family in ADDRESS_FAMILIES:
                family_match = match.get(family) or {}
                for key in ("address", "nextHop"):
                    target = family_match.get(key)
                    if target and target.get("prefixList"):
                        target["prefixList"] = ctx.with_prefix(target["prefixList"])


def fix_prefix_lists(ctx: FixupContext) -> None:
    """Fill the open end of a prefix length range with 0."""
    for prefix_list in (ctx.declaration.get("RoutingPrefixList") or {}).values():
        for entry in prefix_list.get("entries") or []:
            length_range = entry.get("prefixLenRange")
            if not isinstance(length_range, str) or len(length_range) < 2:
                continue
            if length_range.startswith(":"):
                entry["prefixLenRange"] = f"0{length_range}"
            elif length_range.endswith(":"):
                entry["prefixLenRange"] = f"{length_range}0"


def is_any_address(address: Any) -> bool:
    """True for the spellings of "every address": 0.0.0.0, ::, with any mask."""
    if not isinstance(address, str):
        return False
    address = address.strip()
    return (
        address in ("0.0.0.0", "::")
        or address.startswith("0.0.0.0/")
        or address.startswith("::/")
    )


def _is_ipv6(address: str) -> bool:
    return ":" in address


def _canonical_address(address: Any, paired: Any) -> Any:
    if not isinstance(address, str):
        return address
    if is_any_address(address):
        # the device picks the family of the other side when it is specific
        family_source = paired if isinstance(paired, str) and not is_any_address(paired) else address
        return "::/0" if _is_ipv6(family_source) else "0.0.0.0/0"
    if "/" not in address:
        return f"{address}/128" if _is_ipv6(address) else f"{address}/32"
    return address


def fix_access_lists(ctx: FixupContext) -> None:
    for access_list in (ctx.declaration.get("RoutingAccessList") or {}).values():
        for entry in access_list.get("entries") or []:
            source = entry.get("source")
            destination = entry.get("destination")
            if "source" in entry:
                entry["source"] = _canonical_address(source, destination)
            if "destination" in entry:
                entry["destination"] = _canonical_address(destination, source)


def _expand_families(families: Optional[list], defaults: dict[str, Any]) -> list[dict[str, Any]]:
    """Split ``all`` into ipv4/ipv6, synthesize missing families, ipv4 first."""
    by_name: dict[str, dict[str, Any]] = {}
    for family in families or []:
        if family.get("name") == "all":
            for name in ADDRESS_FAMILIES:
                split = copy.deepcopy(family)
                split["name"] = name
                by_name[name] = split
        else:
            by_name[family.get("name")] = family

    expanded = []
    for name in ADDRESS_FAMILIES:
        if name in by_name:
            expanded.append(by_name[name])
        else:
            expanded.append({"name": name, **copy.deepcopy(defaults)})
    return expanded


def _prefix_peer_route_maps(ctx: FixupContext, families: list[dict[str, Any]]) -> None:
    for family in families:
        route_map = family.get("routeMap") or {}
        for direction in ("in", "out"):
            if route_map.get(direction):
                route_map[direction] = ctx.with_prefix(route_map[direction])


def _ip_sort_key(name: Any) -> tuple:
    try:
        ip = ipaddress.ip_address(str(name))
    except ValueError:
        return (1, 0, str(name))
    return (0, ip.version, int(ip))


def fix_bgp(ctx: FixupContext) -> None:
    for bgp in (ctx.declaration.get("RoutingBGP") or {}).values():
        families = _expand_families(bgp.get("addressFamily"), {})
        for family in families:
            if "redistribute" not in family:
                continue
            family["redistribute"] = sorted(
                family["redistribute"], key=lambda r: r.get("routingProtocol") or ""
            )
            for redistribute in family["redistribute"]:
                if redistribute.get("routeMap"):
                    redistribute["routeMap"] = ctx.with_prefix(redistribute["routeMap"])
        bgp["addressFamily"] = families

        if "peerGroups" in bgp:
            for peer_group in bgp["peerGroups"]:
                peer_group["addressFamily"] = _expand_families(
                    peer_group.get("addressFamily"), PEER_FAMILY_DEFAULTS
                )
                _prefix_peer_route_maps(ctx, peer_group["addressFamily"])
            bgp["peerGroups"] = sorted(bgp["peerGroups"], key=lambda p: p.get("name") or "")

        if "neighbors" in bgp:
            for neighbor in bgp["neighbors"]:
                if "addressFamily" in neighbor:
                    neighbor["addressFamily"] = _expand_families(
                        neighbor["addressFamily"], PEER_FAMILY_DEFAULTS
                    )
                    _prefix_peer_route_maps(ctx, neighbor["addressFamily"])
            bgp["neighbors"] = sorted(bgp["neighbors"], key=lambda n: _ip_sort_key(n.get("name")))
