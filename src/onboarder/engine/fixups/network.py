"""Fixups for L2/L3 network classes."""
import copy
import logging
from typing import Any

from ...errors import ValidationError
from ..constants import DEFAULT_ROUTE_DOMAIN, DHCP_ROUTE_DESCRIPTION, FAILOVER_UNICAST_CONFLICT
from .base import FixupContext, full_path, parse_path, strip_common

logger = logging.getLogger(__name__)


def fix_management_ip(ctx: FixupContext) -> None:
    """Key management addresses by the address itself."""
    objects = ctx.declaration.get("ManagementIp")
    if not objects:
        return
    ctx.declaration["ManagementIp"] = {
        obj.get("name") or key: obj for key, obj in objects.items()
    }


def fix_route_domains(ctx: FixupContext) -> None:
    """Canonicalize route domains.

    - The route domain with id 0 is keyed ``"0"``; when several claim id 0
      the last one wins.
    - Route domain 0 is copied from the current config when other route
      domains are declared but 0 is not.
    - Bare ``parent`` names become full paths.
    - VLAN membership is reconciled, see :func:`_fix_route_domain_vlans`.
    """
    declared = ctx.declaration.get("RouteDomain") or {}
    route_domains: dict[str, Any] = {}
    renamed: dict[str, str] = {}

    # a literal "0" key is considered before any renamed duplicate
    ordered = sorted(declared.items(), key=lambda item: item[0] != DEFAULT_ROUTE_DOMAIN)
    for name, rd in ordered:
        if str(rd.get("id")) == DEFAULT_ROUTE_DOMAIN and name != DEFAULT_ROUTE_DOMAIN:
            rd["name"] = DEFAULT_ROUTE_DOMAIN
            renamed[name] = DEFAULT_ROUTE_DOMAIN
            route_domains.pop(DEFAULT_ROUTE_DOMAIN, None)
            route_domains[DEFAULT_ROUTE_DOMAIN] = rd
        else:
            route_domains[name] = rd

    current_rds = ctx.current.get("RouteDomain") or {}
    if DEFAULT_ROUTE_DOMAIN not in route_domains and DEFAULT_ROUTE_DOMAIN in current_rds:
        route_domains[DEFAULT_ROUTE_DOMAIN] = copy.deepcopy(current_rds[DEFAULT_ROUTE_DOMAIN])

    if not route_domains:
        return

    for rd in route_domains.values():
        parent = rd.get("parent")
        if parent and not parent.startswith("/"):
            rd["parent"] = ctx.with_prefix(renamed.get(parent, parent))

    # "0" first keeps the output order stable
    ctx.declaration["RouteDomain"] = dict(
        sorted(route_domains.items(), key=lambda item: item[0] != DEFAULT_ROUTE_DOMAIN)
    )
    _fix_route_domain_vlans(ctx)


def _fix_route_domain_vlans(ctx: FixupContext) -> None:
    """Reconcile route domain VLAN lists with declared and current VLANs.

    Only VLANs in the tenant's own partition and outside any folder are
    touched. Those must be declared or attached in the current config,
    otherwise they are dropped. Declared VLANs no route domain lists go to
    route domain 0. VLANs attached in the current config and not mentioned
    anywhere go back to their route domain, since a VLAN cannot exist
    without one.
    """
    route_domains = ctx.declaration["RouteDomain"]
    partition = ctx.tenant
    declared_vlans = list((ctx.declaration.get("VLAN") or {}).keys())

    current_vlan_rd: dict[str, str] = {}
    for rd in (ctx.current.get("RouteDomain") or {}).values():
        for vlan in rd.get("vlans") or []:
            vlan_partition, folder, name = parse_path(vlan, partition)
            if vlan_partition == partition and not folder and name not in declared_vlans:
                current_vlan_rd[vlan] = str(rd.get("id"))

    by_id: dict[str, dict[str, Any]] = {}
    for rd in route_domains.values():
        by_id[str(rd.get("id"))] = rd
        if rd.get("vlans") is None:
            # left out on purpose, the route domain keeps what it has
            continue

        kept = []
        for vlan in rd["vlans"]:
            vlan_partition, folder, name = parse_path(vlan, partition)
            if vlan_partition == partition and not folder:
                if name in declared_vlans:
                    declared_vlans.remove(name)
                elif full_path(vlan_partition, folder, name) in current_vlan_rd:
                    del current_vlan_rd[full_path(vlan_partition, folder, name)]
                else:
                    logger.debug(f"Dropping unknown VLAN {vlan} from route domain {rd.get('name')}")
                    continue
            kept.append(vlan)
        rd["vlans"] = kept

    if declared_vlans and DEFAULT_ROUTE_DOMAIN in route_domains:
        rd0 = route_domains[DEFAULT_ROUTE_DOMAIN]
        rd0["vlans"] = (rd0.get("vlans") or []) + declared_vlans

    for vlan, rd_id in current_vlan_rd.items():
        rd = by_id.get(rd_id)
        if rd is not None:
            rd["vlans"] = (rd.get("vlans") or []) + [vlan]


def fix_management_routes(ctx: FixupContext) -> None:
    """Keep DHCP-provided management routes when the System asks for it."""
    system = ctx.declaration.get("System") or {}
    if not system.get("preserveOrigDhcpRoutes"):
        return

    current_routes = ctx.current.get("ManagementRoute") or {}
    dhcp_routes = {
        name: route for name, route in current_routes.items()
        if route.get("description") == DHCP_ROUTE_DESCRIPTION
    }
    if not dhcp_routes:
        return

    routes = dict(ctx.declaration.get("ManagementRoute") or {})
    for name, route in dhcp_routes.items():
        if name not in routes:
            routes[name] = copy.deepcopy(route)
    ctx.declaration["ManagementRoute"] = routes


def fix_failover_unicast(ctx: FixupContext) -> None:
    """Turn a single address/port pair into the unicastAddress list."""
    unicast = ctx.declaration.get("FailoverUnicast")
    if not unicast or "address" not in unicast:
        return

    if "unicastAddress" in unicast:
        raise ValidationError(FAILOVER_UNICAST_CONFLICT)

    entry = {"ip": unicast.pop("address")}
    if "port" in unicast:
        entry["port"] = unicast.pop("port")
    unicast["unicastAddress"] = [entry]


def fix_self_ips(ctx: FixupContext) -> None:
    """The device reports firewall policies on self IPs without a partition."""
    for self_ip in (ctx.declaration.get("SelfIp") or {}).values():
        for key in ("fwEnforcedPolicy", "fwStagedPolicy"):
            if key in self_ip:
                self_ip[key] = strip_common(self_ip[key])
