"""Per-class canonicalization rules.

``FIXUP_REGISTRY`` is the ordered list of (class tag, fixup) pairs the
normalizer runs for every tenant. Each fixup edits ``ctx.declaration`` in
place and leaves the tenant alone when its class is absent, except where
noted (route domain 0 and DHCP routes can appear from current config).
"""
from typing import Callable

from .base import FixupContext
from .firewall import (
    fix_firewall_address_lists,
    fix_firewall_policies,
    fix_firewall_port_lists,
    fix_net_address_lists,
    fix_net_port_lists,
)
from .gslb import fix_gslb_prober_pools, fix_gslb_servers
from .network import (
    fix_failover_unicast,
    fix_management_ip,
    fix_management_routes,
    fix_route_domains,
    fix_self_ips,
)
from .routing import fix_access_lists, fix_bgp, fix_prefix_lists, fix_route_maps
from .system import fix_httpd, fix_ldap_certificates

Fixup = Callable[[FixupContext], None]

FIXUP_REGISTRY: list[tuple[str, Fixup]] = [
    ("ManagementIp", fix_management_ip),
    ("RouteDomain", fix_route_domains),
    ("RouteMap", fix_route_maps),
    ("GSLBServer", fix_gslb_servers),
    ("GSLBProberPool", fix_gslb_prober_pools),
    ("FirewallAddressList", fix_firewall_address_lists),
    ("NetAddressList", fix_net_address_lists),
    ("FirewallPortList", fix_firewall_port_lists),
    ("NetPortList", fix_net_port_lists),
    ("FirewallPolicy", fix_firewall_policies),
    ("SelfIp", fix_self_ips),
    ("RoutingPrefixList", fix_prefix_lists),
    ("RoutingAccessList", fix_access_lists),
    ("RoutingBGP", fix_bgp),
    ("HTTPD", fix_httpd),
    ("Authentication", fix_ldap_certificates),
    ("FailoverUnicast", fix_failover_unicast),
    ("ManagementRoute", fix_management_routes),
]


def get_fixup(class_tag: str) -> Fixup:
    """Look up the fixup registered for a class tag."""
    for tag, fixup in FIXUP_REGISTRY:
        if tag == class_tag:
            return fixup
    raise KeyError(f"No fixup registered for {class_tag}")


__all__ = ["FixupContext", "FIXUP_REGISTRY", "Fixup", "get_fixup"]
