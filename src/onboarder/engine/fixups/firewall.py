"""Fixups for firewall and net address/port lists and firewall policies."""
import copy
from typing import Any

from ..constants import SIBLING_CLASSES
from .base import FixupContext

RULE_KEYS = ("name", "description", "action", "ipProtocol", "log")
RULE_REFERENCE_KEYS = ("vlans", "addressLists", "portLists")


def _sort_address_lists(ctx: FixupContext, class_name: str) -> None:
    for address_list in (ctx.declaration.get(class_name) or {}).values():
        for key in ("addresses", "fqdns", "geo"):
            if key in address_list:
                address_list[key] = sorted(address_list[key])


def _port_key(port: str) -> tuple:
    """Order ports and ``low-high`` ranges numerically; anything else last."""
    try:
        return (0, tuple(int(part) for part in port.split("-")), port)
    except ValueError:
        return (1, (), port)


def _sort_port_lists(ctx: FixupContext, class_name: str) -> None:
    for port_list in (ctx.declaration.get(class_name) or {}).values():
        if "ports" in port_list:
            port_list["ports"] = sorted((str(port) for port in port_list["ports"]), key=_port_key)


def _keep_sibling_lists(ctx: FixupContext, class_name: str) -> None:
    """Carry over device lists re-declared under their sibling class.

    Firewall and net lists of the same kind are one object on the device. A
    list the device knows as FirewallAddressList that is now declared as
    NetAddressList must not be deleted under its old class, so the current
    object is kept as is.
    """
    sibling = SIBLING_CLASSES[class_name]
    declared_siblings = ctx.declaration.get(sibling) or {}
    declared = ctx.declaration.get(class_name) or {}
    carried = {
        name: copy.deepcopy(obj) for name, obj in (ctx.current.get(class_name) or {}).items()
        if name in declared_siblings and name not in declared
    }
    if carried:
        ctx.declaration[class_name] = {**declared, **carried}


def fix_firewall_address_lists(ctx: FixupContext) -> None:
    _sort_address_lists(ctx, "FirewallAddressList")
    _keep_sibling_lists(ctx, "FirewallAddressList")


def fix_net_address_lists(ctx: FixupContext) -> None:
    _sort_address_lists(ctx, "NetAddressList")
    _keep_sibling_lists(ctx, "NetAddressList")


def fix_firewall_port_lists(ctx: FixupContext) -> None:
    _sort_port_lists(ctx, "FirewallPortList")
    _keep_sibling_lists(ctx, "FirewallPortList")


def fix_net_port_lists(ctx: FixupContext) -> None:
    _sort_port_lists(ctx, "NetPortList")
    _keep_sibling_lists(ctx, "NetPortList")


def _fix_rule(ctx: FixupContext, rule: dict[str, Any]) -> dict[str, Any]:
    fixed = {key: rule[key] for key in RULE_KEYS if rule.get(key) is not None}
    for side in ("source", "destination"):
        endpoint = copy.deepcopy(rule.get(side) or {})
        for key in RULE_REFERENCE_KEYS:
            if key in endpoint:
                endpoint[key] = [ctx.with_prefix(name) for name in endpoint[key]]
        fixed[side] = endpoint
    return fixed


def fix_firewall_policies(ctx: FixupContext) -> None:
    policies = ctx.declaration.get("FirewallPolicy")
    if not policies:
        return
    for name, policy in policies.items():
        fixed = {key: value for key, value in policy.items() if key not in ("label", "rules")}
        fixed["rules"] = [_fix_rule(ctx, rule) for rule in policy.get("rules") or []]
        policies[name] = fixed
