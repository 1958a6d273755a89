"""Class lists and fixed strings shared across the engine."""

COMMON = "Common"

# Classes the engine owns. Omitting one from a declaration means
# "restore the baseline", not "delete".
CLASSES_OF_TRUTH = [
    "hostname",
    "DbVariables",
    "DNS",
    "NTP",
    "Provision",
    "VLAN",
    "Trunk",
    "SelfIp",
    "Route",
    "ConfigSync",
    "DeviceGroup",
    "FailoverUnicast",
    "Analytics",
    "ManagementIp",
    "ManagementRoute",
    "RouteDomain",
    "Authentication",
    "RemoteAuthRole",
    "SnmpAgent",
    "SnmpTrapEvents",
    "SnmpUser",
    "SnmpCommunity",
    "SnmpTrapDestination",
    "DagGlobals",
    "System",
    "TrafficControl",
    "HTTPD",
    "SSHD",
    "Tunnel",
    "DNS_Resolver",
    "RouteMap",
    "RoutingAsPath",
    "RoutingAccessList",
    "RoutingPrefixList",
    "RoutingBGP",
    "FirewallAddressList",
    "FirewallPortList",
    "FirewallPolicy",
    "NetAddressList",
    "NetPortList",
    "GSLBGlobals",
    "GSLBDataCenter",
    "GSLBServer",
    "GSLBMonitor",
    "GSLBProberPool",
]

# Singleton classes: the class body is the object, there are no names.
NAMELESS_CLASSES = [
    "DbVariables",
    "DNS",
    "NTP",
    "License",
    "Provision",
    "ConfigSync",
    "FailoverUnicast",
    "DeviceTrust",
    "Analytics",
    "Authentication",
    "RemoteAuthRoles",
    "SnmpAgent",
    "SnmpTrapEvents",
    "DagGlobals",
    "System",
    "TrafficControl",
    "HTTPD",
    "SSHD",
    "GSLBGlobals",
]

# Firewall and net address/port lists share a namespace on the device.
SIBLING_CLASSES = {
    "FirewallAddressList": "NetAddressList",
    "NetAddressList": "FirewallAddressList",
    "FirewallPortList": "NetPortList",
    "NetPortList": "FirewallPortList",
}

# Keys the device echoes back that change on every read.
VOLATILE_KEYS = frozenset({"generation", "lastUpdateMicros", "selfLink", "kind"})

DEFAULT_ROUTE_DOMAIN = "0"
DHCP_ROUTE_DESCRIPTION = "configured-by-dhcp"

FAILOVER_UNICAST_CONFLICT = (
    "Cannot have Failover Unicasts with both address and addressPort properties provided. "
    "This can happen when multiple Failover Unicast objects are provided in the same "
    "declaration. To configure multiple Failover Unicasts, use only addressPort."
)

MESSAGE_SUCCESS = "success"
MESSAGE_ROLLED_BACK = "invalid config - rolled back"
MESSAGE_ROLLBACK_FAILED = "invalid config - rollback failed"
MESSAGE_BUSY = "Configuration operation in progress on device, please try again later"
MESSAGE_NOT_FOUND = "item does not exist"
