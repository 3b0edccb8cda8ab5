"""
nftjson Shared Types

Closed enumerations shared by the schema, statement and expression models.

Every enum value is the exact string the nft JSON parser accepts and emits,
so members can be rendered with `.value` and decoded with `Enum(value)`.

Author: nftjson Project
License: GNU GPL v3
"""

from enum import Enum


class NfFamily(Enum):
    """Address families of tables and the objects they contain."""
    IP = "ip"
    IP6 = "ip6"
    INET = "inet"
    ARP = "arp"
    BRIDGE = "bridge"
    NETDEV = "netdev"


class NfChainType(Enum):
    """Base chain types."""
    FILTER = "filter"
    ROUTE = "route"
    NAT = "nat"


class NfChainPolicy(Enum):
    """Default verdict of a base chain."""
    ACCEPT = "accept"
    DROP = "drop"


class NfHook(Enum):
    """Netfilter hook points a base chain or flowtable can attach to."""
    INGRESS = "ingress"
    PREROUTING = "prerouting"
    FORWARD = "forward"
    INPUT = "input"
    OUTPUT = "output"
    POSTROUTING = "postrouting"
    EGRESS = "egress"


class CTHProto(Enum):
    """Layer 4 protocols usable by ct helpers and ct timeouts."""
    TCP = "tcp"
    UDP = "udp"
    DCCP = "dccp"
    SCTP = "sctp"
    GRE = "gre"
    ICMPV6 = "icmpv6"
    ICMP = "icmp"
    GENERIC = "generic"


class RejectCode(Enum):
    """ICMP codes a reject statement can answer with."""
    ADMIN_PROHIBITED = "admin-prohibited"
    PORT_UNREACHABLE = "port-unreachable"
    NO_ROUTE = "no-route"
    HOST_UNREACHABLE = "host-unreachable"
    NET_UNREACHABLE = "net-unreachable"
    PROT_UNREACHABLE = "prot-unreachable"
    NET_PROHIBITED = "net-prohibited"
    HOST_PROHIBITED = "host-prohibited"
    ADDR_UNREACHABLE = "addr-unreachable"


class SynProxyFlag(Enum):
    """TCP options forwarded by synproxy."""
    TIMESTAMP = "timestamp"
    SACK_PERM = "sack-perm"


class NfTimeUnit(Enum):
    """Time units of limit rates."""
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
