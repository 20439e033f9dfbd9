"""Formatting of per-protocol network counters from /proc net/snmp and net/netstat."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any


@dataclass
class SNMP:
    """Counters read from /proc/PID/net/snmp."""

    ip: dict[str, int] = field(default_factory=dict)
    icmp: dict[str, int] = field(default_factory=dict)
    icmp_msg: dict[str, int] = field(default_factory=dict)
    tcp: dict[str, int] = field(default_factory=dict)
    udp: dict[str, int] = field(default_factory=dict)
    udp_lite: dict[str, int] = field(default_factory=dict)


@dataclass
class Netstat:
    """Counters read from /proc/PID/net/netstat."""

    tcp_ext: dict[str, int] = field(default_factory=dict)
    ip_ext: dict[str, int] = field(default_factory=dict)


@dataclass
class NetworkCountersInfo:
    """All network counters of a process or host."""

    snmp: SNMP = field(default_factory=SNMP)
    netstat: Netstat = field(default_factory=Netstat)


def check_max_conn(key: str, value: int) -> int:
    """Reinterpret ``MaxConn`` as a signed 64-bit integer; other counters pass through."""
    if key == "MaxConn":
        value &= (1 << 64) - 1
        return value - (1 << 64) if value >= (1 << 63) else value
    return value


def combine_map(
    map1: Mapping[str, int], map2: Mapping[str, int], filter: Sequence[str] | None
) -> dict[str, Any]:
    """Merge two counter maps, keeping only the keys in ``filter`` unless it is empty or "all"."""
    combined: dict[str, Any] = {}
    if not filter or filter[0] == "all":
        for source in (map1, map2):
            for key, value in source.items():
                combined[key] = check_max_conn(key, value)
    else:
        for key in filter:
            for source in (map1, map2):
                if key in source:
                    combined[key] = check_max_conn(key, source[key])
    return combined


def map_proc_net_counters_with_filter(
    raw: NetworkCountersInfo, filter: Sequence[str] | None
) -> dict[str, Any]:
    """Map the counters by protocol, keeping only the counter names in ``filter``."""
    return {
        "ip": combine_map(raw.netstat.ip_ext, raw.snmp.ip, filter),
        "tcp": combine_map(raw.netstat.tcp_ext, raw.snmp.tcp, filter),
        "udp": dict(raw.snmp.udp),
        "udp_lite": dict(raw.snmp.udp_lite),
        "icmp": combine_map(raw.snmp.icmp_msg, raw.snmp.icmp, filter),
    }


def map_proc_net_counters(raw: NetworkCountersInfo) -> dict[str, Any]:
    """Map all the counters by protocol."""
    return map_proc_net_counters_with_filter(raw, ["all"])