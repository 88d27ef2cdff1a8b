"""Looking up the hardware address of the interface that owns an IP address."""

from __future__ import annotations

import ipaddress
import socket
from typing import Optional, Union

import psutil

_ZERO_MAC = "00:00:00:00:00:00"
_IP_FAMILIES = (socket.AF_INET, socket.AF_INET6)

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _parse_address(address: object) -> Optional[IpAddress]:
    text = str(address).split("%", 1)[0]
    try:
        parsed = ipaddress.ip_address(text)
    except ValueError:
        return None
    if isinstance(parsed, ipaddress.IPv6Address) and parsed.ipv4_mapped is not None:
        return parsed.ipv4_mapped
    return parsed


def _normalize_mac(mac: str) -> str:
    return mac.replace("-", ":").upper()


def get_mac_address(host_address: object) -> str:
    """Return the MAC address of the running interface holding ``host_address``, or ''."""
    target = _parse_address(host_address)
    if target is None:
        return ""

    stats = psutil.net_if_stats()
    for name, addresses in psutil.net_if_addrs().items():
        stat = stats.get(name)
        if stat is None or not stat.isup:
            continue

        mac = _normalize_mac(next((entry.address for entry in addresses if entry.family == psutil.AF_LINK), ""))
        if not mac or mac == _ZERO_MAC:
            continue

        if any(
            _parse_address(entry.address) == target for entry in addresses if entry.family in _IP_FAMILIES
        ):
            return mac
    return ""