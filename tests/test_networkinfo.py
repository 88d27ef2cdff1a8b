import ipaddress
import socket
from types import SimpleNamespace
from unittest import mock

import psutil

from moondeckbuddy.networkinfo import get_mac_address


def _addr(family, address):
    return SimpleNamespace(family=family, address=address)


def _interfaces():
    return {
        "lo": [_addr(psutil.AF_LINK, "00:00:00:00:00:00"), _addr(socket.AF_INET, "127.0.0.1")],
        "eth0": [
            _addr(psutil.AF_LINK, "02:00:00:00:00:01"),
            _addr(socket.AF_INET, "192.0.2.10"),
            _addr(socket.AF_INET6, "fe80::1%eth0"),
        ],
        "wlan0": [_addr(psutil.AF_LINK, "02-00-00-00-00-0a"), _addr(socket.AF_INET, "192.0.2.20")],
        "eth1": [_addr(psutil.AF_LINK, "02:00:00:00:00:02"), _addr(socket.AF_INET, "198.51.100.5")],
    }


def _stats():
    return {
        "lo": SimpleNamespace(isup=True),
        "eth0": SimpleNamespace(isup=True),
        "wlan0": SimpleNamespace(isup=True),
        "eth1": SimpleNamespace(isup=False),
    }


def _patched():
    return (
        mock.patch("psutil.net_if_addrs", return_value=_interfaces()),
        mock.patch("psutil.net_if_stats", return_value=_stats()),
    )


def test_matching_ipv4_address():
    addrs, stats = _patched()
    with addrs, stats:
        assert get_mac_address("192.0.2.10") == "02:00:00:00:00:01"
        assert get_mac_address(ipaddress.ip_address("192.0.2.10")) == "02:00:00:00:00:01"


def test_dash_separated_mac_is_normalized():
    addrs, stats = _patched()
    with addrs, stats:
        assert get_mac_address("192.0.2.20") == "02:00:00:00:00:0A"


def test_ipv4_mapped_ipv6_matches():
    addrs, stats = _patched()
    with addrs, stats:
        assert get_mac_address("::ffff:192.0.2.10") == get_mac_address("192.0.2.10")


def test_scoped_ipv6_matches():
    addrs, stats = _patched()
    with addrs, stats:
        assert get_mac_address("fe80::1") == "02:00:00:00:00:01"


def test_down_interface_loopback_and_unknown_are_empty():
    addrs, stats = _patched()
    with addrs, stats:
        assert get_mac_address("198.51.100.5") == ""
        assert get_mac_address("127.0.0.1") == ""
        assert get_mac_address("203.0.113.1") == ""
        assert get_mac_address("not an address") == ""