"""LAN address discovery.

Picks the IPv4 address other devices on the same WiFi network can reach.
"""
from __future__ import annotations

import ipaddress
import logging
import socket
from typing import Callable, Mapping, Optional, Sequence

import psutil

logger = logging.getLogger(__name__)

# Interface names that usually belong to a wireless adapter
# (Linux wlan0/wlp3s0, Windows "Wi-Fi", macOS en0/en1).
WIFI_HINTS = ("wlan", "wifi", "wi-fi", "wlp", "en0", "en1")


def _lan_ipv4(addresses) -> list:
    out = []
    for addr in addresses:
        if addr.family != socket.AF_INET:
            continue
        try:
            if ipaddress.ip_address(addr.address).is_loopback:
                continue
        except ValueError:
            continue
        out.append(addr.address)
    return out


class AddressResolver:
    """Resolve and cache the LAN-facing IPv4 address of this machine.

    ``interfaces`` returns a mapping of interface name to address records
    with ``family`` and ``address`` attributes, in enumeration order; it
    defaults to ``psutil.net_if_addrs``.
    """

    def __init__(self, interfaces: Callable[[], Mapping[str, Sequence]] = psutil.net_if_addrs,
                 wifi_hints: Sequence[str] = WIFI_HINTS):
        self._interfaces = interfaces
        self._wifi_hints = tuple(h.lower() for h in wifi_hints)
        self._address: Optional[str] = None

    def resolve(self) -> Optional[str]:
        if self._address is not None:
            return self._address
        try:
            table = self._interfaces()
        except Exception:
            logger.exception("Failed to enumerate network interfaces")
            return None

        fallback = None
        for name, addresses in table.items():
            candidates = _lan_ipv4(addresses)
            if not candidates:
                continue
            if any(hint in name.lower() for hint in self._wifi_hints):
                self._address = candidates[0]
                logger.info("Found WiFi IP: %s on %s", self._address, name)
                return self._address
            if fallback is None:
                fallback = (candidates[0], name)

        if fallback is None:
            logger.warning("No non-loopback IPv4 address found")
            return None
        self._address = fallback[0]
        logger.info("Using fallback IP: %s on %s", self._address, fallback[1])
        return self._address
