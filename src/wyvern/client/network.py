"""Network-type detection and the Wi-Fi-only upload gate.

This module provides:
- NetworkType: Kind of connection currently in use
- NetworkProbe: Protocol for anything that can report the NetworkType
- SystemNetworkProbe: Probe backed by Linux /sys/class/net
- is_network_allowed: The gate applied before a batch starts
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

SYS_CLASS_NET = Path("/sys/class/net")

# Interface name prefixes used by mobile broadband / tethering drivers
CELLULAR_PREFIXES = ("wwan", "rmnet", "ppp", "usb", "ccmni")

ALLOWED_ON_WIFI_ONLY = frozenset({"wifi", "ethernet", "unknown"})


class NetworkType(str, Enum):
    """Kind of network connection."""

    WIFI = "wifi"
    ETHERNET = "ethernet"
    CELLULAR = "cellular"
    NONE = "none"
    UNKNOWN = "unknown"


class NetworkProbe(Protocol):
    """Reports the current network type."""

    def current_type(self) -> NetworkType: ...


class SystemNetworkProbe:
    """Classify the active connection from the interfaces that are up.

    Wireless interfaces win over wired ones, and wired ones over cellular,
    so a laptop docked on Ethernet with a modem attached counts as Ethernet.
    Links that are up but not backed by hardware count as unknown.
    """

    def __init__(self, sys_class_net: Path = SYS_CLASS_NET) -> None:
        self._root = sys_class_net

    def current_type(self) -> NetworkType:
        if not sys.platform.startswith("linux") or not self._root.is_dir():
            return NetworkType.UNKNOWN

        kinds = {self._classify(iface) for iface in self._root.iterdir() if self._is_up(iface)}
        if not kinds:
            return NetworkType.NONE
        for kind in (NetworkType.WIFI, NetworkType.ETHERNET, NetworkType.CELLULAR):
            if kind in kinds:
                return kind
        return NetworkType.UNKNOWN

    @staticmethod
    def _is_up(iface: Path) -> bool:
        if iface.name == "lo":
            return False
        try:
            return (iface / "operstate").read_text().strip() == "up"
        except OSError:
            return False

    @staticmethod
    def _classify(iface: Path) -> NetworkType:
        if (iface / "wireless").exists() or (iface / "phy80211").exists():
            return NetworkType.WIFI
        if iface.name.startswith(CELLULAR_PREFIXES):
            return NetworkType.CELLULAR
        if not (iface / "device").exists():
            # Virtual interfaces (bridges, VPN tunnels, container veths)
            return NetworkType.UNKNOWN
        return NetworkType.ETHERNET


def is_network_allowed(wifi_only: bool, probe: NetworkProbe | None = None) -> bool:
    """Decide whether uploads may start on the current network.

    Wi-Fi, Ethernet and unrecognized connections are allowed; cellular (and
    no connection at all) is refused. Any failure while probing allows the
    upload.

    Args:
        wifi_only: The user's Wi-Fi-only setting.
        probe: Network probe (default: SystemNetworkProbe).

    Returns:
        True if uploads may proceed.
    """
    if not wifi_only:
        return True

    probe = probe or SystemNetworkProbe()
    try:
        network_type = NetworkType(probe.current_type())
    except Exception as e:
        logger.error(f"Network check failed, allowing upload: {e}")
        return True

    allowed = network_type.value in ALLOWED_ON_WIFI_ONLY
    if not allowed:
        logger.info(f"Wi-Fi-only is enabled and current network is {network_type.value}")
    return allowed
