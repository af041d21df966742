"""
MAC address resolution for discovered hosts.

Resolution order for an address:

1. the resolver cache
2. the hardware address of a local interface bound to that address
3. the OS neighbor table, loaded once
4. the OS neighbor table, reloaded
5. an ARP trigger followed by another reload

The first step that yields a MAC wins. An unknown MAC is reported as "".
"""

import socket
import time
from typing import Callable, Optional

import psutil

from ..utils.error_handler import ErrorContext, ErrorHandler, ErrorSeverity, classify_os_error
from ..utils.logger import Logger
from ..utils.network_utils import normalize_mac
from .neighbor_table import NeighborCache, NeighborTableLoader, select_neighbor_table_loader

# Discard service; any closed UDP port is enough to make the kernel ARP
ARP_TRIGGER_PORT = 9


def local_interface_mac(ip: str) -> str:
    """
    Look up the hardware address of the local interface bound to an address.

    Only interfaces that are up are considered.

    Args:
        ip: IPv4 address to look for

    Returns:
        str: Normalized MAC of the owning interface, or "" if none matches
    """
    try:
        addresses = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
    except (OSError, RuntimeError):
        return ""

    for interface_name, interface_addresses in addresses.items():
        interface_stats = stats.get(interface_name)
        if interface_stats is None or not interface_stats.isup:
            continue

        if not any(
            address.family == socket.AF_INET and address.address == ip
            for address in interface_addresses
        ):
            continue

        for address in interface_addresses:
            if address.family == psutil.AF_LINK:
                return normalize_mac(address.address)
        return ""

    return ""


def trigger_arp(ip: str) -> None:
    """
    Make the OS resolve an address by sending an empty datagram to it.

    Args:
        ip: IPv4 address to resolve

    Raises:
        OSError: If the datagram cannot be sent
    """
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.sendto(b"", (ip, ARP_TRIGGER_PORT))


class MacResolver:
    """
    Thread-safe IP to MAC resolver.

    The cache and its loaded flag share one lock; the neighbor table loader
    takes that lock itself, so concurrent callers converge on a single load.
    """

    def __init__(
        self,
        loader: Optional[NeighborTableLoader] = None,
        interface_lookup: Callable[[str], str] = local_interface_mac,
        arp_trigger: Callable[[str], None] = trigger_arp,
        settle_delay: float = 0.05,
        logger: Optional[Logger] = None,
        error_handler: Optional[ErrorHandler] = None
    ):
        """
        Initialize the resolver.

        Args:
            loader: Neighbor table loader; selected from the running platform when None
            interface_lookup: Function returning the MAC of a local interface address
            arp_trigger: Function prompting the OS to ARP for an address
            settle_delay: Seconds to wait after an ARP trigger before reloading
            logger: Logger instance for debug output
            error_handler: Sink for absorbed errors
        """
        self.logger = logger
        self.error_handler = error_handler
        self.cache = NeighborCache()
        self.loader = loader or select_neighbor_table_loader(
            logger=logger, error_handler=error_handler
        )
        self._interface_lookup = interface_lookup
        self._arp_trigger = arp_trigger
        self.settle_delay = settle_delay

        if not self.loader.supported:
            self.cache.mark_loaded()

    def resolve(self, ip: str) -> str:
        """
        Resolve the MAC address of a host.

        Args:
            ip: IPv4 address of the host

        Returns:
            str: Upper-case colon-separated MAC, or "" if it cannot be found
        """
        mac = self.cache.get(ip)
        if mac:
            return mac

        # Interface enumeration runs outside the cache lock
        mac = self._interface_lookup(ip)
        if mac:
            self.cache.put(ip, mac)
            return self.cache.get(ip) or mac

        self.ensure_loaded()
        mac = self.cache.get(ip)
        if mac:
            return mac

        self.reload()
        mac = self.cache.get(ip)
        if mac:
            return mac

        self._trigger(ip)
        self.reload()
        mac = self.cache.get(ip)
        if not mac and self.logger:
            self.logger.debug(f"No MAC address found for {ip}")
        return mac

    def ensure_loaded(self) -> None:
        """Load the neighbor table unless it has already been loaded."""
        if self.cache.is_loaded():
            return
        self.loader.load(self.cache)

    def reload(self) -> None:
        """Force a fresh read of the neighbor table."""
        if not self.loader.supported:
            return
        self.cache.reset_loaded()
        self.loader.load(self.cache)

    def _trigger(self, ip: str) -> None:
        try:
            self._arp_trigger(ip)
        except OSError as e:
            if self.error_handler:
                self.error_handler.record(
                    e,
                    ErrorContext(
                        error_type=classify_os_error(e),
                        severity=ErrorSeverity.LOW,
                        operation="trigger_arp",
                        component="MacResolver",
                        additional_info={"target": ip},
                    ),
                )
            return

        if self.settle_delay > 0:
            time.sleep(self.settle_delay)
