"""
Core data models and enums for the Host Discovery Module.

This module defines the data structures shared by the probes, the MAC
resolver and the scan coordinator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class DiscoveryMethod(Enum):
    """How a host was found to be alive."""
    ICMP = "ICMP"
    TCP = "TCP"
    ICMP_TCP = "ICMP+TCP"


@dataclass(frozen=True)
class ProbeOptions:
    """
    Probe types enabled for a scan in addition to ICMP.

    Attributes:
        use_tcp: Run TCP connect probes against the configured ports
        use_udp: Run UDP probes (only for hosts that ICMP or TCP found)
    """
    use_tcp: bool = False
    use_udp: bool = False


@dataclass(frozen=True)
class ProbeOutcome:
    """
    Result of the probe pipeline for a single address.

    Attributes:
        reachable: True if ICMP replied or any port answered
        icmp_reachable: True if an ICMP Echo-Reply came back from the target
        icmp_latency: Round-trip time in seconds when ICMP succeeded
        tcp_ports: TCP ports that accepted a connection, ascending
        udp_ports: UDP ports that returned a datagram, ascending
    """
    reachable: bool
    icmp_reachable: bool = False
    icmp_latency: Optional[float] = None
    tcp_ports: Tuple[int, ...] = ()
    udp_ports: Tuple[int, ...] = ()

    @property
    def open_ports(self) -> Tuple[int, ...]:
        """Union of TCP and UDP ports, ascending and without duplicates."""
        return tuple(sorted(set(self.tcp_ports) | set(self.udp_ports)))

    @property
    def discovered_via(self) -> DiscoveryMethod:
        # UDP never runs alone, so a host without ICMP was found over TCP
        if self.icmp_reachable and self.tcp_ports:
            return DiscoveryMethod.ICMP_TCP
        if self.icmp_reachable:
            return DiscoveryMethod.ICMP
        return DiscoveryMethod.TCP


@dataclass(frozen=True)
class HostRecord:
    """
    Information about a discovered host.

    Attributes:
        address: IPv4 address of the host
        mac: Hardware address, upper-case and colon-separated ("" when unknown)
        hostname: Reverse DNS name without trailing dot ("" when unknown)
        open_ports: Open TCP/UDP ports, ascending and unique
        icmp_latency: ICMP round-trip time in seconds (None when ICMP failed)
        discovered_via: Which probe family found the host
        process_time: Wall time spent in the probe pipeline for this host
    """
    address: str
    mac: str = ""
    hostname: str = ""
    open_ports: Tuple[int, ...] = ()
    icmp_latency: Optional[float] = None
    discovered_via: DiscoveryMethod = DiscoveryMethod.ICMP
    process_time: float = 0.0

    def __post_init__(self):
        object.__setattr__(
            self, "open_ports", tuple(sorted(set(self.open_ports)))
        )


@dataclass(frozen=True)
class ScanResult:
    """
    Complete result of a scan.

    Attributes:
        hosts: Discovered hosts sorted by numeric IPv4 value
        total_candidates: Number of addresses that were probed
        completed_count: Number of finished per-address tasks
        duration: Wall time of the whole scan in seconds
        absorbed_errors: Per-host errors absorbed during the scan, by type
    """
    hosts: Tuple[HostRecord, ...]
    total_candidates: int
    completed_count: int
    duration: float = 0.0
    absorbed_errors: Dict[str, int] = field(default_factory=dict)

    @property
    def found_count(self) -> int:
        return len(self.hosts)
