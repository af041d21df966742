"""
Per-host probe pipeline.

Runs ICMP first, then TCP when enabled, then UDP when enabled and the host
has already shown signs of life.
"""

from typing import Optional

from ..config.config_loader import ScanConfig
from ..core.data_models import ProbeOptions, ProbeOutcome
from ..utils.error_handler import ErrorHandler
from ..utils.logger import Logger
from .icmp_probe import IcmpProbe
from .tcp_probe import TcpProbe
from .udp_probe import UdpProbe


class ProbeEngine:
    """
    Combines the ICMP, TCP and UDP probes into a single reachability verdict.

    A host is reachable when it answered ICMP or any TCP/UDP port responded.
    UDP is only attempted for hosts already seen via ICMP or TCP, so silent
    addresses do not cost a full UDP sweep.
    """

    def __init__(
        self,
        icmp_probe: Optional[IcmpProbe] = None,
        tcp_probe: Optional[TcpProbe] = None,
        udp_probe: Optional[UdpProbe] = None,
        logger: Optional[Logger] = None,
        error_handler: Optional[ErrorHandler] = None
    ):
        """
        Initialize the probe engine.

        Args:
            icmp_probe: ICMP Echo probe
            tcp_probe: TCP connect probe
            udp_probe: UDP service probe
            logger: Logger instance for debug output
            error_handler: Sink for absorbed errors
        """
        kwargs = {"logger": logger, "error_handler": error_handler}
        self.icmp_probe = icmp_probe or IcmpProbe(**kwargs)
        self.tcp_probe = tcp_probe or TcpProbe(**kwargs)
        self.udp_probe = udp_probe or UdpProbe(**kwargs)
        self.logger = logger

    @classmethod
    def from_config(
        cls,
        config: ScanConfig,
        logger: Optional[Logger] = None,
        error_handler: Optional[ErrorHandler] = None
    ) -> "ProbeEngine":
        """
        Build a probe engine from a scan configuration.

        Args:
            config: Loaded scan configuration
            logger: Logger instance for debug output
            error_handler: Sink for absorbed errors

        Returns:
            ProbeEngine configured with the ports and ICMP settings of the config
        """
        kwargs = {"logger": logger, "error_handler": error_handler}
        return cls(
            icmp_probe=IcmpProbe(
                poll_interval=config.icmp_poll_interval,
                allow_unprivileged=config.icmp_unprivileged_fallback,
                **kwargs
            ),
            tcp_probe=TcpProbe(ports=config.tcp_ports, **kwargs),
            udp_probe=UdpProbe(ports=config.udp_ports, **kwargs),
            **kwargs
        )

    def probe(self, ip: str, timeout: float, options: ProbeOptions) -> ProbeOutcome:
        """
        Run the probe pipeline against one address.

        Args:
            ip: IPv4 address to probe
            timeout: Per-step timeout in seconds
            options: Which optional probes to run

        Returns:
            ProbeOutcome describing what answered
        """
        icmp_reachable, latency = self.icmp_probe.probe(ip, timeout)

        tcp_ports = []
        if options.use_tcp:
            tcp_ports = self.tcp_probe.probe(ip, timeout)

        udp_ports = []
        if options.use_udp and (icmp_reachable or tcp_ports):
            udp_ports = self.udp_probe.probe(ip, timeout)

        return ProbeOutcome(
            reachable=icmp_reachable or bool(tcp_ports) or bool(udp_ports),
            icmp_reachable=icmp_reachable,
            icmp_latency=latency if icmp_reachable else None,
            tcp_ports=tuple(sorted(set(tcp_ports))),
            udp_ports=tuple(sorted(set(udp_ports)))
        )
