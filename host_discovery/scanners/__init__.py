"""
Per-host probes and the probe pipeline that combines them.
"""

from .base_probe import BaseProbe, PortProbe
from .icmp_probe import IcmpProbe
from .tcp_probe import TcpProbe
from .udp_probe import UdpProbe
from .probe_engine import ProbeEngine

__all__ = [
    'BaseProbe',
    'PortProbe',
    'IcmpProbe',
    'TcpProbe',
    'UdpProbe',
    'ProbeEngine'
]
