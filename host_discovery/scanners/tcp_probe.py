"""
TCP connect probe.
"""

import socket
from typing import List, Optional

from ..config.config_loader import DEFAULT_TCP_PORTS
from .base_probe import PortProbe


class TcpProbe(PortProbe):
    """Finds open TCP ports with a full connect per port."""

    name = "tcp"

    def __init__(self, ports: Optional[List[int]] = None, **kwargs):
        super().__init__(ports if ports is not None else DEFAULT_TCP_PORTS, **kwargs)

    def probe(self, ip: str, timeout: float) -> List[int]:
        """
        Try to connect to each configured port.

        Args:
            ip: IPv4 address to probe
            timeout: Connect timeout per port, in seconds

        Returns:
            List of ports that accepted the connection, in probe order
        """
        open_ports = []
        for port in self.ports:
            try:
                with socket.create_connection((ip, port), timeout=timeout):
                    open_ports.append(port)
            except OSError:
                # refused, filtered or unreachable
                continue

        if open_ports:
            self._log_debug(f"{ip}: open TCP ports {open_ports}")
        return open_ports
