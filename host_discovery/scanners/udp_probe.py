"""
UDP service probe.

A UDP port only counts as open when the service answers the probe datagram.
Silence is ambiguous (closed, filtered or just quiet) and is never reported.
"""

import socket
from typing import List, Optional

from ..config.config_loader import DEFAULT_UDP_PORTS
from .base_probe import PortProbe


class UdpProbe(PortProbe):
    """Sends a small datagram to each port and waits for a reply."""

    name = "udp"

    def __init__(self, ports: Optional[List[int]] = None, payload: bytes = b"probe", **kwargs):
        super().__init__(ports if ports is not None else DEFAULT_UDP_PORTS, **kwargs)
        self.payload = payload

    def probe(self, ip: str, timeout: float) -> List[int]:
        """
        Probe each configured UDP port.

        Args:
            ip: IPv4 address to probe
            timeout: Time to wait for each reply, in seconds

        Returns:
            List of ports that sent back a datagram, in probe order
        """
        open_ports = []
        for port in self.ports:
            if self._probe_port(ip, port, timeout):
                open_ports.append(port)

        if open_ports:
            self._log_debug(f"{ip}: responding UDP ports {open_ports}")
        return open_ports

    def _probe_port(self, ip: str, port: int, timeout: float) -> bool:
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as e:
            self._record(e, "udp_open_socket", ip)
            return False

        with sock:
            sock.settimeout(timeout)
            try:
                sock.connect((ip, port))
            except OSError:
                return False

            if not self._send(sock):
                return False

            try:
                data = sock.recv(1500)
            except OSError:
                # timeout, or ICMP port unreachable surfacing as ECONNREFUSED
                return False

        return len(data) > 0

    def _send(self, sock: socket.socket) -> bool:
        """Send the probe payload, retrying once on failure."""
        for _ in range(2):
            try:
                sock.send(self.payload)
                return True
            except OSError:
                continue
        return False
