"""
ICMP Echo probe.

Sends one Echo-Request and waits for the matching Echo-Reply. Packets are
built and dissected with scapy; the socket I/O is plain ``socket``.
"""

import os
import socket
import time
from typing import Callable, Optional, Tuple

from scapy.layers.inet import ICMP, IP
from scapy.packet import Raw

from .base_probe import BaseProbe

ICMP_ECHO_REQUEST = 8
ICMP_ECHO_REPLY = 0


def build_echo_request(identifier: int, sequence: int, payload: bytes) -> bytes:
    """
    Build an ICMP Echo-Request message (without IP header).

    Args:
        identifier: 16 bit echo identifier
        sequence: 16 bit sequence number
        payload: Echo data

    Returns:
        bytes: Wire encoding with checksum filled in
    """
    packet = ICMP(type=ICMP_ECHO_REQUEST, code=0, id=identifier & 0xFFFF, seq=sequence) / Raw(load=payload)
    return bytes(packet)


def is_echo_reply_from(data: bytes, target: str, peer: str, includes_ip_header: bool) -> bool:
    """
    Check whether received bytes are an Echo-Reply sent by the target.

    Args:
        data: Bytes read from the socket
        target: Address that was pinged
        peer: Source address reported by recvfrom
        includes_ip_header: True for raw sockets, which deliver the IP header

    Returns:
        bool: True for an Echo-Reply whose source is the target
    """
    if not data:
        return False

    if includes_ip_header:
        packet = IP(data)
        source = packet.src
        icmp = packet.getlayer(ICMP)
    else:
        source = peer
        icmp = ICMP(data)

    return icmp is not None and icmp.type == ICMP_ECHO_REPLY and source == target


class IcmpProbe(BaseProbe):
    """
    ICMP Echo reachability probe.

    Uses a raw socket. When raw sockets are not permitted and
    ``allow_unprivileged`` is set, falls back to an unprivileged ICMP
    datagram socket where the platform offers one.
    """

    name = "icmp"

    def __init__(
        self,
        poll_interval: float = 0.1,
        payload: bytes = b"ping",
        allow_unprivileged: bool = True,
        socket_factory: Callable[..., socket.socket] = socket.socket,
        **kwargs
    ):
        """
        Initialize the ICMP probe.

        Args:
            poll_interval: Read deadline of each receive attempt, in seconds
            payload: Echo data
            allow_unprivileged: Try a SOCK_DGRAM ICMP socket if SOCK_RAW is refused
            socket_factory: Socket constructor, replaceable in tests
            **kwargs: Passed to BaseProbe
        """
        super().__init__(**kwargs)
        self.poll_interval = poll_interval
        self.payload = payload
        self.allow_unprivileged = allow_unprivileged
        self.identifier = os.getpid() & 0xFFFF
        self._socket_factory = socket_factory
        self._raw_refused = False

    def probe(self, ip: str, timeout: float) -> Tuple[bool, Optional[float]]:
        """
        Ping a host once.

        Args:
            ip: IPv4 address to ping
            timeout: Overall time to wait for the reply, in seconds

        Returns:
            Tuple of (replied, latency_seconds); latency is None without a reply
        """
        try:
            sock, includes_ip_header = self._open_socket()
        except OSError as e:
            self._record(e, "icmp_open_socket", ip)
            return False, None

        with sock:
            request = build_echo_request(self.identifier, 1, self.payload)
            start = time.monotonic()
            deadline = start + timeout

            try:
                sock.sendto(request, (ip, 0))
            except OSError as e:
                self._record(e, "icmp_send", ip)
                return False, None

            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break

                sock.settimeout(min(self.poll_interval, remaining))
                try:
                    data, address = sock.recvfrom(1500)
                except socket.timeout:
                    continue
                except OSError as e:
                    self._record(e, "icmp_receive", ip)
                    break

                if is_echo_reply_from(data, ip, address[0], includes_ip_header):
                    return True, time.monotonic() - start

        return False, None

    def can_open_raw_socket(self) -> bool:
        """
        Check whether this process may open a raw ICMP socket.

        Returns:
            bool: True if a raw ICMP socket could be opened
        """
        try:
            sock = self._socket_factory(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)
        except OSError:
            return False
        sock.close()
        return True

    def _open_socket(self) -> Tuple[socket.socket, bool]:
        """
        Open the ICMP socket.

        Returns:
            Tuple of (socket, includes_ip_header)

        Raises:
            OSError: If no ICMP socket can be opened
        """
        if not self._raw_refused:
            try:
                return self._socket_factory(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP), True
            except PermissionError:
                if not self.allow_unprivileged:
                    raise
                self._raw_refused = True
                self._log_debug("Raw ICMP socket refused, using unprivileged ICMP socket")

        return self._socket_factory(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_ICMP), False
