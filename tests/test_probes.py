"""
Tests for the ICMP, TCP and UDP probes.
"""

import socket
import threading

import pytest
from scapy.layers.inet import ICMP, IP
from scapy.packet import Raw

from host_discovery.scanners.icmp_probe import IcmpProbe, build_echo_request, is_echo_reply_from
from host_discovery.scanners.tcp_probe import TcpProbe
from host_discovery.scanners.udp_probe import UdpProbe


def echo_reply_bytes(src, dst="10.0.0.100", icmp_type=0):
    return bytes(IP(src=src, dst=dst) / ICMP(type=icmp_type, id=1, seq=1) / Raw(load=b"ping"))


class FakeIcmpSocket:
    """Socket double replaying a scripted sequence of recvfrom results."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.sent = []
        self.timeouts = []

    def sendto(self, data, address):
        self.sent.append((data, address))

    def settimeout(self, value):
        self.timeouts.append(value)

    def recvfrom(self, size):
        if not self.replies:
            raise socket.timeout()
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class TestIcmpPackets:
    """Test Echo packet encoding and reply matching."""

    def test_build_echo_request(self):
        """Should build an Echo-Request with id, seq and payload."""
        packet = ICMP(build_echo_request(0x1234, 1, b"ping"))
        assert packet.type == 8
        assert packet.id == 0x1234
        assert packet.seq == 1
        assert bytes(packet.payload) == b"ping"

    def test_reply_from_target_matches(self):
        """Should accept an Echo-Reply whose IP source is the target."""
        data = echo_reply_bytes("10.0.0.5")
        assert is_echo_reply_from(data, "10.0.0.5", "10.0.0.5", includes_ip_header=True)

    def test_reply_from_other_host_ignored(self):
        """Should ignore replies from other senders."""
        data = echo_reply_bytes("10.0.0.6")
        assert not is_echo_reply_from(data, "10.0.0.5", "10.0.0.6", includes_ip_header=True)

    def test_non_reply_type_ignored(self):
        """Should ignore ICMP messages that are not Echo-Replies."""
        data = echo_reply_bytes("10.0.0.5", icmp_type=3)
        assert not is_echo_reply_from(data, "10.0.0.5", "10.0.0.5", includes_ip_header=True)

    def test_datagram_socket_reply(self):
        """Should match replies without an IP header using the peer address."""
        data = bytes(ICMP(type=0, id=7, seq=1) / Raw(load=b"ping"))
        assert is_echo_reply_from(data, "10.0.0.5", "10.0.0.5", includes_ip_header=False)


class TestIcmpProbe:
    """Test the ICMP probe loop with a fake socket."""

    def test_reply_after_foreign_traffic(self):
        """Should skip foreign packets and report the target's reply with latency."""
        fake = FakeIcmpSocket([
            (echo_reply_bytes("10.0.0.9"), ("10.0.0.9", 0)),
            socket.timeout(),
            (echo_reply_bytes("10.0.0.5"), ("10.0.0.5", 0)),
        ])
        probe = IcmpProbe(socket_factory=lambda *args: fake)

        reachable, latency = probe.probe("10.0.0.5", timeout=1.0)

        assert reachable is True
        assert latency is not None and latency >= 0
        assert fake.sent[0][1] == ("10.0.0.5", 0)
        assert all(t <= 0.1 for t in fake.timeouts)

    def test_no_reply_times_out(self):
        """Should give up after the timeout when nothing answers."""
        fake = FakeIcmpSocket([])
        probe = IcmpProbe(poll_interval=0.01, socket_factory=lambda *args: fake)
        assert probe.probe("10.0.0.5", timeout=0.05) == (False, None)

    def test_socket_refused_without_fallback(self, error_handler):
        """Should report unreachable and record the permission error."""
        def factory(*args):
            raise PermissionError(1, "Operation not permitted")

        probe = IcmpProbe(allow_unprivileged=False, socket_factory=factory, error_handler=error_handler)
        assert probe.probe("10.0.0.5", timeout=0.05) == (False, None)
        assert error_handler.summary() == {"permission_error": 1}

    def test_unprivileged_fallback(self):
        """Should retry with a datagram ICMP socket when raw sockets are refused."""
        reply = bytes(ICMP(type=0, id=1, seq=1) / Raw(load=b"ping"))
        fake = FakeIcmpSocket([(reply, ("10.0.0.5", 0))])
        opened = []

        def factory(family, kind, proto):
            opened.append(kind)
            if kind == socket.SOCK_RAW:
                raise PermissionError(1, "Operation not permitted")
            return fake

        probe = IcmpProbe(socket_factory=factory)
        assert probe.probe("10.0.0.5", timeout=0.5)[0] is True
        assert opened == [socket.SOCK_RAW, socket.SOCK_DGRAM]

        probe.probe("10.0.0.5", timeout=0.01)
        assert opened[-1] == socket.SOCK_DGRAM

    def test_send_failure(self, error_handler):
        """Should absorb a failed send."""
        class FailingSocket(FakeIcmpSocket):
            def sendto(self, data, address):
                raise OSError(101, "Network is unreachable")

        probe = IcmpProbe(socket_factory=lambda *args: FailingSocket([]), error_handler=error_handler)
        assert probe.probe("10.0.0.5", timeout=0.05) == (False, None)
        assert error_handler.summary() == {"network_error": 1}


@pytest.fixture
def tcp_listener():
    """Listening TCP socket on an ephemeral loopback port."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(8)
    yield server.getsockname()[1]
    server.close()


def unused_port(kind):
    sock = socket.socket(socket.AF_INET, kind)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


class TestTcpProbe:
    """Test the TCP connect probe on loopback."""

    def test_open_and_closed_ports(self, tcp_listener):
        """Should report the listening port and skip the closed one."""
        closed = unused_port(socket.SOCK_STREAM)
        probe = TcpProbe(ports=[closed, tcp_listener])
        assert probe.probe("127.0.0.1", timeout=0.5) == [tcp_listener]

    def test_default_ports(self):
        """Should use the common service ports by default."""
        assert TcpProbe().ports == [21, 22, 23, 25, 53, 80, 135, 139, 443, 445]


@pytest.fixture
def udp_echo_server():
    """UDP server on loopback that echoes every datagram it receives."""
    server = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    server.bind(("127.0.0.1", 0))
    server.settimeout(0.1)
    received = []
    stop = threading.Event()

    def serve():
        while not stop.is_set():
            try:
                data, address = server.recvfrom(1500)
            except socket.timeout:
                continue
            except OSError:
                break
            received.append(data)
            server.sendto(b"pong:" + data, address)

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield server.getsockname()[1], received
    stop.set()
    thread.join(timeout=1)
    server.close()


class TestUdpProbe:
    """Test the UDP probe on loopback."""

    def test_replying_port_is_open(self, udp_echo_server):
        """Should mark a port open only when a datagram comes back."""
        port, received = udp_echo_server
        silent = unused_port(socket.SOCK_DGRAM)
        probe = UdpProbe(ports=[silent, port])

        assert probe.probe("127.0.0.1", timeout=0.3) == [port]
        assert received == [b"probe"]

    def test_silent_port_is_not_reported(self):
        """Should not report a port that never answers."""
        silent = unused_port(socket.SOCK_DGRAM)
        assert UdpProbe(ports=[silent]).probe("127.0.0.1", timeout=0.1) == []
