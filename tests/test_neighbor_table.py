"""
Tests for the platform neighbor table loaders.
"""

import socket
import struct
import threading
import time

import pytest

from host_discovery.resolvers.neighbor_table import (
    DarwinNeighborLoader,
    LinuxProcNetArpLoader,
    NeighborCache,
    NeighborTableLoader,
    UnsupportedLoader,
    WindowsNeighborApiLoader,
    parse_arp_an_output,
    parse_ip_net_table,
    parse_proc_net_arp,
    select_neighbor_table_loader,
)

PROC_NET_ARP = """IP address       HW type     Flags       HW address            Mask     Device
192.168.1.1      0x1         0x2         aa:bb:cc:dd:ee:ff     *        eth0
192.168.1.20     0x1         0x0         00:00:00:00:00:00     *        eth0
192.168.1.30     0x1         0x2         01:23:45:67:89:ab     *        wlan0
"""

ARP_AN_OUTPUT = """? (192.168.1.1) at 0:1a:2b:3c:4d:5e on en0 ifscope [ethernet]
? (192.168.1.9) at (incomplete) on en0 ifscope [ethernet]
router.lan (192.168.1.254) at a4:91:b1:0:0:1 on en0 ifscope permanent [ethernet]
"""


class TestParsers:
    """Test the raw table parsers."""

    def test_parse_proc_net_arp_skips_header(self):
        """Should use column 0 as IP and column 3 as MAC."""
        entries = parse_proc_net_arp(PROC_NET_ARP)
        assert entries[0] == ("192.168.1.1", "aa:bb:cc:dd:ee:ff")
        assert len(entries) == 3

    def test_parse_arp_an_output(self):
        """Should extract complete entries and skip incomplete ones."""
        entries = parse_arp_an_output(ARP_AN_OUTPUT)
        assert entries == [
            ("192.168.1.1", "0:1a:2b:3c:4d:5e"),
            ("192.168.1.254", "a4:91:b1:0:0:1"),
        ]

    def test_parse_ip_net_table(self):
        """Should decode MIB_IPNETROW records with 6 byte hardware addresses."""
        row = struct.Struct("<II8sII")
        addr = struct.unpack("<I", socket.inet_aton("10.0.0.7"))[0]
        buffer = struct.pack("<I", 2)
        buffer += row.pack(3, 6, bytes.fromhex("00155d0a0b0c") + b"\x00\x00", addr, 3)
        buffer += row.pack(3, 0, b"\x00" * 8, addr, 2)
        assert parse_ip_net_table(buffer) == [("10.0.0.7", "00:15:5D:0A:0B:0C")]

    def test_parse_ip_net_table_truncated(self):
        """Should stop at a truncated buffer."""
        assert parse_ip_net_table(struct.pack("<I", 5)) == []
        assert parse_ip_net_table(b"") == []


class TestLoaders:
    """Test loading into the cache."""

    def test_linux_loader_fills_cache(self, tmp_path):
        """Should upper-case MACs and reject the all-zero address."""
        arp_file = tmp_path / "arp"
        arp_file.write_text(PROC_NET_ARP)
        cache = NeighborCache()

        LinuxProcNetArpLoader(path=str(arp_file)).load(cache)

        assert cache.loaded is True
        assert cache.get("192.168.1.1") == "AA:BB:CC:DD:EE:FF"
        assert cache.get("192.168.1.30") == "01:23:45:67:89:AB"
        assert cache.get("192.168.1.20") == ""

    def test_missing_file_leaves_flag_unset(self, tmp_path, error_handler):
        """Should record the failure and allow a later retry."""
        cache = NeighborCache()
        loader = LinuxProcNetArpLoader(path=str(tmp_path / "missing"), error_handler=error_handler)

        loader.load(cache)

        assert cache.loaded is False
        assert error_handler.summary() == {"file_error": 1}

    def test_loaded_flag_short_circuits(self, tmp_path):
        """Should not read the table again once loaded."""
        arp_file = tmp_path / "arp"
        arp_file.write_text(PROC_NET_ARP)
        cache = NeighborCache()
        cache.mark_loaded()

        LinuxProcNetArpLoader(path=str(arp_file)).load(cache)

        assert len(cache) == 0

    def test_existing_entries_are_not_overwritten(self):
        """Should keep the first MAC recorded for an address."""
        cache = NeighborCache()
        assert cache.put("10.0.0.1", "aa:aa:aa:aa:aa:aa") is True
        assert cache.put("10.0.0.1", "bb:bb:bb:bb:bb:bb") is False
        assert cache.put("10.0.0.2", "") is False
        assert cache.put("10.0.0.3", "not-a-mac") is False
        assert cache.get("10.0.0.1") == "AA:AA:AA:AA:AA:AA"

    def test_darwin_loader_runs_command(self):
        """Should parse the output of the configured command."""
        loader = DarwinNeighborLoader(command=["echo", "? (10.1.1.1) at 0:1:2:3:4:5 on en0"])
        cache = NeighborCache()
        loader.load(cache)
        assert cache.get("10.1.1.1") == "00:01:02:03:04:05"

    def test_darwin_loader_command_failure(self, error_handler):
        """Should absorb a failing command."""
        loader = DarwinNeighborLoader(command=["false"], error_handler=error_handler)
        cache = NeighborCache()
        loader.load(cache)
        assert cache.loaded is False
        assert sum(error_handler.summary().values()) == 1

    def test_concurrent_loads_converge_on_one_read(self):
        """Should read the table only once when many threads load at the same time."""

        class CountingLoader(NeighborTableLoader):
            def __init__(self):
                super().__init__()
                self.reads = 0

            def read_entries(self):
                self.reads += 1
                time.sleep(0.05)
                return [("10.0.0.1", "aa:bb:cc:dd:ee:01")]

        loader = CountingLoader()
        cache = NeighborCache()
        threads = [threading.Thread(target=loader.load, args=(cache,)) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert loader.reads == 1
        assert cache.get("10.0.0.1") == "AA:BB:CC:DD:EE:01"


class TestSelection:
    """Test platform loader selection."""

    @pytest.mark.parametrize("system, expected", [
        ("Linux", LinuxProcNetArpLoader),
        ("Windows", WindowsNeighborApiLoader),
        ("Darwin", DarwinNeighborLoader),
        ("SunOS", UnsupportedLoader),
    ])
    def test_select_by_platform(self, system, expected):
        """Should pick the loader matching the platform name."""
        assert isinstance(select_neighbor_table_loader(system), expected)

    def test_unsupported_loader_flag(self):
        """Should advertise itself as unsupported."""
        assert UnsupportedLoader().supported is False
