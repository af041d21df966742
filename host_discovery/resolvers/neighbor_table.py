"""
Operating system neighbor (ARP) table access.

Each platform exposes its IPv4 neighbor table differently. A
NeighborTableLoader knows how to read one of them and fills a shared
NeighborCache. The loader for the running platform is picked once, by
select_neighbor_table_loader(), when the MAC resolver is built.
"""

import ctypes
import platform
import re
import socket
import struct
import subprocess
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from ..utils.error_handler import (
    ErrorContext, ErrorHandler, ErrorSeverity, classify_os_error
)
from ..utils.logger import Logger
from ..utils.network_utils import is_valid_ip, normalize_mac


class NeighborCache:
    """
    IP to MAC cache shared by the resolver and its loader.

    ``lock`` guards both ``entries`` and ``loaded``. Entries are only ever
    added; an address that already has a MAC keeps it.
    """

    def __init__(self):
        self.lock = threading.Lock()
        self.entries: Dict[str, str] = {}
        self.loaded = False

    def get(self, ip: str) -> str:
        with self.lock:
            return self.entries.get(ip, "")

    def put(self, ip: str, mac: str) -> bool:
        """
        Store a mapping if the MAC is valid and the address is not cached yet.

        Returns:
            True if the entry was added
        """
        with self.lock:
            return self._store_locked(ip, mac)

    def _store_locked(self, ip: str, mac: str) -> bool:
        mac = normalize_mac(mac)
        if not mac or not is_valid_ip(ip) or ip in self.entries:
            return False
        self.entries[ip] = mac
        return True

    def mark_loaded(self) -> None:
        with self.lock:
            self.loaded = True

    def reset_loaded(self) -> None:
        with self.lock:
            self.loaded = False

    def is_loaded(self) -> bool:
        with self.lock:
            return self.loaded

    def __len__(self) -> int:
        with self.lock:
            return len(self.entries)


class NeighborTableLoader(ABC):
    """
    Abstract base class for platform neighbor table readers.

    Concrete loaders only implement :meth:`read_entries`. :meth:`load` takes
    the cache lock, returns at once if another caller already loaded the
    table, and otherwise merges the entries and sets the loaded flag. A read
    failure is recorded and leaves the flag unset so a later call retries.
    """

    platform_name = "unknown"
    supported = True

    def __init__(self, logger: Optional[Logger] = None, error_handler: Optional[ErrorHandler] = None):
        """
        Initialize the loader.

        Args:
            logger: Logger instance for debug output
            error_handler: Sink for absorbed read errors
        """
        self.logger = logger
        self.error_handler = error_handler

    def load(self, cache: NeighborCache) -> None:
        """
        Populate the cache from the neighbor table unless already loaded.

        Args:
            cache: Cache to fill
        """
        with cache.lock:
            if cache.loaded:
                return

            try:
                entries = self.read_entries()
            except (OSError, ValueError, subprocess.SubprocessError) as e:
                self._record_failure(e)
                return

            added = 0
            for ip, mac in entries:
                if cache._store_locked(ip, mac):
                    added += 1
            cache.loaded = True

        self._log_debug(
            f"{self.platform_name} neighbor table: {len(entries)} entries read, {added} new"
        )

    @abstractmethod
    def read_entries(self) -> List[Tuple[str, str]]:
        """
        Read the raw (ip, mac) pairs from the operating system.

        Returns:
            List of (ip, mac) tuples; MACs may be in any notation

        Raises:
            OSError: If the table cannot be read
        """
        pass

    def _record_failure(self, error: Exception) -> None:
        if self.error_handler:
            self.error_handler.record(
                error,
                ErrorContext(
                    error_type=classify_os_error(error),
                    severity=ErrorSeverity.LOW,
                    operation="read_neighbor_table",
                    component=type(self).__name__,
                ),
            )
        else:
            self._log_debug(f"Failed to read {self.platform_name} neighbor table: {error}")

    def _log_debug(self, message: str) -> None:
        """Log a debug message if logger is available."""
        if self.logger:
            self.logger.debug(message)


class LinuxProcNetArpLoader(NeighborTableLoader):
    """Reads the kernel ARP table exposed at /proc/net/arp."""

    platform_name = "Linux"

    def __init__(self, path: str = "/proc/net/arp", **kwargs):
        super().__init__(**kwargs)
        self.path = path

    def read_entries(self) -> List[Tuple[str, str]]:
        with open(self.path, "r", encoding="utf-8") as f:
            return parse_proc_net_arp(f.read())


class WindowsNeighborApiLoader(NeighborTableLoader):
    """Reads the IPv4 neighbor table through GetIpNetTable in iphlpapi.dll."""

    platform_name = "Windows"

    ERROR_INSUFFICIENT_BUFFER = 122
    ERROR_NO_DATA = 232
    NO_ERROR = 0

    def read_entries(self) -> List[Tuple[str, str]]:
        get_ip_net_table = ctypes.WinDLL("iphlpapi.dll").GetIpNetTable

        size = ctypes.c_ulong(0)
        ret = get_ip_net_table(None, ctypes.byref(size), True)
        if ret in (self.NO_ERROR, self.ERROR_NO_DATA):
            return []
        if ret != self.ERROR_INSUFFICIENT_BUFFER:
            raise OSError(ret, "GetIpNetTable size query failed")

        buffer = ctypes.create_string_buffer(size.value)
        ret = get_ip_net_table(buffer, ctypes.byref(size), False)
        if ret != self.NO_ERROR:
            raise OSError(ret, "GetIpNetTable failed")

        return parse_ip_net_table(buffer.raw[:size.value])


class DarwinNeighborLoader(NeighborTableLoader):
    """Reads the BSD routing table link-layer entries via ``arp -an``."""

    platform_name = "Darwin"

    def __init__(self, command: Optional[List[str]] = None, timeout: float = 10.0, **kwargs):
        super().__init__(**kwargs)
        self.command = command or ["arp", "-an"]
        self.timeout = timeout

    def read_entries(self) -> List[Tuple[str, str]]:
        result = subprocess.run(
            self.command,
            capture_output=True,
            text=True,
            timeout=self.timeout
        )
        if result.returncode != 0:
            raise subprocess.CalledProcessError(result.returncode, self.command, result.stdout, result.stderr)
        return parse_arp_an_output(result.stdout)


class UnsupportedLoader(NeighborTableLoader):
    """Placeholder for platforms without a neighbor table reader."""

    platform_name = "unsupported"
    supported = False

    def read_entries(self) -> List[Tuple[str, str]]:
        return []


def parse_proc_net_arp(content: str) -> List[Tuple[str, str]]:
    """
    Parse the contents of /proc/net/arp.

    Format (first line is a header)::

        IP address       HW type     Flags       HW address            Mask     Device
        192.168.1.1      0x1         0x2         aa:bb:cc:dd:ee:ff     *        eth0

    Args:
        content: File contents

    Returns:
        List of (ip, mac) tuples
    """
    entries = []
    for line in content.splitlines()[1:]:
        fields = line.split()
        if len(fields) >= 4:
            entries.append((fields[0], fields[3]))
    return entries


_ARP_AN_LINE = re.compile(r"\((?P<ip>\d{1,3}(?:\.\d{1,3}){3})\) at (?P<mac>[0-9A-Fa-f:]+)\b")


def parse_arp_an_output(output: str) -> List[Tuple[str, str]]:
    """
    Parse BSD ``arp -an`` output.

    Format: "? (192.168.1.1) at 0:1a:2b:3c:4d:5e on en0 ifscope [ethernet]".
    Lines for incomplete entries carry "(incomplete)" and are skipped.

    Args:
        output: Command stdout

    Returns:
        List of (ip, mac) tuples
    """
    entries = []
    for line in output.splitlines():
        match = _ARP_AN_LINE.search(line)
        if match:
            entries.append((match.group("ip"), match.group("mac")))
    return entries


# MIB_IPNETROW: dwIndex, dwPhysAddrLen, bPhysAddr[8], dwAddr, dwType
_IPNETROW = struct.Struct("<II8sII")


def parse_ip_net_table(buffer: bytes) -> List[Tuple[str, str]]:
    """
    Parse a MIB_IPNETTABLE buffer returned by GetIpNetTable.

    Args:
        buffer: Raw table bytes (entry count followed by MIB_IPNETROW records)

    Returns:
        List of (ip, mac) tuples for rows with a 6 byte hardware address
    """
    if len(buffer) < 4:
        return []

    (count,) = struct.unpack_from("<I", buffer, 0)
    entries = []
    for i in range(count):
        offset = 4 + i * _IPNETROW.size
        if offset + _IPNETROW.size > len(buffer):
            break

        _, phys_len, phys_addr, addr, _ = _IPNETROW.unpack_from(buffer, offset)
        if phys_len != 6:
            continue

        # dwAddr holds the address in network byte order
        ip = socket.inet_ntoa(struct.pack("<I", addr))
        mac = ":".join(f"{b:02X}" for b in phys_addr[:6])
        entries.append((ip, mac))
    return entries


def select_neighbor_table_loader(system: Optional[str] = None, **kwargs) -> NeighborTableLoader:
    """
    Pick the neighbor table loader for a platform.

    Args:
        system: Platform name as returned by platform.system(); detected when None
        **kwargs: Passed through to the loader constructor

    Returns:
        NeighborTableLoader instance
    """
    system = system if system is not None else platform.system()
    loaders = {
        "Linux": LinuxProcNetArpLoader,
        "Windows": WindowsNeighborApiLoader,
        "Darwin": DarwinNeighborLoader,
    }
    loader_class = loaders.get(system, UnsupportedLoader)
    return loader_class(**kwargs)
