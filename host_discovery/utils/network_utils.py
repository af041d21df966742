"""
Network utility functions for address handling and name resolution.

This module provides helper functions shared by the probes, the MAC resolver
and the scan coordinator: IPv4 validation and ordering, MAC normalization,
and reverse DNS lookups.
"""

import ipaddress
import re
import socket
from typing import Tuple, Union

ZERO_MAC = "00:00:00:00:00:00"

# Accepts "aa:bb:cc:dd:ee:ff", "aa-bb-cc-dd-ee-ff" and the BSD short form "a:b:c:d:e:f"
_MAC_PATTERN = re.compile(r"^[0-9A-Fa-f]{1,2}([:-][0-9A-Fa-f]{1,2}){5}$")


def is_valid_ip(ip_address: str) -> bool:
    """
    Check if a string represents a valid IPv4 address.

    Args:
        ip_address: String to validate as IPv4 address

    Returns:
        bool: True if valid IPv4 address, False otherwise
    """
    try:
        ipaddress.IPv4Address(ip_address)
        return True
    except (ipaddress.AddressValueError, ValueError):
        return False


def normalize_mac(mac: str) -> str:
    """
    Normalize a hardware address to upper-case, colon-separated form.

    Args:
        mac: MAC address in any common notation

    Returns:
        str: Normalized MAC, or "" when the input is malformed or all zeros
    """
    if not mac or not isinstance(mac, str):
        return ""

    mac = mac.strip()
    if not _MAC_PATTERN.match(mac):
        return ""

    octets = re.split(r"[:-]", mac)
    normalized = ":".join(octet.zfill(2).upper() for octet in octets)
    if normalized == ZERO_MAC:
        return ""
    return normalized


def ip_sort_key(ip_address: str) -> Tuple[int, Union[int, str]]:
    """
    Sort key ordering IPv4 addresses by their 32-bit numeric value.

    Strings that do not parse as IPv4 sort after every valid address and
    compare lexically among themselves. This is not a pairwise string
    fallback: mixing valid and invalid addresses must still give a total
    order, which comparing any mixed pair as strings would not.

    Args:
        ip_address: Address string

    Returns:
        Tuple usable as a sort key
    """
    try:
        return (0, int(ipaddress.IPv4Address(ip_address)))
    except (ipaddress.AddressValueError, ValueError):
        return (1, ip_address)


def resolve_hostname(ip_address: str) -> str:
    """
    Resolve hostname for an IP address via reverse DNS.

    The lookup uses the platform resolver and its own timeout.

    Args:
        ip_address: IP address to resolve

    Returns:
        str: Hostname without trailing dot, or "" if resolution fails
    """
    try:
        hostname = socket.gethostbyaddr(ip_address)[0]
    except (socket.herror, socket.gaierror, socket.timeout, OSError, UnicodeError):
        return ""
    return hostname.rstrip(".")
