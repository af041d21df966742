"""
Subnet expansion for the Host Discovery Module.

Turns a CIDR string into the ordered list of addresses that the scan
coordinator probes.
"""

import ipaddress
from typing import List

from ..utils.error_handler import InvalidSubnetError


def parse_subnet(cidr: str) -> ipaddress.IPv4Network:
    """
    Parse a CIDR string into an IPv4 network.

    Host bits are masked off, so ``192.168.1.7/24`` yields ``192.168.1.0/24``.

    Args:
        cidr: Subnet in CIDR notation (e.g. "192.168.1.0/24")

    Returns:
        IPv4Network for the masked subnet

    Raises:
        InvalidSubnetError: If the string is not an IPv4 network/prefix pair
    """
    if not isinstance(cidr, str) or "/" not in cidr:
        raise InvalidSubnetError(str(cidr), "expected <address>/<prefix>")

    try:
        return ipaddress.IPv4Network(cidr.strip(), strict=False)
    except (ipaddress.AddressValueError, ipaddress.NetmaskValueError, ValueError) as e:
        raise InvalidSubnetError(cidr, str(e)) from e


def expand(cidr: str) -> List[str]:
    """
    Expand a subnet into its candidate host addresses.

    Addresses are produced in ascending numeric order. When the subnet holds
    more than two addresses the first (network) and last (broadcast) ones are
    dropped; /31 and /32 subnets are returned whole.

    Args:
        cidr: Subnet in CIDR notation

    Returns:
        List of dotted-quad address strings

    Raises:
        InvalidSubnetError: If cidr is malformed
    """
    network = parse_subnet(cidr)
    addresses = [str(address) for address in network]

    if len(addresses) > 2:
        addresses = addresses[1:-1]

    return addresses
