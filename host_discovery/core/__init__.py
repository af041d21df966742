"""
Core components for host discovery functionality.
"""

from .data_models import (
    DiscoveryMethod,
    ProbeOptions,
    ProbeOutcome,
    HostRecord,
    ScanResult
)
from .address_enumerator import expand, parse_subnet

__all__ = [
    'DiscoveryMethod',
    'ProbeOptions',
    'ProbeOutcome',
    'HostRecord',
    'ScanResult',
    'expand',
    'parse_subnet'
]
