"""
MAC address resolution and platform neighbor table access.
"""

from .mac_resolver import MacResolver
from .neighbor_table import (
    NeighborCache, NeighborTableLoader, LinuxProcNetArpLoader,
    WindowsNeighborApiLoader, DarwinNeighborLoader, UnsupportedLoader,
    select_neighbor_table_loader
)

__all__ = [
    'MacResolver',
    'NeighborCache',
    'NeighborTableLoader',
    'LinuxProcNetArpLoader',
    'WindowsNeighborApiLoader',
    'DarwinNeighborLoader',
    'UnsupportedLoader',
    'select_neighbor_table_loader'
]
