"""
Host Discovery Module

A Python module for finding live hosts on an IPv4 subnet using ICMP, TCP and
UDP probes, enriched with MAC addresses, vendor names and reverse DNS.
"""

__version__ = "1.0.0"
__author__ = "Host Discovery Team"
