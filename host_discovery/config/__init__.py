"""
Configuration module for Host Discovery.
Provides loading and validation of the scan configuration.
"""

from .config_loader import ConfigLoader, ScanConfig

__all__ = ['ConfigLoader', 'ScanConfig']
