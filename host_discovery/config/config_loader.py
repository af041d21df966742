"""
Configuration loader for Host Discovery Module.
Handles loading and validation of the YAML scan configuration with fallback to defaults.
"""

import yaml
from dataclasses import asdict, dataclass, field, replace
from typing import Any, List, Optional
from pathlib import Path

from ..utils.error_handler import ConfigurationError
from ..utils.logger import Logger
from ..utils.oui_lookup import DEFAULT_OUI_FILE, DEFAULT_OUI_URL

DEFAULT_CONFIG_FILE = "scan_config.yml"
DEFAULT_TCP_PORTS = [21, 22, 23, 25, 53, 80, 135, 139, 443, 445]
DEFAULT_UDP_PORTS = [53, 67, 68, 69, 123, 137, 138, 161, 500, 514]


@dataclass
class ScanConfig:
    """Configuration for a host discovery scan."""
    concurrency: int = 20
    timeout_ms: int = 500
    use_tcp: bool = False
    use_udp: bool = False
    tcp_ports: List[int] = field(default_factory=lambda: list(DEFAULT_TCP_PORTS))
    udp_ports: List[int] = field(default_factory=lambda: list(DEFAULT_UDP_PORTS))
    icmp_poll_interval_ms: int = 100
    icmp_unprivileged_fallback: bool = True
    arp_settle_ms: int = 50
    oui_file: str = DEFAULT_OUI_FILE
    oui_url: str = DEFAULT_OUI_URL

    @property
    def timeout(self) -> float:
        """Per-step probe timeout in seconds."""
        return self.timeout_ms / 1000.0

    @property
    def icmp_poll_interval(self) -> float:
        return self.icmp_poll_interval_ms / 1000.0

    @property
    def arp_settle_delay(self) -> float:
        return self.arp_settle_ms / 1000.0

    def with_overrides(
        self,
        concurrency: Optional[int] = None,
        timeout_ms: Optional[int] = None,
        use_tcp: Optional[bool] = None,
        use_udp: Optional[bool] = None
    ) -> "ScanConfig":
        """
        Return a copy with command line overrides applied.

        Args:
            concurrency: Maximum number of hosts probed at once
            timeout_ms: Per-step probe timeout in milliseconds
            use_tcp: Enable TCP probing
            use_udp: Enable UDP probing

        Returns:
            New ScanConfig

        Raises:
            ConfigurationError: If concurrency or timeout is not positive
        """
        changes = {}
        if concurrency is not None:
            if concurrency <= 0:
                raise ConfigurationError(f"Concurrency must be positive, got {concurrency}")
            changes['concurrency'] = concurrency
        if timeout_ms is not None:
            if timeout_ms <= 0:
                raise ConfigurationError(f"Timeout must be positive, got {timeout_ms} ms")
            changes['timeout_ms'] = timeout_ms
        if use_tcp:
            changes['use_tcp'] = True
        if use_udp:
            changes['use_udp'] = True
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return asdict(self)


class ConfigLoader:
    """
    Loads and validates the YAML scan configuration.
    Provides fallback to default configuration when the file is missing or invalid.
    """

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize ConfigLoader.

        Args:
            config_dir: Directory containing configuration files.
                       Defaults to the config directory relative to this file.
        """
        if config_dir is None:
            self.config_dir = Path(__file__).parent
        else:
            self.config_dir = Path(config_dir)

        self.logger = Logger()

    def load_scan_config(self, config_file: str = DEFAULT_CONFIG_FILE) -> ScanConfig:
        """
        Load scan configuration from YAML file.

        Args:
            config_file: Name of the scan configuration file

        Returns:
            ScanConfig object with loaded or default configuration
        """
        config_path = self.config_dir / config_file

        if not config_path.exists():
            self.logger.warning(f"Scan config file not found at {config_path}. Using default configuration.")
            return ScanConfig()

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            self.logger.error(f"Error parsing scan config file {config_path}: {e}")
            self.logger.warning("Using default scan configuration.")
            return ScanConfig()
        except OSError as e:
            self.logger.error(f"Unable to read scan config file {config_path}: {e}")
            self.logger.warning("Using default scan configuration.")
            return ScanConfig()

        if not isinstance(config_data, dict) or not isinstance(config_data.get('scan'), dict):
            self.logger.warning(f"Invalid scan config structure in {config_path}. Using default configuration.")
            return ScanConfig()

        scan_data = config_data['scan']
        defaults = ScanConfig()

        config = ScanConfig(
            concurrency=self._validate_positive_int(scan_data.get('concurrency', defaults.concurrency), 'concurrency', defaults.concurrency),
            timeout_ms=self._validate_positive_int(scan_data.get('timeout_ms', defaults.timeout_ms), 'timeout_ms', defaults.timeout_ms),
            use_tcp=self._validate_bool(scan_data.get('use_tcp', defaults.use_tcp), 'use_tcp', defaults.use_tcp),
            use_udp=self._validate_bool(scan_data.get('use_udp', defaults.use_udp), 'use_udp', defaults.use_udp),
            tcp_ports=self._validate_ports(scan_data.get('tcp_ports', defaults.tcp_ports), 'tcp_ports', defaults.tcp_ports),
            udp_ports=self._validate_ports(scan_data.get('udp_ports', defaults.udp_ports), 'udp_ports', defaults.udp_ports),
            icmp_poll_interval_ms=self._validate_positive_int(
                scan_data.get('icmp_poll_interval_ms', defaults.icmp_poll_interval_ms),
                'icmp_poll_interval_ms', defaults.icmp_poll_interval_ms
            ),
            icmp_unprivileged_fallback=self._validate_bool(
                scan_data.get('icmp_unprivileged_fallback', defaults.icmp_unprivileged_fallback),
                'icmp_unprivileged_fallback', defaults.icmp_unprivileged_fallback
            ),
            arp_settle_ms=self._validate_non_negative_int(scan_data.get('arp_settle_ms', defaults.arp_settle_ms), 'arp_settle_ms', defaults.arp_settle_ms),
            oui_file=str(scan_data.get('oui_file') or defaults.oui_file),
            oui_url=str(scan_data.get('oui_url') or defaults.oui_url)
        )
        self.logger.debug(f"Loaded scan configuration from {config_path}")
        return config

    def _validate_positive_int(self, value: Any, field_name: str, default: int) -> int:
        """
        Validate that a value is a positive integer.

        Args:
            value: Value to validate
            field_name: Name of the field for error messages
            default: Default value to use if validation fails

        Returns:
            Validated integer value or default
        """
        if isinstance(value, bool):
            self.logger.warning(f"Invalid {field_name}: {value}. Must be an integer. Using default: {default}")
            return default
        try:
            int_value = int(value)
            if int_value <= 0:
                self.logger.warning(f"Invalid {field_name}: {value}. Must be positive. Using default: {default}")
                return default
            return int_value
        except (ValueError, TypeError):
            self.logger.warning(f"Invalid {field_name}: {value}. Must be an integer. Using default: {default}")
            return default

    def _validate_non_negative_int(self, value: Any, field_name: str, default: int) -> int:
        if value == 0 and not isinstance(value, bool):
            return 0
        return self._validate_positive_int(value, field_name, default)

    def _validate_bool(self, value: Any, field_name: str, default: bool) -> bool:
        if isinstance(value, bool):
            return value
        self.logger.warning(f"Invalid {field_name}: {value}. Must be true or false. Using default: {default}")
        return default

    def _validate_ports(self, ports: Any, field_name: str, default: List[int]) -> List[int]:
        """
        Validate a port list.

        Args:
            ports: Ports to validate
            field_name: Name of the field for error messages
            default: Default list to use if nothing valid remains

        Returns:
            Validated port list (duplicates removed, order kept) or default
        """
        if not isinstance(ports, list):
            self.logger.warning(f"Invalid {field_name}: {ports}. Must be a list. Using default: {default}")
            return list(default)

        valid_ports = []
        for port in ports:
            if isinstance(port, int) and not isinstance(port, bool) and 1 <= port <= 65535:
                if port not in valid_ports:
                    valid_ports.append(port)
            else:
                self.logger.warning(f"Invalid port in {field_name}: {port}. Skipping.")

        if not valid_ports:
            self.logger.warning(f"No valid ports in {field_name}. Using default: {default}")
            return list(default)

        return valid_ports

    def create_default_config(self, config_file: str = DEFAULT_CONFIG_FILE) -> Optional[Path]:
        """
        Create the default configuration file if it doesn't exist.

        Args:
            config_file: Name of the file to create

        Returns:
            Path of the created file, or None if nothing was written
        """
        config_path = self.config_dir / config_file
        if config_path.exists():
            return None

        default_config = {'scan': ScanConfig().to_dict()}

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                yaml.dump(default_config, f, default_flow_style=False, indent=2, sort_keys=False)
            self.logger.info(f"Created default scan config at {config_path}")
            return config_path
        except OSError as e:
            self.logger.error(f"Failed to create default scan config: {e}")
            return None
