"""
Main entry point for the Host Discovery Module.

This module provides the command-line interface for the host discovery tool,
including argument parsing, pre-flight checks, and graceful shutdown handling.
"""

import argparse
import signal
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config.config_loader import DEFAULT_CONFIG_FILE, ConfigLoader, ScanConfig
from .core.address_enumerator import expand
from .core.data_models import ProbeOptions
from .core.scan_coordinator import ScanCoordinator
from .resolvers.mac_resolver import MacResolver
from .scanners.probe_engine import ProbeEngine
from .utils import oui_lookup
from .utils.error_handler import (
    ConfigurationError, ErrorContext, ErrorHandler, ErrorSeverity, ErrorType,
    HostDiscoveryError, InvalidSubnetError
)
from .utils.logger import LogLevel, get_logger, set_log_level, set_log_stream
from .utils.result_renderer import ResultRenderer


class HostDiscoveryApp:
    """
    Main application class for Host Discovery Module.

    Handles CLI interface, pre-flight checks, and application lifecycle.
    """

    def __init__(self, install_signal_handlers: bool = True):
        """
        Initialize the application.

        Args:
            install_signal_handlers: Register SIGINT/SIGTERM handlers
        """
        self.logger = get_logger(__name__)
        self.error_handler = ErrorHandler(self.logger)
        self.shutdown_requested = False

        if install_signal_handlers:
            signal.signal(signal.SIGINT, self._signal_handler)
            signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum: int, frame) -> None:
        """
        Handle shutdown signals gracefully.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        signal_names = {signal.SIGINT: "SIGINT", signal.SIGTERM: "SIGTERM"}
        signal_name = signal_names.get(signum, f"Signal {signum}")

        if not self.shutdown_requested:
            self.logger.warning(f"Received {signal_name} - stopping scan...")
            self.shutdown_requested = True
            raise KeyboardInterrupt
        else:
            self.logger.error("Force shutdown requested - terminating immediately")
            sys.exit(1)

    def _perform_preflight_checks(self, probe_engine: ProbeEngine, config: ScanConfig) -> bool:
        """
        Check that ICMP probing can run with the current privileges.

        Args:
            probe_engine: Engine whose ICMP probe will be used
            config: Active scan configuration

        Returns:
            bool: True if raw ICMP sockets are available
        """
        self.logger.debug("Checking raw ICMP socket access...")
        if probe_engine.icmp_probe.can_open_raw_socket():
            self.logger.debug("Raw ICMP socket available")
            return True

        if config.icmp_unprivileged_fallback:
            self.logger.warning(
                "Raw ICMP sockets need elevated privileges; falling back to unprivileged ICMP sockets"
            )
        else:
            self.logger.warning("Raw ICMP sockets need elevated privileges; ICMP probes will fail")
        self.logger.info("  • Run with sudo: sudo python -m host_discovery <subnet>")
        if not config.use_tcp:
            self.logger.info("  • Or add --tcp to discover hosts through open TCP ports")
        return False

    def _load_config(self, config_file: Optional[str]) -> ScanConfig:
        """
        Load the scan configuration.

        Args:
            config_file: Path to a YAML file, or None for the packaged default

        Returns:
            ScanConfig

        Raises:
            ConfigurationError: If an explicit config file does not exist
        """
        if config_file is None:
            return ConfigLoader().load_scan_config(DEFAULT_CONFIG_FILE)

        config_path = Path(config_file)
        if not config_path.is_file():
            raise ConfigurationError(f"Configuration file does not exist: {config_file}")
        return ConfigLoader(str(config_path.parent)).load_scan_config(config_path.name)

    def write_default_config(self, config_file: str) -> int:
        """
        Write the default scan configuration to a new YAML file.

        Args:
            config_file: Destination path; an existing file is left untouched

        Returns:
            int: Exit code
        """
        config_path = Path(config_file)
        if config_path.exists():
            self.logger.error(f"Configuration file already exists: {config_file}")
            return 1

        created = ConfigLoader(str(config_path.parent)).create_default_config(config_path.name)
        return 0 if created else 1

    def update_oui(self, config: ScanConfig) -> int:
        """
        Download the OUI registry if missing.

        Returns:
            int: Exit code
        """
        try:
            oui_lookup.update_oui_file(config.oui_file, config.oui_url)
        except HostDiscoveryError as e:
            self.logger.error(str(e))
            return 1
        return 0

    def run(self, args: argparse.Namespace) -> int:
        """
        Run the host discovery application.

        Args:
            args: Parsed command line arguments

        Returns:
            int: Exit code (0 for success, non-zero for failure)
        """
        if args.write_config:
            return self.write_default_config(args.write_config)

        try:
            config = self._load_config(args.config).with_overrides(
                concurrency=args.concurrency,
                timeout_ms=args.timeout,
                use_tcp=args.tcp,
                use_udp=args.udp
            )
        except ConfigurationError as e:
            self.error_handler.record(e, e.error_context or ErrorContext(
                error_type=ErrorType.CONFIGURATION_ERROR,
                severity=ErrorSeverity.HIGH,
                operation="load_config",
                component="HostDiscoveryApp",
                additional_info={"config_file": args.config},
            ))
            return 1

        oui_lookup.configure(config.oui_file)

        if args.update_oui:
            exit_code = self.update_oui(config)
            if exit_code or not args.subnet:
                return exit_code

        if not args.subnet:
            self.logger.error("A subnet is required, e.g. 192.168.1.0/24")
            return 1

        try:
            candidates = expand(args.subnet)
        except InvalidSubnetError as e:
            self.logger.error(f"Error parsing subnet: {e}")
            return 1

        try:
            return self._scan(args, config, candidates)
        except KeyboardInterrupt:
            self.logger.warning("Scan interrupted by user")
            return 130  # Standard exit code for SIGINT

    def _scan(self, args: argparse.Namespace, config: ScanConfig, candidates: List[str]) -> int:
        probe_engine = ProbeEngine.from_config(config, self.logger, self.error_handler)
        mac_resolver = MacResolver(
            settle_delay=config.arp_settle_delay,
            logger=self.logger,
            error_handler=self.error_handler
        )
        coordinator = ScanCoordinator(
            probe_engine=probe_engine,
            mac_resolver=mac_resolver,
            logger=self.logger,
            error_handler=self.error_handler
        )
        renderer = ResultRenderer(
            logger=self.logger,
            show_progress=not (args.no_progress or args.json)
        )

        self._perform_preflight_checks(probe_engine, config)

        probes = ["ICMP"]
        if config.use_tcp:
            probes.append(f"TCP {config.tcp_ports}")
        if config.use_udp:
            probes.append(f"UDP {config.udp_ports}")
        renderer.show_scan_start(args.subnet, len(candidates), probes)

        result = coordinator.scan(
            candidates,
            concurrency=config.concurrency,
            timeout=config.timeout,
            options=ProbeOptions(use_tcp=config.use_tcp, use_udp=config.use_udp),
            on_progress=renderer.show_progress
        )

        if args.json:
            self.logger.progress_end()
            print(renderer.to_json(result, args.subnet))
        else:
            renderer.show_results(result)
        return 0


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the command line argument parser.

    Returns:
        argparse.ArgumentParser: Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="host_discovery",
        description="Host Discovery - find live hosts on an IPv4 subnet with ICMP, TCP and UDP probes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m host_discovery 192.168.1.0/24                # ICMP sweep
  python -m host_discovery 192.168.1.0/24 --tcp          # Also probe common TCP ports
  python -m host_discovery 10.0.0.0/24 --tcp --udp       # TCP plus UDP service probes
  python -m host_discovery 10.0.0.0/24 --json            # Print results as JSON
  python -m host_discovery --update-oui                  # Download the IEEE vendor registry
  python -m host_discovery --write-config my_scan.yml    # Write the default configuration
        """
    )

    parser.add_argument(
        "subnet",
        nargs="?",
        help="Subnet to scan in CIDR notation, e.g. 192.168.1.0/24"
    )

    parser.add_argument(
        "--tcp",
        action="store_true",
        help="Probe common TCP ports (hosts that ignore ICMP can still be found)"
    )

    parser.add_argument(
        "--udp",
        action="store_true",
        help="Probe common UDP ports on hosts that answered ICMP or TCP"
    )

    parser.add_argument(
        "--concurrency", "-c",
        type=int,
        help="Maximum number of hosts probed at once (default: 20)"
    )

    parser.add_argument(
        "--timeout", "-t",
        type=int,
        metavar="MS",
        help="Per-probe timeout in milliseconds (default: 500)"
    )

    parser.add_argument(
        "--config",
        type=str,
        help=f"YAML configuration file. Defaults to host_discovery/config/{DEFAULT_CONFIG_FILE}"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON on stdout; log output goes to stderr"
    )

    parser.add_argument(
        "--write-config",
        metavar="PATH",
        help="Write the default configuration to PATH and exit"
    )

    parser.add_argument(
        "--update-oui",
        action="store_true",
        help="Download the IEEE OUI registry used for vendor names if it is missing"
    )

    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not draw the progress line"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Host Discovery {__version__}"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the Host Discovery Module.

    Args:
        argv: Command line arguments; sys.argv is used when None

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        set_log_level(LogLevel.DEBUG)

    if args.json:
        set_log_stream(sys.stderr)

    app = HostDiscoveryApp()
    return app.run(args)


if __name__ == "__main__":
    sys.exit(main())
