"""
Console and JSON presentation of scan results.

This module is the presentation collaborator of the scan coordinator: it
draws the scan banner and the inline progress line while the scan runs, then
either a results table or a JSON document once it finishes.
"""

import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..core.data_models import HostRecord, ScanResult
from .logger import Logger, get_logger
from .oui_lookup import vendor_for


class ResultRenderer:
    """
    Renders scan progress and results.

    Responsibilities:
    - Scan start banner
    - Inline progress line, cheap enough to call under the coordinator lock
    - Results table with vendor names looked up from the OUI registry
    - JSON document for machine consumption
    """

    TABLE_HEADERS = ["#", "IP Address", "MAC Address", "Vendor", "Hostname", "Open Ports", "ICMP", "Via"]
    TABLE_WIDTHS = [3, 15, 17, 24, 28, 20, 8, 8]

    def __init__(
        self,
        logger: Optional[Logger] = None,
        vendor_lookup: Callable[[str], str] = vendor_for,
        show_progress: bool = True
    ):
        """
        Initialize the renderer.

        Args:
            logger: Logger used for console output
            vendor_lookup: Function mapping a MAC to its vendor name
            show_progress: Whether to draw the inline progress line
        """
        self.logger = logger or get_logger(__name__)
        self.vendor_lookup = vendor_lookup
        self.show_progress_line = show_progress

    def show_scan_start(self, subnet: str, total: int, probes: List[str]) -> None:
        self.logger.section("HOST DISCOVERY SCAN")
        self.logger.scan_info(subnet, total, probes)
        self.logger.info(f"Scanning {total} IPs...")

    def show_progress(self, completed: int, total: int, found: int) -> None:
        """
        Progress callback for ScanCoordinator.scan.

        Args:
            completed: Addresses finished so far
            total: Addresses in the scan
            found: Reachable hosts found so far
        """
        if not self.show_progress_line or total <= 0:
            return
        percent = completed / total * 100
        self.logger.progress_update(
            f"Progress: {completed}/{total} ({percent:.1f}%) - Found {found} hosts"
        )

    def show_results(self, result: ScanResult) -> None:
        """
        Print the results table and a summary line.

        Args:
            result: Finished scan
        """
        self.logger.progress_end()

        if not result.hosts:
            self.logger.warning("No reachable hosts found.")
            self.logger.info(f"Scan complete. (0/{result.total_candidates} hosts responded)")
            return

        self.logger.section(f"Found {result.found_count} reachable hosts")
        self.logger.table_header(self.TABLE_HEADERS, self.TABLE_WIDTHS)
        for index, host in enumerate(result.hosts, start=1):
            self.logger.table_row(self._table_values(index, host), self.TABLE_WIDTHS)

        if result.absorbed_errors:
            details = ", ".join(f"{name}={count}" for name, count in sorted(result.absorbed_errors.items()))
            self.logger.debug(f"Absorbed errors during scan: {details}")

        self.logger.success(
            f"Scan complete. ({result.found_count}/{result.total_candidates} hosts responded)",
            duration=f"{result.duration:.2f}s"
        )

    def _table_values(self, index: int, host: HostRecord) -> List[str]:
        vendor = self.vendor_lookup(host.mac) if host.mac else ""
        ports = ",".join(str(port) for port in host.open_ports)
        latency = f"{host.icmp_latency * 1000:.1f}ms" if host.icmp_latency is not None else "-"
        return [
            str(index),
            host.address,
            host.mac or "Unknown",
            self._truncate(vendor or "-", self.TABLE_WIDTHS[3]),
            self._truncate(host.hostname or "-", self.TABLE_WIDTHS[4]),
            self._truncate(ports or "-", self.TABLE_WIDTHS[5]),
            latency,
            host.discovered_via.value,
        ]

    @staticmethod
    def _truncate(value: str, width: int) -> str:
        if len(value) <= width:
            return value
        return value[:width - 1] + "…"

    def to_dict(self, result: ScanResult, subnet: str = "") -> Dict[str, Any]:
        """
        Convert a scan result into a JSON-serializable dictionary.

        Args:
            result: Finished scan
            subnet: Subnet that was scanned

        Returns:
            Dict with scan metadata and one entry per host
        """
        hosts = []
        for host in result.hosts:
            hosts.append({
                "ip_address": host.address,
                "mac_address": host.mac or None,
                "vendor": (self.vendor_lookup(host.mac) or None) if host.mac else None,
                "hostname": host.hostname or None,
                "open_ports": list(host.open_ports),
                "icmp_latency_ms": round(host.icmp_latency * 1000, 3) if host.icmp_latency is not None else None,
                "discovered_via": host.discovered_via.value,
                "process_time_ms": round(host.process_time * 1000, 3),
            })

        return {
            "scan_metadata": {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "subnet": subnet,
                "scan_duration": round(result.duration, 3),
                "total_candidates": result.total_candidates,
                "completed": result.completed_count,
                "hosts_found": result.found_count,
                "absorbed_errors": dict(result.absorbed_errors),
            },
            "hosts": hosts,
        }

    def to_json(self, result: ScanResult, subnet: str = "") -> str:
        return json.dumps(self.to_dict(result, subnet), indent=2, ensure_ascii=False)
