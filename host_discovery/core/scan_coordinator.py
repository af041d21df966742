"""
Scan Coordinator for Host Discovery Module.

This module provides the ScanCoordinator class that fans the probe pipeline
out over every candidate address, caps how many pipelines run at once,
gathers the discovered hosts and reports progress.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, List, Optional

from .data_models import HostRecord, ProbeOptions, ScanResult
from ..resolvers.mac_resolver import MacResolver
from ..scanners.probe_engine import ProbeEngine
from ..utils.error_handler import ErrorContext, ErrorHandler, ErrorSeverity, ErrorType
from ..utils.logger import Logger, get_logger
from ..utils.network_utils import ip_sort_key, resolve_hostname

ProgressCallback = Callable[[int, int, int], None]

DEFAULT_CONCURRENCY = 20
DEFAULT_TIMEOUT = 0.5
WAIT_POLL_INTERVAL = 0.2


class ScanCoordinator:
    """
    Runs one probe pipeline per candidate address under a concurrency cap.

    Every candidate gets a task. A bounded semaphore limits how many tasks are
    inside the pipeline at once. Discovered hosts, the completed counter and
    the progress callback share a single lock, so progress values observed by
    the callback never go backwards.
    """

    def __init__(
        self,
        probe_engine: Optional[ProbeEngine] = None,
        mac_resolver: Optional[MacResolver] = None,
        hostname_resolver: Callable[[str], str] = resolve_hostname,
        logger: Optional[Logger] = None,
        error_handler: Optional[ErrorHandler] = None
    ):
        """
        Initialize the scan coordinator.

        Args:
            probe_engine: Per-host probe pipeline
            mac_resolver: Resolver used for ICMP-reachable hosts
            hostname_resolver: Reverse DNS function returning "" on failure
            logger: Logger instance
            error_handler: Sink for absorbed per-host errors
        """
        self.logger = logger or get_logger(__name__)
        self.error_handler = error_handler or ErrorHandler(self.logger)
        self.probe_engine = probe_engine or ProbeEngine(
            logger=self.logger, error_handler=self.error_handler
        )
        self.mac_resolver = mac_resolver or MacResolver(
            logger=self.logger, error_handler=self.error_handler
        )
        self.hostname_resolver = hostname_resolver

    def scan(
        self,
        candidates: List[str],
        concurrency: int = DEFAULT_CONCURRENCY,
        timeout: float = DEFAULT_TIMEOUT,
        options: Optional[ProbeOptions] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> ScanResult:
        """
        Probe every candidate address.

        Args:
            candidates: Addresses to probe
            concurrency: Maximum number of probe pipelines running at once
            timeout: Per-step probe timeout in seconds
            options: Optional probe types to enable
            on_progress: Called as (completed, total, found) after each address

        Returns:
            ScanResult with hosts sorted by numeric IPv4 value

        Raises:
            ValueError: If concurrency or timeout is not positive
            KeyboardInterrupt: Re-raised after queued addresses are cancelled;
                pipelines already running are left to finish
        """
        if concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {concurrency}")
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        options = options or ProbeOptions()
        total = len(candidates)
        state = _ScanState(total, on_progress)
        semaphore = threading.BoundedSemaphore(concurrency)
        started = time.monotonic()

        self.logger.debug(
            f"Scanning {total} addresses",
            concurrency=concurrency,
            timeout=timeout,
            tcp=options.use_tcp,
            udp=options.use_udp
        )

        if total:
            # Pool is sized to the cap; the semaphore is what bounds the pipelines
            executor = ThreadPoolExecutor(
                max_workers=min(concurrency, total), thread_name_prefix="probe"
            )
            try:
                pending = {
                    executor.submit(self._run_task, ip, semaphore, timeout, options, state)
                    for ip in candidates
                }
                # Bounded waits let the main thread act on SIGINT promptly
                while pending:
                    _, pending = wait(pending, timeout=WAIT_POLL_INTERVAL)
            except BaseException:
                self.logger.debug("Scan interrupted, cancelling queued addresses")
                executor.shutdown(wait=False, cancel_futures=True)
                raise
            executor.shutdown()

        hosts = tuple(sorted(state.hosts, key=lambda host: ip_sort_key(host.address)))
        duration = time.monotonic() - started

        self.logger.debug(f"Scan finished in {duration:.2f}s: {len(hosts)}/{total} hosts responded")

        return ScanResult(
            hosts=hosts,
            total_candidates=total,
            completed_count=state.completed,
            duration=duration,
            absorbed_errors=self.error_handler.summary()
        )

    def _run_task(
        self,
        ip: str,
        semaphore: threading.BoundedSemaphore,
        timeout: float,
        options: ProbeOptions,
        state: "_ScanState"
    ) -> None:
        record = None
        with semaphore:
            try:
                record = self._probe_host(ip, timeout, options)
            except Exception as e:
                self.error_handler.record(
                    e,
                    ErrorContext(
                        error_type=ErrorType.UNEXPECTED_ERROR,
                        severity=ErrorSeverity.MEDIUM,
                        operation="probe_host",
                        component="ScanCoordinator",
                        additional_info={"target": ip},
                    ),
                )
            state.complete(record)

    def _probe_host(self, ip: str, timeout: float, options: ProbeOptions) -> Optional[HostRecord]:
        """
        Run the probe pipeline and enrichment for one address.

        Args:
            ip: Address to probe
            timeout: Per-step probe timeout in seconds
            options: Optional probe types to enable

        Returns:
            HostRecord if the host is reachable, None otherwise
        """
        start = time.monotonic()
        outcome = self.probe_engine.probe(ip, timeout, options)
        if not outcome.reachable:
            return None

        mac = ""
        hostname = ""
        if outcome.icmp_reachable:
            mac = self.mac_resolver.resolve(ip)
            hostname = self.hostname_resolver(ip)

        return HostRecord(
            address=ip,
            mac=mac,
            hostname=hostname,
            open_ports=outcome.open_ports,
            icmp_latency=outcome.icmp_latency,
            discovered_via=outcome.discovered_via,
            process_time=time.monotonic() - start
        )


class _ScanState:
    """Aggregation state shared by the tasks of one scan."""

    def __init__(self, total: int, on_progress: Optional[ProgressCallback]):
        self.total = total
        self.on_progress = on_progress
        self.hosts: List[HostRecord] = []
        self.completed = 0
        self._lock = threading.Lock()

    def complete(self, record: Optional[HostRecord]) -> None:
        """Record a finished task and report progress in one critical section."""
        with self._lock:
            if record is not None:
                self.hosts.append(record)
            self.completed += 1
            if self.on_progress:
                self.on_progress(self.completed, self.total, len(self.hosts))
