"""
Base probe interface for Host Discovery Module.

This module defines the abstract base class that every probe implements,
providing a consistent interface for the ICMP, TCP and UDP probes used by
the probe engine.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..utils.error_handler import ErrorContext, ErrorHandler, ErrorSeverity, classify_os_error
from ..utils.logger import Logger


class BaseProbe(ABC):
    """
    Abstract base class for all per-host probes.

    A probe never raises for a host that misbehaves: failures are recorded
    with the error handler and reported as "nothing found".
    """

    name = "probe"

    def __init__(self, logger: Optional[Logger] = None, error_handler: Optional[ErrorHandler] = None):
        """
        Initialize the base probe.

        Args:
            logger: Logger instance for debug output
            error_handler: Sink for absorbed errors
        """
        self.logger = logger
        self.error_handler = error_handler

    @abstractmethod
    def probe(self, ip: str, timeout: float) -> Any:
        """
        Probe a single address.

        This method must be implemented by all concrete probe classes. Every
        blocking step must be bounded by ``timeout``.

        Args:
            ip: IPv4 address to probe
            timeout: Per-step timeout in seconds

        Returns:
            Probe-specific result
        """
        pass

    def _record(
        self,
        error: Exception,
        operation: str,
        target: str,
        severity: ErrorSeverity = ErrorSeverity.LOW
    ) -> None:
        """Record an absorbed error, falling back to a debug log line."""
        if self.error_handler:
            self.error_handler.record(
                error,
                ErrorContext(
                    error_type=classify_os_error(error),
                    severity=severity,
                    operation=operation,
                    component=type(self).__name__,
                    additional_info={"target": target},
                ),
            )
        else:
            self._log_debug(f"{operation} failed for {target}: {error}")

    def _log_debug(self, message: str) -> None:
        """Log a debug message if logger is available."""
        if self.logger:
            self.logger.debug(message)


class PortProbe(BaseProbe):
    """Base class for probes that test a fixed list of ports."""

    def __init__(self, ports: List[int], **kwargs):
        super().__init__(**kwargs)
        self.ports = list(ports)

    @abstractmethod
    def probe(self, ip: str, timeout: float) -> List[int]:
        pass
