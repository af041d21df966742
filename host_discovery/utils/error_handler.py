"""
Error handling for the Host Discovery Module.

Only a malformed subnet or configuration is fatal. Every per-host failure (socket errors,
timeouts, DNS misses, neighbor table problems) is absorbed here: counted,
logged at a level that matches its severity, and turned into an
"unknown" value by the caller. Nothing is retried here.
"""

import errno
import subprocess
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .logger import Logger, get_logger


class ErrorType(Enum):
    """Enumeration for different types of errors."""
    NETWORK_ERROR = "network_error"
    PERMISSION_ERROR = "permission_error"
    CONFIGURATION_ERROR = "configuration_error"
    VALIDATION_ERROR = "validation_error"
    TIMEOUT_ERROR = "timeout_error"
    SUBPROCESS_ERROR = "subprocess_error"
    FILE_ERROR = "file_error"
    UNEXPECTED_ERROR = "unexpected_error"


class ErrorSeverity(Enum):
    """Enumeration for error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """
    Context information for error handling.

    Attributes:
        error_type: Type of error that occurred
        severity: Severity level of the error
        operation: Operation that was being performed when error occurred
        component: Component/module where error occurred
        additional_info: Additional context information (target address, file path...)
    """
    error_type: ErrorType
    severity: ErrorSeverity
    operation: str
    component: str
    additional_info: Dict[str, Any] = None

    def __post_init__(self):
        if self.additional_info is None:
            self.additional_info = {}


class HostDiscoveryError(Exception):
    """Base exception class for Host Discovery Module."""

    def __init__(self, message: str, error_context: Optional[ErrorContext] = None):
        super().__init__(message)
        self.error_context = error_context


class InvalidSubnetError(HostDiscoveryError, ValueError):
    """Raised when a subnet string is not valid IPv4 CIDR notation."""

    def __init__(self, subnet: str, reason: str = ""):
        message = f"Invalid subnet: {subnet!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(
            message,
            ErrorContext(
                error_type=ErrorType.VALIDATION_ERROR,
                severity=ErrorSeverity.CRITICAL,
                operation="expand",
                component="AddressEnumerator",
                additional_info={"subnet": subnet},
            ),
        )
        self.subnet = subnet


class ConfigurationError(HostDiscoveryError):
    """Exception for configuration-related errors."""
    pass


def classify_os_error(error: BaseException) -> ErrorType:
    """
    Map a low-level exception to an ErrorType.

    Args:
        error: Exception raised by a socket, file or subprocess call

    Returns:
        ErrorType best describing the failure
    """
    if isinstance(error, TimeoutError):
        return ErrorType.TIMEOUT_ERROR
    if isinstance(error, PermissionError):
        return ErrorType.PERMISSION_ERROR
    if isinstance(error, OSError) and error.errno in (errno.EPERM, errno.EACCES):
        return ErrorType.PERMISSION_ERROR
    if isinstance(error, (FileNotFoundError, IsADirectoryError)):
        return ErrorType.FILE_ERROR
    if isinstance(error, subprocess.SubprocessError):
        return ErrorType.SUBPROCESS_ERROR
    if isinstance(error, OSError):
        return ErrorType.NETWORK_ERROR
    return ErrorType.UNEXPECTED_ERROR


class ErrorHandler:
    """
    Thread-safe sink for absorbed errors.

    Keeps per-type counters that end up in the scan result and prints
    troubleshooting suggestions for the error classes a user can act on.
    """

    def __init__(self, logger: Optional[Logger] = None):
        """
        Initialize the ErrorHandler.

        Args:
            logger: Logger instance for error reporting
        """
        self.logger = logger or get_logger(__name__)
        self.error_statistics: Dict[ErrorType, int] = {}
        self._lock = threading.Lock()
        self._suggested: set = set()

        for error_type in ErrorType:
            self.error_statistics[error_type] = 0

    def record(self, error: BaseException, context: ErrorContext) -> None:
        """
        Absorb an error: count it and log it.

        Args:
            error: The exception that occurred
            context: Error context information
        """
        with self._lock:
            self.error_statistics[context.error_type] += 1
            first_of_kind = context.error_type not in self._suggested
            self._suggested.add(context.error_type)

        self._log_error(error, context)

        if first_of_kind and context.error_type == ErrorType.PERMISSION_ERROR:
            self._suggest_permission_solutions(context)
        elif first_of_kind and context.error_type == ErrorType.CONFIGURATION_ERROR:
            self._suggest_configuration_fixes()

    def summary(self) -> Dict[str, int]:
        """
        Get the non-zero error counters.

        Returns:
            Mapping of error type value to occurrence count
        """
        with self._lock:
            return {
                error_type.value: count
                for error_type, count in self.error_statistics.items()
                if count
            }

    def _log_error(self, error: BaseException, context: ErrorContext) -> None:
        target = context.additional_info.get("target")
        where = f"{context.component}.{context.operation}"
        error_msg = f"Error in {where}: {error}"
        if target:
            error_msg = f"Error in {where} for {target}: {error}"

        if context.severity == ErrorSeverity.CRITICAL:
            self.logger.error(error_msg, exception=error)
        elif context.severity == ErrorSeverity.HIGH:
            self.logger.error(error_msg)
        elif context.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(error_msg)
        else:
            self.logger.debug(error_msg)

    def _suggest_permission_solutions(self, context: ErrorContext) -> None:
        """Provide permission error solutions."""
        self.logger.info("Permission error solutions:")
        if "icmp" in context.operation.lower():
            self.logger.info("  • Run with sudo: sudo python -m host_discovery <subnet>")
            self.logger.info("  • Grant raw socket capability: setcap cap_net_raw+ep $(which python3)")
            self.logger.info("  • Allow unprivileged ping sockets: sysctl net.ipv4.ping_group_range")
        else:
            self.logger.info("  • Run with elevated privileges (sudo)")
            self.logger.info("  • Check file/directory permissions")

    def _suggest_configuration_fixes(self) -> None:
        """Provide configuration error solutions."""
        self.logger.info("Configuration error solutions:")
        self.logger.info("  • Check YAML syntax and indentation")
        self.logger.info("  • Ensure configuration values are positive integers")
        self.logger.info("  • Use the default scan_config.yml as reference")
