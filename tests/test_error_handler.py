"""
Tests for error classification and the absorbed-error sink.
"""

import errno
import subprocess
import threading

import pytest

from host_discovery.utils.error_handler import (
    ErrorContext,
    ErrorSeverity,
    ErrorType,
    HostDiscoveryError,
    InvalidSubnetError,
    classify_os_error,
)


def context(error_type, severity=ErrorSeverity.LOW):
    return ErrorContext(
        error_type=error_type,
        severity=severity,
        operation="icmp_send",
        component="IcmpProbe",
        additional_info={"target": "10.0.0.1"},
    )


class TestClassify:
    @pytest.mark.parametrize("error, expected", [
        (TimeoutError(), ErrorType.TIMEOUT_ERROR),
        (PermissionError(errno.EPERM, "Operation not permitted"), ErrorType.PERMISSION_ERROR),
        (OSError(errno.EACCES, "Permission denied"), ErrorType.PERMISSION_ERROR),
        (FileNotFoundError(errno.ENOENT, "missing"), ErrorType.FILE_ERROR),
        (ConnectionRefusedError(errno.ECONNREFUSED, "refused"), ErrorType.NETWORK_ERROR),
        (subprocess.CalledProcessError(1, ["arp", "-an"]), ErrorType.SUBPROCESS_ERROR),
        (ValueError("bad"), ErrorType.UNEXPECTED_ERROR),
    ])
    def test_classification(self, error, expected):
        assert classify_os_error(error) == expected


class TestInvalidSubnetError:
    def test_is_value_error(self):
        error = InvalidSubnetError("10.0.0.0/33", "bad prefix")
        assert isinstance(error, ValueError)
        assert isinstance(error, HostDiscoveryError)
        assert error.subnet == "10.0.0.0/33"
        assert "10.0.0.0/33" in str(error)


class TestErrorHandler:
    def test_summary_counts_non_zero_types(self, error_handler):
        error_handler.record(OSError("unreachable"), context(ErrorType.NETWORK_ERROR))
        error_handler.record(OSError("unreachable"), context(ErrorType.NETWORK_ERROR))
        error_handler.record(PermissionError(), context(ErrorType.PERMISSION_ERROR, ErrorSeverity.HIGH))

        assert error_handler.summary() == {"network_error": 2, "permission_error": 1}

    def test_empty_summary(self, error_handler):
        assert error_handler.summary() == {}

    def test_concurrent_records(self, error_handler):
        def worker():
            for _ in range(100):
                error_handler.record(OSError("x"), context(ErrorType.TIMEOUT_ERROR))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert error_handler.summary() == {"timeout_error": 800}
