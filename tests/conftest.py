"""
Shared fixtures for the host discovery tests.
"""

import pytest

from host_discovery.utils.error_handler import ErrorHandler
from host_discovery.utils.logger import Logger, LogLevel


@pytest.fixture
def quiet_logger():
    """Logger that only prints errors."""
    return Logger("test", min_level=LogLevel.ERROR)


@pytest.fixture
def error_handler(quiet_logger):
    """Error handler writing to the quiet logger."""
    return ErrorHandler(quiet_logger)
