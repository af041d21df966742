"""
Logging system with colored output for host discovery runs.

This module provides a Logger class that supports colored console output
using colorama, different log levels with distinct colors, and an inline
progress line for the concurrent scan.
"""

import sys
from datetime import datetime
from enum import Enum
from typing import Optional, TextIO
from colorama import Fore, Style, init

# Initialize colorama for cross-platform colored output
init(autoreset=True)


class LogLevel(Enum):
    """Enumeration for different log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


_LEVEL_ORDER = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARNING: 2,
    LogLevel.ERROR: 3,
}

# Process-wide settings shared by every Logger that does not pin its own level
_global_level = LogLevel.INFO
_global_stream: Optional[TextIO] = None


class Logger:
    """
    Logger class with colored console output and an inline progress line.

    Loggers created without an explicit ``min_level`` follow the process-wide
    level set by :func:`set_log_level`. Everything except errors goes to the
    process-wide stream (stdout unless :func:`set_log_stream` redirected it);
    errors always go to stderr.
    """

    LEVEL_STYLES = {
        LogLevel.DEBUG: (Fore.CYAN, "🔍"),
        LogLevel.INFO: (Fore.GREEN, "ℹ️"),
        LogLevel.WARNING: (Fore.YELLOW, "⚠️"),
        LogLevel.ERROR: (Fore.RED, "❌"),
    }

    def __init__(
        self, name: str = "HostDiscovery", min_level: Optional[LogLevel] = None
    ):
        """
        Initialize the Logger.

        Args:
            name: Name of the logger (default: "HostDiscovery")
            min_level: Minimum log level to display. None follows the global level.
        """
        self.name = name
        self._min_level = min_level
        self._progress_active = False

    @property
    def min_level(self) -> LogLevel:
        return self._min_level if self._min_level is not None else _global_level

    @min_level.setter
    def min_level(self, level: LogLevel) -> None:
        self._min_level = level

    @property
    def stream(self) -> TextIO:
        return _global_stream if _global_stream is not None else sys.stdout

    def _should_log(self, level: LogLevel) -> bool:
        return _LEVEL_ORDER[level] >= _LEVEL_ORDER[self.min_level]

    def _emit(self, label: str, message: str, details: dict, stream: TextIO) -> None:
        """
        Write one timestamped line, ending any active progress line first.

        Args:
            label: Colored level label, already formatted
            message: Message text
            details: Extra key/value context appended in dim style
            stream: Destination stream
        """
        if self._progress_active:
            self._clear_progress()

        line = f"{Style.DIM}[{datetime.now():%H:%M:%S}]{Style.RESET_ALL} {label} {message}"
        if details:
            context = " | ".join(f"{key}={value}" for key, value in details.items())
            line += f" {Style.DIM}({context}){Style.RESET_ALL}"
        print(line, file=stream)

    def _log(self, level: LogLevel, message: str, **kwargs) -> None:
        if not self._should_log(level):
            return

        color, symbol = self.LEVEL_STYLES[level]
        label = f"{color}{symbol} {level.value:<7}{Style.RESET_ALL}"
        stream = sys.stderr if level == LogLevel.ERROR else self.stream
        self._emit(label, message, kwargs, stream)

    def debug(self, message: str, **kwargs) -> None:
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(
        self, message: str, exception: Optional[BaseException] = None, **kwargs
    ) -> None:
        """
        Log an error message.

        Args:
            message: Error message
            exception: Optional exception whose type and text are appended
            **kwargs: Additional context information
        """
        if exception:
            kwargs["exception"] = f"{type(exception).__name__}: {exception}"
        self._log(LogLevel.ERROR, message, **kwargs)

    def success(self, message: str, **kwargs) -> None:
        """Log a highlighted success message at INFO level."""
        if not self._should_log(LogLevel.INFO):
            return

        label = f"{Fore.GREEN}✅ SUCCESS {Style.RESET_ALL}"
        self._emit(label, f"{Style.BRIGHT}{message}{Style.RESET_ALL}", kwargs, self.stream)

    def section(self, title: str) -> None:
        """
        Print a section banner.

        Args:
            title: Section title, shown upper-cased
        """
        if not self._should_log(LogLevel.INFO):
            return

        if self._progress_active:
            self._clear_progress()

        rule = "=" * 60
        print(
            f"\n{Fore.BLUE}{Style.BRIGHT}{rule}\n  {title.upper()}\n{rule}{Style.RESET_ALL}\n",
            file=self.stream,
        )

    def progress_update(self, message: str) -> None:
        """
        Rewrite the inline progress line in place.

        The line is started on first use and stays on the same terminal row
        until :meth:`progress_end` is called or another message is logged.

        Args:
            message: Progress message to display
        """
        if not self._should_log(LogLevel.INFO):
            return

        print(
            f"\r{Fore.BLUE}⏳ {message}{Style.RESET_ALL}",
            end="",
            file=self.stream,
            flush=True,
        )
        self._progress_active = True

    def progress_end(self, final_message: Optional[str] = None) -> None:
        """
        Terminate the progress line.

        Args:
            final_message: Optional success message printed afterwards
        """
        if not self._progress_active:
            return

        self._clear_progress()
        if final_message:
            self.success(final_message)

    def _clear_progress(self) -> None:
        self._progress_active = False
        print(file=self.stream, flush=True)

    def table_header(self, headers: list[str], widths: list[int]) -> None:
        """
        Print a table header and its rule.

        Args:
            headers: Column titles
            widths: Column widths
        """
        if not self._should_log(LogLevel.INFO):
            return

        cells = " | ".join(f"{header:<{width}}" for header, width in zip(headers, widths))
        rule = "-+-".join("-" * width for width in widths)
        print(f"{Style.BRIGHT}{cells}{Style.RESET_ALL}", file=self.stream)
        print(f"{Style.DIM}{rule}{Style.RESET_ALL}", file=self.stream)

    def table_row(self, values: list[str], widths: list[int]) -> None:
        if not self._should_log(LogLevel.INFO):
            return

        print(" | ".join(f"{value:<{width}}" for value, width in zip(values, widths)), file=self.stream)

    def scan_info(self, subnet: str, candidates: int, probes: list[str]) -> None:
        """
        Display the parameters of the scan about to run.

        Args:
            subnet: Subnet being scanned in CIDR notation
            candidates: Number of candidate addresses
            probes: Names of the probe types enabled
        """
        if not self._should_log(LogLevel.INFO):
            return

        print(f"\n{Fore.CYAN}{Style.BRIGHT}🌐 SCAN CONFIGURATION{Style.RESET_ALL}", file=self.stream)
        for label, value in (("Subnet", subnet), ("Candidates", candidates), ("Probes", ", ".join(probes))):
            print(f"  {label + ':':<13}{Style.BRIGHT}{value}{Style.RESET_ALL}", file=self.stream)
        print(file=self.stream)


# Global logger instance
logger = Logger()


def set_log_level(level: LogLevel) -> None:
    """
    Set the level followed by every logger without a pinned level.

    Args:
        level: Minimum log level to display
    """
    global _global_level
    _global_level = level


def set_log_stream(stream: Optional[TextIO]) -> None:
    """
    Redirect non-error output of every logger.

    Args:
        stream: Target stream, or None to restore stdout
    """
    global _global_stream
    _global_stream = stream


def get_logger(name: str = "HostDiscovery") -> Logger:
    return Logger(name)
