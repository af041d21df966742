"""
MAC vendor lookup backed by the IEEE OUI registry.

The registry file (``oui.txt``) is parsed lazily on the first lookup and
kept in memory for the rest of the process.
"""

import re
import threading
from pathlib import Path
from typing import Dict, Optional, Union

import requests

from .error_handler import ErrorContext, ErrorSeverity, ErrorType, HostDiscoveryError
from .logger import get_logger

DEFAULT_OUI_FILE = "oui.txt"
DEFAULT_OUI_URL = "http://standards-oui.ieee.org/oui/oui.txt"

logger = get_logger(__name__)


def parse_oui_text(text: str) -> Dict[str, str]:
    """
    Parse the IEEE oui.txt format.

    Only the "(base 16)" lines are used, e.g.::

        00000C     (base 16)\t\tCisco Systems, Inc

    Args:
        text: File contents

    Returns:
        Mapping of 6 hex digit prefix (upper case) to vendor name
    """
    vendors = {}
    for line in text.splitlines():
        if "(base 16)" not in line:
            continue

        prefix_part, _, vendor = line.partition("\t")
        fields = prefix_part.split()
        if not fields or not vendor:
            continue

        prefix = fields[0].replace("-", "").upper()
        vendors[prefix] = vendor.strip()
    return vendors


class OuiDatabase:
    """Lazily loaded, lock-protected OUI prefix to vendor table."""

    def __init__(self, path: Union[str, Path] = DEFAULT_OUI_FILE):
        self.path = Path(path)
        self._vendors: Optional[Dict[str, str]] = None
        self._lock = threading.Lock()

    def _ensure_loaded(self) -> Dict[str, str]:
        with self._lock:
            if self._vendors is None:
                self._vendors = self._read()
            return self._vendors

    def _read(self) -> Dict[str, str]:
        try:
            text = self.path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            logger.debug(f"OUI file {self.path} not found, vendor lookups disabled")
            return {}
        except OSError as e:
            logger.warning(f"Unable to read OUI file {self.path}: {e}")
            return {}

        vendors = parse_oui_text(text)
        logger.debug(f"Loaded {len(vendors)} OUI prefixes from {self.path}")
        return vendors

    def lookup(self, mac: str) -> str:
        """
        Get the vendor registered for a MAC address prefix.

        Args:
            mac: MAC address in any common notation

        Returns:
            str: Vendor name, or "" when unknown or the MAC is too short
        """
        prefix = re.sub(r"[:\-.]", "", mac or "").upper()
        if len(prefix) < 6:
            return ""
        return self._ensure_loaded().get(prefix[:6], "")

    def __len__(self) -> int:
        return len(self._ensure_loaded())


_default_database = OuiDatabase()
_default_lock = threading.Lock()


def configure(path: Union[str, Path]) -> OuiDatabase:
    """
    Point the module-level database at another OUI file.

    Args:
        path: Location of oui.txt

    Returns:
        The new default database
    """
    global _default_database
    with _default_lock:
        _default_database = OuiDatabase(path)
        return _default_database


def vendor_for(mac: str) -> str:
    """
    Look up the vendor of a MAC address in the default database.

    Args:
        mac: MAC address

    Returns:
        str: Vendor name or ""
    """
    with _default_lock:
        database = _default_database
    return database.lookup(mac)


def update_oui_file(
    path: Union[str, Path] = DEFAULT_OUI_FILE,
    url: str = DEFAULT_OUI_URL,
    timeout: float = 60.0,
    session: Optional[requests.Session] = None
) -> bool:
    """
    Download the OUI registry if it is not present yet.

    Args:
        path: Destination file
        url: Registry URL
        timeout: HTTP timeout in seconds
        session: Optional requests session

    Returns:
        bool: True if the file was downloaded, False if it already existed

    Raises:
        HostDiscoveryError: If the download or the write fails
    """
    path = Path(path)
    if path.exists():
        logger.info(f"OUI file {path} already exists, skipping download")
        return False

    context = ErrorContext(
        error_type=ErrorType.NETWORK_ERROR,
        severity=ErrorSeverity.HIGH,
        operation="update_oui_file",
        component="OuiDatabase",
        additional_info={"url": url, "file_path": str(path)},
    )

    logger.info(f"Downloading OUI file from {url}")
    http = session or requests.Session()
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise HostDiscoveryError(f"Failed to download OUI file: {e}", context) from e

    tmp_path = path.with_name(path.name + ".part")
    try:
        tmp_path.write_bytes(response.content)
        tmp_path.replace(path)
    except OSError as e:
        context.error_type = ErrorType.FILE_ERROR
        raise HostDiscoveryError(f"Failed to save OUI file: {e}", context) from e

    logger.success(f"Saved OUI file to {path}", size=len(response.content))
    return True
