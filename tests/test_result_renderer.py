"""
Tests for console and JSON rendering of scan results.
"""

import json
import io

import pytest

from host_discovery.core.data_models import DiscoveryMethod, HostRecord, ScanResult
from host_discovery.utils.logger import Logger, LogLevel, set_log_stream
from host_discovery.utils.result_renderer import ResultRenderer

VENDORS = {"B8:27:EB:00:00:01": "Raspberry Pi Foundation"}


@pytest.fixture
def result():
    return ScanResult(
        hosts=(
            HostRecord(
                address="192.168.1.10",
                mac="B8:27:EB:00:00:01",
                hostname="pi.lan",
                open_ports=(22, 80),
                icmp_latency=0.0015,
                discovered_via=DiscoveryMethod.ICMP_TCP,
                process_time=0.12,
            ),
            HostRecord(
                address="192.168.1.20",
                open_ports=(443,),
                discovered_via=DiscoveryMethod.TCP,
                process_time=0.5,
            ),
        ),
        total_candidates=254,
        completed_count=254,
        duration=3.2,
        absorbed_errors={"network_error": 2},
    )


@pytest.fixture
def captured():
    stream = io.StringIO()
    set_log_stream(stream)
    yield stream
    set_log_stream(None)


def make_renderer(**kwargs):
    return ResultRenderer(
        logger=Logger("test", min_level=LogLevel.INFO),
        vendor_lookup=lambda mac: VENDORS.get(mac, ""),
        **kwargs
    )


class TestJson:
    """Test the machine-readable output."""

    def test_to_dict(self, result):
        data = make_renderer().to_dict(result, "192.168.1.0/24")

        metadata = data["scan_metadata"]
        assert metadata["subnet"] == "192.168.1.0/24"
        assert metadata["total_candidates"] == 254
        assert metadata["hosts_found"] == 2
        assert metadata["absorbed_errors"] == {"network_error": 2}

        first, second = data["hosts"]
        assert first["ip_address"] == "192.168.1.10"
        assert first["vendor"] == "Raspberry Pi Foundation"
        assert first["open_ports"] == [22, 80]
        assert first["icmp_latency_ms"] == 1.5
        assert first["discovered_via"] == "ICMP+TCP"

        assert second["mac_address"] is None
        assert second["vendor"] is None
        assert second["hostname"] is None
        assert second["icmp_latency_ms"] is None
        assert second["discovered_via"] == "TCP"

    def test_to_json_parses(self, result):
        data = json.loads(make_renderer().to_json(result, "192.168.1.0/24"))
        assert [h["ip_address"] for h in data["hosts"]] == ["192.168.1.10", "192.168.1.20"]


class TestConsole:
    """Test the console output."""

    def test_progress_line(self, captured):
        make_renderer().show_progress(127, 254, 3)
        assert "Progress: 127/254 (50.0%) - Found 3 hosts" in captured.getvalue()

    def test_progress_disabled(self, captured):
        make_renderer(show_progress=False).show_progress(1, 2, 0)
        assert captured.getvalue() == ""

    def test_results_table(self, result, captured):
        make_renderer().show_results(result)
        output = captured.getvalue()

        assert "192.168.1.10" in output
        assert "Raspberry Pi Foundation" in output
        assert "22,80" in output
        assert "1.5ms" in output
        assert "Scan complete. (2/254 hosts responded)" in output

    def test_no_hosts(self, captured):
        empty = ScanResult(hosts=(), total_candidates=14, completed_count=14)
        make_renderer().show_results(empty)
        assert "Scan complete. (0/14 hosts responded)" in captured.getvalue()
