"""
Tests for address and MAC helpers.
"""

import pytest

from host_discovery.utils.network_utils import ip_sort_key, normalize_mac


class TestIpSortKey:
    """Test numeric address ordering."""

    def test_numeric_not_lexical(self):
        addresses = ["10.0.0.10", "10.0.0.9", "9.0.0.1", "10.0.0.100"]
        assert sorted(addresses, key=ip_sort_key) == ["9.0.0.1", "10.0.0.9", "10.0.0.10", "10.0.0.100"]

    def test_unparsable_after_valid(self):
        """Should place unparsable strings after every valid address, in lexical order."""
        addresses = ["zeta", "10.0.0.2", "10.0.0.256", "1.1.1.1", "alpha"]
        assert sorted(addresses, key=ip_sort_key) == ["1.1.1.1", "10.0.0.2", "10.0.0.256", "alpha", "zeta"]


class TestNormalizeMac:
    @pytest.mark.parametrize("raw, expected", [
        ("aa:bb:cc:dd:ee:ff", "AA:BB:CC:DD:EE:FF"),
        ("0:1a:2b:3c:4d:5e", "00:1A:2B:3C:4D:5E"),
        ("aa-bb-cc-dd-ee-ff", "AA:BB:CC:DD:EE:FF"),
        ("00:00:00:00:00:00", ""),
        ("not-a-mac", ""),
        ("", ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_mac(raw) == expected
