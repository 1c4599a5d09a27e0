"""
Tests for eai_security_check.core.versions module.
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from eai_security_check.core.versions import (
    LatestVersionResolver,
    compare_versions,
    fetch_latest_from_endoflife,
    is_valid_version,
    parse_version,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestVersionComparison:
    """Test cases for dotted version handling."""

    def test_parse_version(self):
        assert parse_version("14.5") == (14, 5)
        assert parse_version("15.0.1") == (15, 0, 1)
        assert parse_version("15.beta") == (15, 0)

    @pytest.mark.parametrize(
        "current, target, expected",
        [
            ("14.5", "14.0", 1),
            ("14.5", "15.0", -1),
            ("15", "15.0.0", 0),
            ("15.1", "15.0.9", 1),
            ("10.0.19045", "10.0.26100", -1),
        ],
    )
    def test_compare_versions(self, current, target, expected):
        assert compare_versions(current, target) == expected

    def test_is_valid_version(self):
        assert is_valid_version("15.1") is True
        assert is_valid_version("unknown") is False
        assert is_valid_version("") is False
        assert is_valid_version(None) is False


class TestEndOfLifeLookup:
    """Test cases for the endoflife.date lookup."""

    @patch("eai_security_check.core.versions.requests.get")
    def test_newest_release_selected(self, mock_get):
        response = MagicMock()
        response.json.return_value = [
            {"cycle": "14", "latest": "14.7.1"},
            {"cycle": "15", "latest": "15.1"},
            {"cycle": "13", "latest": "13.7.1"},
        ]
        mock_get.return_value = response

        assert fetch_latest_from_endoflife("macos") == "15.1"
        assert mock_get.call_args.kwargs["timeout"] == 10.0
        assert "macos.json" in mock_get.call_args.args[0]

    @patch("eai_security_check.core.versions.requests.get")
    def test_no_usable_release(self, mock_get):
        response = MagicMock()
        response.json.return_value = [{"cycle": "sequoia"}]
        mock_get.return_value = response

        with pytest.raises(ValueError):
            fetch_latest_from_endoflife("macos")


class TestLatestVersionResolver:
    """Test cases for LatestVersionResolver caching and fallback policy."""

    def _resolver(self, fetcher, clock_values, **kwargs):
        clock = iter(clock_values)
        return LatestVersionResolver(
            "macos", fetcher=fetcher, clock=lambda: next(clock), **kwargs
        )

    def test_network_then_cache(self):
        fetcher = MagicMock(return_value="15.1")
        resolver = self._resolver(fetcher, [NOW, NOW + timedelta(hours=1)])

        first = resolver.resolve()
        second = resolver.resolve()

        assert (first.version, first.source) == ("15.1", "network")
        assert (second.version, second.source) == ("15.1", "cache")
        assert fetcher.call_count == 1

    def test_expired_cache_refreshes(self):
        fetcher = MagicMock(side_effect=["15.1", "15.2"])
        resolver = self._resolver(fetcher, [NOW, NOW + timedelta(hours=25)])

        resolver.resolve()
        assert resolver.resolve().version == "15.2"

    def test_failure_uses_recent_stale_cache(self):
        fetcher = MagicMock(side_effect=["15.1", requests.ConnectionError("offline")])
        resolver = self._resolver(fetcher, [NOW, NOW + timedelta(days=3)])

        resolver.resolve()
        resolved = resolver.resolve()

        assert (resolved.version, resolved.source) == ("15.1", "stale-cache")

    def test_failure_with_old_cache_uses_fallback(self):
        fetcher = MagicMock(side_effect=["14.0", requests.Timeout("slow")])
        resolver = self._resolver(
            fetcher, [NOW, NOW + timedelta(days=31)], fallback="15.1"
        )

        resolver.resolve()
        resolved = resolver.resolve()

        assert (resolved.version, resolved.source) == ("15.1", "fallback")

    def test_invalid_lookup_result_uses_fallback(self):
        resolver = self._resolver(MagicMock(return_value="Sequoia"), [NOW], fallback="15.1")

        assert resolver.resolve().source == "fallback"

    def test_cache_persisted(self, tmp_path):
        cache_path = tmp_path / "latest-versions.json"
        self._resolver(MagicMock(return_value="15.1"), [NOW], cache_path=cache_path).resolve()

        data = json.loads(cache_path.read_text())
        assert data["macos"]["version"] == "15.1"

        fetcher = MagicMock()
        reloaded = self._resolver(
            fetcher, [NOW + timedelta(hours=2)], cache_path=cache_path
        ).resolve()

        assert (reloaded.version, reloaded.source) == ("15.1", "cache")
        fetcher.assert_not_called()

    def test_non_mapping_cache_is_ignored(self, tmp_path):
        cache_path = tmp_path / "latest-versions.json"
        cache_path.write_text("[1, 2]")
        failing = MagicMock(side_effect=requests.ConnectionError("offline"))

        resolved = self._resolver(
            failing, [NOW], cache_path=cache_path, fallback="15.1"
        ).resolve()
        assert (resolved.version, resolved.source) == ("15.1", "fallback")

        self._resolver(MagicMock(return_value="15.5"), [NOW], cache_path=cache_path).resolve()
        assert json.loads(cache_path.read_text())["macos"]["version"] == "15.5"

    def test_cache_timestamp_without_offset_is_utc(self, tmp_path):
        cache_path = tmp_path / "latest-versions.json"
        cache_path.write_text(
            json.dumps({"macos": {"version": "15.4", "fetched_at": "2025-06-01T10:00:00"}})
        )
        fetcher = MagicMock()

        resolved = self._resolver(fetcher, [NOW], cache_path=cache_path).resolve()

        assert (resolved.version, resolved.source) == ("15.4", "cache")
        assert resolved.fetched_at == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)
        fetcher.assert_not_called()
