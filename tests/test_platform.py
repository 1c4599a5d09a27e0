"""
Tests for eai_security_check.core.platform module.
"""

import asyncio
from unittest.mock import patch

import pytest

from eai_security_check.core.platform import (
    Platform,
    PlatformInfo,
    detect_platform,
    evaluate_compatibility,
    parse_os_release,
)

OS_RELEASE = """
NAME="Fedora Linux"
VERSION="40 (Workstation Edition)"
ID=fedora
VERSION_ID=40
# comment
PRETTY_NAME="Fedora Linux 40 (Workstation Edition)"
"""


class TestPlatformInfo:
    """Test cases for PlatformInfo."""

    def test_display_names(self):
        assert PlatformInfo(platform=Platform.MACOS).display_name == "macOS"
        assert (
            PlatformInfo(platform=Platform.LINUX, distribution="ubuntu").display_name
            == "Ubuntu"
        )
        assert PlatformInfo(platform=Platform.WINDOWS).display_name == "Windows"

    def test_version_product(self):
        assert PlatformInfo(platform=Platform.LINUX, distribution="fedora").version_product == "fedora"
        assert PlatformInfo(platform=Platform.MACOS).version_product == "macos"
        assert PlatformInfo(platform=Platform.UNSUPPORTED).version_product is None

    def test_parse_os_release(self):
        values = parse_os_release(OS_RELEASE)

        assert values["ID"] == "fedora"
        assert values["VERSION_ID"] == "40"
        assert values["NAME"] == "Fedora Linux"


class TestCompatibility:
    """Test cases for evaluate_compatibility."""

    @pytest.mark.parametrize(
        "info, supported, approved",
        [
            (PlatformInfo(platform=Platform.MACOS, version="15.5"), True, True),
            (PlatformInfo(platform=Platform.MACOS, version="15.2"), True, False),
            (PlatformInfo(platform=Platform.MACOS, version="14.7"), False, False),
            (PlatformInfo(platform=Platform.MACOS), False, False),
            (PlatformInfo(platform=Platform.LINUX, distribution="fedora"), True, True),
            (PlatformInfo(platform=Platform.LINUX, distribution="ubuntu"), True, False),
            (PlatformInfo(platform=Platform.LINUX, distribution="arch"), False, False),
            (PlatformInfo(platform=Platform.WINDOWS, version="10.0.22631"), True, True),
            (PlatformInfo(platform=Platform.WINDOWS, version="6.1.7601"), False, False),
            (PlatformInfo(platform=Platform.UNSUPPORTED), False, False),
        ],
    )
    def test_evaluate(self, info, supported, approved):
        result = evaluate_compatibility(info)

        assert result.is_supported is supported
        assert result.is_approved is approved
        assert result.has_warning is not approved


class TestDetectPlatform:
    """Test cases for detect_platform."""

    @patch("eai_security_check.core.platform._platform.system", return_value="Linux")
    def test_linux_from_os_release(self, _mock_system, tmp_path, monkeypatch):
        os_release = tmp_path / "os-release"
        os_release.write_text(OS_RELEASE)
        monkeypatch.setattr("eai_security_check.core.platform.OS_RELEASE_PATH", os_release)

        info = asyncio.run(detect_platform())

        assert info.platform == Platform.LINUX
        assert info.distribution == "fedora"
        assert info.version == "40"

    @patch("eai_security_check.core.platform._platform.system", return_value="Plan9")
    def test_unknown_system(self, _mock_system):
        assert asyncio.run(detect_platform()).platform == Platform.UNSUPPORTED
