"""
Shared fixtures: an in-memory checker with scripted facts.
"""

import pytest

from eai_security_check.checkers.base import (
    FirewallInfo,
    InstalledAppsInfo,
    PasswordProtectionInfo,
    SecurityChecker,
    SharingInfo,
    Terminology,
    UpdateInfo,
    WifiInfo,
)
from eai_security_check.core.platform import Platform, PlatformInfo

DEFAULT_FACTS = {
    "disk_encryption": True,
    "password_protection": PasswordProtectionInfo(
        enabled=True, require_password_immediately=True, password_required_after_lock=True
    ),
    "auto_lock": 5,
    "firewall": FirewallInfo(enabled=True, stealth_mode=True),
    "package_verification": True,
    "system_integrity": True,
    "remote_login": False,
    "remote_management": False,
    "automatic_updates": UpdateInfo(
        enabled=True,
        automatic_download=True,
        automatic_install=True,
        automatic_security_install=True,
        update_mode="fully-automatic",
    ),
    "sharing": SharingInfo(),
    "os_version": "15.5",
    "wifi": WifiInfo(),
    "installed_apps": InstalledAppsInfo(),
    "password_age": None,
}


class FakeChecker(SecurityChecker):
    """Checker returning scripted facts; an Exception fact is raised instead."""

    platform = Platform.MACOS
    terminology = Terminology(
        disk_encryption="FileVault",
        package_verification="Gatekeeper",
        system_integrity="System Integrity Protection",
    )

    def __init__(self, password=None, platform_info=None, **facts):
        super().__init__(
            password=password,
            platform_info=platform_info
            or PlatformInfo(platform=Platform.MACOS, version="15.5", hostname="test-host"),
        )
        self.facts = dict(DEFAULT_FACTS)
        self.facts.update(facts)
        self.calls = []

    async def _fact(self, name):
        self.calls.append(name)
        value = self.facts[name]
        if isinstance(value, Exception):
            raise value
        return value

    async def _check_disk_encryption(self):
        return await self._fact("disk_encryption")

    async def _check_password_protection(self):
        return await self._fact("password_protection")

    async def _check_auto_lock_timeout(self):
        return await self._fact("auto_lock")

    async def _check_firewall(self):
        return await self._fact("firewall")

    async def _check_package_verification(self):
        return await self._fact("package_verification")

    async def _check_system_integrity_protection(self):
        return await self._fact("system_integrity")

    async def _check_remote_login(self):
        return await self._fact("remote_login")

    async def _check_remote_management(self):
        return await self._fact("remote_management")

    async def _check_automatic_updates(self):
        return await self._fact("automatic_updates")

    async def _check_sharing_services(self):
        return await self._fact("sharing")

    async def _get_os_version(self):
        return await self._fact("os_version")

    async def _check_current_wifi_network(self):
        return await self._fact("wifi")

    async def _check_installed_applications(self):
        return await self._fact("installed_apps")

    async def _check_password_age_days(self):
        return await self._fact("password_age")


@pytest.fixture
def fake_checker():
    """Factory for FakeChecker instances."""
    return FakeChecker


@pytest.fixture
def signing_secret(monkeypatch):
    monkeypatch.setenv("EAI_BUILD_SECRET", "test-build-secret")
    return "test-build-secret"
