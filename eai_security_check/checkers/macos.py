"""
macOS security checker (FileVault, Gatekeeper, SIP, socketfilterfw).
"""

import math
import re
from datetime import datetime, timezone
from typing import Optional

from ..core.logging_config import get_logger
from ..core.platform import Platform
from .base import (
    FirewallInfo,
    InstalledAppsInfo,
    PasswordProtectionInfo,
    SecurityChecker,
    SharingInfo,
    Terminology,
    UpdateInfo,
    WifiInfo,
)

logger = get_logger(__name__)

SOCKETFILTERFW = "/usr/libexec/ApplicationFirewall/socketfilterfw"
SOFTWARE_UPDATE_PLIST = "/Library/Preferences/com.apple.SoftwareUpdate"

SYSTEM_APPS = {
    "App Store", "Automator", "Books", "Calculator", "Calendar", "Chess",
    "Contacts", "DVD Player", "Dictionary", "FaceTime", "Finder", "Font Book",
    "Home", "Image Capture", "Launchpad", "Mail", "Maps", "Messages",
    "Mission Control", "Music", "News", "Notes", "Photo Booth", "Photos",
    "Podcasts", "Preview", "QuickTime Player", "Reminders", "Safari",
    "Shortcuts", "Siri", "Stickies", "Stocks", "System Preferences",
    "System Settings", "TextEdit", "Time Machine", "TV", "Utilities",
    "VoiceOver Utility",
}


class MacOSSecurityChecker(SecurityChecker):
    """Checker for macOS 15 and later."""

    platform = Platform.MACOS
    terminology = Terminology(
        disk_encryption="FileVault",
        package_verification="Gatekeeper",
        system_integrity="System Integrity Protection",
    )

    async def _read_default(self, domain: str, key: str, current_host: bool = False) -> Optional[str]:
        """Value of a ``defaults`` key, or None when the key does not exist."""
        args = ["defaults"]
        if current_host:
            args.append("-currentHost")
        args += ["read", domain, key]
        result = await self.run(args)
        if not result.success:
            return None
        return result.output.strip()

    async def _check_disk_encryption(self) -> bool:
        output = await self.output_of(["fdesetup", "status"])
        return "FileVault is On" in output

    async def _check_password_protection(self) -> PasswordProtectionInfo:
        script = (
            'tell application "System Events" to tell security preferences '
            "to get require password to wake"
        )
        result = await self.run(["osascript", "-e", script])
        if result.success:
            required = result.output.strip().lower() == "true"
        else:
            logger.debug("AppleScript lock check failed, reading screensaver defaults")
            ask = await self._read_default("com.apple.screensaver", "askForPassword")
            delay = await self._read_default("com.apple.screensaver", "askForPasswordDelay")
            required = ask == "1" and int(float(delay or "0")) <= 5

        # Only the on/off state is readable on recent releases, not the delay
        return PasswordProtectionInfo(
            enabled=True,
            require_password_immediately=required,
            password_required_after_lock=required,
        )

    async def _check_auto_lock_timeout(self) -> int:
        idle_time = await self._read_default(
            "com.apple.screensaver", "idleTime", current_host=True
        )
        if idle_time is None:
            return 0
        return math.ceil(int(idle_time) / 60)

    async def _check_firewall(self) -> FirewallInfo:
        state = await self.output_of([SOCKETFILTERFW, "--getglobalstate"])
        stealth = await self.run([SOCKETFILTERFW, "--getstealthmode"])
        return FirewallInfo(
            enabled="enabled" in state,
            stealth_mode=stealth.success and (
                "enabled" in stealth.output or "is on" in stealth.output
            ),
        )

    async def _check_package_verification(self) -> bool:
        output = await self.output_of(["spctl", "--status"])
        return "assessments enabled" in output

    async def _check_system_integrity_protection(self) -> bool:
        output = await self.output_of(["csrutil", "status"])
        return "enabled" in output and "disabled" not in output

    async def _check_remote_login(self) -> bool:
        result = await self.run(["launchctl", "list"])
        if result.success and "com.openssh.sshd" in result.output:
            return True

        result = await self.run("netstat -an | grep LISTEN | grep -E '[.:]22 '")
        return result.success and bool(result.output.strip())

    async def _check_remote_management(self) -> bool:
        screen = await self._read_default(
            "/Library/Preferences/com.apple.RemoteManagement", "ScreenSharingReqPermEnabled"
        )
        remote = await self._read_default(
            "/Library/Preferences/com.apple.RemoteDesktop", "DOCAllowRemoteConnections"
        )
        return screen == "1" or remote == "1"

    async def _check_automatic_updates(self) -> UpdateInfo:
        schedule = await self.run(["softwareupdate", "--schedule"])
        enabled = "turned on" in schedule.output.lower()

        # Missing keys mean the system default, which is on
        download = await self._read_default(SOFTWARE_UPDATE_PLIST, "AutomaticDownload")
        install = await self._read_default(
            SOFTWARE_UPDATE_PLIST, "AutomaticallyInstallMacOSUpdates"
        )
        security = await self._read_default(SOFTWARE_UPDATE_PLIST, "CriticalUpdateInstall")
        config_data = await self._read_default(SOFTWARE_UPDATE_PLIST, "ConfigDataInstall")

        automatic_download = download in (None, "1")
        automatic_install = install in (None, "1")
        automatic_security_install = security in (None, "1")

        if not enabled:
            mode = "disabled"
        elif not automatic_download:
            mode = "check-only"
        elif not automatic_install and not automatic_security_install:
            mode = "download-only"
        else:
            mode = "fully-automatic"

        return UpdateInfo(
            enabled=enabled,
            security_updates_only=automatic_security_install and not automatic_install,
            automatic_download=automatic_download,
            automatic_install=automatic_install,
            automatic_security_install=automatic_security_install,
            config_data_install=config_data in (None, "1"),
            update_mode=mode,
        )

    async def _check_sharing_services(self) -> SharingInfo:
        smbd = await self._read_default(
            "/System/Library/LaunchDaemons/com.apple.smbd", "Disabled"
        )
        file_sharing = smbd == "0"
        if not file_sharing:
            shares = await self.run_sudo(["sharing", "-l"])
            file_sharing = shares.success and "name:" in shares.output

        screen = await self._read_default(
            "/System/Library/LaunchDaemons/com.apple.screensharing", "Disabled"
        )
        ard = await self._read_default(
            "/Library/Preferences/com.apple.RemoteDesktop", "ARD_AllLocalUsers"
        )
        screen_sharing = screen == "0" or ard == "1"

        media_sharing = False
        for domain, key in (
            ("com.apple.Music", "sharingEnabled"),
            ("com.apple.amp.mediasharingd", "media-sharing-enabled"),
        ):
            if await self._read_default(domain, key) == "1":
                media_sharing = True
                break

        remote = await self.run_sudo(["systemsetup", "-getremotelogin"])
        if remote.success:
            remote_login = "On" in remote.output
        else:
            remote_login = await self._check_remote_login()

        return SharingInfo(
            file_sharing=file_sharing,
            screen_sharing=screen_sharing,
            remote_login=remote_login,
            media_sharing=media_sharing,
        )

    async def _get_os_version(self) -> str:
        return await self.output_of(["sw_vers", "-productVersion"])

    async def _check_current_wifi_network(self) -> WifiInfo:
        output = await self.output_of(["system_profiler", "SPAirPortDataType"])
        lines = output.splitlines()
        for index, line in enumerate(lines):
            if "Current Network Information:" in line and index + 1 < len(lines):
                name = lines[index + 1].strip().rstrip(":")
                if name:
                    return WifiInfo(network_name=name, connected=True)
        return WifiInfo()

    async def _check_installed_applications(self) -> InstalledAppsInfo:
        sources = {}

        result = await self.run(["ls", "/Applications"])
        if result.success:
            apps = [
                re.sub(r"\.app$", "", line.strip())
                for line in result.output.splitlines()
                if line.strip()
            ]
            sources["applications"] = [app for app in apps if app not in SYSTEM_APPS]

        result = await self.run(["brew", "list", "--cask"])
        if result.success:
            sources["homebrew"] = [
                line.strip() for line in result.output.splitlines() if line.strip()
            ]

        result = await self.run(["npm", "list", "-g", "--depth=0", "--parseable"])
        if result.success:
            sources["npm"] = [
                line.rstrip("/").split("/")[-1]
                for line in result.output.splitlines()
                if "node_modules" in line
            ]

        installed = []
        for names in sources.values():
            for name in names:
                if name not in installed:
                    installed.append(name)
        return InstalledAppsInfo(installed_apps=installed, sources=sources)

    async def _check_password_age_days(self) -> Optional[int]:
        user = await self.output_of(["id", "-un"])
        result = await self.run(
            ["dscl", ".", "-read", f"/Users/{user}", "accountPolicyData"]
        )
        if not result.success:
            return None

        match = re.search(
            r"<key>passwordLastSetTime</key>\s*<real>([^<]+)</real>", result.output
        )
        if not match:
            return None
        changed = datetime.fromtimestamp(float(match.group(1)), tz=timezone.utc)
        return (datetime.now(timezone.utc) - changed).days

    async def _get_system_info(self) -> str:
        version = await self._get_os_version()
        return f"macOS {version}"
