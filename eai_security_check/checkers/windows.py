"""
Windows security checker (BitLocker, Defender Firewall, SmartScreen, Defender).
"""

import re
from typing import Dict, Optional

from ..core.errors import ProbeFailure
from ..core.logging_config import get_logger
from ..core.platform import Platform
from .base import (
    CommandResult,
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

# AUOptions registry values for Windows Update
AU_DISABLED = 1
AU_NOTIFY = 2
AU_DOWNLOAD = 3
AU_INSTALL = 4


def parse_key_values(output: str) -> Dict[str, str]:
    """Parse ``Key: value`` lines written by the PowerShell snippets."""
    values = {}
    for line in output.splitlines():
        if ":" in line:
            key, value = line.split(":", 1)
            values[key.strip()] = value.strip()
    return values


class WindowsSecurityChecker(SecurityChecker):
    """Checker for Windows 10 and 11."""

    platform = Platform.WINDOWS
    terminology = Terminology(
        disk_encryption="BitLocker",
        package_verification="SmartScreen",
        system_integrity="Windows Defender protection",
    )

    async def powershell(self, script: str) -> CommandResult:
        return await self.run(
            ["powershell", "-NoProfile", "-NonInteractive", "-Command", script]
        )

    async def _powershell_values(self, script: str) -> Dict[str, str]:
        result = await self.powershell(script)
        if not result.success:
            raise ProbeFailure("powershell", result.error or f"exit code {result.exit_code}")
        return parse_key_values(result.output)

    async def _check_disk_encryption(self) -> bool:
        result = await self.run(["manage-bde", "-status", "C:"])
        if result.success:
            return re.search(r"Protection Status:\s+Protection On", result.output) is not None

        result = await self.powershell(
            "(Get-BitLockerVolume | Where-Object {$_.ProtectionStatus -eq 'On'} "
            "| Measure-Object).Count"
        )
        if not result.success:
            raise ProbeFailure("BitLocker", result.error or "status unavailable")
        return int(result.output.strip() or "0") > 0

    async def _check_password_protection(self) -> PasswordProtectionInfo:
        values = await self._powershell_values(
            "$d = Get-ItemProperty -Path 'HKCU:\\Control Panel\\Desktop' -ErrorAction SilentlyContinue; "
            "Write-Output \"ScreenSaveActive: $($d.ScreenSaveActive)\"; "
            "Write-Output \"ScreenSaverIsSecure: $($d.ScreenSaverIsSecure)\""
        )
        active = values.get("ScreenSaveActive") == "1"
        secure = values.get("ScreenSaverIsSecure") == "1"
        return PasswordProtectionInfo(
            enabled=active,
            require_password_immediately=secure,
            password_required_after_lock=secure,
        )

    async def _check_auto_lock_timeout(self) -> int:
        values = await self._powershell_values(
            "$d = Get-ItemProperty -Path 'HKCU:\\Control Panel\\Desktop' -ErrorAction SilentlyContinue; "
            "$p = Get-ItemProperty -Path 'HKLM:\\SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Policies\\System' "
            "-ErrorAction SilentlyContinue; "
            "Write-Output \"ScreenSaveTimeOut: $($d.ScreenSaveTimeOut)\"; "
            "Write-Output \"InactivityTimeoutSecs: $($p.InactivityTimeoutSecs)\""
        )
        for key in ("InactivityTimeoutSecs", "ScreenSaveTimeOut"):
            value = values.get(key, "")
            if value.isdigit() and int(value) > 0:
                return int(value) // 60
        return 0

    async def _check_firewall(self) -> FirewallInfo:
        values = await self._powershell_values(
            "Get-NetFirewallProfile | ForEach-Object { "
            "Write-Output \"$($_.Name): $($_.Enabled)\"; "
            "Write-Output \"$($_.Name)NotifyOnListen: $($_.NotifyOnListen)\" }"
        )
        domain = values.get("Domain") == "True"
        private = values.get("Private") == "True"
        public = values.get("Public") == "True"
        enabled = public or (domain and private)
        return FirewallInfo(
            enabled=enabled,
            stealth_mode=enabled and values.get("PublicNotifyOnListen") == "False",
        )

    async def _check_package_verification(self) -> bool:
        values = await self._powershell_values(
            "$s = Get-ItemProperty -Path 'HKLM:\\SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Explorer' "
            "-Name SmartScreenEnabled -ErrorAction SilentlyContinue; "
            "Write-Output \"SmartScreenEnabled: $($s.SmartScreenEnabled)\""
        )
        return values.get("SmartScreenEnabled") in ("RequireAdmin", "Prompt", "Warn")

    async def _check_system_integrity_protection(self) -> bool:
        values = await self._powershell_values(
            "$m = Get-MpComputerStatus -ErrorAction SilentlyContinue; "
            "Write-Output \"RealTimeProtectionEnabled: $($m.RealTimeProtectionEnabled)\"; "
            "Write-Output \"IsTamperProtected: $($m.IsTamperProtected)\""
        )
        return (
            values.get("RealTimeProtectionEnabled") == "True"
            and values.get("IsTamperProtected") == "True"
        )

    async def _service_running(self, name: str) -> bool:
        result = await self.powershell(
            f"(Get-Service -Name '{name}' -ErrorAction SilentlyContinue).Status"
        )
        return result.success and result.output.strip() == "Running"

    async def _check_remote_login(self) -> bool:
        return await self._service_running("sshd")

    async def _check_remote_management(self) -> bool:
        values = await self._powershell_values(
            "$t = Get-ItemProperty -Path 'HKLM:\\SYSTEM\\CurrentControlSet\\Control\\Terminal Server' "
            "-ErrorAction SilentlyContinue; "
            "Write-Output \"fDenyTSConnections: $($t.fDenyTSConnections)\""
        )
        rdp_allowed = values.get("fDenyTSConnections") == "0"
        return rdp_allowed and await self._service_running("TermService")

    async def _check_automatic_updates(self) -> UpdateInfo:
        values = await self._powershell_values(
            "$a = Get-ItemProperty -Path 'HKLM:\\SOFTWARE\\Policies\\Microsoft\\Windows\\WindowsUpdate\\AU' "
            "-ErrorAction SilentlyContinue; "
            "$w = Get-Service -Name wuauserv -ErrorAction SilentlyContinue; "
            "Write-Output \"AUOptions: $($a.AUOptions)\"; "
            "Write-Output \"NoAutoUpdate: $($a.NoAutoUpdate)\"; "
            "Write-Output \"StartType: $($w.StartType)\""
        )
        service_disabled = values.get("StartType") == "Disabled"
        if values.get("NoAutoUpdate") == "1" or service_disabled:
            options = AU_DISABLED
        elif values.get("AUOptions", "").isdigit():
            options = int(values["AUOptions"])
        else:
            # No policy configured: Windows installs updates automatically
            options = AU_INSTALL

        if options <= AU_DISABLED:
            mode = "disabled"
        elif options == AU_NOTIFY:
            mode = "check-only"
        elif options == AU_DOWNLOAD:
            mode = "download-only"
        else:
            mode = "fully-automatic"

        return UpdateInfo(
            enabled=options > AU_DISABLED,
            automatic_download=options >= AU_DOWNLOAD,
            automatic_install=options >= AU_INSTALL,
            automatic_security_install=options >= AU_INSTALL,
            update_mode=mode,
        )

    async def _check_sharing_services(self) -> SharingInfo:
        shares = await self.powershell(
            "(Get-SmbShare -ErrorAction SilentlyContinue | "
            "Where-Object { -not $_.Special } | Measure-Object).Count"
        )
        file_sharing = shares.success and int(shares.output.strip() or "0") > 0
        return SharingInfo(
            file_sharing=file_sharing,
            screen_sharing=await self._check_remote_management(),
            remote_login=await self._service_running("sshd"),
            media_sharing=await self._service_running("WMPNetworkSvc"),
        )

    async def _get_os_version(self) -> str:
        result = await self.powershell("[System.Environment]::OSVersion.Version.ToString()")
        if not result.success or not result.output.strip():
            raise ProbeFailure("OS version", result.error or "no output")
        return result.output.strip()

    async def _check_current_wifi_network(self) -> WifiInfo:
        result = await self.run(["netsh", "wlan", "show", "interfaces"])
        if not result.success:
            return WifiInfo()

        values = parse_key_values(result.output)
        if values.get("State", "").lower() != "connected":
            return WifiInfo()
        name = values.get("SSID")
        return WifiInfo(network_name=name, connected=bool(name))

    async def _check_installed_applications(self) -> InstalledAppsInfo:
        result = await self.powershell(
            "Get-ItemProperty "
            "'HKLM:\\Software\\Microsoft\\Windows\\CurrentVersion\\Uninstall\\*', "
            "'HKLM:\\Software\\WOW6432Node\\Microsoft\\Windows\\CurrentVersion\\Uninstall\\*', "
            "'HKCU:\\Software\\Microsoft\\Windows\\CurrentVersion\\Uninstall\\*' "
            "-ErrorAction SilentlyContinue | Where-Object { $_.DisplayName } | "
            "ForEach-Object { $_.DisplayName }"
        )
        if not result.success:
            raise ProbeFailure("installed applications", result.error or "query failed")

        installed = []
        for line in result.output.splitlines():
            name = line.strip()
            if name and name not in installed:
                installed.append(name)
        return InstalledAppsInfo(installed_apps=installed, sources={"registry": installed})

    async def _check_password_age_days(self) -> Optional[int]:
        result = await self.powershell(
            "$u = Get-LocalUser -Name $env:USERNAME -ErrorAction SilentlyContinue; "
            "if ($u.PasswordLastSet) { ((Get-Date) - $u.PasswordLastSet).Days }"
        )
        value = result.output.strip()
        if result.success and value.isdigit():
            return int(value)
        return None

    async def _get_system_info(self) -> str:
        result = await self.powershell("(Get-CimInstance Win32_OperatingSystem).Caption")
        caption = result.output.strip()
        version = await self._get_os_version()
        if result.success and caption:
            return f"{caption} ({version})"
        return f"Windows {version}"
