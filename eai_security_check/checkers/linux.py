"""
Linux security checker (LUKS, GNOME/KDE screen lock, ufw/firewalld, SELinux/AppArmor).
"""

import re
import shutil
from datetime import datetime
from typing import Optional

from ..core.errors import ProbeFailure
from ..core.logging_config import get_logger
from ..core.platform import Platform, parse_os_release
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

KDE_SCREENLOCKER_CONFIG = "~/.config/kscreenlockerrc"
DNF_AUTOMATIC_CONFIG = "/etc/dnf/automatic.conf"
APT_PERIODIC_CONFIG = "/etc/apt/apt.conf.d/20auto-upgrades"
APT_UNATTENDED_CONFIG = "/etc/apt/apt.conf.d/50unattended-upgrades"
YUM_CRON_CONFIG = "/etc/yum/yum-cron.conf"
VNC_PROCESSES = ["vncserver", "x11vnc", "tigervnc", "Xvnc"]
REMOTE_MANAGEMENT_PROCESSES = VNC_PROCESSES + ["teamviewer", "anydesk"]


def _config_enabled(content: str, key: str) -> bool:
    """True when an ini-style ``key = yes`` line is present and not commented out."""
    pattern = rf"^\s*{re.escape(key)}\s*=\s*(yes|true|1)\s*$"
    return re.search(pattern, content, re.MULTILINE | re.IGNORECASE) is not None


def _gsettings_uint(output: str) -> Optional[int]:
    """Value of a gsettings integer such as ``uint32 300``, or None."""
    match = re.search(r"(\d+)\s*$", output.strip())
    return int(match.group(1)) if match else None


class LinuxSecurityChecker(SecurityChecker):
    """Checker for Fedora, Ubuntu, Debian, CentOS and RHEL desktops."""

    platform = Platform.LINUX
    terminology = Terminology(
        disk_encryption="LUKS disk encryption",
        package_verification="Package signature verification",
        system_integrity="SELinux/AppArmor",
    )

    async def _process_running(self, name: str) -> bool:
        result = await self.run(["pgrep", "-x", name])
        return result.success and bool(result.output.strip())

    async def _service_active(self, *names: str) -> bool:
        for name in names:
            result = await self.run(["systemctl", "is-active", name])
            if result.output.strip() == "active":
                return True
        return False

    async def _check_disk_encryption(self) -> bool:
        result = await self.run(["lsblk", "-f"])
        if result.success and "crypto_LUKS" in result.output:
            return True

        result = await self.run(["dmsetup", "ls", "--target", "crypt"])
        output = result.output.strip()
        return result.success and bool(output) and "No devices found" not in output

    async def _check_password_protection(self) -> PasswordProtectionInfo:
        enabled = True
        status = await self.run("passwd -S \"$(whoami)\"")
        if status.success:
            fields = status.output.split()
            # Second field is the password state: P usable, NP none, L locked
            enabled = len(fields) < 2 or fields[1] != "NP"

        lock_enabled = await self.run(
            ["gsettings", "get", "org.gnome.desktop.screensaver", "lock-enabled"]
        )
        if lock_enabled.success:
            locks = lock_enabled.output.strip() == "true"
            delay = await self.run(
                ["gsettings", "get", "org.gnome.desktop.screensaver", "lock-delay"]
            )
            seconds = _gsettings_uint(delay.output) if delay.success else None
            immediate = locks and seconds == 0
            return PasswordProtectionInfo(
                enabled=enabled,
                require_password_immediately=immediate,
                password_required_after_lock=locks,
            )

        kde_config = self.read_text(KDE_SCREENLOCKER_CONFIG)
        if kde_config is not None:
            locks = "Autolock=false" not in kde_config
            immediate = locks and "LockGrace=0" in kde_config.replace(" ", "")
            return PasswordProtectionInfo(
                enabled=enabled,
                require_password_immediately=immediate,
                password_required_after_lock=locks,
            )

        return PasswordProtectionInfo(enabled=enabled)

    async def _check_auto_lock_timeout(self) -> int:
        result = await self.run(
            ["gsettings", "get", "org.gnome.desktop.session", "idle-delay"]
        )
        seconds = _gsettings_uint(result.output) if result.success else None
        if seconds is not None:
            return round(seconds / 60)

        kde_config = self.read_text(KDE_SCREENLOCKER_CONFIG)
        if kde_config is not None:
            match = re.search(r"^Timeout=(\d+)", kde_config, re.MULTILINE)
            if match:
                # KDE stores the timeout in minutes
                return int(match.group(1))

        raise ProbeFailure("auto-lock", "no GNOME or KDE screen lock settings found")

    async def _check_firewall(self) -> FirewallInfo:
        if shutil.which("ufw"):
            result = await self.run_sudo(["ufw", "status", "verbose"])
            if result.success:
                enabled = "Status: active" in result.output
                stealth = enabled and "deny (incoming)" in result.output.lower()
                return FirewallInfo(enabled=enabled, stealth_mode=stealth)

        if shutil.which("firewall-cmd"):
            state = await self.run(["firewall-cmd", "--state"])
            enabled = state.output.strip() == "running"
            stealth = False
            if enabled:
                zone = await self.run(["firewall-cmd", "--get-default-zone"])
                if zone.success:
                    target = await self.run_sudo(
                        [
                            "firewall-cmd",
                            f"--zone={zone.output.strip()}",
                            "--get-target",
                        ]
                    )
                    stealth = target.output.strip().upper() == "DROP"
            return FirewallInfo(enabled=enabled, stealth_mode=stealth)

        result = await self.run_sudo(["iptables", "-L", "INPUT"])
        if not result.success:
            raise ProbeFailure("firewall", result.error or "no firewall tool available")
        enabled = "policy DROP" in result.output or "policy REJECT" in result.output
        return FirewallInfo(enabled=enabled, stealth_mode="policy DROP" in result.output)

    async def _check_package_verification(self) -> bool:
        if shutil.which("dnf") or shutil.which("yum"):
            for conf in ("/etc/dnf/dnf.conf", "/etc/yum.conf"):
                content = self.read_text(conf)
                if content is None:
                    continue
                match = re.search(
                    r"^\s*gpgcheck\s*=\s*(\S+)", content, re.MULTILINE | re.IGNORECASE
                )
                if match:
                    return match.group(1).lower() in ("1", "true", "yes")
            # gpgcheck defaults to on when not set
            return True

        if shutil.which("apt-config"):
            result = await self.run(["apt-config", "dump"])
            if not result.success:
                raise ProbeFailure("package verification", result.error or "apt-config failed")
            return not re.search(
                r'AllowUnauthenticated\s+"(true|1)"', result.output, re.IGNORECASE
            )

        raise ProbeFailure("package verification", "no supported package manager found")

    async def _check_system_integrity_protection(self) -> bool:
        result = await self.run(["getenforce"])
        if result.success:
            return result.output.strip() == "Enforcing"

        result = await self.run_sudo(["aa-status", "--enabled"])
        if result.success:
            return True

        lsm = self.read_text("/sys/kernel/security/lsm")
        if lsm is None:
            raise ProbeFailure("system integrity", "no LSM information available")
        return "selinux" in lsm or "apparmor" in lsm

    async def _check_remote_login(self) -> bool:
        if await self._service_active("ssh", "sshd"):
            return True
        return await self._process_running("sshd")

    async def _check_remote_management(self) -> bool:
        for name in REMOTE_MANAGEMENT_PROCESSES:
            if await self._process_running(name):
                return True
        return False

    async def _check_automatic_updates(self) -> UpdateInfo:
        dnf_config = self.read_text(DNF_AUTOMATIC_CONFIG)
        if dnf_config is not None:
            timer_active = await self._service_active(
                "dnf-automatic.timer", "dnf-automatic-install.timer", "dnf5-automatic.timer"
            )
            apply_updates = _config_enabled(dnf_config, "apply_updates")
            download = _config_enabled(dnf_config, "download_updates") or apply_updates
            security_only = re.search(
                r"^\s*upgrade_type\s*=\s*security", dnf_config, re.MULTILINE
            ) is not None
            return self._update_info(timer_active, download, apply_updates, security_only)

        periodic = self.read_text(APT_PERIODIC_CONFIG)
        if periodic is not None:
            checking = re.search(r'Update-Package-Lists\s+"1"', periodic) is not None
            unattended = re.search(r'Unattended-Upgrade\s+"1"', periodic) is not None
            download = (
                re.search(r'Download-Upgradeable-Packages\s+"1"', periodic) is not None
                or unattended
            )
            origins = self.read_text(APT_UNATTENDED_CONFIG) or ""
            security = any(
                "security" in line.lower() and not line.strip().startswith("//")
                for line in origins.splitlines()
            )
            info = self._update_info(checking, download, unattended, False)
            info.automatic_security_install = unattended and security
            return info

        yum_cron = self.read_text(YUM_CRON_CONFIG)
        if yum_cron is not None:
            apply_updates = _config_enabled(yum_cron, "apply_updates")
            download = _config_enabled(yum_cron, "download_updates") or apply_updates
            running = await self._service_active("yum-cron")
            return self._update_info(running, download, apply_updates, False)

        return UpdateInfo()

    @staticmethod
    def _update_info(
        enabled: bool, download: bool, install: bool, security_only: bool
    ) -> UpdateInfo:
        if not enabled:
            mode = "disabled"
        elif install:
            mode = "fully-automatic"
        elif download:
            mode = "download-only"
        else:
            mode = "check-only"

        return UpdateInfo(
            enabled=enabled,
            security_updates_only=security_only,
            automatic_download=enabled and download,
            automatic_install=enabled and install,
            automatic_security_install=enabled and install,
            update_mode=mode,
        )

    async def _check_sharing_services(self) -> SharingInfo:
        file_sharing = await self._service_active("smbd", "nmbd", "smb", "nfs-server")

        screen_sharing = False
        for name in VNC_PROCESSES:
            if await self._process_running(name):
                screen_sharing = True
                break
        if not screen_sharing:
            rdp = await self.run(
                ["gsettings", "get", "org.gnome.desktop.remote-desktop.rdp", "enable"]
            )
            screen_sharing = rdp.success and rdp.output.strip() == "true"

        return SharingInfo(
            file_sharing=file_sharing,
            screen_sharing=screen_sharing,
            remote_login=await self._check_remote_login(),
        )

    async def _get_os_version(self) -> str:
        content = self.read_text("/etc/os-release")
        if content is not None:
            version = parse_os_release(content).get("VERSION_ID")
            if version:
                return version
        return await self.output_of(["lsb_release", "-rs"])

    async def _check_current_wifi_network(self) -> WifiInfo:
        result = await self.run(["nmcli", "-t", "-f", "active,ssid", "dev", "wifi"])
        if result.success:
            for line in result.output.splitlines():
                if line.startswith("yes:"):
                    ssid = line[len("yes:"):].strip()
                    if ssid:
                        return WifiInfo(network_name=ssid, connected=True)
            return WifiInfo()

        result = await self.run(["iwgetid", "-r"])
        ssid = result.output.strip()
        if result.success and ssid:
            return WifiInfo(network_name=ssid, connected=True)
        return WifiInfo()

    async def _check_installed_applications(self) -> InstalledAppsInfo:
        sources = {}

        if shutil.which("flatpak"):
            result = await self.run(["flatpak", "list", "--app", "--columns=name"])
            if result.success:
                sources["flatpak"] = [
                    line.strip() for line in result.output.splitlines() if line.strip()
                ]

        if shutil.which("snap"):
            result = await self.run(["snap", "list"])
            if result.success:
                # Skip the header row
                sources["snap"] = [
                    line.split()[0] for line in result.output.splitlines()[1:] if line.strip()
                ]

        desktop_entries = await self.run(
            "ls /usr/share/applications ~/.local/share/applications 2>/dev/null"
        )
        sources["applications"] = sorted(
            {
                line.strip()[: -len(".desktop")]
                for line in desktop_entries.output.splitlines()
                if line.strip().endswith(".desktop")
            }
        )

        installed = []
        for names in sources.values():
            for name in names:
                if name not in installed:
                    installed.append(name)
        return InstalledAppsInfo(installed_apps=installed, sources=sources)

    async def _check_password_age_days(self) -> Optional[int]:
        result = await self.run("LC_ALL=C chage -l \"$(whoami)\"")
        if not result.success:
            return None

        for line in result.output.splitlines():
            if line.startswith("Last password change"):
                value = line.split(":", 1)[1].strip()
                if value in ("never", "password must be changed"):
                    return None
                changed = datetime.strptime(value, "%b %d, %Y")
                return (datetime.now() - changed).days
        return None
