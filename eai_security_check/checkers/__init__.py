"""
Platform security checkers.
"""

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
    probe,
    run_command,
)
from .factory import create_checker
from .linux import LinuxSecurityChecker
from .macos import MacOSSecurityChecker
from .windows import WindowsSecurityChecker

__all__ = [
    "SecurityChecker",
    "LinuxSecurityChecker",
    "MacOSSecurityChecker",
    "WindowsSecurityChecker",
    "create_checker",
    "probe",
    "run_command",
    "CommandResult",
    "PasswordProtectionInfo",
    "FirewallInfo",
    "UpdateInfo",
    "SharingInfo",
    "WifiInfo",
    "InstalledAppsInfo",
    "Terminology",
]
