"""
Predefined security configuration profiles.
"""

from typing import Any, Dict, List

from .config import SecurityConfig
from .errors import ConfigError

VALID_PROFILES = ["default", "strict", "relaxed", "developer", "eai"]

_BASE: Dict[str, Any] = {
    "diskEncryption": {"enabled": True},
    "packageVerification": {"enabled": True},
    "systemIntegrityProtection": {"enabled": True},
}

_NO_SHARING = {"fileSharing": False, "screenSharing": False, "remoteLogin": False}

_NO_PASSWORD_POLICY = {
    "required": False,
    "minLength": 8,
    "maxAgeDays": 180,
}

_PROFILES: Dict[str, Dict[str, Any]] = {
    "default": {
        **_BASE,
        "passwordProtection": {"enabled": True, "requirePasswordImmediately": True},
        "password": _NO_PASSWORD_POLICY,
        "autoLock": {"maxTimeoutMinutes": 7},
        "firewall": {"enabled": True, "stealthMode": True},
        "remoteLogin": {"enabled": False},
        "remoteManagement": {"enabled": False},
        "automaticUpdates": {
            "enabled": True,
            "automaticInstall": True,
            "automaticSecurityInstall": True,
        },
        "sharingServices": _NO_SHARING,
        "wifiSecurity": {"bannedNetworks": ["EAIguest", "xfinitywifi", "Guest"]},
    },
    "strict": {
        **_BASE,
        "passwordProtection": {"enabled": True, "requirePasswordImmediately": True},
        "password": _NO_PASSWORD_POLICY,
        "autoLock": {"maxTimeoutMinutes": 3},
        "firewall": {"enabled": True, "stealthMode": True},
        "remoteLogin": {"enabled": False},
        "remoteManagement": {"enabled": False},
        "automaticUpdates": {
            "enabled": True,
            "automaticInstall": True,
            "automaticSecurityInstall": True,
        },
        "sharingServices": _NO_SHARING,
        "osVersion": {"targetVersion": "latest"},
        "wifiSecurity": {
            "bannedNetworks": [
                "EAIguest",
                "xfinitywifi",
                "Guest",
                "Public WiFi",
                "Free WiFi",
            ]
        },
        "installedApps": {
            "bannedApplications": [
                "BitTorrent",
                "uTorrent",
                "Limewire",
                "TeamViewer",
                "AnyDesk",
                "Skype",
            ]
        },
    },
    "relaxed": {
        **_BASE,
        "passwordProtection": {"enabled": True, "requirePasswordImmediately": False},
        "password": _NO_PASSWORD_POLICY,
        "autoLock": {"maxTimeoutMinutes": 15},
        "firewall": {"enabled": True, "stealthMode": False},
        "remoteLogin": {"enabled": False},
        "remoteManagement": {"enabled": False},
        "automaticUpdates": {
            "enabled": True,
            "downloadOnly": False,
            "automaticSecurityInstall": False,
        },
        "sharingServices": _NO_SHARING,
    },
    "developer": {
        **_BASE,
        "passwordProtection": {"enabled": True, "requirePasswordImmediately": True},
        "password": {
            "required": True,
            "minLength": 8,
            "requireUppercase": True,
            "requireLowercase": True,
            "requireNumber": True,
            "requireSpecialChar": True,
            "maxAgeDays": 180,
        },
        "autoLock": {"maxTimeoutMinutes": 10},
        "firewall": {"enabled": True, "stealthMode": False},
        "remoteLogin": {"enabled": True},
        "remoteManagement": {"enabled": False},
        "automaticUpdates": {
            "enabled": True,
            "downloadOnly": True,
            "automaticSecurityInstall": True,
        },
        "sharingServices": {
            "fileSharing": True,
            "screenSharing": True,
            "remoteLogin": True,
        },
    },
    "eai": {
        "diskEncryption": {"enabled": True},
        "passwordProtection": {"enabled": True, "requirePasswordImmediately": True},
        "password": {"required": True, "minLength": 10, "maxAgeDays": 180},
        "autoLock": {"maxTimeoutMinutes": 7},
        "firewall": {"enabled": False, "stealthMode": False},
        "packageVerification": {"enabled": True},
        "systemIntegrityProtection": {"enabled": True},
        "remoteLogin": {"enabled": False},
        "remoteManagement": {"enabled": False},
        "automaticUpdates": {
            "enabled": True,
            "automaticInstall": True,
            "automaticSecurityInstall": True,
        },
        "sharingServices": _NO_SHARING,
        "osVersion": {"targetVersion": "latest"},
        "installedApps": {
            "bannedApplications": [
                "BitTorrent",
                "uTorrent",
                "Limewire",
                "TeamViewer",
                "AnyDesk",
                "Skype",
                "Steam",
            ]
        },
        "wifiSecurity": {
            "bannedNetworks": ["EAIguest", "xfinitywifi", "Guest", "Public WiFi"]
        },
    },
}


def is_valid_profile(profile: str) -> bool:
    return profile in VALID_PROFILES


def get_config_by_profile(profile: str) -> SecurityConfig:
    """Build the SecurityConfig for a named profile."""
    if not is_valid_profile(profile):
        raise ConfigError(
            f"invalid profile '{profile}'. Valid profiles: {', '.join(VALID_PROFILES)}"
        )
    return SecurityConfig.from_dict(_PROFILES[profile], source=f"{profile} profile")


def list_profiles() -> List[str]:
    return list(VALID_PROFILES)
