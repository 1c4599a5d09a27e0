"""
Core module for eai-security-check: configuration, profiles and platform facts.
"""

from .config import SecurityConfig, load_config
from .errors import (
    ConfigError,
    EnvelopeError,
    HashMismatchError,
    ProbeFailure,
    SecurityCheckError,
    SigningError,
    UnsupportedPlatformError,
)
from .platform import Platform, PlatformInfo, VersionCompatibility, detect_platform
from .profiles import VALID_PROFILES, get_config_by_profile
from .versions import LatestVersionResolver, compare_versions

__all__ = [
    "SecurityConfig",
    "load_config",
    "VALID_PROFILES",
    "get_config_by_profile",
    "Platform",
    "PlatformInfo",
    "VersionCompatibility",
    "detect_platform",
    "LatestVersionResolver",
    "compare_versions",
    "SecurityCheckError",
    "ConfigError",
    "ProbeFailure",
    "EnvelopeError",
    "HashMismatchError",
    "SigningError",
    "UnsupportedPlatformError",
]
