"""
Platform detection and version compatibility.
"""

import asyncio
import platform as _platform
import socket
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel

from .logging_config import get_logger
from .versions import compare_versions

logger = get_logger(__name__)

OS_RELEASE_PATH = Path("/etc/os-release")

MACOS_MINIMUM_VERSION = "15.0"
MACOS_APPROVED_VERSIONS = ["15.5", "15.6"]
LINUX_SUPPORTED_DISTRIBUTIONS = ["fedora", "ubuntu", "debian", "centos", "rhel"]
LINUX_APPROVED_DISTRIBUTIONS = ["fedora"]
WINDOWS_SUPPORTED_RELEASES = ["10", "11"]


class Platform(str, Enum):
    """Operating systems the auditor can run on."""

    MACOS = "macos"
    LINUX = "linux"
    WINDOWS = "windows"
    UNSUPPORTED = "unsupported"


class PlatformInfo(BaseModel):
    """Identity of the running system."""

    platform: Platform
    version: str = "unknown"
    distribution: Optional[str] = None
    hostname: str = "unknown"

    @property
    def display_name(self) -> str:
        if self.platform == Platform.MACOS:
            return "macOS"
        if self.platform == Platform.LINUX:
            return (self.distribution or "linux").capitalize()
        if self.platform == Platform.WINDOWS:
            return "Windows"
        return "Unsupported platform"

    @property
    def version_product(self) -> Optional[str]:
        """Product name used to look up the latest release of this OS."""
        if self.platform == Platform.LINUX:
            return self.distribution
        if self.platform in (Platform.MACOS, Platform.WINDOWS):
            return self.platform.value
        return None


class VersionCompatibility(BaseModel):
    """Whether the running OS release has been tested with this tool."""

    is_supported: bool
    is_approved: bool = False
    warning_message: Optional[str] = None

    @property
    def has_warning(self) -> bool:
        return self.warning_message is not None


def parse_os_release(content: str) -> Dict[str, str]:
    """Parse the KEY=value lines of an os-release file."""
    values = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


async def _read_command(args: List[str]) -> Optional[str]:
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=10)
    except (OSError, asyncio.TimeoutError) as e:
        logger.debug("Could not run %s: %s", args[0], e)
        return None

    if process.returncode != 0:
        return None
    return stdout.decode(errors="replace").strip() or None


async def _detect_linux(hostname: str) -> PlatformInfo:
    distribution = "unknown"
    version = "unknown"

    if OS_RELEASE_PATH.exists():
        try:
            release = parse_os_release(OS_RELEASE_PATH.read_text(encoding="utf-8"))
            distribution = release.get("ID", distribution).lower()
            version = release.get("VERSION_ID", version)
        except OSError as e:
            logger.debug("Could not read %s: %s", OS_RELEASE_PATH, e)
    else:
        lsb_id = await _read_command(["lsb_release", "-is"])
        lsb_release = await _read_command(["lsb_release", "-rs"])
        if lsb_id:
            distribution = lsb_id.lower()
        version = lsb_release or _platform.release() or version

    return PlatformInfo(
        platform=Platform.LINUX,
        version=version,
        distribution=distribution,
        hostname=hostname,
    )


async def detect_platform() -> PlatformInfo:
    """Identify the running operating system and its release."""
    system = _platform.system()
    hostname = socket.gethostname() or "unknown"
    logger.debug("Detecting platform for system %s", system)

    if system == "Darwin":
        version = await _read_command(["sw_vers", "-productVersion"])
        return PlatformInfo(
            platform=Platform.MACOS, version=version or "unknown", hostname=hostname
        )
    if system == "Linux":
        return await _detect_linux(hostname)
    if system == "Windows":
        return PlatformInfo(
            platform=Platform.WINDOWS,
            version=_platform.version() or "unknown",
            hostname=hostname,
        )

    return PlatformInfo(platform=Platform.UNSUPPORTED, hostname=hostname)


def _windows_release(version: str) -> str:
    # Windows 11 still reports 10.0; builds from 22000 on are Windows 11
    parts = version.split(".")
    if len(parts) >= 3 and parts[0] == "10" and parts[2].isdigit():
        return "11" if int(parts[2]) >= 22000 else "10"
    return parts[0]


def evaluate_compatibility(info: PlatformInfo) -> VersionCompatibility:
    """Judge whether the platform release is supported and approved."""
    if info.platform == Platform.MACOS:
        if info.version == "unknown":
            return VersionCompatibility(
                is_supported=False,
                warning_message="Unable to detect macOS version",
            )
        if compare_versions(info.version, MACOS_MINIMUM_VERSION) < 0:
            return VersionCompatibility(
                is_supported=False,
                warning_message=(
                    f"macOS {info.version} is below version {MACOS_MINIMUM_VERSION}. "
                    "Security checks may not work correctly."
                ),
            )
        if info.version not in MACOS_APPROVED_VERSIONS:
            return VersionCompatibility(
                is_supported=True,
                warning_message=(
                    f"macOS {info.version} has not been fully tested. "
                    f"Tested versions: {', '.join(MACOS_APPROVED_VERSIONS)}."
                ),
            )
        return VersionCompatibility(is_supported=True, is_approved=True)

    if info.platform == Platform.LINUX:
        distribution = (info.distribution or "unknown").lower()
        if distribution not in LINUX_SUPPORTED_DISTRIBUTIONS:
            return VersionCompatibility(
                is_supported=False,
                warning_message=(
                    f"Linux distribution '{distribution}' is not officially supported. "
                    f"Supported: {', '.join(LINUX_SUPPORTED_DISTRIBUTIONS)}. "
                    "Security checks may not work correctly."
                ),
            )
        if distribution not in LINUX_APPROVED_DISTRIBUTIONS:
            return VersionCompatibility(
                is_supported=True,
                warning_message=(
                    f"Linux distribution '{distribution}' has limited testing. "
                    "Primary support is for Fedora. Some checks may not work correctly."
                ),
            )
        return VersionCompatibility(is_supported=True, is_approved=True)

    if info.platform == Platform.WINDOWS:
        release = _windows_release(info.version)
        if release not in WINDOWS_SUPPORTED_RELEASES:
            return VersionCompatibility(
                is_supported=False,
                warning_message=(
                    f"Windows {info.version} is not supported. "
                    "Supported releases: Windows 10, Windows 11."
                ),
            )
        return VersionCompatibility(is_supported=True, is_approved=True)

    return VersionCompatibility(
        is_supported=False,
        warning_message=(
            "This platform is not supported. "
            "Supported platforms: macOS, Linux, Windows."
        ),
    )
