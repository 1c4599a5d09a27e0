"""
Checker selection for the running platform.
"""

from typing import Dict, Optional, Type

from ..core.errors import UnsupportedPlatformError
from ..core.logging_config import get_logger
from ..core.platform import Platform, PlatformInfo
from .base import SecurityChecker
from .linux import LinuxSecurityChecker
from .macos import MacOSSecurityChecker
from .windows import WindowsSecurityChecker

logger = get_logger(__name__)

CHECKERS: Dict[Platform, Type[SecurityChecker]] = {
    Platform.MACOS: MacOSSecurityChecker,
    Platform.LINUX: LinuxSecurityChecker,
    Platform.WINDOWS: WindowsSecurityChecker,
}


def create_checker(
    platform_info: PlatformInfo, password: Optional[str] = None
) -> SecurityChecker:
    """Instantiate the checker for ``platform_info``."""
    checker_class = CHECKERS.get(platform_info.platform)
    if checker_class is None:
        raise UnsupportedPlatformError(
            f"Platform '{platform_info.platform.value}' is not supported. "
            "Supported platforms: macOS, Linux, Windows."
        )

    logger.debug(
        "Using %s for %s %s",
        checker_class.__name__,
        platform_info.display_name,
        platform_info.version,
    )
    return checker_class(password=password, platform_info=platform_info)
