"""
Base classes for platform security checkers.

A checker exposes one async probe per security category. Every public probe
goes through the ``probe`` boundary: failures and timeouts are logged once
and replaced by the category's "not enabled" default, so an audit never
aborts because a system utility misbehaved.
"""

import asyncio
import functools
import os
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel

from ..core.errors import ProbeFailure
from ..core.logging_config import get_logger
from ..core.platform import Platform, PlatformInfo

logger = get_logger(__name__)

DEFAULT_PROBE_TIMEOUT = 30.0

UpdateMode = Literal["disabled", "check-only", "download-only", "fully-automatic"]


class CommandResult(BaseModel):
    """Result of executing a command on the local system."""

    command: str
    success: bool
    output: str
    error: Optional[str] = None
    exit_code: Optional[int] = None
    execution_time: float


class PasswordProtectionInfo(BaseModel):
    enabled: bool = False
    require_password_immediately: bool = False
    password_required_after_lock: bool = False


class FirewallInfo(BaseModel):
    enabled: bool = False
    stealth_mode: bool = False


class UpdateInfo(BaseModel):
    """Automatic update settings as observed on the system."""

    enabled: bool = False
    security_updates_only: bool = False
    automatic_download: bool = False
    automatic_install: bool = False
    automatic_security_install: bool = False
    config_data_install: bool = False
    update_mode: UpdateMode = "disabled"


class SharingInfo(BaseModel):
    file_sharing: bool = False
    screen_sharing: bool = False
    remote_login: bool = False
    media_sharing: bool = False


class WifiInfo(BaseModel):
    network_name: Optional[str] = None
    connected: bool = False


class InstalledAppsInfo(BaseModel):
    """Third-party software found on the system, grouped by where it was found."""

    installed_apps: List[str] = []
    sources: Dict[str, List[str]] = {}


class Terminology(BaseModel):
    """Platform names for the generic security features, used in messages."""

    disk_encryption: str = "Disk encryption"
    package_verification: str = "Package verification"
    system_integrity: str = "System integrity protection"


def probe_timeout() -> float:
    """Per-probe time limit, overridable with EAI_PROBE_TIMEOUT."""
    value = os.environ.get("EAI_PROBE_TIMEOUT")
    if not value:
        return DEFAULT_PROBE_TIMEOUT
    try:
        timeout = float(value)
    except ValueError:
        logger.warning("Ignoring invalid EAI_PROBE_TIMEOUT value: %s", value)
        return DEFAULT_PROBE_TIMEOUT
    return timeout if timeout > 0 else DEFAULT_PROBE_TIMEOUT


def probe(default: Any):
    """
    Wrap an async probe so it never raises.

    ``default`` is the value returned when the probe fails or times out. A
    callable (e.g. a fact model class) is invoked to build a fresh value.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            timeout = probe_timeout()
            try:
                return await asyncio.wait_for(func(self, *args, **kwargs), timeout)
            except asyncio.TimeoutError:
                logger.warning("%s timed out after %.0fs", func.__name__, timeout)
            except ProbeFailure as e:
                logger.warning("%s failed: %s", func.__name__, e)
            except Exception as e:
                logger.warning(
                    "%s failed unexpectedly: %s: %s", func.__name__, type(e).__name__, e
                )
            return default() if callable(default) else default

        return wrapper

    return decorator


async def run_command(
    command: Union[str, Sequence[str]],
    timeout: float = DEFAULT_PROBE_TIMEOUT,
    input_text: Optional[str] = None,
) -> CommandResult:
    """
    Run a local command and capture its output.

    A string is run through the shell; a sequence is executed directly.
    Missing executables and timeouts are reported as unsuccessful results.
    """
    display = command if isinstance(command, str) else " ".join(command)
    start_time = time.time()

    try:
        if isinstance(command, str):
            process = await asyncio.create_subprocess_shell(
                command,
                stdin=asyncio.subprocess.PIPE if input_text is not None else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        else:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE if input_text is not None else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
    except OSError as e:
        return CommandResult(
            command=display,
            success=False,
            output="",
            error=str(e),
            exit_code=None,
            execution_time=time.time() - start_time,
        )

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(
                input_text.encode() if input_text is not None else None
            ),
            timeout,
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return CommandResult(
            command=display,
            success=False,
            output="",
            error=f"Timed out after {timeout}s",
            exit_code=None,
            execution_time=time.time() - start_time,
        )
    except asyncio.CancelledError:
        # The probe deadline fired while the child was still running
        process.kill()
        await process.wait()
        raise

    execution_time = time.time() - start_time
    error_text = stderr.decode(errors="replace").strip()
    logger.debug(
        "Command '%s' exited with %s in %.2fs", display, process.returncode, execution_time
    )

    return CommandResult(
        command=display,
        success=process.returncode == 0,
        output=stdout.decode(errors="replace"),
        error=error_text or None,
        exit_code=process.returncode,
        execution_time=execution_time,
    )


class SecurityChecker(ABC):
    """
    Abstract base class for platform security checkers.

    Subclasses implement the ``_check_*`` coroutines; callers use the public
    probe methods, which apply the failure boundary.
    """

    platform: Platform = Platform.UNSUPPORTED
    terminology = Terminology()

    def __init__(
        self,
        password: Optional[str] = None,
        platform_info: Optional[PlatformInfo] = None,
        command_timeout: float = DEFAULT_PROBE_TIMEOUT,
    ):
        self._password = password
        self.platform_info = platform_info
        self.command_timeout = command_timeout

    @property
    def password(self) -> Optional[str]:
        """Password supplied by the operator for privileged probes and policy checks."""
        return self._password

    async def run(self, command: Union[str, Sequence[str]]) -> CommandResult:
        return await run_command(command, timeout=self.command_timeout)

    async def run_sudo(self, args: Sequence[str]) -> CommandResult:
        """Run a command with sudo, feeding the stored password on stdin."""
        if self._password:
            return await run_command(
                ["sudo", "-S", "-p", "", *args],
                timeout=self.command_timeout,
                input_text=f"{self._password}\n",
            )
        # Without a password, never let sudo prompt
        return await run_command(["sudo", "-n", *args], timeout=self.command_timeout)

    async def output_of(self, command: Union[str, Sequence[str]]) -> str:
        """Stdout of a successful command; raises ProbeFailure otherwise."""
        result = await self.run(command)
        if not result.success:
            raise ProbeFailure(result.command, result.error or f"exit code {result.exit_code}")
        return result.output.strip()

    @staticmethod
    def read_text(path: Union[str, Path]) -> Optional[str]:
        path = Path(path).expanduser()
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None

    @probe(default=False)
    async def check_disk_encryption(self) -> bool:
        return await self._check_disk_encryption()

    @probe(default=PasswordProtectionInfo)
    async def check_password_protection(self) -> PasswordProtectionInfo:
        return await self._check_password_protection()

    @probe(default=0)
    async def check_auto_lock_timeout(self) -> int:
        """Minutes of inactivity before the screen locks; 0 means never."""
        return await self._check_auto_lock_timeout()

    @probe(default=FirewallInfo)
    async def check_firewall(self) -> FirewallInfo:
        return await self._check_firewall()

    @probe(default=False)
    async def check_package_verification(self) -> bool:
        return await self._check_package_verification()

    @probe(default=False)
    async def check_system_integrity_protection(self) -> bool:
        return await self._check_system_integrity_protection()

    @probe(default=False)
    async def check_remote_login(self) -> bool:
        return await self._check_remote_login()

    @probe(default=False)
    async def check_remote_management(self) -> bool:
        return await self._check_remote_management()

    @probe(default=UpdateInfo)
    async def check_automatic_updates(self) -> UpdateInfo:
        return await self._check_automatic_updates()

    @probe(default=SharingInfo)
    async def check_sharing_services(self) -> SharingInfo:
        return await self._check_sharing_services()

    @probe(default="unknown")
    async def get_os_version(self) -> str:
        return await self._get_os_version()

    @probe(default=WifiInfo)
    async def check_current_wifi_network(self) -> WifiInfo:
        return await self._check_current_wifi_network()

    @probe(default=InstalledAppsInfo)
    async def check_installed_applications(self) -> InstalledAppsInfo:
        return await self._check_installed_applications()

    @probe(default=None)
    async def check_password_age_days(self) -> Optional[int]:
        """Days since the account password was last changed, None if unknown."""
        return await self._check_password_age_days()

    @probe(default="Unknown system")
    async def get_system_info(self) -> str:
        return await self._get_system_info()

    @abstractmethod
    async def _check_disk_encryption(self) -> bool:
        pass

    @abstractmethod
    async def _check_password_protection(self) -> PasswordProtectionInfo:
        pass

    @abstractmethod
    async def _check_auto_lock_timeout(self) -> int:
        pass

    @abstractmethod
    async def _check_firewall(self) -> FirewallInfo:
        pass

    @abstractmethod
    async def _check_package_verification(self) -> bool:
        pass

    @abstractmethod
    async def _check_system_integrity_protection(self) -> bool:
        pass

    @abstractmethod
    async def _check_remote_login(self) -> bool:
        pass

    @abstractmethod
    async def _check_remote_management(self) -> bool:
        pass

    @abstractmethod
    async def _check_automatic_updates(self) -> UpdateInfo:
        pass

    @abstractmethod
    async def _check_sharing_services(self) -> SharingInfo:
        pass

    @abstractmethod
    async def _get_os_version(self) -> str:
        pass

    @abstractmethod
    async def _check_current_wifi_network(self) -> WifiInfo:
        pass

    @abstractmethod
    async def _check_installed_applications(self) -> InstalledAppsInfo:
        pass

    async def _check_password_age_days(self) -> Optional[int]:
        return None

    async def _get_system_info(self) -> str:
        version = await self._get_os_version()
        if self.platform_info is not None:
            return f"{self.platform_info.display_name} {version}"
        return f"{self.platform.value} {version}"
