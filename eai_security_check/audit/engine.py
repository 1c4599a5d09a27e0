"""
Audit engine for evaluating a SecurityConfig against the running system.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from ..checkers.base import SecurityChecker
from ..core.config import (
    AutoLockConfig,
    AutomaticUpdatesConfig,
    EnabledSection,
    FirewallConfig,
    InstalledAppsConfig,
    OSVersionConfig,
    PasswordPolicyConfig,
    PasswordProtectionConfig,
    SecurityConfig,
    SharingServicesConfig,
    WifiSecurityConfig,
)
from ..core.errors import ConfigError
from ..core.logging_config import get_logger
from ..core.platform import (
    Platform,
    PlatformInfo,
    VersionCompatibility,
    detect_platform,
    evaluate_compatibility,
)
from ..core.versions import LatestVersionResolver, compare_versions, is_valid_version
from .explanations import RISK_LEVELS, get_explanation
from .password_policy import validate_password_age, validate_password_strength

logger = get_logger(__name__)

UPDATE_MODE_DESCRIPTIONS = {
    "disabled": "no automatic checking, downloading, or installing",
    "check-only": "automatic checking enabled, but manual download and install required",
    "download-only": "automatic checking and downloading, but manual install required",
    "fully-automatic": "automatic checking, downloading, and installing",
}


class CheckResult(BaseModel):
    """Outcome of a single security check."""

    model_config = ConfigDict(frozen=True)

    setting: str
    expected: Union[bool, str]
    actual: Union[bool, str]
    passed: bool
    message: str


class SecurityReport(BaseModel):
    """Complete results of one audit run."""

    model_config = ConfigDict(frozen=True)

    timestamp: str
    overall_passed: bool
    results: List[CheckResult] = []
    compatibility: Optional[VersionCompatibility] = None

    @property
    def passed_count(self) -> int:
        return sum(1 for result in self.results if result.passed)

    @property
    def failed_count(self) -> int:
        return len(self.results) - self.passed_count

    @property
    def warning_count(self) -> int:
        if self.compatibility is not None and self.compatibility.has_warning:
            return 1
        return 0

    def failed_results(self) -> List[CheckResult]:
        return [result for result in self.results if not result.passed]


def describe_update_mode(mode: str) -> str:
    return UPDATE_MODE_DESCRIPTIONS.get(mode, "unknown update mode")


def format_value(value: Any) -> str:
    """Human readable form of an expected/actual value."""
    if isinstance(value, bool):
        return "enabled" if value else "disabled"
    return str(value)


class SecurityAuditor:
    """
    Evaluates configured security categories through a platform checker.

    Categories are evaluated in a fixed order regardless of the order of
    sections in the configuration. Only sections that are present produce
    results.
    """

    def __init__(
        self,
        checker: SecurityChecker,
        platform_info: Optional[PlatformInfo] = None,
        password: Optional[str] = None,
        version_resolver: Optional[LatestVersionResolver] = None,
        concurrency: int = 1,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self.checker = checker
        self.platform_info = platform_info or checker.platform_info
        self.password = password if password is not None else checker.password
        self.version_resolver = version_resolver
        self.concurrency = concurrency
        self._compatibility: Optional[VersionCompatibility] = None

        self._handlers: Tuple[Tuple[str, Callable[[Any], Awaitable[List[CheckResult]]]], ...] = (
            ("password", self._check_password_policy),
            ("disk_encryption", self._check_disk_encryption),
            ("password_protection", self._check_password_protection),
            ("auto_lock", self._check_auto_lock),
            ("firewall", self._check_firewall),
            ("package_verification", self._check_package_verification),
            ("system_integrity_protection", self._check_system_integrity),
            ("remote_login", self._check_remote_login),
            ("remote_management", self._check_remote_management),
            ("automatic_updates", self._check_automatic_updates),
            ("sharing_services", self._check_sharing_services),
            ("os_version", self._check_os_version),
            ("wifi_security", self._check_wifi_network),
            ("installed_apps", self._check_installed_apps),
        )

    @property
    def platform_name(self) -> str:
        if self.platform_info is not None:
            return self.platform_info.display_name
        return {
            Platform.MACOS: "macOS",
            Platform.LINUX: "Linux",
            Platform.WINDOWS: "Windows",
        }.get(self.checker.platform, "Unknown")

    async def check_version_compatibility(self) -> VersionCompatibility:
        """Non-fatal check of whether this OS release is supported; cached."""
        if self._compatibility is None:
            if self.platform_info is None:
                self.platform_info = await detect_platform()
            self._compatibility = evaluate_compatibility(self.platform_info)
            if self._compatibility.has_warning:
                logger.warning(self._compatibility.warning_message)
        return self._compatibility

    async def audit_security(self, config: SecurityConfig) -> SecurityReport:
        """Run every configured check and aggregate the results."""
        if isinstance(config, dict):
            config = SecurityConfig.from_dict(config)
        elif not isinstance(config, SecurityConfig):
            raise ConfigError(
                f"expected a SecurityConfig, got {type(config).__name__}"
            )

        compatibility = await self.check_version_compatibility()

        active = [
            (section, handler, getattr(config, section))
            for section, handler in self._handlers
            if getattr(config, section) is not None
        ]
        logger.debug(
            "Evaluating %s configured categories: %s",
            len(active),
            ", ".join(section for section, _, _ in active),
        )

        if self.concurrency == 1:
            groups = []
            for section, handler, section_config in active:
                groups.append(await handler(section_config))
        else:
            semaphore = asyncio.Semaphore(self.concurrency)

            async def run_bounded(handler, section_config):
                async with semaphore:
                    return await handler(section_config)

            # gather keeps the declaration order of the handlers
            groups = await asyncio.gather(
                *(run_bounded(handler, section_config) for _, handler, section_config in active)
            )

        results = [result for group in groups for result in group]
        return SecurityReport(
            timestamp=datetime.now(timezone.utc).isoformat(),
            overall_passed=all(result.passed for result in results),
            results=results,
            compatibility=compatibility,
        )

    async def generate_report(self, config: SecurityConfig) -> str:
        """Full report with explanations and risk levels."""
        report = await self.audit_security(config)
        system_info = await self.checker.get_system_info()
        return render_report(report, self.platform_name, system_info)

    async def generate_quiet_report(self, config: SecurityConfig) -> str:
        """Summary report listing only failed checks by risk level."""
        report = await self.audit_security(config)
        system_info = await self.checker.get_system_info()
        return render_quiet_report(report, self.platform_name, system_info)

    async def _check_password_policy(self, policy: PasswordPolicyConfig) -> List[CheckResult]:
        requirements = policy.describe_requirements()

        if not policy.required:
            return [
                CheckResult(
                    setting="Password Configuration",
                    expected="Required: No",
                    actual="Configuration loaded",
                    passed=True,
                    message="Password validation is disabled",
                )
            ]

        strength_ok, strength_message = validate_password_strength(self.password, policy)
        age_ok, age_message = validate_password_age(
            await self.checker.check_password_age_days(), policy
        )

        if strength_ok and age_ok:
            message = (
                f"Password validation is enabled with {requirements} "
                f"and {policy.max_age_days}-day expiration"
            )
        else:
            issues = []
            if not strength_ok:
                issues.append(f"Requirements: {strength_message}")
            if not age_ok:
                issues.append(f"Expiration: {age_message}")
            message = "; ".join(issues)

        return [
            CheckResult(
                setting="Password Configuration",
                expected=(
                    f"Required: Yes, Requirements: {requirements}, "
                    f"Max Age: {policy.max_age_days} days"
                ),
                actual="Configuration loaded" if strength_ok and age_ok else "Validation failed",
                passed=strength_ok and age_ok,
                message=message,
            )
        ]

    async def _check_disk_encryption(self, section: EnabledSection) -> List[CheckResult]:
        enabled = await self.checker.check_disk_encryption()
        name = self.checker.terminology.disk_encryption
        return [
            CheckResult(
                setting="Disk Encryption",
                expected=section.enabled,
                actual=enabled,
                passed=enabled == section.enabled,
                message=(
                    f"{name} is enabled - disk encryption is active"
                    if enabled
                    else f"{name} is disabled - disk is not encrypted"
                ),
            )
        ]

    async def _check_password_protection(
        self, section: PasswordProtectionConfig
    ) -> List[CheckResult]:
        info = await self.checker.check_password_protection()
        results = [
            CheckResult(
                setting="Password Protection",
                expected=section.enabled,
                actual=info.enabled,
                passed=info.enabled == section.enabled,
                message=(
                    "Password protection is enabled"
                    if info.enabled
                    else "Password protection is disabled"
                ),
            )
        ]

        if section.require_password_immediately is not None:
            immediate = info.require_password_immediately
            results.append(
                CheckResult(
                    setting="Immediate Password Requirement",
                    expected=section.require_password_immediately,
                    actual=immediate,
                    passed=immediate == section.require_password_immediately,
                    message=(
                        "Password is required immediately after screen saver"
                        if immediate
                        else "Password is not required immediately after screen saver"
                    ),
                )
            )
        return results

    async def _check_auto_lock(self, section: AutoLockConfig) -> List[CheckResult]:
        minutes = await self.checker.check_auto_lock_timeout()
        limit = section.max_timeout_minutes
        passed = 0 < minutes <= limit

        if passed:
            message = f"Screen locks after {minutes} minutes (within acceptable limit)"
        elif minutes == 0:
            message = "Auto-lock is disabled"
        else:
            message = f"Screen locks after {minutes} minutes (exceeds {limit} minute limit)"

        return [
            CheckResult(
                setting="Auto-lock Timeout",
                expected=f"≤ {limit} minutes",
                actual=f"{minutes} minutes",
                passed=passed,
                message=message,
            )
        ]

    async def _check_firewall(self, section: FirewallConfig) -> List[CheckResult]:
        info = await self.checker.check_firewall()
        if info.enabled:
            message = "Firewall is enabled" + (
                " (stealth mode active)" if info.stealth_mode else ""
            )
        else:
            message = "Firewall is disabled - system is vulnerable to network attacks"

        results = [
            CheckResult(
                setting="Firewall",
                expected=section.enabled,
                actual=info.enabled,
                passed=info.enabled == section.enabled,
                message=message,
            )
        ]

        if section.stealth_mode is not None:
            results.append(
                CheckResult(
                    setting="Firewall Stealth Mode",
                    expected=section.stealth_mode,
                    actual=info.stealth_mode,
                    passed=info.stealth_mode == section.stealth_mode,
                    message=(
                        "Firewall stealth mode is enabled - system is less visible to network scans"
                        if info.stealth_mode
                        else "Firewall stealth mode is disabled"
                    ),
                )
            )
        return results

    async def _check_package_verification(self, section: EnabledSection) -> List[CheckResult]:
        enabled = await self.checker.check_package_verification()
        name = self.checker.terminology.package_verification
        return [
            CheckResult(
                setting="Package Verification",
                expected=section.enabled,
                actual=enabled,
                passed=enabled == section.enabled,
                message=(
                    f"{name} is enabled - unsigned software is blocked"
                    if enabled
                    else f"{name} is disabled - unsigned software can run"
                ),
            )
        ]

    async def _check_system_integrity(self, section: EnabledSection) -> List[CheckResult]:
        enabled = await self.checker.check_system_integrity_protection()
        name = self.checker.terminology.system_integrity
        return [
            CheckResult(
                setting="System Integrity Protection",
                expected=section.enabled,
                actual=enabled,
                passed=enabled == section.enabled,
                message=(
                    f"{name} is enabled - system files are protected"
                    if enabled
                    else f"{name} is disabled - system files are vulnerable"
                ),
            )
        ]

    async def _check_remote_login(self, section: EnabledSection) -> List[CheckResult]:
        enabled = await self.checker.check_remote_login()
        return [
            CheckResult(
                setting="Remote Login (SSH)",
                expected=section.enabled,
                actual=enabled,
                passed=enabled == section.enabled,
                message=(
                    "Remote login is enabled - SSH access is available"
                    if enabled
                    else "Remote login is disabled"
                ),
            )
        ]

    async def _check_remote_management(self, section: EnabledSection) -> List[CheckResult]:
        enabled = await self.checker.check_remote_management()
        return [
            CheckResult(
                setting="Remote Management",
                expected=section.enabled,
                actual=enabled,
                passed=enabled == section.enabled,
                message=(
                    "Remote management is enabled - system can be managed remotely"
                    if enabled
                    else "Remote management is disabled"
                ),
            )
        ]

    async def _check_automatic_updates(
        self, section: AutomaticUpdatesConfig
    ) -> List[CheckResult]:
        info = await self.checker.check_automatic_updates()
        mode = info.update_mode
        mode_message = f'Update mode is "{mode}" - {describe_update_mode(mode)}'

        results = [
            CheckResult(
                setting="Automatic Updates",
                expected=section.enabled,
                actual=info.enabled,
                passed=info.enabled == section.enabled,
                message=(
                    "Automatic update checking is enabled"
                    if info.enabled
                    else "Automatic updates are disabled - security patches may be delayed"
                ),
            )
        ]

        # First granular field present wins
        if section.download_only is not None:
            results.append(
                CheckResult(
                    setting="Automatic Update Mode",
                    expected=(
                        "download-only"
                        if section.download_only
                        else "fully-automatic or disabled"
                    ),
                    actual=mode,
                    passed=section.download_only == (mode == "download-only"),
                    message=mode_message,
                )
            )
        elif section.automatic_install is not None:
            results.append(
                CheckResult(
                    setting="Automatic Installation",
                    expected=section.automatic_install,
                    actual=info.automatic_install,
                    passed=info.automatic_install == section.automatic_install,
                    message=(
                        "All updates are installed automatically"
                        if info.automatic_install
                        else "Updates require manual installation"
                    ),
                )
            )
        else:
            results.append(
                CheckResult(
                    setting="Automatic Update Mode",
                    expected="At least download-only or fully-automatic",
                    actual=mode,
                    passed=mode not in ("disabled", "check-only"),
                    message=mode_message,
                )
            )

        if section.security_updates_only is not None:
            expected, actual = section.security_updates_only, info.security_updates_only
        elif section.automatic_security_install is not None:
            expected, actual = (
                section.automatic_security_install,
                info.automatic_security_install,
            )
        else:
            return results

        results.append(
            CheckResult(
                setting="Security Updates",
                expected=expected,
                actual=actual,
                passed=actual == expected,
                message=(
                    "Security updates are automatically installed"
                    if actual
                    else "Security updates require manual installation"
                ),
            )
        )
        return results

    async def _check_sharing_services(
        self, section: SharingServicesConfig
    ) -> List[CheckResult]:
        info = await self.checker.check_sharing_services()
        results = []

        for setting, expected, actual, label in (
            ("File Sharing", section.file_sharing, info.file_sharing, "File sharing"),
            ("Screen Sharing", section.screen_sharing, info.screen_sharing, "Screen sharing"),
            ("Remote Login (SSH)", section.remote_login, info.remote_login, "Remote login"),
        ):
            if expected is None:
                continue
            results.append(
                CheckResult(
                    setting=setting,
                    expected=expected,
                    actual=actual,
                    passed=actual == expected,
                    message=f"{label} is {'enabled' if actual else 'disabled'}",
                )
            )
        return results

    async def _resolve_latest_version(self) -> str:
        if self.version_resolver is None:
            product = None
            if self.platform_info is not None:
                product = self.platform_info.version_product
            self.version_resolver = LatestVersionResolver(
                product or self.checker.platform.value
            )

        resolved = await asyncio.to_thread(self.version_resolver.resolve)
        logger.debug("Latest version %s (source: %s)", resolved.version, resolved.source)
        return resolved.version

    async def _check_os_version(self, section: OSVersionConfig) -> List[CheckResult]:
        name = self.platform_name
        current = await self.checker.get_os_version()
        target = (
            await self._resolve_latest_version()
            if section.is_latest
            else section.target_version
        )
        expected = f"latest {name} version" if section.is_latest else f"≥ {target}"
        target_label = "latest available" if section.is_latest else "target"

        if not is_valid_version(current):
            return [
                CheckResult(
                    setting="OS Version",
                    expected=expected,
                    actual=current,
                    passed=False,
                    message=f"Unable to determine the current {name} version",
                )
            ]

        passed = compare_versions(current, target) >= 0
        if passed:
            context = (
                f"checking against latest: {target}" if section.is_latest else f"target: {target}"
            )
            message = f"{name} {current} meets requirements ({context})"
        else:
            message = f"{name} {current} is outdated ({target_label}: {target})"

        return [
            CheckResult(
                setting="OS Version",
                expected=expected,
                actual=current,
                passed=passed,
                message=message,
            )
        ]

    async def _check_wifi_network(self, section: WifiSecurityConfig) -> List[CheckResult]:
        info = await self.checker.check_current_wifi_network()
        banned = section.banned_networks
        banned_text = f"Not connected to banned networks: {', '.join(banned)}"

        if not info.connected or not info.network_name:
            return [
                CheckResult(
                    setting="WiFi Network Security",
                    expected=banned_text if banned else "Network monitoring",
                    actual="Not connected to WiFi",
                    passed=True,
                    message="Not currently connected to any WiFi network",
                )
            ]

        network = info.network_name
        if not banned:
            return [
                CheckResult(
                    setting="WiFi Network Security",
                    expected="Network monitoring (no restrictions configured)",
                    actual=f"Connected to: {network}",
                    passed=True,
                    message=(
                        f"Currently connected to WiFi network: {network} "
                        "(no network restrictions configured)"
                    ),
                )
            ]

        is_banned = network in banned
        return [
            CheckResult(
                setting="WiFi Network Security",
                expected=banned_text,
                actual=f"Connected to: {network}",
                passed=not is_banned,
                message=(
                    f"Connected to banned network: {network}"
                    if is_banned
                    else f"Connected to allowed network: {network}"
                ),
            )
        ]

    async def _check_installed_apps(self, section: InstalledAppsConfig) -> List[CheckResult]:
        info = await self.checker.check_installed_applications()
        banned = section.banned_applications
        apps = info.installed_apps

        source_counts = ", ".join(
            f"{len(names)} from {source}" for source, names in info.sources.items()
        )
        summary = f"{len(apps)} total apps" + (f": {source_counts}" if source_counts else "")

        if not banned:
            return [
                CheckResult(
                    setting="Installed Applications",
                    expected="Application monitoring (no restrictions configured)",
                    actual=summary,
                    passed=True,
                    message=f"Detected applications: {', '.join(apps) or 'none'}",
                )
            ]

        found = [
            app
            for app in apps
            if any(
                ban.lower() in app.lower() or app.lower() in ban.lower()
                for ban in banned
            )
        ]
        status = (
            f"Banned applications found: {', '.join(found)}"
            if found
            else "No banned applications detected"
        )
        return [
            CheckResult(
                setting="Installed Applications",
                expected=f"No banned applications: {', '.join(banned)}",
                actual=summary,
                passed=not found,
                message=f"{status} | All apps: {', '.join(apps) or 'none'}",
            )
        ]


def _local_time(timestamp: str) -> str:
    try:
        return datetime.fromisoformat(timestamp).astimezone().strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return timestamp


def _failed_by_risk(report: SecurityReport) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {level: [] for level in RISK_LEVELS}
    for result in report.failed_results():
        explanation = get_explanation(result.setting)
        level = explanation.risk_level if explanation else "Medium"
        grouped[level].append(result.setting)
    return grouped


def render_report(report: SecurityReport, platform_name: str, system_info: str) -> str:
    """Render the full, annotated text report."""
    compatibility = report.compatibility
    lines = []
    lines.append("=" * 80)
    lines.append(f"🔒 {platform_name.upper()} SECURITY AUDIT REPORT")
    lines.append("=" * 80)
    lines.append("")
    lines.append(f"📅 Generated: {_local_time(report.timestamp)}")
    lines.append(f"💻 System: {system_info}")

    if compatibility is not None and compatibility.has_warning:
        lines.append(f"⚠️  Version Status: {compatibility.warning_message}")
    else:
        lines.append(f"✅ Version Status: {system_info} is fully supported")
    lines.append(f"Overall Status: {'PASSED' if report.overall_passed else 'FAILED'}")
    lines.append(
        f"Checks: {len(report.results)} total, "
        f"{report.passed_count} passed, {report.failed_count} failed"
    )
    lines.append("")

    if compatibility is not None and not compatibility.is_supported:
        lines.append(
            "🚨 IMPORTANT: This system is below the minimum supported version or is "
            "not a supported platform."
        )
        lines.append(
            "Automated checks may report failures; verify your settings manually."
        )
        lines.append("")
    elif compatibility is not None and not compatibility.is_approved:
        lines.append("📝 NOTE: This system release has limited testing.")
        lines.append(
            "Results may include false positives or false negatives; "
            "review them carefully."
        )
        lines.append("")

    lines.append("📋 SECURITY CHECK RESULTS:")
    lines.append("-" * 60)

    if not report.results:
        lines.append("")
        lines.append("No security checks are configured.")

    for result in report.results:
        explanation = get_explanation(result.setting)
        status = "✅ PASS" if result.passed else "❌ FAIL"
        header = f"{status} {result.setting}"
        if explanation:
            header += f" [{explanation.risk_level} Risk]"

        lines.append("")
        lines.append(header)
        lines.append(f"   Expected: {format_value(result.expected)}")
        lines.append(f"   Actual: {format_value(result.actual)}")
        lines.append(f"   Status: {result.message}")
        if explanation:
            lines.append(f"   📝 What it does: {explanation.description}")
            lines.append(f"   💡 Security advice: {explanation.recommendation}")

    lines.append("")
    if report.overall_passed:
        lines.append("🎉 All security checks passed!")
        lines.append("The system meets the specified security requirements.")
    else:
        lines.append("⚠️  Security Issues Found!")
        lines.append(
            "The checks marked as FAIL indicate potential security vulnerabilities."
        )
        lines.append(
            "Review the security advice above and adjust your system settings accordingly."
        )
        grouped = _failed_by_risk(report)
        labels = {
            "High": "🚨 HIGH PRIORITY",
            "Medium": "⚠️  MEDIUM PRIORITY",
            "Low": "📋 LOW PRIORITY",
        }
        lines.append("")
        for level in RISK_LEVELS:
            if grouped[level]:
                lines.append(f"{labels[level]}: {', '.join(grouped[level])}")

    return "\n".join(lines) + "\n"


def render_quiet_report(report: SecurityReport, platform_name: str, system_info: str) -> str:
    """Render the summary-only report."""
    compatibility = report.compatibility
    lines = [
        f"🔒 {platform_name} Security Audit Summary",
        f"📅 {_local_time(report.timestamp)}",
        f"💻 {system_info}",
    ]

    if compatibility is not None and not compatibility.is_supported:
        lines.append("⚠️  Version: unsupported - checks may not work correctly")
    elif compatibility is not None and not compatibility.is_approved:
        lines.append("⚠️  Version: untested - may have false positives/negatives")
    else:
        lines.append("✅ Version: fully supported")

    status = "✅ PASSED" if report.overall_passed else "❌ FAILED"
    lines.append(
        f"{status} - {report.passed_count}/{len(report.results)} checks passed"
    )

    if not report.overall_passed:
        lines.append("")
        lines.append("🚨 Failed Checks:")
        grouped = _failed_by_risk(report)
        for level in RISK_LEVELS:
            if grouped[level]:
                lines.append(
                    f"   {level.upper()} ({len(grouped[level])}): {', '.join(grouped[level])}"
                )
        lines.append("")
        lines.append("💡 Run without --quiet for detailed recommendations")

    return "\n".join(lines) + "\n"
