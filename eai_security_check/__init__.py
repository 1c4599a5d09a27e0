"""
eai-security-check - Cross-platform security posture auditor

Audits a machine against a declarative security configuration and produces
reports that can later be verified as untampered.
"""

__version__ = "1.0.0"

from .audit.engine import CheckResult, SecurityAuditor, SecurityReport
from .checkers.factory import create_checker
from .core.config import SecurityConfig, load_config
from .core.platform import Platform, PlatformInfo, detect_platform
from .core.profiles import get_config_by_profile
from .signing.signer import sign, verify

__all__ = [
    "SecurityConfig",
    "load_config",
    "get_config_by_profile",
    "SecurityAuditor",
    "SecurityReport",
    "CheckResult",
    "Platform",
    "PlatformInfo",
    "detect_platform",
    "create_checker",
    "sign",
    "verify",
]
