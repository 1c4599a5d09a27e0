"""
Audit module for evaluating a security configuration against the system.
"""

from .engine import (
    CheckResult,
    SecurityAuditor,
    SecurityReport,
    format_value,
    render_quiet_report,
    render_report,
)
from .explanations import CheckExplanation, get_explanation

__all__ = [
    "SecurityAuditor",
    "SecurityReport",
    "CheckResult",
    "CheckExplanation",
    "get_explanation",
    "format_value",
    "render_report",
    "render_quiet_report",
]
