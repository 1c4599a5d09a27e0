"""
Output formats for rendered audit reports.

Structured formats (JSON, and markdown when a report is available) are built
from the ``SecurityReport`` itself, never by re-parsing the rendered text.
"""

import json
import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

from ..audit.engine import SecurityReport, format_value
from ..audit.explanations import get_explanation

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


class OutputFormat(str, Enum):
    CONSOLE = "console"
    PLAIN = "plain"
    MARKDOWN = "markdown"
    JSON = "json"
    EMAIL = "email"


class FormattedOutput(BaseModel):
    content: str
    format: OutputFormat
    filename: Optional[str] = None


FILENAMES = {
    OutputFormat.PLAIN: "security-report.txt",
    OutputFormat.MARKDOWN: "security-report.md",
    OutputFormat.JSON: "security-report.json",
    OutputFormat.EMAIL: "security-report-email.txt",
}


def strip_ansi_codes(text: str) -> str:
    """Remove ANSI colour escape sequences."""
    return ANSI_ESCAPE.sub("", text)


def parse_output_format(name: str) -> OutputFormat:
    try:
        return OutputFormat(name.strip().lower())
    except ValueError:
        valid = ", ".join(fmt.value for fmt in OutputFormat)
        raise ValueError(f"Invalid output format '{name}'. Valid formats: {valid}")


def format_report(
    rendered_text: str,
    fmt: OutputFormat,
    report: Optional[SecurityReport] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> FormattedOutput:
    """
    Convert rendered report text into the requested output format.

    Args:
        rendered_text: Text produced by the audit renderers
        fmt: Target output format
        report: Structured report the text was rendered from (required for JSON)
        metadata: Extra key/values included in JSON and markdown output

    Returns:
        FormattedOutput with the content and a suggested filename
    """
    fmt = OutputFormat(fmt)
    metadata = metadata or {}

    if fmt == OutputFormat.PLAIN:
        content = strip_ansi_codes(rendered_text)
    elif fmt == OutputFormat.MARKDOWN:
        content = _to_markdown(rendered_text, report, metadata)
    elif fmt == OutputFormat.JSON:
        if report is None:
            raise ValueError("JSON output requires the structured SecurityReport")
        content = _to_json(report, metadata)
    elif fmt == OutputFormat.EMAIL:
        content = _to_email(rendered_text)
    else:
        return FormattedOutput(content=rendered_text, format=OutputFormat.CONSOLE)

    return FormattedOutput(content=content, format=fmt, filename=FILENAMES[fmt])


def create_summary_line(report: SecurityReport, now: Optional[datetime] = None) -> str:
    """One-line summary suitable for chat messages or commit notes."""
    stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M")
    return (
        f"Security Audit: {report.passed_count}/{len(report.results)} passed, "
        f"{report.failed_count} failed, {report.warning_count} warnings ({stamp})"
    )


def _risk_level(setting: str) -> Optional[str]:
    explanation = get_explanation(setting)
    return explanation.risk_level if explanation else None


def _to_json(report: SecurityReport, metadata: Dict[str, Any]) -> str:
    data = {
        "timestamp": report.timestamp,
        "overallPassed": report.overall_passed,
        "totalChecks": len(report.results),
        "passedChecks": report.passed_count,
        "failedChecks": report.failed_count,
        "warnings": report.warning_count,
        "results": [
            {
                "setting": result.setting,
                "expected": result.expected,
                "actual": result.actual,
                "passed": result.passed,
                "message": result.message,
                "riskLevel": _risk_level(result.setting),
            }
            for result in report.results
        ],
        "metadata": metadata,
    }
    if report.compatibility is not None and report.compatibility.has_warning:
        data["compatibilityWarning"] = report.compatibility.warning_message
    return json.dumps(data, indent=2, ensure_ascii=False)


def _to_markdown(
    rendered_text: str, report: Optional[SecurityReport], metadata: Dict[str, Any]
) -> str:
    lines = ["# Security Audit Report", ""]
    generated = report.timestamp if report is not None else datetime.now().isoformat()
    lines.append(f"- **Generated:** {generated}")
    for key, value in metadata.items():
        lines.append(f"- **{key}:** {value}")
    lines.append("")

    if report is None:
        lines.append("```")
        lines.append(strip_ansi_codes(rendered_text).rstrip("\n"))
        lines.append("```")
        return "\n".join(lines) + "\n"

    status = "PASSED" if report.overall_passed else "FAILED"
    lines.append(
        f"**Overall Status: {status}** "
        f"({report.passed_count}/{len(report.results)} checks passed)"
    )
    lines.append("")
    if report.compatibility is not None and report.compatibility.has_warning:
        lines.append(f"> ⚠️ {report.compatibility.warning_message}")
        lines.append("")

    lines.append("## Security Checks")
    for result in report.results:
        explanation = get_explanation(result.setting)
        marker = "✅ PASS" if result.passed else "❌ FAIL"
        lines.append("")
        lines.append(f"### {marker}: {result.setting}")
        lines.append("")
        lines.append(f"- **Expected:** {format_value(result.expected)}")
        lines.append(f"- **Actual:** {format_value(result.actual)}")
        lines.append(f"- **Status:** {result.message}")
        if explanation:
            lines.append(f"- **Risk:** {explanation.risk_level}")
            if not result.passed:
                lines.append(f"- **Advice:** {explanation.recommendation}")

    return "\n".join(lines) + "\n"


def _to_email(rendered_text: str) -> str:
    separator = "=" * 60
    lines = [
        "Subject: Security Audit Report",
        "",
        "Dear Recipient,",
        "",
        "Please find the security audit report below:",
        "",
        separator,
        strip_ansi_codes(rendered_text).rstrip("\n"),
        separator,
        "",
        "This report was generated automatically by the EAI Security Check tool.",
        f"Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        "Please review the findings and take appropriate action for any failed checks.",
        "",
        "Best regards,",
        "Security Audit System",
    ]
    return "\n".join(lines) + "\n"
