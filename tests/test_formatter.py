"""
Tests for eai_security_check.reporting.formatter module.
"""

import json
from datetime import datetime

import pytest

from eai_security_check.audit.engine import CheckResult, SecurityReport
from eai_security_check.core.platform import VersionCompatibility
from eai_security_check.reporting.formatter import (
    OutputFormat,
    create_summary_line,
    format_report,
    parse_output_format,
    strip_ansi_codes,
)

COLORED = "\x1b[32m✅ PASS Firewall\x1b[0m\n"


@pytest.fixture
def report():
    return SecurityReport(
        timestamp="2025-01-01T12:00:00+00:00",
        overall_passed=False,
        results=[
            CheckResult(
                setting="Firewall",
                expected=True,
                actual=True,
                passed=True,
                message="Firewall is enabled",
            ),
            CheckResult(
                setting="Auto-lock Timeout",
                expected="≤ 7 minutes",
                actual="0 minutes",
                passed=False,
                message="Auto-lock is disabled",
            ),
        ],
        compatibility=VersionCompatibility(
            is_supported=True, warning_message="macOS 15.2 has not been fully tested."
        ),
    )


class TestFormatReport:
    """Test cases for format_report."""

    def test_console_unchanged(self):
        output = format_report(COLORED, OutputFormat.CONSOLE)

        assert output.content == COLORED
        assert output.filename is None

    def test_plain_strips_ansi(self):
        output = format_report(COLORED, OutputFormat.PLAIN)

        assert output.content == "✅ PASS Firewall\n"
        assert output.filename == "security-report.txt"

    def test_json_from_structured_report(self, report):
        output = format_report(
            "ignored text", OutputFormat.JSON, report=report, metadata={"hostname": "box"}
        )
        data = json.loads(output.content)

        assert output.filename == "security-report.json"
        assert data["overallPassed"] is False
        assert data["totalChecks"] == 2
        assert data["passedChecks"] == 1
        assert data["failedChecks"] == 1
        assert data["warnings"] == 1
        assert data["results"][1]["setting"] == "Auto-lock Timeout"
        assert data["results"][1]["riskLevel"] == "Medium"
        assert data["metadata"] == {"hostname": "box"}

    def test_json_requires_report(self):
        with pytest.raises(ValueError):
            format_report("text", OutputFormat.JSON)

    def test_markdown_sections(self, report):
        output = format_report("ignored", OutputFormat.MARKDOWN, report=report)

        assert output.filename == "security-report.md"
        assert output.content.startswith("# Security Audit Report")
        assert "### ✅ PASS: Firewall" in output.content
        assert "### ❌ FAIL: Auto-lock Timeout" in output.content
        assert "**Overall Status: FAILED**" in output.content

    def test_markdown_without_report(self):
        output = format_report(COLORED, OutputFormat.MARKDOWN)

        assert "```" in output.content
        assert "\x1b[" not in output.content

    def test_email_wrapper(self):
        output = format_report(COLORED, OutputFormat.EMAIL)

        assert output.filename == "security-report-email.txt"
        assert output.content.startswith("Subject: Security Audit Report")
        assert "✅ PASS Firewall" in output.content
        assert "Best regards," in output.content
        assert "\x1b[" not in output.content

    def test_string_format_accepted(self):
        assert format_report("x", "plain").format == OutputFormat.PLAIN


class TestHelpers:
    """Test cases for summary and parsing helpers."""

    def test_summary_line_counts_structured_results(self, report):
        line = create_summary_line(report, now=datetime(2025, 1, 2, 9, 30))

        assert line == "Security Audit: 1/2 passed, 1 failed, 1 warnings (2025-01-02 09:30)"

    def test_summary_ignores_message_glyphs(self):
        report = SecurityReport(
            timestamp="2025-01-01T12:00:00+00:00",
            overall_passed=True,
            results=[
                CheckResult(
                    setting="Firewall",
                    expected=True,
                    actual=True,
                    passed=True,
                    message="❌ looks like a failure marker",
                )
            ],
        )
        line = create_summary_line(report, now=datetime(2025, 1, 2, 9, 30))

        assert line.startswith("Security Audit: 1/1 passed, 0 failed, 0 warnings")

    def test_strip_ansi_codes(self):
        assert strip_ansi_codes("\x1b[1;31mred\x1b[0m") == "red"

    def test_parse_output_format(self):
        assert parse_output_format("JSON") == OutputFormat.JSON

        with pytest.raises(ValueError) as excinfo:
            parse_output_format("pdf")
        assert "console, plain, markdown, json, email" in str(excinfo.value)
