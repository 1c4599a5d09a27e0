"""
Report output formats.
"""

from .formatter import (
    FormattedOutput,
    OutputFormat,
    create_summary_line,
    format_report,
    parse_output_format,
    strip_ansi_codes,
)

__all__ = [
    "OutputFormat",
    "FormattedOutput",
    "format_report",
    "create_summary_line",
    "parse_output_format",
    "strip_ansi_codes",
]
