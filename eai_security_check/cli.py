"""
Command-line interface for eai-security-check.
"""

import asyncio
import os
import sys
from pathlib import Path
from typing import Dict, Optional, Tuple

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .audit.engine import SecurityAuditor, SecurityReport, render_quiet_report, render_report
from .checkers.factory import create_checker
from .core.config import SecurityConfig, dump_config, load_config
from .core.errors import ConfigError, SecurityCheckError
from .core.logging_config import get_logger, setup_logging
from .core.platform import PlatformInfo, detect_platform
from .core.profiles import get_config_by_profile, list_profiles
from .core.versions import LatestVersionResolver
from .reporting.formatter import create_summary_line, format_report, parse_output_format
from .signing.signer import (
    create_verification_summary,
    sign,
    verify_directory,
    verify_file,
)

console = Console()
app = typer.Typer(
    help="EAI Security Check - audit this machine against a security configuration",
    no_args_is_help=True,
)
logger = get_logger(__name__)

CONFIG_FILE_NAMES = ["security-config.yaml", "security-config.yml", "security-config.json"]


def version_callback(value: bool):
    if value:
        console.print(f"eai-security-check version {__version__}")
        raise typer.Exit()


def get_config_dir() -> Path:
    return Path(os.environ.get("EAI_CONFIG_DIR", Path.home() / ".eai-security-check"))


def resolve_config(
    config_file: Optional[Path], profile: Optional[str]
) -> Tuple[SecurityConfig, str]:
    """
    Pick the configuration for a run.

    Order: explicit file, explicit profile, the config directory, the current
    directory, then the default profile.
    """
    if config_file is not None:
        return load_config(config_file), str(config_file)
    if profile is not None:
        return get_config_by_profile(profile), f"{profile} profile"

    for directory in (get_config_dir(), Path.cwd()):
        for name in CONFIG_FILE_NAMES:
            candidate = directory / name
            if candidate.is_file():
                logger.debug("Using configuration file %s", candidate)
                return load_config(candidate), str(candidate)

    return get_config_by_profile("default"), "default profile"


def resolve_password(
    config: SecurityConfig, password_env: Optional[str], non_interactive: bool
) -> Optional[str]:
    if password_env:
        password = os.environ.get(password_env)
        if password is None:
            raise ConfigError(f"environment variable {password_env} is not set")
        return password

    if config.password is None or not config.password.required:
        return None
    if non_interactive or not sys.stdin.isatty():
        logger.warning("Password policy configured but no password supplied")
        return None
    return typer.prompt("Password to validate", hide_input=True, default="", show_default=False)


async def run_audit(
    config: SecurityConfig,
    password: Optional[str],
    concurrency: int,
) -> Tuple[SecurityReport, PlatformInfo, str]:
    platform_info = await detect_platform()
    checker = create_checker(platform_info, password=password)
    auditor = SecurityAuditor(
        checker,
        platform_info=platform_info,
        password=password,
        version_resolver=(
            LatestVersionResolver(
                platform_info.version_product or platform_info.platform.value,
                cache_path=get_config_dir() / "latest-versions.json",
            )
        ),
        concurrency=concurrency,
    )
    report = await auditor.audit_security(config)
    system_info = await checker.get_system_info()
    return report, platform_info, system_info


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version information",
    ),
):
    """
    EAI Security Check - audit this machine against a security configuration
    """


@app.command()
def check(
    profile: Optional[str] = typer.Argument(
        None, help="Security profile: default, strict, relaxed, developer, eai"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to configuration file (YAML or JSON)"
    ),
    output_format: str = typer.Option(
        "console", "--format", "-f", help="Output format: console, plain, markdown, json, email"
    ),
    output_file: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file path"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show the summary"),
    summary: bool = typer.Option(False, "--summary", help="Print a one-line summary"),
    hash_report: bool = typer.Option(
        False, "--hash", help="Sign the report so it can be verified later"
    ),
    password_env: Optional[str] = typer.Option(
        None, "--password-env", help="Environment variable holding the password to validate"
    ),
    concurrency: int = typer.Option(
        1, "--concurrency", min=1, help="Number of checks to run in parallel"
    ),
    non_interactive: bool = typer.Option(
        False, "--non-interactive", help="Never prompt for input"
    ),
    verbose: int = typer.Option(
        0, "-v", "--verbose", count=True, help="Increase verbosity (-v, -vv)"
    ),
):
    """Audit this machine against a security profile or configuration file."""

    setup_logging(min(verbose, 2))
    non_interactive = (
        non_interactive or os.environ.get("EAI_SECURITY_CHECK_NONINTERACTIVE") == "1"
    )

    try:
        fmt = parse_output_format(output_format)
        config, config_source = resolve_config(config_file, profile)
        logger.info("Loaded configuration: %s", config_source)
        password = resolve_password(config, password_env, non_interactive)
        report, platform_info, system_info = asyncio.run(
            run_audit(config, password, concurrency)
        )
    except (SecurityCheckError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        logger.error("Audit failed: %s", e)
        raise typer.Exit(1)

    renderer = render_quiet_report if quiet else render_report
    rendered = renderer(report, platform_info.display_name, system_info)

    metadata: Dict[str, str] = {
        "platform": platform_info.platform.value,
        "hostname": platform_info.hostname,
        "config_source": config_source,
        "version": __version__,
    }
    if platform_info.distribution:
        metadata["distribution"] = platform_info.distribution

    content = format_report(rendered, fmt, report=report, metadata=metadata).content

    if hash_report:
        try:
            signed = sign(content, metadata)
        except SecurityCheckError as e:
            console.print(f"[red]Error signing report: {escape(str(e))}[/red]")
            raise typer.Exit(1)
        content = signed.signed_content
        console.print(f"🔐 Report signed: {signed.short_hash}", highlight=False)

    if output_file:
        with open(output_file, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        console.print(f"✓ Report saved to {escape(str(output_file))}", highlight=False)
        logger.info("Report saved to %s", output_file)
    else:
        # Plain echo: report text contains brackets rich would read as markup
        typer.echo(content, nl=False)

    if summary:
        typer.echo(create_summary_line(report))

    if not report.overall_passed:
        raise typer.Exit(1)


@app.command()
def verify(
    path: Path = typer.Argument(..., help="Signed report file or directory of reports"),
    verbose: bool = typer.Option(False, "--verbose", help="Show full hashes"),
):
    """Verify that signed reports have not been altered."""

    if not path.exists():
        console.print(f"[red]Error: {escape(str(path))} does not exist[/red]")
        raise typer.Exit(1)

    if path.is_dir():
        result = verify_directory(path)
        display_directory_verification(result, verbose)
        if not result.all_valid:
            raise typer.Exit(1)
        return

    result = verify_file(path)
    typer.echo(create_verification_summary(result), nl=False)
    if verbose:
        typer.echo(f"Original hash:   {result.original_hash or '-'}")
        typer.echo(f"Calculated hash: {result.calculated_hash or '-'}")
    if not result.is_valid:
        raise typer.Exit(1)


@app.command()
def validate(
    config_file: Path = typer.Argument(..., help="Path to configuration file (YAML or JSON)"),
):
    """Validate a security configuration file."""

    console.print("[bold green]Validating configuration...[/bold green]")

    try:
        config = load_config(config_file)
    except ConfigError as e:
        console.print(f"[red]✗ Configuration is invalid: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print("[green]✓ Configuration is valid![/green]")
    display_config_summary(config)


@app.command()
def profiles():
    """List the built-in security profiles."""

    table = Table()
    table.add_column("Profile", style="cyan")
    table.add_column("Checks Configured", style="white")

    for name in list_profiles():
        table.add_row(name, str(len(get_config_by_profile(name).configured_sections())))

    console.print(table)


@app.command()
def create_example(
    profile: str = typer.Argument(..., help="Profile to base the configuration on"),
    output_file: Path = typer.Argument(..., help="Output file path for the configuration"),
    output_format: str = typer.Option("yaml", "--format", help="Output format: yaml, json"),
):
    """Write a profile's configuration to a file for customisation."""

    try:
        config = get_config_by_profile(profile)
        content = dump_config(config, output_format.lower())
    except (ConfigError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    output_file.write_text(content, encoding="utf-8")
    console.print(f"✓ Example configuration created: {escape(str(output_file))}", highlight=False)
    display_config_summary(config)


def display_config_summary(config: SecurityConfig):
    """Display which checks a configuration enables."""
    console.print("\n[bold]Configuration Summary[/bold]")

    table = Table()
    table.add_column("Section", style="cyan")

    for section in config.configured_sections():
        table.add_row(section)

    console.print(table)


def display_directory_verification(result, verbose: bool = False):
    """Display verification results for a directory of reports."""
    console.print("\n[bold]Verification Summary[/bold]")

    table = Table()
    table.add_column("File", style="cyan")
    table.add_column("Status", style="white")
    table.add_column("Details", style="white")

    for name, file_result in result.results.items():
        status = "[green]VERIFIED[/green]" if file_result.is_valid else "[red]FAILED[/red]"
        details = "" if file_result.is_valid else file_result.message
        if verbose and file_result.original_hash:
            details = f"{details} {file_result.original_hash}".strip()
        table.add_row(name, status, details)
    for name in result.skipped:
        table.add_row(name, "[yellow]SKIPPED[/yellow]", "no signature")

    console.print(table)
    console.print(
        f"{len(result.passed)} verified, {len(result.failed)} failed, "
        f"{len(result.skipped)} skipped"
    )


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
