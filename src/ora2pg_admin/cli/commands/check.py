"""
Environment check commands.

This module provides commands that verify the host can run migrations:
the ora2pg tool, an Oracle client of a supported version, the project
layout and the database connections.
"""

import os
import sys

import click

from ora2pg_admin.cli.context import AdminContext
from ora2pg_admin.cli.decorators import EXIT_ERROR, handle_errors, pass_context, requires_project
from ora2pg_admin.cli.utils import console, echo_error, echo_success, echo_warning
from ora2pg_admin.config import PROJECT_SUBDIRS
from ora2pg_admin.exceptions import ConfigValidationError, Ora2pgAdminError, ToolNotFoundError
from ora2pg_admin.i18n import t
from ora2pg_admin.oracle.client import ClientDetector, ClientStatus, ClientStatusReport
from ora2pg_admin.oracle.connection import CONNECT_TIMEOUT, ConnectionResult, ConnectionTester
from ora2pg_admin.reporting.colors import ConsoleColors
from ora2pg_admin.service.ora2pg import DEFAULT_EXECUTABLE, Ora2pgService
from ora2pg_admin.utils.files import dir_exists
from ora2pg_admin.utils.logging import get_logger

logger = get_logger(__name__)

_REPORT_STYLES = {
    ClientStatus.COMPATIBLE: ("✓", ConsoleColors.SUCCESS),
    ClientStatus.NOT_INSTALLED: ("✗", ConsoleColors.ERROR),
    ClientStatus.INCOMPATIBLE: ("⚠", ConsoleColors.WARNING),
    ClientStatus.UNKNOWN_VERSION: ("?", ConsoleColors.WARNING),
    ClientStatus.ERROR: ("✗", ConsoleColors.ERROR),
}


@click.group(name="check")
def check() -> None:
    """Environment check commands."""


def _section(title: str) -> None:
    console.print()
    console.print(f"[{ConsoleColors.HEADER}]{title}[/]")
    console.print(f"[{ConsoleColors.BORDER}]{'─' * len(title)}[/]")


def _print_client_report(report: ClientStatusReport, verbose: bool = False) -> None:
    icon, style = _REPORT_STYLES[report.status]
    console.print(f"[{style}]{icon} {report.message}[/]")

    info = report.client_info
    if info.installed:
        if info.version:
            console.print(f"  Version: {info.version}")
        if info.home:
            console.print(f"  Home: [{ConsoleColors.PATH}]{info.home}[/]")
        elif info.path:
            console.print(f"  Tools: [{ConsoleColors.PATH}]{info.path}[/]")
        console.print(f"  Type: {'Instant Client' if info.instant_client else 'Full client'}")
        if verbose:
            console.print(f"  Architecture: {info.architecture}")

    for recommendation in report.recommendations:
        console.print(f"  • {recommendation}")


def _print_installation_guide(detector: ClientDetector) -> None:
    guide = detector.installation_guide()
    console.print()
    console.print(f"[{ConsoleColors.LABEL}]Installation guide ({guide.platform})[/]")
    console.print(f"Download: [{ConsoleColors.PATH}]{guide.download_url}[/]")
    for index, step in enumerate(guide.instructions, start=1):
        console.print(f"  {index}. {step}")


def _check_tool(executable: str, verbose: bool) -> bool:
    service = Ora2pgService(executable=executable)
    try:
        path = service.validate_tool()
    except ToolNotFoundError as e:
        echo_error(t("check.tool_missing"))
        for suggestion in e.suggestions:
            click.echo(f"  • {suggestion}")
        return False

    echo_success(t("check.tool_found", path=path))
    if verbose:
        version = service.get_version()
        if version:
            click.echo(f"  Version: {version}")
    return True


def _check_system() -> None:
    oracle_home = os.environ.get("ORACLE_HOME")
    if oracle_home:
        echo_success(f"ORACLE_HOME: {oracle_home}")
    else:
        echo_warning("ORACLE_HOME: not set")

    if sys.platform != "win32":
        library_var = "DYLD_LIBRARY_PATH" if sys.platform == "darwin" else "LD_LIBRARY_PATH"
        value = os.environ.get(library_var)
        if value:
            echo_success(f"{library_var}: {value}")
        else:
            echo_warning(f"{library_var}: not set")


def _check_project(ctx: AdminContext, verbose: bool) -> bool:
    if not ctx.is_initialized:
        echo_error(t("check.project_missing", path=ctx.project_dir))
        click.echo("  • Run 'ora2pg-admin init' to create a project")
        return False

    ok = True
    try:
        ctx.load_config(expand_env=False)
        echo_success(t("check.project_ok", path=ctx.effective_config_path))
    except ConfigValidationError as e:
        echo_error(f"{e.message} ({len(e.errors)} problems)")
        if verbose:
            for line in e.errors:
                click.echo(f"  - {line}")
        ok = False
    except Ora2pgAdminError as e:
        echo_error(e.format_message())
        ok = False

    for subdir in PROJECT_SUBDIRS:
        if not dir_exists(ctx.project_dir / subdir):
            echo_warning(f"Missing directory: {subdir}/")
    return ok


def _configured_executable(ctx: AdminContext) -> str:
    if not ctx.is_initialized:
        return DEFAULT_EXECUTABLE
    try:
        return ctx.load_config(expand_env=False).migration.ora2pg_path
    except Ora2pgAdminError:
        return DEFAULT_EXECUTABLE


@check.command(name="env")
@pass_context
@handle_errors
def env(ctx: AdminContext) -> None:
    """Check ora2pg, the Oracle client and the project.

    Exits with status 1 when a problem was found.
    """
    console.print(f"[{ConsoleColors.HEADER}]{t('check.title')}[/]")
    issues = []

    _section("ora2pg")
    if not _check_tool(_configured_executable(ctx), ctx.verbose):
        issues.append(t("check.tool_missing"))

    _section("Oracle client")
    detector = ClientDetector()
    report = detector.check_client_status()
    _print_client_report(report, ctx.verbose)
    if report.status is ClientStatus.NOT_INSTALLED:
        _print_installation_guide(detector)
    if not report.ok:
        issues.append(report.message)

    _section("System")
    _check_system()

    _section("Project")
    if not _check_project(ctx, ctx.verbose):
        issues.append(t("check.project_missing", path=ctx.project_dir))

    console.print()
    logger.info("environment_checked", issues=len(issues))
    if issues:
        echo_warning(f"{len(issues)} problem(s) found:")
        for index, issue in enumerate(issues, start=1):
            click.echo(f"  {index}. {issue}")
        raise click.exceptions.Exit(EXIT_ERROR)

    echo_success("Environment is ready for migration")


@check.command(name="client")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@pass_context
@handle_errors
def client(ctx: AdminContext, as_json: bool) -> None:
    """Report on the Oracle client installation."""
    detector = ClientDetector()
    report = detector.check_client_status()

    if as_json:
        console.print_json(data=report.to_dict())
    else:
        _print_client_report(report, verbose=True)
        if not report.ok:
            _print_installation_guide(detector)

    if not report.ok:
        raise click.exceptions.Exit(EXIT_ERROR)


def _print_connection_result(result: ConnectionResult, verbose: bool) -> None:
    if result.success:
        echo_success(result.message)
        if result.details:
            click.echo(f"  {result.details}")
        return

    echo_error(result.message)
    if result.error:
        click.echo(f"  Error: {result.error}", err=True)
    if verbose and result.details:
        click.echo(result.details.rstrip(), err=True)


@check.command(name="connection")
@click.option(
    "--timeout",
    type=click.FloatRange(min=1),
    default=CONNECT_TIMEOUT,
    show_default=True,
    help="Seconds each client tool may run",
)
@click.option("--json", "as_json", is_flag=True, help="Print the results as JSON")
@pass_context
@handle_errors
@requires_project
def connection(ctx: AdminContext, timeout: float, as_json: bool) -> None:
    """Test the Oracle and PostgreSQL connections.

    Logs in with sqlplus and psql, so the password variables must be set.
    Exits with status 1 when a connection fails.
    """
    cfg = ctx.load_config()
    tester = ConnectionTester(timeout=timeout)
    oracle_result = tester.test_oracle_connection(cfg.oracle)
    postgresql_result = tester.test_postgresql_connection(cfg.postgresql)
    ok = oracle_result.success and postgresql_result.success
    logger.info(
        "connections_checked",
        oracle=oracle_result.success,
        postgresql=postgresql_result.success,
    )

    if as_json:
        console.print_json(
            data={"oracle": oracle_result.to_dict(), "postgresql": postgresql_result.to_dict()}
        )
        if not ok:
            raise click.exceptions.Exit(EXIT_ERROR)
        return

    console.print(f"[{ConsoleColors.HEADER}]{t('connection.title')}[/]")

    _section("Oracle")
    _print_connection_result(oracle_result, ctx.verbose)
    if not oracle_result.success:
        console.print()
        for line in tester.get_connection_diagnostics():
            click.echo(f"  • {line}")

    _section("PostgreSQL")
    _print_connection_result(postgresql_result, ctx.verbose)
    if not postgresql_result.success:
        for suggestion in (
            "Check that the PostgreSQL server is running",
            "Verify the host name, port and database",
            "Check the user name and password",
        ):
            click.echo(f"  • {suggestion}")

    console.print()
    if not ok:
        echo_warning(t("connection.some_failed"))
        raise click.exceptions.Exit(EXIT_ERROR)

    echo_success(t("connection.all_ok"))
    click.echo("Next: ora2pg-admin migrate structure, then ora2pg-admin migrate data")
