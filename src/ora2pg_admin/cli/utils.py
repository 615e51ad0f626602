"""
Utility functions for CLI commands.

This module provides helper functions for common CLI operations like
formatting output and rendering migration results.
"""

from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from ora2pg_admin.i18n import t
from ora2pg_admin.reporting.colors import STATUS_ICONS, ConsoleColors, status_style
from ora2pg_admin.service.models import ExecutionResult
from ora2pg_admin.utils.files import list_files

console = Console()


def echo_success(message: str) -> None:
    """Print success message in green."""
    click.secho(f"✓ {message}", fg="green")


def echo_error(message: str) -> None:
    """Print error message in red."""
    click.secho(f"✗ {message}", fg="red", err=True)


def echo_warning(message: str) -> None:
    """Print warning message in yellow."""
    click.secho(f"⚠ {message}", fg="yellow")


def echo_info(message: str) -> None:
    """Print info message in blue."""
    click.secho(f"ℹ {message}", fg="blue")


def echo_suggestions(suggestions: Sequence[str]) -> None:
    """Print an error's suggestions below it."""
    if not suggestions:
        return
    click.echo("\nSuggestions:", err=True)
    for suggestion in suggestions:
        click.echo(f"  • {suggestion}", err=True)


def format_duration(seconds: float) -> str:
    """
    Format duration in human-readable format.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string (e.g., "2h 30m 15s")
    """
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes = int(seconds // 60)
    remaining_seconds = int(seconds % 60)

    if minutes < 60:
        return f"{minutes}m {remaining_seconds}s"

    hours = minutes // 60
    remaining_minutes = minutes % 60

    return f"{hours}h {remaining_minutes}m {remaining_seconds}s"


def format_timestamp(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def format_size(size: int) -> str:
    """Format a byte count (e.g., "1.5 MB")."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def print_table(
    title: str,
    columns: list[str],
    rows: list[list[Any]],
    show_header: bool = True,
) -> None:
    """
    Print a formatted table using rich.

    Args:
        title: Table title
        columns: Column headers
        rows: List of row data
        show_header: Whether to show header row
    """
    table = Table(title=title, show_header=show_header, border_style=ConsoleColors.BORDER)

    for col in columns:
        table.add_column(col)

    for row in rows:
        table.add_row(*[str(cell) for cell in row])

    console.print(table)


def _result_detail(result: ExecutionResult) -> str:
    if result.error is not None:
        return str(result.error)
    if result.progress is not None and result.progress.message:
        return result.progress.message
    return ""


def print_results_table(results: Sequence[ExecutionResult], title: str | None = None) -> None:
    """Print one row per executed step."""
    table = Table(title=title or t("summary.title"), border_style=ConsoleColors.BORDER)
    table.add_column("#", justify="right")
    table.add_column(t("summary.step"), style=ConsoleColors.MIGRATION_TYPE)
    table.add_column(t("summary.status"))
    table.add_column(t("summary.duration"), justify="right", style=ConsoleColors.TIME)
    table.add_column(t("summary.exit_code"), justify="right")
    table.add_column(t("summary.detail"), overflow="fold")

    for index, result in enumerate(results, start=1):
        style = status_style(result.status)
        status = f"{STATUS_ICONS[result.status]} {t(f'status.{result.status.value}')}"
        table.add_row(
            str(index),
            result.migration_type.value if result.migration_type else "?",
            f"[{style}]{status}[/{style}]",
            format_duration(result.duration),
            str(result.exit_code),
            _result_detail(result),
        )

    console.print(table)


def print_summary(summary: dict[str, Any], not_run: int = 0) -> None:
    """Print the counts produced by ``Ora2pgService.get_execution_summary``."""
    cancelled = summary["cancelled"] + not_run
    parts = [
        f"[{ConsoleColors.SUCCESS}]{summary['successful']} {t('summary.successful')}[/]",
        f"[{ConsoleColors.ERROR}]{summary['failed']} {t('summary.failed')}[/]",
        f"[{ConsoleColors.WARNING}]{cancelled} {t('summary.cancelled')}[/]",
        f"{t('summary.total_duration')} {format_duration(summary['total_duration'])}",
    ]
    console.print(", ".join(parts))


def list_directory(path: Path, limit: int = 10) -> list[list[str]]:
    """Rows (name, size, modified) for the newest files in ``path``."""
    rows = []
    for file in list_files(path)[:limit]:
        stat = file.stat()
        rows.append(
            [
                file.name,
                format_size(stat.st_size),
                format_timestamp(datetime.fromtimestamp(stat.st_mtime)),
            ]
        )
    return rows
