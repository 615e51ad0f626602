"""
Project status command.

Shows the project, its configuration, the tools it depends on and the most
recent files ora2pg wrote.
"""

import shutil

import click

from ora2pg_admin.cli.context import AdminContext
from ora2pg_admin.cli.decorators import handle_errors, pass_context, requires_project
from ora2pg_admin.cli.utils import (
    console,
    echo_error,
    echo_success,
    echo_warning,
    format_timestamp,
    list_directory,
    print_table,
)
from ora2pg_admin.oracle.client import ClientDetector
from ora2pg_admin.reporting.colors import ConsoleColors
from ora2pg_admin.utils.logging import get_logger

logger = get_logger(__name__)


@click.command(name="status")
@click.option(
    "--files", "file_limit", default=5, show_default=True, help="Files listed per directory"
)
@pass_context
@handle_errors
@requires_project
def status(ctx: AdminContext, file_limit: int) -> None:
    """Show project status.

    Placeholders in the configuration are not expanded, so status works
    without the password variables set.
    """
    cfg = ctx.load_config(expand_env=False)
    logger.debug("status_requested", project=cfg.project.name)

    print_table(
        "Project",
        ["Setting", "Value"],
        [
            ["Name", cfg.project.name],
            ["Description", cfg.project.description or "-"],
            ["Version", cfg.project.version],
            ["Created", format_timestamp(cfg.project.created)],
            ["Updated", format_timestamp(cfg.project.updated)],
            ["Directory", ctx.project_dir],
            ["Configuration", ctx.effective_config_path],
            ["Migration types", ", ".join(cfg.migration.types)],
        ],
    )

    console.print()
    tool = shutil.which(cfg.migration.ora2pg_path)
    if tool:
        echo_success(f"ora2pg: {tool}")
    else:
        echo_error(f"ora2pg: {cfg.migration.ora2pg_path} not found")

    info = ClientDetector().detect_client()
    if info.installed:
        echo_success(f"Oracle client: {info.version or 'installed, version unknown'}")
    else:
        echo_warning("Oracle client: not detected")

    for label, directory in (
        ("Output", ctx.project_dir / cfg.migration.output_dir),
        ("Logs", ctx.project_dir / "logs"),
    ):
        rows = list_directory(directory, limit=file_limit)
        console.print()
        if rows:
            print_table(f"{label} ({directory})", ["File", "Size", "Modified"], rows)
        else:
            console.print(f"[{ConsoleColors.PENDING}]{label}: no files in {directory}[/]")
