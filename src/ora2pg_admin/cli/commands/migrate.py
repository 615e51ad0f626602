"""
Migration execution commands.

This module provides commands that run ora2pg step by step for the
structure, the data or the complete migration of a project. Ctrl-C or the
overall timeout stops the run: the running ora2pg process is killed and no
further step is started.
"""

import asyncio
import re
from collections.abc import Callable, Sequence

import click

from ora2pg_admin.cli.context import AdminContext
from ora2pg_admin.cli.decorators import EXIT_ERROR, handle_errors, pass_context, requires_project
from ora2pg_admin.cli.utils import (
    echo_info,
    echo_success,
    echo_warning,
    print_results_table,
    print_summary,
)
from ora2pg_admin.config import project_config_dir
from ora2pg_admin.exceptions import MigrationCancelledError
from ora2pg_admin.i18n import t
from ora2pg_admin.reporting.progress import ProgressTracker
from ora2pg_admin.service.cancellation import CancellationToken
from ora2pg_admin.service.migration import MigrationService
from ora2pg_admin.service.models import ExecutionResult, MigrationType
from ora2pg_admin.service.ora2pg import Ora2pgService
from ora2pg_admin.service.template import ConfigTemplateRenderer
from ora2pg_admin.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = "2h"

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([smh]?)\s*$", re.IGNORECASE)
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600}


def parse_duration(value: str) -> float:
    """Parse ``90``, ``90s``, ``30m`` or ``2h`` into seconds (0 disables the timeout)."""
    match = _DURATION_PATTERN.match(value)
    if not match:
        raise click.BadParameter(f"Invalid duration: {value} (use e.g. 90s, 30m or 2h)")
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[unit.lower()]


def _parse_types(value: str | None) -> list[MigrationType] | None:
    if not value:
        return None
    types = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        types.append(Ora2pgService.validate_migration_type(item))
    return types or None


def migration_options(f: Callable) -> Callable:
    """Options shared by every migrate subcommand."""
    options = [
        click.option(
            "--types",
            help="Comma separated migration types run instead of the default steps",
        ),
        click.option(
            "--timeout",
            default=DEFAULT_TIMEOUT,
            show_default=True,
            help="Overall time limit (e.g. 90m, 2h; 0 disables it)",
        ),
        click.option(
            "--parallel",
            type=click.IntRange(0, 32),
            default=0,
            help="ora2pg parallel jobs (0 keeps the configured value)",
        ),
        click.option("--dry-run", is_flag=True, help="Pass -n so ora2pg does not write"),
        click.option("--no-progress", is_flag=True, help="Disable the progress bar"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


@click.group(name="migrate")
def migrate() -> None:
    """Migration execution commands.

    Each step runs ora2pg once for one migration type. A failed step does
    not stop the steps after it.
    """


async def _execute(
    service: MigrationService,
    types: Sequence[MigrationType],
    tracker: ProgressTracker,
    task_name: str,
    timeout: float,
) -> tuple[list[ExecutionResult], MigrationCancelledError | None]:
    token = CancellationToken(timeout=timeout or None)
    token.register_signals()
    tracker.start(task_name, len(types))
    try:
        results = await service.execute_with_progress(types, tracker, token)
    except MigrationCancelledError as e:
        return e.results, e
    else:
        if token.cancelled:
            return results, MigrationCancelledError(token.reason or "", results=results)
        tracker.complete()
        return results, None
    finally:
        tracker.stop()
        token.unregister_signals()


def _run_migration(
    ctx: AdminContext,
    default_types: list[MigrationType],
    task_name: str,
    types: str | None,
    timeout: str,
    parallel: int,
    dry_run: bool,
    no_progress: bool,
) -> None:
    overall_timeout = parse_duration(timeout)
    steps = _parse_types(types) or default_types

    cfg = ctx.config
    ora2pg = Ora2pgService(
        executable=cfg.migration.ora2pg_path,
        renderer=ConfigTemplateRenderer(project_config_dir(ctx.project_dir)),
    )
    ora2pg.validate_tool()

    service = MigrationService(
        cfg, ctx.project_dir, ora2pg=ora2pg, dry_run=dry_run, verbose=ctx.verbose
    )
    if parallel:
        service.set_parallel_jobs(parallel)

    echo_info(f"{task_name}: {len(steps)} steps ({', '.join(s.value for s in steps)})")
    if dry_run:
        echo_warning(t("migration.dry_run"))

    tracker = ProgressTracker(enable=not no_progress)
    results, cancelled = asyncio.run(
        _execute(service, steps, tracker, task_name, overall_timeout)
    )

    click.echo()
    print_results_table(results, title=task_name)
    summary = ora2pg.get_execution_summary(results)
    print_summary(summary, not_run=len(steps) - len(results))

    logger.info(
        "migration_command_finished",
        task=task_name,
        successful=summary["successful"],
        failed=summary["failed"],
        cancelled=summary["cancelled"],
    )

    if cancelled is not None:
        raise cancelled
    if summary["failed"]:
        echo_warning("Some steps failed; see the table above and the logs directory")
        raise click.exceptions.Exit(EXIT_ERROR)
    echo_success(t("tracker.completed", task=task_name))


@migrate.command(name="structure")
@migration_options
@pass_context
@handle_errors
@requires_project
def structure(ctx: AdminContext, **kwargs) -> None:
    """Export the schema: tables, views, sequences, indexes, triggers,
    functions and procedures."""
    _run_migration(ctx, MigrationService.structure_types(), "Structure migration", **kwargs)


@migrate.command(name="data")
@migration_options
@pass_context
@handle_errors
@requires_project
def data(ctx: AdminContext, **kwargs) -> None:
    """Export table data (COPY, then INSERT)."""
    _run_migration(ctx, MigrationService.data_types(), "Data migration", **kwargs)


@migrate.command(name="all")
@migration_options
@pass_context
@handle_errors
@requires_project
def all_(ctx: AdminContext, **kwargs) -> None:
    """Run the complete migration in dependency order.

    Tables, views and sequences first, then data, indexes, program objects
    and finally grants.
    """
    _run_migration(ctx, MigrationService.all_types(), "Complete migration", **kwargs)
