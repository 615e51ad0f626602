"""
Main CLI entry point for ora2pg-admin.

This module provides the command-line interface that manages ora2pg
migration projects: project scaffolding, configuration, environment
checks and supervised migration runs.
"""

import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from ora2pg_admin import __version__
from ora2pg_admin.cli.commands import check as check_commands
from ora2pg_admin.cli.commands import config as config_commands
from ora2pg_admin.cli.commands import init as init_commands
from ora2pg_admin.cli.commands import migrate as migrate_commands
from ora2pg_admin.cli.commands import status as status_commands
from ora2pg_admin.cli.context import AdminContext
from ora2pg_admin.i18n import set_language, supported_languages
from ora2pg_admin.utils.logging import configure_logging, get_logger

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="ora2pg-admin")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to the project configuration file",
    envvar="ORA2PG_ADMIN_CONFIG",
)
@click.option(
    "--project-dir",
    "-p",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Project root directory",
    envvar="ORA2PG_ADMIN_PROJECT_DIR",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Console logging level",
    envvar="ORA2PG_ADMIN_LOG_LEVEL",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write JSON logs to this file",
    envvar="ORA2PG_ADMIN_LOG_FILE",
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging and verbose ora2pg output")
@click.option(
    "--lang",
    type=click.Choice(supported_languages(), case_sensitive=False),
    default=None,
    help="Message language",
    envvar="ORA2PG_ADMIN_LANG",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    project_dir: Path,
    log_level: str,
    log_file: Path | None,
    verbose: bool,
    lang: str | None,
) -> None:
    """ora2pg-admin - Manage Oracle to PostgreSQL migrations with ora2pg.

    Examples:

        # Create a project in the current directory
        ora2pg-admin init my-migration

        # Check that ora2pg and an Oracle client are available
        ora2pg-admin check env

        # Export the schema, then the data
        ora2pg-admin migrate structure
        ora2pg-admin migrate data

        # Show project status
        ora2pg-admin status
    """
    if lang:
        set_language(lang.lower())

    effective_level = "DEBUG" if verbose else log_level.upper()
    configure_logging(
        level=effective_level,
        log_file=str(log_file) if log_file else None,
        file_level="DEBUG",
    )

    ctx.obj = AdminContext(
        project_dir=project_dir.resolve(),
        config_path=config,
        log_level=effective_level,
        log_level_explicit=(
            ctx.get_parameter_source("log_level") is not click.core.ParameterSource.DEFAULT
        ),
        log_file=log_file,
        verbose=verbose,
    )

    logger.debug(
        "cli_initialized",
        config=str(config) if config else None,
        project_dir=str(project_dir),
        log_level=effective_level,
    )


cli.add_command(init_commands.init)
cli.add_command(config_commands.config)
cli.add_command(check_commands.check)
cli.add_command(migrate_commands.migrate)
cli.add_command(status_commands.status)


def main() -> int:
    """Main entry point for CLI."""
    try:
        # Without standalone mode click returns the exit code of Exit
        exit_code = cli(standalone_mode=False)
        return exit_code if isinstance(exit_code, int) else 0
    except click.exceptions.Abort:
        click.echo("Aborted!", err=True)
        return 130
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except Exception as e:
        logger.error("unexpected_error", error=str(e), exc_info=True)
        click.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
