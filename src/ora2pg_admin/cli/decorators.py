"""
Decorators for CLI commands.

This module provides decorators for error handling, context passing,
and other common CLI patterns.
"""

import functools
from collections.abc import Callable

import click

from ora2pg_admin.cli.context import AdminContext
from ora2pg_admin.cli.utils import echo_error, echo_suggestions
from ora2pg_admin.exceptions import (
    ConfigurationError,
    ConfigValidationError,
    MigrationCancelledError,
    Ora2pgAdminError,
    ToolNotFoundError,
)
from ora2pg_admin.i18n import t
from ora2pg_admin.utils.logging import get_logger, log_error

logger = get_logger(__name__)

EXIT_ERROR = 1
EXIT_CONFIG = 2
EXIT_TOOL_NOT_FOUND = 3
EXIT_INTERRUPTED = 130


def pass_context(f: Callable) -> Callable:
    """
    Decorator to pass AdminContext to command function.

    Usage:
        @click.command()
        @pass_context
        def my_command(ctx: AdminContext):
            print(ctx.config)
    """

    @click.pass_context
    @functools.wraps(f)
    def wrapper(click_ctx: click.Context, *args, **kwargs):
        admin_ctx: AdminContext = click_ctx.obj
        return f(admin_ctx, *args, **kwargs)

    return wrapper


def handle_errors(f: Callable) -> Callable:
    """
    Decorator to handle common errors in CLI commands.

    Errors are printed with their details and suggestions and converted
    to exit codes.

    Exit codes:
        0: Success
        1: General error
        2: Configuration error
        3: ora2pg not found
        130: Interrupted or cancelled
    """

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)

        except (click.exceptions.Exit, click.exceptions.Abort, click.ClickException):
            raise

        except ConfigValidationError as e:
            logger.error("configuration_invalid", errors=e.errors)
            echo_error(f"Configuration Error: {e.message}")
            for line in e.errors:
                click.echo(f"  - {line}", err=True)
            raise click.exceptions.Exit(EXIT_CONFIG) from e

        except ConfigurationError as e:
            logger.error("configuration_error", error=str(e))
            echo_error(f"Configuration Error: {e.format_message()}")
            echo_suggestions(e.suggestions)
            raise click.exceptions.Exit(EXIT_CONFIG) from e

        except ToolNotFoundError as e:
            logger.error("ora2pg_not_found", executable=e.executable)
            echo_error(e.format_message())
            echo_suggestions(e.suggestions)
            raise click.exceptions.Exit(EXIT_TOOL_NOT_FOUND) from e

        except MigrationCancelledError as e:
            logger.warning("migration_cancelled", reason=e.reason)
            echo_error(t("migration.cancelled", reason=e.reason))
            raise click.exceptions.Exit(EXIT_INTERRUPTED) from e

        except Ora2pgAdminError as e:
            logger.error("command_failed", error=str(e), code=e.code)
            echo_error(e.format_message())
            echo_suggestions(e.suggestions)
            raise click.exceptions.Exit(EXIT_ERROR) from e

        except KeyboardInterrupt as e:
            echo_error("Interrupted")
            raise click.exceptions.Exit(EXIT_INTERRUPTED) from e

        except Exception as e:
            log_error(logger, e, f.__name__, exc_info=True)
            echo_error(f"Unexpected Error: {e}")
            click.echo(
                "\nAn unexpected error occurred. Please check the logs for details.",
                err=True,
            )
            raise click.exceptions.Exit(EXIT_ERROR) from e

    return wrapper


def requires_project(f: Callable) -> Callable:
    """
    Decorator to ensure the command runs inside an initialized project.

    The configuration file is parsed and validated before the command
    executes (without expanding environment placeholders), so loading and
    validation errors surface with the configuration exit code. The
    project logging settings are applied once the file is loaded.
    """

    @functools.wraps(f)
    def wrapper(ctx: AdminContext, *args, **kwargs):
        if not ctx.is_initialized:
            echo_error(f"No ora2pg-admin project found in {ctx.project_dir}")
            echo_suggestions(["Run 'ora2pg-admin init' to create a project"])
            raise click.exceptions.Exit(EXIT_CONFIG)

        ctx.configure_project_logging(ctx.load_config(expand_env=False))
        return f(ctx, *args, **kwargs)

    return wrapper
