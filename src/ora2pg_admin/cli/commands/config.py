"""
Configuration management commands.

This module provides commands for inspecting, validating and editing the
project configuration and for rendering the ora2pg configuration file.
"""

from pathlib import Path
from typing import Any

import click
import yaml
from rich.syntax import Syntax

from ora2pg_admin.cli.context import AdminContext
from ora2pg_admin.cli.decorators import handle_errors, pass_context, requires_project
from ora2pg_admin.cli.utils import console, echo_info, echo_success, print_table
from ora2pg_admin.config import (
    ProjectConfig,
    build_config,
    project_config_dir,
    save_config_to_yaml,
)
from ora2pg_admin.service.migration import ORA2PG_CONFIG_FILE
from ora2pg_admin.service.models import MigrationType
from ora2pg_admin.service.template import ConfigTemplateRenderer, build_oracle_dsn, build_pg_dsn
from ora2pg_admin.utils.logging import get_logger, redact_secrets

logger = get_logger(__name__)


@click.group(name="config")
def config() -> None:
    """Configuration management commands.

    Show, validate and edit the project configuration.
    """


@config.command(name="show")
@click.option("--show-secrets", is_flag=True, help="Show passwords with variables expanded")
@pass_context
@handle_errors
@requires_project
def show(ctx: AdminContext, show_secrets: bool) -> None:
    """Print the project configuration as YAML.

    Passwords are masked unless --show-secrets is given; ``${VAR}``
    placeholders are shown as written.
    """
    if show_secrets:
        data = ctx.config.to_yaml_dict()
    else:
        data = redact_secrets(ctx.load_config(expand_env=False).to_yaml_dict())

    echo_info(f"Configuration: {ctx.effective_config_path}")
    text = yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
    console.print(Syntax(text, "yaml", background_color="default"))


@config.command(name="validate")
@pass_context
@handle_errors
@requires_project
def validate(ctx: AdminContext) -> None:
    """Validate the project configuration.

    Checks field values, expands environment placeholders and verifies a
    custom ora2pg template when the project has one.

    Examples:

        ora2pg-admin config validate
    """
    echo_info(f"Validating configuration: {ctx.effective_config_path}")

    cfg = ctx.config
    renderer = ConfigTemplateRenderer(project_config_dir(ctx.project_dir))
    renderer.validate_template()
    renderer.render_text(cfg)

    click.echo()
    _display_config_summary(cfg)
    click.echo()
    echo_success("Configuration is valid!")


@config.command(name="generate")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (defaults to <output_dir>/ora2pg.conf)",
)
@pass_context
@handle_errors
@requires_project
def generate(ctx: AdminContext, output: Path | None) -> None:
    """Render ora2pg.conf from the project configuration."""
    cfg = ctx.config
    output = output or ctx.project_dir / cfg.migration.output_dir / ORA2PG_CONFIG_FILE
    renderer = ConfigTemplateRenderer(project_config_dir(ctx.project_dir))
    path = renderer.render(cfg, output)
    echo_success(f"ora2pg configuration written to {path}")


@config.command(name="database")
@click.argument("target", type=click.Choice(["oracle", "postgresql"]))
@pass_context
@handle_errors
@requires_project
def database(ctx: AdminContext, target: str) -> None:
    """Interactively configure the Oracle or PostgreSQL connection.

    Press Enter to keep the current value. A password can be entered as an
    environment placeholder such as ${PG_PASSWORD}.
    """
    cfg = ctx.load_config(expand_env=False)
    data = cfg.to_yaml_dict()

    if target == "oracle":
        data["oracle"] = _prompt_oracle(data["oracle"])
    else:
        data["postgresql"] = _prompt_postgresql(data["postgresql"])

    updated = build_config(data)
    save_config_to_yaml(updated, ctx.effective_config_path)
    ctx.invalidate()

    logger.info("database_configured", target=target)
    echo_success(f"{target} connection saved to {ctx.effective_config_path}")


@config.command(name="options")
@click.option("--types", help="Comma separated migration types")
@click.option("--parallel", type=click.IntRange(1, 32), help="ora2pg parallel jobs")
@click.option("--batch-size", type=click.IntRange(min=1), help="Rows per batch (DATA_LIMIT)")
@click.option("--timeout", type=click.IntRange(min=0), help="Step timeout in minutes")
@pass_context
@handle_errors
@requires_project
def options(
    ctx: AdminContext,
    types: str | None,
    parallel: int | None,
    batch_size: int | None,
    timeout: int | None,
) -> None:
    """Set migration options; prompts for anything not given as an option."""
    cfg = ctx.load_config(expand_env=False)
    data = cfg.to_yaml_dict()
    migration = data["migration"]

    if types is None:
        supported = ", ".join(t.value for t in MigrationType)
        click.echo(f"Supported types: {supported}")
        types = click.prompt("Migration types", default=",".join(migration["types"]))
    migration["types"] = [item.strip() for item in types.split(",") if item.strip()]
    migration["parallel_jobs"] = parallel or click.prompt(
        "Parallel jobs", default=migration["parallel_jobs"], type=click.IntRange(1, 32)
    )
    migration["batch_size"] = batch_size or click.prompt(
        "Batch size", default=migration["batch_size"], type=click.IntRange(min=1)
    )
    if timeout is None:
        timeout = click.prompt(
            "Step timeout (minutes)",
            default=migration["timeout_minutes"],
            type=click.IntRange(min=0),
        )
    migration["timeout_minutes"] = timeout

    updated = build_config(data)
    save_config_to_yaml(updated, ctx.effective_config_path)
    ctx.invalidate()
    echo_success(f"Migration options saved to {ctx.effective_config_path}")


def _prompt_password(label: str, current: str) -> str:
    value = click.prompt(
        f"{label} (Enter keeps the current value)",
        default="",
        hide_input=True,
        show_default=False,
    )
    return value or current


def _prompt_oracle(current: dict[str, Any]) -> dict[str, Any]:
    result = dict(current)
    result["host"] = click.prompt("Oracle host", default=current["host"])
    result["port"] = click.prompt(
        "Oracle port", default=current["port"], type=click.IntRange(1, 65535)
    )
    use_service = click.confirm("Connect with a service name?", default=bool(current["service"]))
    if use_service:
        result["service"] = click.prompt("Service name", default=current["service"] or "ORCLPDB1")
    else:
        result["service"] = ""
        result["sid"] = click.prompt("SID", default=current["sid"] or "ORCL")
    result["username"] = click.prompt("Oracle user", default=current["username"])
    result["password"] = _prompt_password("Oracle password", current["password"])
    result["schema"] = click.prompt(
        "Schema to export (empty for the user's schema)",
        default=current["schema"],
        show_default=bool(current["schema"]),
    )
    return result


def _prompt_postgresql(current: dict[str, Any]) -> dict[str, Any]:
    result = dict(current)
    result["host"] = click.prompt("PostgreSQL host", default=current["host"])
    result["port"] = click.prompt(
        "PostgreSQL port", default=current["port"], type=click.IntRange(1, 65535)
    )
    result["database"] = click.prompt("Database", default=current["database"])
    result["username"] = click.prompt("PostgreSQL user", default=current["username"])
    result["password"] = _prompt_password("PostgreSQL password", current["password"])
    result["schema"] = click.prompt("Target schema", default=current["schema"])
    return result


def _display_config_summary(cfg: ProjectConfig) -> None:
    rows = [
        ["Project", cfg.project.name],
        ["Oracle DSN", build_oracle_dsn(cfg)],
        ["Oracle user", cfg.oracle.username],
        ["PostgreSQL DSN", build_pg_dsn(cfg)],
        ["PostgreSQL schema", cfg.postgresql.schema_name],
        ["Migration types", ", ".join(cfg.migration.types)],
        ["Parallel jobs", cfg.migration.parallel_jobs],
        ["Batch size", cfg.migration.batch_size],
        ["Step timeout", f"{cfg.migration.timeout_minutes} min"],
        ["ora2pg", cfg.migration.ora2pg_path],
    ]
    print_table("Configuration Summary", ["Setting", "Value"], rows)
