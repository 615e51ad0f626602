"""
Project initialization command.

Scaffolds an ora2pg-admin project: the ``.ora2pg-admin`` configuration
directory, the working directories ora2pg writes into and a default
configuration file.
"""

import click

from ora2pg_admin.cli.context import AdminContext
from ora2pg_admin.cli.decorators import handle_errors, pass_context
from ora2pg_admin.cli.utils import echo_info, echo_success
from ora2pg_admin.config import (
    PROJECT_SUBDIRS,
    create_default_config,
    project_config_dir,
    project_config_path,
    save_config_to_yaml,
)
from ora2pg_admin.exceptions import ConfigurationError
from ora2pg_admin.i18n import t
from ora2pg_admin.utils.files import ensure_dir, file_exists, write_text_file
from ora2pg_admin.utils.logging import get_logger

logger = get_logger(__name__)

MAX_NAME_LENGTH = 50
INVALID_NAME_CHARS = '/\\:*?"<>|'

# Migration types and parallel jobs per project template
TEMPLATES = {
    "basic": (["TABLE", "VIEW", "SEQUENCE"], 2),
    "advanced": (["TABLE", "VIEW", "SEQUENCE", "INDEX", "TRIGGER", "FUNCTION"], 4),
    "custom": (None, None),
}

GITIGNORE = """\
# Logs
logs/
*.log

# ora2pg output
output/
*.sql
*.dump

# Backups
backup/
*.bak

# Local secrets
.env
.env.local
"""

README = """\
# {name}

Oracle to PostgreSQL migration project managed with ora2pg-admin.

## Layout

- `.ora2pg-admin/config.yaml`: project configuration
- `logs/`: ora2pg log files
- `output/`: generated ora2pg.conf and exported SQL
- `scripts/`: custom SQL scripts
- `backup/`: backups
- `docs/`: project documentation

## Getting started

```bash
ora2pg-admin config database oracle
ora2pg-admin config database postgresql
ora2pg-admin check env
ora2pg-admin migrate structure
ora2pg-admin migrate data
```

Passwords can stay out of the configuration file: the default
configuration reads `${{ORACLE_PASSWORD}}` and `${{PG_PASSWORD}}` from the
environment or from a `.env` file.
"""


def _validate_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise click.BadParameter("Project name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise click.BadParameter(f"Project name cannot exceed {MAX_NAME_LENGTH} characters")
    invalid = [char for char in INVALID_NAME_CHARS if char in name]
    if invalid:
        raise click.BadParameter(f"Project name cannot contain: {' '.join(invalid)}")
    return name


@click.command(name="init")
@click.argument("name", required=False)
@click.option("--description", "-d", default="", help="Project description")
@click.option(
    "--template",
    "-t",
    type=click.Choice(list(TEMPLATES)),
    default="custom",
    show_default=True,
    help="Initial migration types (basic, advanced or the defaults)",
)
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing configuration")
@pass_context
@handle_errors
def init(
    ctx: AdminContext, name: str | None, description: str, template: str, force: bool
) -> None:
    """Initialize an ora2pg-admin project in the project directory.

    NAME defaults to the name of the project directory.

    Examples:

        ora2pg-admin init
        ora2pg-admin --project-dir ./hr-migration init "HR migration" --template basic
    """
    project_dir = ctx.project_dir
    name = _validate_name(name or project_dir.name)
    config_path = project_config_path(project_dir)

    if file_exists(config_path) and not force:
        raise ConfigurationError(
            t("init.exists", path=project_dir),
            suggestions=["Use --force to overwrite the existing configuration"],
        )

    ensure_dir(project_config_dir(project_dir))
    for subdir in PROJECT_SUBDIRS:
        ensure_dir(project_dir / subdir)

    config = create_default_config(name, description)
    types, jobs = TEMPLATES[template]
    if types is not None:
        config.migration.types = types
        config.migration.parallel_jobs = jobs
    save_config_to_yaml(config, config_path)

    for file_name, content in ((".gitignore", GITIGNORE), ("README.md", README.format(name=name))):
        path = project_dir / file_name
        if not path.exists():
            write_text_file(path, content)

    ctx.invalidate()
    logger.info("project_initialized", name=name, path=str(project_dir), template=template)

    echo_success(t("init.created", name=name, path=project_dir))
    echo_info(t("init.next_steps", config=config_path))
