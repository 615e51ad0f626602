"""Rendering of the ora2pg configuration file.

The project configuration is turned into an ``ora2pg.conf``. A project can
ship its own ``ora2pg.conf.tmpl`` (``$name`` placeholders) in its template
directory; otherwise the built-in template below is used.
"""

from datetime import datetime
from pathlib import Path
from string import Template
from typing import Any

from ora2pg_admin.config import ProjectConfig
from ora2pg_admin.exceptions import TemplateError
from ora2pg_admin.utils.files import write_text_file
from ora2pg_admin.utils.logging import get_logger

logger = get_logger(__name__)

TEMPLATE_FILE_NAME = "ora2pg.conf.tmpl"

DEFAULT_ORA2PG_TEMPLATE = """\
# ora2pg configuration for project $project_name
# Generated by ora2pg-admin on $generated_at. Changes are overwritten
# by 'ora2pg-admin config generate'.
# Log level: $log_level

#------------------------------------------------------------------------------
# Oracle source
#------------------------------------------------------------------------------
ORACLE_HOME\t$oracle_home
ORACLE_DSN\t$oracle_dsn
ORACLE_USER\t$oracle_user
ORACLE_PWD\t$oracle_password
SCHEMA\t\t$oracle_schema
EXPORT_SCHEMA\t1

#------------------------------------------------------------------------------
# PostgreSQL target
#------------------------------------------------------------------------------
PG_DSN\t\t$pg_dsn
PG_USER\t\t$pg_user
PG_PWD\t\t$pg_password
PG_SCHEMA\t$pg_schema

#------------------------------------------------------------------------------
# Export
#------------------------------------------------------------------------------
TYPE\t\t$migration_types
JOBS\t\t$parallel_jobs
DATA_LIMIT\t$batch_size
OUTPUT_DIR\t$output_dir
LOGFILE\t\t$log_file
DEBUG\t\t$debug
"""


def build_oracle_dsn(config: ProjectConfig) -> str:
    """Return the DBI DSN of the Oracle source (service name preferred over SID)."""
    oracle = config.oracle
    if oracle.service:
        return f"dbi:Oracle:host={oracle.host};service_name={oracle.service};port={oracle.port}"
    return f"dbi:Oracle:host={oracle.host};sid={oracle.sid};port={oracle.port}"


def build_pg_dsn(config: ProjectConfig) -> str:
    pg = config.postgresql
    return f"dbi:Pg:dbname={pg.database};host={pg.host};port={pg.port}"


class ConfigTemplateRenderer:
    """Renders ``ora2pg.conf`` from a project configuration.

    Args:
        template_dir: Directory searched for ``ora2pg.conf.tmpl``
    """

    def __init__(self, template_dir: str | Path | None = None):
        self.template_dir = Path(template_dir) if template_dir else None

    def template_data(self, config: ProjectConfig) -> dict[str, Any]:
        """Values available to the template."""
        return {
            "project_name": config.project.name,
            "generated_at": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            "oracle_home": config.oracle_client.home,
            "oracle_dsn": build_oracle_dsn(config),
            "oracle_user": config.oracle.username,
            "oracle_password": config.oracle.password,
            "oracle_schema": config.oracle.schema_name or config.oracle.username.upper(),
            "pg_dsn": build_pg_dsn(config),
            "pg_user": config.postgresql.username,
            "pg_password": config.postgresql.password,
            "pg_schema": config.postgresql.schema_name,
            "migration_types": ",".join(config.migration.types),
            "parallel_jobs": config.migration.parallel_jobs,
            "batch_size": config.migration.batch_size,
            "output_dir": config.migration.output_dir,
            "log_level": config.migration.log_level,
            "log_file": "ora2pg.log",
            "debug": 1 if config.migration.log_level == "DEBUG" else 0,
        }

    def load_template(self) -> Template:
        """Return the project template, or the built-in one."""
        if self.template_dir is not None:
            path = self.template_dir / TEMPLATE_FILE_NAME
            if path.is_file():
                logger.debug("ora2pg_template_loaded", path=str(path))
                return Template(path.read_text(encoding="utf-8"))
        return Template(DEFAULT_ORA2PG_TEMPLATE)

    def render_text(self, config: ProjectConfig) -> str:
        """Render the configuration to a string.

        Raises:
            TemplateError: If the template references an unknown placeholder
                or is malformed
        """
        template = self.load_template()
        try:
            return template.substitute(self.template_data(config))
        except KeyError as e:
            raise TemplateError(
                "Unknown placeholder in ora2pg template",
                details=f"${e.args[0]}",
                suggestions=[f"Available placeholders: {', '.join(self.template_data(config))}"],
            ) from e
        except ValueError as e:
            raise TemplateError("Malformed ora2pg template", details=str(e)) from e

    def render(self, config: ProjectConfig, output_path: str | Path) -> Path:
        """Render the configuration and write it to ``output_path``.

        Raises:
            TemplateError: If rendering fails
            FileOperationError: If the file cannot be written
        """
        content = self.render_text(config)
        path = write_text_file(output_path, content)
        logger.info("ora2pg_config_generated", path=str(path))
        return path

    def validate_template(self) -> None:
        """Check that the custom template, if any, only uses known placeholders.

        Without a custom template the built-in one is used and there is
        nothing to check.

        Raises:
            TemplateError: If the template is malformed
        """
        if self.template_dir is None:
            return
        path = self.template_dir / TEMPLATE_FILE_NAME
        if not path.is_file():
            return
        template = Template(path.read_text(encoding="utf-8"))
        if not template.is_valid():
            raise TemplateError("Malformed ora2pg template", details=str(path))
        unknown = set(template.get_identifiers()) - set(self.template_data(ProjectConfig()))
        if unknown:
            raise TemplateError(
                "Unknown placeholder in ora2pg template", details=", ".join(sorted(unknown))
            )
