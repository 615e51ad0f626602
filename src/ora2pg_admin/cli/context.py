"""
CLI context for ora2pg-admin.

This module provides the context object that is passed to all CLI commands,
holding the project location, logging options and the lazily loaded
project configuration.
"""

from dataclasses import dataclass, field
from pathlib import Path

from ora2pg_admin.config import (
    ProjectConfig,
    load_config_from_yaml,
    project_config_dir,
    project_config_path,
)
from ora2pg_admin.exceptions import ProjectNotInitializedError
from ora2pg_admin.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


@dataclass
class AdminContext:
    """
    Context object for CLI commands.

    Attributes:
        project_dir: Project root directory
        config_path: Explicit configuration file (defaults to
            ``<project_dir>/.ora2pg-admin/config.yaml``)
        log_level: Console logging level
        log_level_explicit: Whether log_level was given on the command line;
            otherwise the project configuration decides
        log_file: Optional log file path
        verbose: Verbose mode (DEBUG logging, ``-v`` passed to ora2pg)
    """

    project_dir: Path = field(default_factory=Path.cwd)
    config_path: Path | None = None
    log_level: str = "WARNING"
    log_level_explicit: bool = False
    log_file: Path | None = None
    verbose: bool = False

    _config: ProjectConfig | None = field(default=None, init=False, repr=False)

    @property
    def effective_config_path(self) -> Path:
        return self.config_path or project_config_path(self.project_dir)

    @property
    def is_initialized(self) -> bool:
        return self.config_path is not None or project_config_dir(self.project_dir).is_dir()

    @property
    def config(self) -> ProjectConfig:
        """Get or load the project configuration (environment placeholders expanded)."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def load_config(self, expand_env: bool = True) -> ProjectConfig:
        """Load the configuration from disk without caching it.

        Raises:
            ProjectNotInitializedError: If no project exists and no
                configuration file was given
        """
        if not self.is_initialized:
            raise ProjectNotInitializedError(self.project_dir)

        logger.debug("loading_configuration", config_path=str(self.effective_config_path))
        config = load_config_from_yaml(self.effective_config_path, expand_env=expand_env)
        logger.debug("configuration_loaded", project=config.project.name)
        return config

    def invalidate(self) -> None:
        """Forget the cached configuration after it was changed on disk."""
        self._config = None

    def configure_project_logging(self, config: ProjectConfig) -> None:
        """Apply the project's ``logging`` section.

        Command line options win: ``--log-file`` replaces the configured
        file and an explicit ``--log-level`` or ``--verbose`` replaces the
        configured console level.
        """
        settings = config.logging
        if self.verbose or self.log_level_explicit:
            level = self.log_level
        else:
            level = settings.level

        log_file = self.log_file
        if log_file is None and settings.file:
            log_file = self.project_dir / settings.file

        configure_logging(
            level=level,
            log_format=settings.format,
            log_file=str(log_file) if log_file else None,
            file_level=settings.file_level,
        )
        logger.debug("project_logging_configured", level=level, log_file=str(log_file))
