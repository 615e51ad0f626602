"""Invocation of the ora2pg command line tool."""

import asyncio
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from ora2pg_admin.config import ProjectConfig
from ora2pg_admin.exceptions import (
    ConfigValidationError,
    ExecutionCancelledError,
    MissingFileError,
    Ora2pgAdminError,
    ToolNotFoundError,
)
from ora2pg_admin.service.cancellation import CancellationToken
from ora2pg_admin.service.models import (
    ExecutionOptions,
    ExecutionResult,
    ExecutionStatus,
    MigrationType,
    ProgressInfo,
)
from ora2pg_admin.service.supervisor import ProcessSupervisor
from ora2pg_admin.service.template import ConfigTemplateRenderer
from ora2pg_admin.utils.files import ensure_dir, file_exists
from ora2pg_admin.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_EXECUTABLE = "ora2pg"


class Ora2pgService:
    """Runs ora2pg for one migration type at a time.

    Args:
        executable: ora2pg executable name or path
        supervisor: Process supervisor used to run ora2pg
        renderer: Renderer for ``ora2pg.conf``
    """

    def __init__(
        self,
        executable: str = DEFAULT_EXECUTABLE,
        supervisor: ProcessSupervisor | None = None,
        renderer: ConfigTemplateRenderer | None = None,
    ):
        self.executable = executable
        self.supervisor = supervisor or ProcessSupervisor()
        self.renderer = renderer or ConfigTemplateRenderer()

    def validate_tool(self) -> str:
        """Return the resolved path of the ora2pg executable.

        Raises:
            ToolNotFoundError: If the executable cannot be found
        """
        path = shutil.which(self.executable)
        if path is None:
            raise ToolNotFoundError(self.executable)
        return path

    def get_version(self, timeout: float = 10.0) -> str:
        """Return the first line of `ora2pg --version` mentioning ora2pg ("" on failure)."""
        try:
            completed = subprocess.run(
                [self.validate_tool(), "--version"],
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except (ToolNotFoundError, OSError, subprocess.SubprocessError) as e:
            logger.debug("ora2pg_version_failed", error=str(e))
            return ""

        output = completed.stdout.strip()
        for line in output.splitlines():
            if "ora2pg" in line.lower():
                return line.strip()
        return output

    def build_command_args(
        self,
        migration_type: MigrationType,
        options: ExecutionOptions,
        executable: str | None = None,
    ) -> list[str]:
        """Build the ora2pg argument vector.

        Flags are only added for options that are set.

        Raises:
            MissingFileError: If a configuration file is set but missing
        """
        args = [executable or self.executable]

        if options.config_file:
            if not file_exists(options.config_file):
                raise MissingFileError(options.config_file)
            args.extend(["-c", options.config_file])

        args.extend(["-t", MigrationType(migration_type).value])

        if options.output_dir:
            args.extend(["-o", options.output_dir])
        if options.verbose:
            args.append("-v")
        if options.dry_run:
            args.append("-n")
        if options.log_file:
            args.extend(["-l", options.log_file])

        return args

    def prepare_execution_environment(self, options: ExecutionOptions) -> None:
        """Create the output directory and the log file's directory.

        Raises:
            CreateFailedError: If a directory cannot be created
        """
        if options.output_dir:
            ensure_dir(options.output_dir)
        if options.log_file:
            ensure_dir(Path(options.log_file).parent)

    async def execute(
        self,
        migration_type: MigrationType | str,
        options: ExecutionOptions,
        cancel_token: CancellationToken | None = None,
        progress_queue: "asyncio.Queue[ProgressInfo] | None" = None,
    ) -> ExecutionResult:
        """Run ora2pg for one migration type.

        Preparation failures (unknown type, missing tool, missing config
        file, directories that cannot be created) are recorded as a FAILED
        result, like failures of the process itself.
        """
        result = ExecutionResult()

        try:
            result.migration_type = self.validate_migration_type(migration_type)
            executable = self.validate_tool()
            args = self.build_command_args(result.migration_type, options, executable)
            self.prepare_execution_environment(options)
        except Ora2pgAdminError as e:
            logger.error(
                "ora2pg_preparation_failed",
                migration_type=str(migration_type),
                error=str(e),
            )
            result.fail(e)
            return result

        logger.info("ora2pg_execution_started", migration_type=result.migration_type.value)
        return await self.supervisor.execute(
            args, options, cancel_token, progress_queue, result=result
        )

    async def execute_multiple(
        self,
        migration_types: Sequence[MigrationType | str],
        options: ExecutionOptions,
        cancel_token: CancellationToken | None = None,
    ) -> list[ExecutionResult]:
        """Run several migration types one after the other.

        A failed type does not stop the others. Once the token fires, no
        further type is started.
        """
        results = []
        for migration_type in migration_types:
            if cancel_token is not None and cancel_token.cancelled:
                logger.warning("ora2pg_execution_stopped", reason=cancel_token.reason)
                break
            result = await self.execute(migration_type, options, cancel_token)
            results.append(result)
            if not result.succeeded:
                logger.warning(
                    "ora2pg_execution_failed",
                    migration_type=str(migration_type),
                    error=str(result.error),
                )
        return results

    @staticmethod
    def get_supported_types() -> list[MigrationType]:
        return list(MigrationType)

    @staticmethod
    def validate_migration_type(migration_type: MigrationType | str) -> MigrationType:
        """Normalize a migration type name.

        Raises:
            ConfigValidationError: If ora2pg does not support the type
        """
        try:
            return MigrationType(str(migration_type).strip().upper())
        except ValueError as e:
            supported = ", ".join(t.value for t in MigrationType)
            raise ConfigValidationError(
                f"Unsupported migration type: {migration_type}",
                errors=[f"type: must be one of {supported}"],
            ) from e

    def generate_config_file(self, config: ProjectConfig, output_path: str | Path) -> Path:
        """Render ``ora2pg.conf`` for ``config``."""
        return self.renderer.render(config, output_path)

    @staticmethod
    def get_execution_summary(results: Sequence[ExecutionResult]) -> dict[str, Any]:
        """Aggregate results into counts and per-type details."""
        summary: dict[str, Any] = {
            "total_executions": len(results),
            "successful": 0,
            "failed": 0,
            "cancelled": 0,
            "total_duration": 0.0,
            "details": [],
        }

        for result in results:
            summary["total_duration"] += result.duration
            if result.status is ExecutionStatus.COMPLETED:
                summary["successful"] += 1
            elif result.status is ExecutionStatus.CANCELLED or isinstance(
                result.error, ExecutionCancelledError
            ):
                summary["cancelled"] += 1
            elif result.status is ExecutionStatus.FAILED:
                summary["failed"] += 1
            summary["details"].append(result.to_dict())

        return summary
