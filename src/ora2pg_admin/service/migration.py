"""Multi-step migration orchestration.

MigrationService runs one ora2pg step per migration type, strictly one
after the other, and keeps going when a step fails. The only thing that
stops a run early is the cancellation token, checked before each step.
"""

import asyncio
import contextlib
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from ora2pg_admin.config import ProjectConfig
from ora2pg_admin.exceptions import MigrationCancelledError, Ora2pgAdminError
from ora2pg_admin.i18n import t
from ora2pg_admin.reporting.progress import ProgressTracker
from ora2pg_admin.service.cancellation import CancellationToken
from ora2pg_admin.service.models import (
    ExecutionOptions,
    ExecutionResult,
    MigrationState,
    MigrationType,
    ProgressInfo,
    default_log_file,
    get_phase_for_type,
)
from ora2pg_admin.service.ora2pg import Ora2pgService
from ora2pg_admin.utils.files import ensure_dir, file_exists
from ora2pg_admin.utils.logging import get_logger

logger = get_logger(__name__)

ORA2PG_CONFIG_FILE = "ora2pg.conf"
NLS_LANG = "AMERICAN_AMERICA.UTF8"
PROGRESS_QUEUE_SIZE = 100

MIN_PARALLEL_JOBS = 1
MAX_PARALLEL_JOBS = 32


class MigrationService:
    """Runs a sequence of ora2pg migration steps for one project.

    Args:
        config: Project configuration
        project_dir: Project root; output, log and backup directories live
            below it
        ora2pg: Service used to run each step
        dry_run: Pass ``-n`` to ora2pg
        verbose: Pass ``-v`` to ora2pg
        step_timeout: Seconds allowed per step (defaults to the configured
            ``migration.timeout_minutes``)
    """

    def __init__(
        self,
        config: ProjectConfig,
        project_dir: str | Path = ".",
        ora2pg: Ora2pgService | None = None,
        dry_run: bool = False,
        verbose: bool = False,
        step_timeout: float | None = None,
    ):
        self.config = config
        self.project_dir = Path(project_dir)
        self.ora2pg = ora2pg or Ora2pgService(executable=config.migration.ora2pg_path)
        self.dry_run = dry_run
        self.verbose = verbose
        self.step_timeout = step_timeout
        self.state = MigrationState()

    # Paths

    @property
    def output_dir(self) -> Path:
        return self.project_dir / self.config.migration.output_dir

    @property
    def log_dir(self) -> Path:
        return self.project_dir / "logs"

    @property
    def backup_dir(self) -> Path:
        return self.project_dir / "backup"

    @property
    def config_file_path(self) -> Path:
        return self.output_dir / ORA2PG_CONFIG_FILE

    # Setup

    def prepare_environment(self) -> None:
        """Create the output, log and backup directories.

        Raises:
            CreateFailedError: If a directory cannot be created
        """
        for directory in (self.output_dir, self.log_dir, self.backup_dir):
            ensure_dir(directory)

    def generate_ora2pg_config(self) -> Path:
        """Render ``ora2pg.conf`` into the output directory."""
        return self.ora2pg.generate_config_file(self.config, self.config_file_path)

    def build_environment(self) -> dict[str, str]:
        env = {"NLS_LANG": NLS_LANG}
        if self.config.oracle_client.home:
            env["ORACLE_HOME"] = self.config.oracle_client.home
        return env

    def build_options(self, migration_type: MigrationType) -> ExecutionOptions:
        """Execution options for one step."""
        if self.step_timeout is not None:
            timeout = self.step_timeout
        else:
            timeout = self.config.migration.timeout_minutes * 60

        config_file = self.config_file_path
        return ExecutionOptions(
            config_file=str(config_file) if file_exists(config_file) else "",
            output_dir=str(self.output_dir),
            log_file=str(default_log_file(self.log_dir, migration_type)),
            dry_run=self.dry_run,
            verbose=self.verbose,
            timeout=timeout,
            working_dir=str(self.project_dir),
            environment=self.build_environment(),
        )

    # Execution

    async def execute_single_migration(
        self,
        migration_type: MigrationType | str,
        cancel_token: CancellationToken | None = None,
        progress_queue: "asyncio.Queue[ProgressInfo] | None" = None,
    ) -> ExecutionResult:
        """Run ora2pg for one migration type and return its result.

        An unsupported type yields a FAILED result instead of raising.
        """
        try:
            migration_type = self.ora2pg.validate_migration_type(migration_type)
        except Ora2pgAdminError as e:
            result = ExecutionResult()
            result.fail(e)
            logger.error("migration_step_rejected", migration_type=str(migration_type))
            return result

        self.state.current_type = migration_type
        self.state.current_phase = get_phase_for_type(migration_type)

        logger.info(
            "migration_step_started",
            migration_type=migration_type.value,
            phase=self.state.current_phase.value,
        )
        return await self.ora2pg.execute(
            migration_type, self.build_options(migration_type), cancel_token, progress_queue
        )

    async def execute_with_progress(
        self,
        migration_types: Sequence[MigrationType | str],
        tracker: ProgressTracker,
        cancel_token: CancellationToken | None = None,
    ) -> list[ExecutionResult]:
        """Run every migration type in order, reporting to ``tracker``.

        A failed step is logged and the next one runs. Results are returned
        in step order whatever their outcome.

        Raises:
            CreateFailedError: If the project directories cannot be created
            MigrationCancelledError: If the token fired before a step started;
                the error carries the results collected so far
        """
        total = len(migration_types)
        self.state = MigrationState(total_steps=total, start_time=datetime.now(UTC))

        self.prepare_environment()
        try:
            self.generate_ora2pg_config()
        except Ora2pgAdminError as e:
            logger.warning("ora2pg_config_generation_failed", error=str(e))

        results: list[ExecutionResult] = []
        for index, migration_type in enumerate(migration_types):
            if cancel_token is not None and cancel_token.cancelled:
                reason = cancel_token.reason or ""
                self.state.is_cancelled = True
                self.state.end_time = datetime.now(UTC)
                logger.warning(
                    "migration_cancelled",
                    reason=reason,
                    completed_steps=len(results),
                    total_steps=total,
                )
                raise MigrationCancelledError(reason, results=results)

            name = str(migration_type).upper()
            tracker.update_step(index, t("migration.running_type", type=name))

            progress_queue: asyncio.Queue[ProgressInfo] = asyncio.Queue(
                maxsize=PROGRESS_QUEUE_SIZE
            )
            forwarder = asyncio.create_task(
                self._forward_progress(progress_queue, tracker, index, total),
                name=f"progress-{name}",
            )
            try:
                result = await self.execute_single_migration(
                    migration_type, cancel_token, progress_queue
                )
            finally:
                forwarder.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await forwarder

            results.append(result)
            self.state.results.append(result)
            self.state.completed_steps = index + 1

            if result.succeeded:
                tracker.update_step(index + 1, t("migration.type_completed", type=name))
            else:
                logger.error(
                    "migration_step_failed",
                    migration_type=name,
                    exit_code=result.exit_code,
                    error=str(result.error),
                )
                tracker.update_step(index + 1, t("migration.type_failed", type=name))

            if result.progress is not None:
                tracker.update_progress((index + 1) / total * 100, result.progress.message)

        self.state.is_completed = True
        self.state.end_time = datetime.now(UTC)
        logger.info(
            "migration_finished",
            total_steps=total,
            failed=sum(1 for r in results if not r.succeeded),
            duration=round(self.get_duration(), 3),
        )
        return results

    async def _forward_progress(
        self,
        progress_queue: "asyncio.Queue[ProgressInfo]",
        tracker: ProgressTracker,
        index: int,
        total: int,
    ) -> None:
        """Map live step progress onto the overall percentage."""
        while True:
            progress = await progress_queue.get()
            overall = (index + progress.percentage / 100) / total * 100
            tracker.update_progress(overall, progress.message)

    # State

    def get_state(self) -> MigrationState:
        return self.state

    def get_progress(self) -> float:
        return self.state.percentage

    def is_completed(self) -> bool:
        return self.state.is_completed

    def is_cancelled(self) -> bool:
        return self.state.is_cancelled

    def get_duration(self) -> float:
        """Seconds since the run started (until it ended, once it has)."""
        if self.state.start_time is None:
            return 0.0
        end = self.state.end_time or datetime.now(UTC)
        return (end - self.state.start_time).total_seconds()

    def set_parallel_jobs(self, jobs: int) -> None:
        """Set the ora2pg JOBS directive used for the next generated config.

        Raises:
            ValueError: If ``jobs`` is outside 1-32
        """
        if not MIN_PARALLEL_JOBS <= jobs <= MAX_PARALLEL_JOBS:
            raise ValueError(
                f"parallel jobs must be between {MIN_PARALLEL_JOBS} and {MAX_PARALLEL_JOBS}"
            )
        self.config.migration.parallel_jobs = jobs

    # Step sets used by the migrate subcommands

    @staticmethod
    def structure_types() -> list[MigrationType]:
        return [
            MigrationType.TABLE,
            MigrationType.VIEW,
            MigrationType.SEQUENCE,
            MigrationType.INDEX,
            MigrationType.TRIGGER,
            MigrationType.FUNCTION,
            MigrationType.PROCEDURE,
        ]

    @staticmethod
    def data_types() -> list[MigrationType]:
        return [MigrationType.COPY, MigrationType.INSERT]

    @staticmethod
    def all_types() -> list[MigrationType]:
        """Every step in dependency order: tables before data, data before
        indexes, program objects after indexes, grants last."""
        return [
            MigrationType.TABLE,
            MigrationType.VIEW,
            MigrationType.SEQUENCE,
            MigrationType.COPY,
            MigrationType.INDEX,
            MigrationType.TRIGGER,
            MigrationType.FUNCTION,
            MigrationType.PROCEDURE,
            MigrationType.GRANT,
        ]
