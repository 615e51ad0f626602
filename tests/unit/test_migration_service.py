"""
Unit tests for MigrationService.

Steps run the stand-in ora2pg from conftest; the tracker is a recording
double so the exact progress calls can be asserted.
"""

import pytest

from ora2pg_admin.exceptions import MigrationCancelledError, NonZeroExitError
from ora2pg_admin.service.cancellation import CancellationToken, CancelReason
from ora2pg_admin.service.migration import NLS_LANG, MigrationService
from ora2pg_admin.service.models import ExecutionStatus, MigrationPhase, MigrationType
from ora2pg_admin.service.ora2pg import Ora2pgService


class RecordingTracker:
    """Records the tracker calls made by the service."""

    def __init__(self):
        self.steps: list[tuple[int, str]] = []
        self.progress: list[tuple[float, str]] = []

    def update_step(self, step, message):
        self.steps.append((step, message))

    def update_progress(self, percentage, details=""):
        self.progress.append((percentage, details))


@pytest.fixture
def service(project_config, project_dir, fake_ora2pg):
    return MigrationService(
        project_config,
        project_dir,
        ora2pg=Ora2pgService(executable=fake_ora2pg),
        step_timeout=30,
    )


class TestExecuteWithProgress:
    """Tests for multi-step runs."""

    @pytest.mark.asyncio
    async def test_failed_step_does_not_stop_run(self, service, monkeypatch):
        """Every step runs and results come back in step order."""
        monkeypatch.setenv("FAKE_ORA2PG_FAIL", "VIEW")
        tracker = RecordingTracker()

        results = await service.execute_with_progress(["TABLE", "VIEW", "SEQUENCE"], tracker)

        assert [r.migration_type for r in results] == [
            MigrationType.TABLE,
            MigrationType.VIEW,
            MigrationType.SEQUENCE,
        ]
        assert [r.status for r in results] == [
            ExecutionStatus.COMPLETED,
            ExecutionStatus.FAILED,
            ExecutionStatus.COMPLETED,
        ]
        assert isinstance(results[1].error, NonZeroExitError)
        assert service.is_completed() is True
        assert service.get_progress() == 100.0

    @pytest.mark.asyncio
    async def test_tracker_calls(self, service):
        tracker = RecordingTracker()

        await service.execute_with_progress(["TABLE", "COPY"], tracker)

        assert [step for step, _ in tracker.steps] == [0, 1, 1, 2]
        assert "TABLE" in tracker.steps[0][1]
        assert tracker.progress[-1][0] == 100.0
        assert all(0.0 <= value <= 100.0 for value, _ in tracker.progress)

    @pytest.mark.asyncio
    async def test_steps_get_generated_config_and_environment(self, service, project_dir):
        results = await service.execute_with_progress(["TABLE"], RecordingTracker())

        config_file = project_dir / "output" / "ora2pg.conf"
        assert config_file.is_file()
        assert f"-c {config_file}" in results[0].output
        assert f"NLS_LANG {NLS_LANG}" in results[0].output
        assert f"-o {project_dir / 'output'}" in results[0].output

    @pytest.mark.asyncio
    async def test_invalid_type_becomes_failed_result(self, service):
        results = await service.execute_with_progress(["TABLE", "BOGUS"], RecordingTracker())

        assert results[0].succeeded
        assert results[1].status is ExecutionStatus.FAILED

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, service):
        """A fired token raises with the results collected so far."""
        token = CancellationToken()
        token.cancel(CancelReason.SIGNAL_SIGINT)

        with pytest.raises(MigrationCancelledError) as exc_info:
            await service.execute_with_progress(["TABLE", "VIEW"], RecordingTracker(), token)

        assert exc_info.value.results == []
        assert exc_info.value.reason == CancelReason.SIGNAL_SIGINT.value
        assert service.is_cancelled() is True
        assert service.is_completed() is False

    @pytest.mark.asyncio
    async def test_cancelled_between_steps(self, service, monkeypatch):
        token = CancellationToken()
        original = service.execute_single_migration

        async def run_then_cancel(*args, **kwargs):
            result = await original(*args, **kwargs)
            token.cancel()
            return result

        monkeypatch.setattr(service, "execute_single_migration", run_then_cancel)

        with pytest.raises(MigrationCancelledError) as exc_info:
            await service.execute_with_progress(["TABLE", "VIEW"], RecordingTracker(), token)

        assert [r.migration_type for r in exc_info.value.results] == [MigrationType.TABLE]
        assert service.get_state().completed_steps == 1


class TestSingleMigration:
    @pytest.mark.asyncio
    async def test_sets_current_phase(self, service):
        result = await service.execute_single_migration("copy")

        assert result.succeeded
        assert service.get_state().current_type is MigrationType.COPY
        assert service.get_state().current_phase is MigrationPhase.DATA


class TestOptions:
    """Tests for per-step options."""

    def test_build_options(self, service, project_dir):
        options = service.build_options(MigrationType.INDEX)

        assert options.timeout == 30
        assert options.output_dir == str(project_dir / "output")
        assert "ora2pg-INDEX-" in options.log_file
        assert options.working_dir == str(project_dir)
        assert options.config_file == ""

    def test_timeout_from_config(self, project_config, project_dir):
        project_config.migration.timeout_minutes = 5

        service = MigrationService(project_config, project_dir)

        assert service.build_options(MigrationType.TABLE).timeout == 300

    def test_oracle_home_passed(self, service, project_config):
        project_config.oracle_client.home = "/opt/oracle/instantclient_21_9"

        env = service.build_environment()

        assert env == {"NLS_LANG": NLS_LANG, "ORACLE_HOME": "/opt/oracle/instantclient_21_9"}

    @pytest.mark.parametrize("jobs", [0, 33])
    def test_parallel_jobs_out_of_range(self, service, jobs):
        with pytest.raises(ValueError):
            service.set_parallel_jobs(jobs)

    def test_parallel_jobs(self, service, project_config):
        service.set_parallel_jobs(8)

        assert project_config.migration.parallel_jobs == 8


class TestStepSets:
    def test_all_types_order(self):
        types = MigrationService.all_types()

        assert types.index(MigrationType.TABLE) < types.index(MigrationType.COPY)
        assert types.index(MigrationType.COPY) < types.index(MigrationType.INDEX)
        assert types[-1] is MigrationType.GRANT

    def test_data_types(self):
        assert MigrationService.data_types() == [MigrationType.COPY, MigrationType.INSERT]

    def test_structure_types_have_no_data(self):
        assert MigrationType.COPY not in MigrationService.structure_types()
