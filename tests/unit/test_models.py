"""
Unit tests for execution data models.

Tests for:
- ExecutionResult lifecycle and status rules
- ExecutionOptions immutability
- Phase lookup and log file naming
"""

from datetime import datetime

import pytest

from ora2pg_admin.exceptions import ExecutionTimeoutError, NonZeroExitError
from ora2pg_admin.service.models import (
    ExecutionOptions,
    ExecutionResult,
    ExecutionStatus,
    MigrationPhase,
    MigrationState,
    MigrationType,
    ProgressInfo,
    default_log_file,
    get_phase_for_type,
)


class TestExecutionResult:
    """Tests for ExecutionResult transitions."""

    def test_new_result_is_pending(self):
        result = ExecutionResult()

        assert result.status is ExecutionStatus.PENDING
        assert result.end_time is None
        assert result.progress is None
        assert result.duration == 0.0

    def test_zero_exit_without_error_completes(self):
        result = ExecutionResult()
        result.mark_running(pid=123)

        result.finish(0)

        assert result.status is ExecutionStatus.COMPLETED
        assert result.succeeded
        assert result.pid == 123
        assert result.end_time is not None
        assert result.duration >= 0.0

    def test_non_zero_exit_fails(self):
        result = ExecutionResult()
        result.mark_running()

        result.finish(2, NonZeroExitError(2))

        assert result.status is ExecutionStatus.FAILED
        assert result.exit_code == 2

    def test_error_with_zero_exit_fails(self):
        """Timeouts are FAILED, never CANCELLED."""
        result = ExecutionResult()
        result.mark_running()

        result.finish(0, ExecutionTimeoutError(1.0))

        assert result.status is ExecutionStatus.FAILED

    def test_fail_before_start(self):
        """A preparation failure goes straight from PENDING to FAILED."""
        result = ExecutionResult()

        result.fail(RuntimeError("no config"))

        assert result.status is ExecutionStatus.FAILED
        assert result.exit_code == -1
        assert result.progress is None

    def test_terminal_status_is_final(self):
        result = ExecutionResult()
        result.finish(0)

        with pytest.raises(RuntimeError):
            result.finish(1)
        with pytest.raises(RuntimeError):
            result.mark_running()

    def test_raise_for_status(self):
        ok = ExecutionResult()
        ok.finish(0)
        failed = ExecutionResult()
        failed.fail(NonZeroExitError(3))

        assert ok.raise_for_status() is ok
        with pytest.raises(NonZeroExitError):
            failed.raise_for_status()

    def test_to_dict(self):
        result = ExecutionResult(migration_type=MigrationType.TABLE)
        result.fail(NonZeroExitError(1, details="ORA-00942"))

        data = result.to_dict()

        assert data["type"] == "TABLE"
        assert data["status"] == "failed"
        assert data["exit_code"] == -1
        assert "ORA-00942" in data["error"]


class TestProgressInfo:
    """Tests for ProgressInfo helpers."""

    def test_has_data(self):
        assert ProgressInfo().has_data is False
        assert ProgressInfo(processed_rows=1).has_data is True

    def test_snapshot_is_independent(self):
        progress = ProgressInfo(message="a")
        snapshot = progress.snapshot()

        progress.message = "b"

        assert snapshot.message == "a"


class TestExecutionOptions:
    """Tests for ExecutionOptions."""

    def test_defaults_disable_timeout(self):
        assert ExecutionOptions().timeout == 0

    def test_options_are_frozen(self):
        options = ExecutionOptions(output_dir="out")

        with pytest.raises(AttributeError):
            options.output_dir = "other"  # type: ignore[misc]

    def test_with_changes(self):
        options = ExecutionOptions(output_dir="out")

        changed = options.with_changes(dry_run=True)

        assert changed.dry_run is True
        assert changed.output_dir == "out"
        assert options.dry_run is False


class TestPhases:
    """Tests for phase lookup."""

    @pytest.mark.parametrize(
        ("migration_type", "phase"),
        [
            ("TABLE", MigrationPhase.STRUCTURE),
            ("copy", MigrationPhase.DATA),
            (MigrationType.INDEX, MigrationPhase.INDEX),
            (MigrationType.PROCEDURE, MigrationPhase.FUNCTION),
            (MigrationType.GRANT, MigrationPhase.GRANT),
            (MigrationType.PACKAGE, MigrationPhase.STRUCTURE),
            ("UNKNOWN", MigrationPhase.STRUCTURE),
        ],
    )
    def test_get_phase_for_type(self, migration_type, phase):
        assert get_phase_for_type(migration_type) is phase

    def test_state_percentage(self):
        assert MigrationState().percentage == 0.0
        assert MigrationState(total_steps=4, completed_steps=1).percentage == 25.0


class TestDefaultLogFile:
    def test_name_contains_type_and_timestamp(self, tmp_path):
        path = default_log_file(tmp_path, MigrationType.VIEW, now=datetime(2024, 5, 6, 7, 8, 9))

        assert path == tmp_path / "ora2pg-VIEW-20240506-070809.log"
