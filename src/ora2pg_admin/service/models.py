"""Data models for ora2pg executions.

ExecutionResult is created when a step starts, mutated by the process
supervisor while the child runs and frozen once it reaches a terminal
status. ProgressInfo is owned by a single execution and only changed by
the line classifier.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum, StrEnum
from pathlib import Path
from typing import Any


class MigrationType(StrEnum):
    """Object types ora2pg can export (the ``-t`` argument)."""

    TABLE = "TABLE"
    VIEW = "VIEW"
    SEQUENCE = "SEQUENCE"
    INDEX = "INDEX"
    TRIGGER = "TRIGGER"
    FUNCTION = "FUNCTION"
    PROCEDURE = "PROCEDURE"
    PACKAGE = "PACKAGE"
    TYPE = "TYPE"
    GRANT = "GRANT"
    COPY = "COPY"
    INSERT = "INSERT"


class MigrationPhase(StrEnum):
    """Coarse grouping of migration types used for reporting."""

    STRUCTURE = "STRUCTURE"
    DATA = "DATA"
    INDEX = "INDEX"
    FUNCTION = "FUNCTION"
    GRANT = "GRANT"


PHASE_BY_TYPE: dict[MigrationType, MigrationPhase] = {
    MigrationType.TABLE: MigrationPhase.STRUCTURE,
    MigrationType.VIEW: MigrationPhase.STRUCTURE,
    MigrationType.SEQUENCE: MigrationPhase.STRUCTURE,
    MigrationType.COPY: MigrationPhase.DATA,
    MigrationType.INSERT: MigrationPhase.DATA,
    MigrationType.INDEX: MigrationPhase.INDEX,
    MigrationType.FUNCTION: MigrationPhase.FUNCTION,
    MigrationType.PROCEDURE: MigrationPhase.FUNCTION,
    MigrationType.TRIGGER: MigrationPhase.FUNCTION,
    MigrationType.GRANT: MigrationPhase.GRANT,
}


def get_phase_for_type(migration_type: MigrationType | str) -> MigrationPhase:
    """Return the phase a migration type belongs to (STRUCTURE when unlisted)."""
    try:
        key = MigrationType(str(migration_type).upper())
    except ValueError:
        return MigrationPhase.STRUCTURE
    return PHASE_BY_TYPE.get(key, MigrationPhase.STRUCTURE)


class ExecutionStatus(Enum):
    """Lifecycle of one ora2pg execution."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ExecutionStatus.COMPLETED,
            ExecutionStatus.FAILED,
            ExecutionStatus.CANCELLED,
        )


@dataclass
class ProgressInfo:
    """Structured progress derived from ora2pg output."""

    current_step: str = ""
    total_steps: int = 0
    completed_steps: int = 0
    percentage: float = 0.0
    processed_rows: int = 0
    total_rows: int = 0
    message: str = ""

    def update_steps(self, completed: int, total: int) -> None:
        """Set step counters and recompute the percentage.

        When ``total`` is zero the previous percentage is kept.
        """
        self.completed_steps = completed
        self.total_steps = total
        if total > 0:
            self.percentage = completed / total * 100

    @property
    def has_data(self) -> bool:
        return self != ProgressInfo()

    def snapshot(self) -> "ProgressInfo":
        """Return an independent copy of the current values."""
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExecutionOptions:
    """Inputs for one ora2pg execution.

    Attributes:
        config_file: ora2pg configuration file passed with ``-c``
        output_dir: Output directory passed with ``-o``
        log_file: Log file passed with ``-l``
        dry_run: Pass ``-n``
        verbose: Pass ``-v``
        timeout: Seconds before the process is killed (0 disables the timeout)
        working_dir: Working directory of the child process
        environment: Variables overlaid on the inherited environment
    """

    config_file: str = ""
    output_dir: str = ""
    log_file: str = ""
    dry_run: bool = False
    verbose: bool = False
    timeout: float = 0
    working_dir: str = ""
    environment: Mapping[str, str] = field(default_factory=dict)

    def with_changes(self, **changes: Any) -> "ExecutionOptions":
        return replace(self, **changes)


@dataclass
class ExecutionResult:
    """Outcome of running ora2pg for one migration type."""

    migration_type: MigrationType | None = None
    status: ExecutionStatus = ExecutionStatus.PENDING
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    duration: float = 0.0
    exit_code: int = 0
    output: str = ""
    error_output: str = ""
    progress: ProgressInfo | None = None
    error: Exception | None = None
    pid: int | None = None

    def mark_running(self, pid: int | None = None) -> None:
        """Move from PENDING to RUNNING."""
        if self.status is not ExecutionStatus.PENDING:
            raise RuntimeError(f"Cannot start an execution in status {self.status.value}")
        self.status = ExecutionStatus.RUNNING
        self.pid = pid

    def finish(self, exit_code: int, error: Exception | None = None) -> None:
        """Record the terminal state.

        The status is COMPLETED only for a zero exit code without error;
        everything else, cancellation and timeout included, is FAILED.
        """
        if self.status.is_terminal:
            raise RuntimeError(f"Execution already finished with status {self.status.value}")
        self.end_time = datetime.now(UTC)
        self.duration = (self.end_time - self.start_time).total_seconds()
        self.exit_code = exit_code
        self.error = error
        if exit_code == 0 and error is None:
            self.status = ExecutionStatus.COMPLETED
        else:
            self.status = ExecutionStatus.FAILED

    def fail(self, error: Exception) -> None:
        """Record a failure that happened before the process ran."""
        self.finish(-1, error)

    @property
    def succeeded(self) -> bool:
        return self.status is ExecutionStatus.COMPLETED

    def raise_for_status(self) -> "ExecutionResult":
        """Raise the recorded error if the execution did not succeed."""
        if self.error is not None:
            raise self.error
        return self

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.migration_type.value if self.migration_type else None,
            "status": self.status.value,
            "duration": round(self.duration, 3),
            "exit_code": self.exit_code,
        }
        if self.progress is not None:
            data["progress"] = self.progress.to_dict()
        if self.error is not None:
            data["error"] = str(self.error)
        return data


@dataclass
class MigrationState:
    """Bookkeeping for a multi-step migration run."""

    current_phase: MigrationPhase | None = None
    current_type: MigrationType | None = None
    total_steps: int = 0
    completed_steps: int = 0
    start_time: datetime | None = None
    end_time: datetime | None = None
    results: list[ExecutionResult] = field(default_factory=list)
    is_completed: bool = False
    is_cancelled: bool = False

    @property
    def percentage(self) -> float:
        if self.total_steps <= 0:
            return 0.0
        return self.completed_steps / self.total_steps * 100


def default_log_file(
    log_dir: str | Path, migration_type: MigrationType, now: datetime | None = None
) -> Path:
    """Return ``<log_dir>/ora2pg-<TYPE>-<YYYYmmdd-HHMMSS>.log``."""
    now = now or datetime.now()
    return Path(log_dir) / f"ora2pg-{migration_type.value}-{now.strftime('%Y%m%d-%H%M%S')}.log"
