"""Supervised execution of the ora2pg command line tool."""

from ora2pg_admin.service.cancellation import CancellationToken, CancelReason
from ora2pg_admin.service.classifier import LineClassifier, parse_progress
from ora2pg_admin.service.models import (
    ExecutionOptions,
    ExecutionResult,
    ExecutionStatus,
    MigrationPhase,
    MigrationType,
    ProgressInfo,
)
from ora2pg_admin.service.pump import OutputPump
from ora2pg_admin.service.supervisor import ProcessSupervisor

__all__ = [
    "CancellationToken",
    "CancelReason",
    "LineClassifier",
    "parse_progress",
    "ExecutionOptions",
    "ExecutionResult",
    "ExecutionStatus",
    "MigrationPhase",
    "MigrationType",
    "ProgressInfo",
    "OutputPump",
    "ProcessSupervisor",
]
