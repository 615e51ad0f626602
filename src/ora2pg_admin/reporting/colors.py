"""Color definitions for console output.

Rich color names shared by the CLI tables, summaries and check reports.
"""

from ora2pg_admin.service.models import ExecutionStatus


class ConsoleColors:
    """Color palette for ora2pg-admin console output.

    Reference: https://rich.readthedocs.io/en/stable/appendix/colors.html
    """

    INFO = "cyan"
    SUCCESS = "green"
    WARNING = "yellow"
    ERROR = "red"
    DEBUG = "dim"

    RUNNING = "yellow"
    COMPLETE = "green"
    FAILED = "red"
    PENDING = "dim"
    CANCELLED = "dark_orange"

    MIGRATION_TYPE = "bright_cyan"
    TIME = "bright_magenta"
    PATH = "bright_blue"

    BORDER = "blue"
    HEADER = "bold bright_white"
    LABEL = "bold"


STATUS_COLORS: dict[ExecutionStatus, str] = {
    ExecutionStatus.PENDING: ConsoleColors.PENDING,
    ExecutionStatus.RUNNING: ConsoleColors.RUNNING,
    ExecutionStatus.COMPLETED: ConsoleColors.COMPLETE,
    ExecutionStatus.FAILED: ConsoleColors.FAILED,
    ExecutionStatus.CANCELLED: ConsoleColors.CANCELLED,
}

STATUS_ICONS: dict[ExecutionStatus, str] = {
    ExecutionStatus.PENDING: "…",
    ExecutionStatus.RUNNING: "▶",
    ExecutionStatus.COMPLETED: "✓",
    ExecutionStatus.FAILED: "✗",
    ExecutionStatus.CANCELLED: "⚠",
}


def status_style(status: ExecutionStatus) -> str:
    return STATUS_COLORS.get(status, ConsoleColors.INFO)
