"""Custom exceptions for ora2pg-admin.

This module defines exception classes for the error conditions that can
occur while preparing a migration project, rendering the ora2pg
configuration and supervising ora2pg processes.
"""

from pathlib import Path


class Ora2pgAdminError(Exception):
    """Base exception for all ora2pg-admin errors.

    Attributes:
        message: Human readable error message
        code: Stable machine readable error code
        details: Optional extra detail (command output, offending value, ...)
        suggestions: Hints shown to the user on how to resolve the error
    """

    code = "ORA2PG_ADMIN_ERROR"

    def __init__(
        self,
        message: str,
        details: str | None = None,
        suggestions: list[str] | None = None,
    ):
        self.message = message
        self.details = details
        self.suggestions = list(suggestions or [])
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with details."""
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(Ora2pgAdminError):
    """Raised when configuration is invalid or missing."""

    code = "CONFIG_INVALID"


class ConfigValidationError(ConfigurationError):
    """Raised when a configuration fails validation.

    Attributes:
        errors: One entry per failed field, formatted as ``location: message``
    """

    code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = list(errors or [])
        super().__init__(
            message,
            details="; ".join(self.errors) or None,
            suggestions=["Run 'ora2pg-admin config validate' to see every failing field"],
        )


class ProjectNotInitializedError(ConfigurationError):
    """Raised when a command needs a project directory that does not exist."""

    code = "PROJECT_NOT_INITIALIZED"

    def __init__(self, project_dir: Path):
        self.project_dir = project_dir
        super().__init__(
            f"No ora2pg-admin project found in {project_dir}",
            suggestions=["Run 'ora2pg-admin init' to create a project first"],
        )


class FileOperationError(Ora2pgAdminError):
    """Base class for file system errors."""

    code = "FILE_ERROR"

    def __init__(self, message: str, path: str | Path, details: str | None = None):
        self.path = Path(path)
        super().__init__(message, details=details)


class MissingFileError(FileOperationError):
    """Raised when a required file does not exist."""

    code = "FILE_NOT_FOUND"

    def __init__(self, path: str | Path):
        super().__init__(f"File not found: {path}", path)
        self.suggestions = ["Check that the path is correct and the file exists"]


class CreateFailedError(FileOperationError):
    """Raised when a file or directory cannot be created."""

    code = "FILE_CREATE_FAILED"

    def __init__(self, path: str | Path, details: str | None = None):
        super().__init__(f"Failed to create {path}", path, details=details)
        self.suggestions = ["Check write permissions on the parent directory"]


class TemplateError(Ora2pgAdminError):
    """Raised when the ora2pg configuration template cannot be rendered."""

    code = "TEMPLATE_ERROR"


class ToolNotFoundError(Ora2pgAdminError):
    """Raised when the ora2pg executable cannot be located."""

    code = "ORA2PG_NOT_FOUND"

    def __init__(self, executable: str):
        self.executable = executable
        super().__init__(
            f"ora2pg executable not found: {executable}",
            suggestions=[
                "Install ora2pg (https://ora2pg.darold.net/)",
                "Make sure ora2pg is on your PATH or set migration.ora2pg_path",
            ],
        )


class ExecutionError(Ora2pgAdminError):
    """Base class for errors raised while running an external process."""

    code = "EXECUTION_ERROR"


class ProcessStartError(ExecutionError):
    """Raised when the external process could not be started."""

    code = "PROCESS_START_FAILED"

    def __init__(self, command: str, details: str | None = None):
        self.command = command
        super().__init__(f"Failed to start {command}", details=details)


class StreamReadError(ExecutionError):
    """Raised when reading one of the process output streams fails."""

    code = "STREAM_READ_FAILED"

    def __init__(self, stream: str, details: str | None = None):
        self.stream = stream
        super().__init__(f"Failed to read {stream}", details=details)


class NonZeroExitError(ExecutionError):
    """Raised when the process exits with a non-zero status."""

    code = "NON_ZERO_EXIT"

    def __init__(self, exit_code: int, details: str | None = None):
        self.exit_code = exit_code
        super().__init__(f"Process exited with code {exit_code}", details=details)


class ExecutionTimeoutError(ExecutionError):
    """Raised when the process exceeded its timeout and was killed."""

    code = "EXECUTION_TIMEOUT"

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Execution timed out after {timeout:g}s",
            suggestions=["Increase the timeout with --timeout or migration.timeout_minutes"],
        )


class ExecutionCancelledError(ExecutionError):
    """Raised when the process was killed because the run was cancelled."""

    code = "EXECUTION_CANCELLED"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__("Execution cancelled", details=reason)


class MigrationError(Ora2pgAdminError):
    """Raised when migration operations fail."""

    code = "MIGRATION_ERROR"


class MigrationCancelledError(MigrationError):
    """Raised when a multi-step migration stopped before running every step.

    Attributes:
        results: Results of the steps that ran before cancellation
        reason: Why the run was cancelled
    """

    code = "MIGRATION_CANCELLED"

    def __init__(self, reason: str, results: list | None = None):
        self.reason = reason
        self.results = list(results or [])
        super().__init__("Migration cancelled", details=reason)
