"""Progress display and console styling for migration runs."""

from ora2pg_admin.reporting.colors import ConsoleColors, status_style
from ora2pg_admin.reporting.progress import ProgressTracker, ProgressUpdate

__all__ = [
    "ConsoleColors",
    "status_style",
    "ProgressTracker",
    "ProgressUpdate",
]
