"""Classification of ora2pg output lines.

ora2pg reports progress as free text, one event per line. Each line is
matched against an ordered list of patterns and the first pattern that
matches updates the ProgressInfo passed in; later patterns are not tried.
Classification keeps no state of its own.
"""

import re
from collections.abc import Callable

from ora2pg_admin.i18n import t
from ora2pg_admin.service.models import ProgressInfo

ProgressExtractor = Callable[[re.Match[str], ProgressInfo], None]

PROCESSING_PATTERN = re.compile(r"Processing\s+(\w+):\s+(\w+)\s+\((\d+)/(\d+)\)")
EXPORTED_ROWS_PATTERN = re.compile(r"Exported\s+(\d+)\s+rows")
TOTAL_ROWS_PATTERN = re.compile(r"Total\s+rows:\s+(\d+)")
LEVEL_MESSAGE_PATTERN = re.compile(r"^(INFO|WARNING|ERROR):\s+(.+)")

IMPORTANT_KEYWORDS = (
    "error:",
    "warning:",
    "fatal:",
    "processing",
    "exported",
    "total",
    "completed",
    "failed",
)


def _apply_processing(match: re.Match[str], progress: ProgressInfo) -> None:
    kind, name, completed, total = match.groups()
    progress.current_step = t("progress.processing", kind=kind, name=name)
    progress.update_steps(int(completed), int(total))


def _apply_exported_rows(match: re.Match[str], progress: ProgressInfo) -> None:
    rows = int(match.group(1))
    progress.processed_rows = rows
    progress.message = t("progress.exported_rows", rows=rows)


def _apply_total_rows(match: re.Match[str], progress: ProgressInfo) -> None:
    progress.total_rows = int(match.group(1))


def _apply_level_message(match: re.Match[str], progress: ProgressInfo) -> None:
    progress.message = match.group(2)


class LineClassifier:
    """Extracts progress from ora2pg output lines.

    Patterns are tried in priority order:

    1. ``Processing <kind>: <name> (<completed>/<total>)``
    2. ``Exported <N> rows``
    3. ``Total rows: <N>``
    4. ``INFO|WARNING|ERROR: <text>``
    """

    def __init__(
        self,
        patterns: list[tuple[re.Pattern[str], ProgressExtractor]] | None = None,
        keywords: tuple[str, ...] = IMPORTANT_KEYWORDS,
    ):
        self._patterns = patterns or [
            (PROCESSING_PATTERN, _apply_processing),
            (EXPORTED_ROWS_PATTERN, _apply_exported_rows),
            (TOTAL_ROWS_PATTERN, _apply_total_rows),
            (LEVEL_MESSAGE_PATTERN, _apply_level_message),
        ]
        self._keywords = tuple(keyword.lower() for keyword in keywords)

    def parse(self, line: str, progress: ProgressInfo) -> bool:
        """Update ``progress`` from ``line``.

        Returns:
            True if a pattern matched, False if the line was left unclassified
        """
        for pattern, extract in self._patterns:
            match = pattern.search(line)
            if match:
                extract(match, progress)
                return True
        return False

    def is_important(self, line: str) -> bool:
        """Return True if the line should be surfaced to the log."""
        if not line:
            return False
        lowered = line.lower()
        return any(keyword in lowered for keyword in self._keywords)


default_classifier = LineClassifier()


def parse_progress(line: str, progress: ProgressInfo) -> bool:
    return default_classifier.parse(line, progress)


def is_important_line(line: str) -> bool:
    return default_classifier.is_important(line)
