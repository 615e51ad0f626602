"""Draining of one child process output stream."""

import asyncio
from typing import Any

from ora2pg_admin.exceptions import StreamReadError
from ora2pg_admin.service.classifier import LineClassifier, default_classifier
from ora2pg_admin.service.models import ProgressInfo
from ora2pg_admin.utils.logging import get_logger


class OutputPump:
    """Reads a stream line by line until end of data.

    Every line is stored (newline-terminated, in arrival order), classified
    into ``progress`` and, when important, logged. When a matching line
    updates progress and a notification queue was given, a snapshot is
    offered to the queue without blocking; snapshots are dropped when the
    queue is full, captured output never is. Lines longer than the stream
    limit are read in pieces and kept whole.

    ``done`` is set exactly once when the pump finishes, whether the
    stream ended or a read failed.
    """

    def __init__(
        self,
        name: str,
        stream: asyncio.StreamReader,
        progress: ProgressInfo,
        classifier: LineClassifier | None = None,
        logger: Any = None,
        notifications: "asyncio.Queue[ProgressInfo] | None" = None,
    ):
        self.name = name
        self.lines: list[str] = []
        self.done = asyncio.Event()
        self.read_error: StreamReadError | None = None
        self.dropped_notifications = 0
        self.long_lines = 0
        self._stream = stream
        self._progress = progress
        self._classifier = classifier or default_classifier
        self._logger = logger or get_logger(__name__)
        self._notifications = notifications

    async def run(self) -> None:
        try:
            while True:
                raw = await self._read_line()
                if not raw:
                    break
                self._handle_line(_decode_line(raw))
        except OSError as e:
            self.read_error = StreamReadError(self.name, details=str(e))
            self._logger.error("output_read_failed", stream=self.name, error=str(e))
        finally:
            self.done.set()

    async def _read_line(self) -> bytes:
        """Return the next line whatever its length, or b"" at end of data."""
        chunks: list[bytes] = []
        while True:
            try:
                chunks.append(await self._stream.readuntil(b"\n"))
                break
            except asyncio.LimitOverrunError as e:
                # Longer than the stream limit: take the buffered part and keep reading
                chunks.append(await self._stream.readexactly(e.consumed))
            except asyncio.IncompleteReadError as e:
                chunks.append(e.partial)
                break
        if len(chunks) > 1:
            self.long_lines += 1
            self._logger.debug(
                "output_line_reassembled", stream=self.name, size=sum(map(len, chunks))
            )
        return b"".join(chunks)

    def text(self) -> str:
        return "".join(self.lines)

    def _handle_line(self, line: str) -> None:
        self.lines.append(line + "\n")

        if self._classifier.parse(line, self._progress) and self._notifications is not None:
            try:
                self._notifications.put_nowait(self._progress.snapshot())
            except asyncio.QueueFull:
                self.dropped_notifications += 1

        if self._classifier.is_important(line):
            self._logger.info("ora2pg_output", stream=self.name, line=line)


def _decode_line(raw: bytes) -> str:
    line = raw.decode("utf-8", errors="replace")
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line
