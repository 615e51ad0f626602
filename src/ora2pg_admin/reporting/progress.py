"""Progress tracking for multi-step migrations.

This module provides a progress tracker that spans every ora2pg step of a
migration run. State changes are pushed by callers from any thread; a
background display thread redraws a tqdm progress bar whenever an update
arrives or, at the latest, once per second so the elapsed time keeps
moving while a long step produces no output.
"""

import queue
import threading
import time
from dataclasses import dataclass
from typing import IO, Any

from tqdm import tqdm

from ora2pg_admin.i18n import t
from ora2pg_admin.utils.logging import get_logger

logger = get_logger(__name__)

BAR_WIDTH = 30
REFRESH_INTERVAL = 1.0
UPDATE_QUEUE_SIZE = 100


@dataclass(frozen=True)
class ProgressUpdate:
    """Snapshot pushed to the display thread."""

    current_step: int
    total_steps: int
    percentage: float
    message: str
    details: str = ""


class ProgressTracker:
    """Tracks and displays migration progress in real-time.

    Lifecycle is NotStarted -> Running -> Stopped. Mutators called while the
    tracker is not running are ignored. All state is guarded by one lock.

    Args:
        enable: Whether to draw the progress bar (False for CI/automation)
        file: Stream the bar is drawn on (defaults to stderr)
        refresh_interval: Seconds between redraws without updates
        queue_size: Capacity of the update queue; updates beyond it are dropped
    """

    def __init__(
        self,
        enable: bool = True,
        file: IO[str] | None = None,
        refresh_interval: float = REFRESH_INTERVAL,
        queue_size: int = UPDATE_QUEUE_SIZE,
    ):
        self.enable = enable
        self._file = file
        self._refresh_interval = refresh_interval
        self._lock = threading.Lock()
        self._updates: queue.Queue[ProgressUpdate | None] = queue.Queue(maxsize=queue_size)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._bar: tqdm | None = None
        self._started = False
        self.dropped_updates = 0

        self._task_name = ""
        self._total_steps = 0
        self._current_step = 0
        self._message = t("tracker.preparing")
        self._details = ""
        self._percentage = 0.0
        self._start_time = 0.0
        self._last_update = 0.0
        self._stop_time: float | None = None
        self._running = False

    # Lifecycle

    def start(self, task_name: str, total_steps: int) -> None:
        """Start tracking and spawn the display thread.

        Raises:
            RuntimeError: If the tracker was already started
        """
        with self._lock:
            if self._started:
                raise RuntimeError("Progress tracker can only be started once")
            self._started = True
            self._task_name = task_name
            self._total_steps = max(0, total_steps)
            self._current_step = 0
            self._message = t("tracker.preparing")
            self._percentage = 0.0
            self._start_time = time.monotonic()
            self._last_update = self._start_time
            self._running = True

            if self.enable:
                self._bar = tqdm(
                    total=100,
                    desc=self._describe(),
                    file=self._file,
                    leave=True,
                    dynamic_ncols=False,
                    bar_format="{desc} |{bar:%d}| {percentage:5.1f}%% [{elapsed}] {postfix}"
                    % BAR_WIDTH,
                )

            self._thread = threading.Thread(
                target=self._display_loop, name="progress-tracker", daemon=True
            )
            self._thread.start()

        logger.info("progress_tracker_started", task=task_name, total_steps=total_steps)

    def stop(self) -> None:
        """Stop the display thread and close the bar.

        Blocks until the display thread has exited, so nothing is drawn
        after this returns. Calling it again is a no-op.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._stop_time = time.monotonic()
            self._stop_event.set()
            elapsed = self._stop_time - self._start_time
            percentage = self._percentage
            dropped = self.dropped_updates

        try:
            self._updates.put_nowait(None)
        except queue.Full:
            pass

        if self._thread is not None:
            self._thread.join()

        with self._lock:
            if self._bar is not None:
                self._draw()
                self._bar.close()
                self._bar = None

        logger.info(
            "progress_tracker_stopped",
            task=self._task_name,
            elapsed=round(elapsed, 3),
            percentage=round(percentage, 1),
            dropped_updates=dropped,
        )

    # Mutators

    def update_step(self, step: int, message: str) -> None:
        """Move to ``step`` of the total and recompute the percentage."""
        with self._lock:
            if not self._running:
                return
            self._current_step = step
            self._message = message
            self._details = ""
            if self._total_steps > 0:
                self._percentage = min(100.0, max(0.0, step / self._total_steps * 100))
            self._enqueue(self._touch())

    def update_progress(self, percentage: float, details: str = "") -> None:
        """Set the percentage directly, with an optional detail line."""
        with self._lock:
            if not self._running:
                return
            self._percentage = min(100.0, max(0.0, percentage))
            self._details = details
            self._enqueue(self._touch())

    def set_message(self, message: str) -> None:
        with self._lock:
            if not self._running:
                return
            self._message = message
            self._enqueue(self._touch())

    def add_step(self, message: str) -> None:
        """Advance by one step."""
        with self._lock:
            if not self._running:
                return
            step = self._current_step + 1
        self.update_step(step, message)

    def complete(self) -> None:
        """Mark every step as done."""
        with self._lock:
            if not self._running:
                return
            self._current_step = self._total_steps
            self._percentage = 100.0
            self._message = t("tracker.completed", task=self._task_name)
            self._details = ""
            self._enqueue(self._touch())

    # Accessors

    def get_current_status(self) -> dict[str, Any]:
        with self._lock:
            elapsed = self._elapsed()
            return {
                "task_name": self._task_name,
                "total_steps": self._total_steps,
                "current_step": self._current_step,
                "current_message": self._message,
                "details": self._details,
                "percentage": self._percentage,
                "elapsed_time": elapsed,
                "since_last_update": max(0.0, self._start_time + elapsed - self._last_update),
                "estimated_time_remaining": _estimate_remaining(elapsed, self._percentage),
                "is_running": self._running,
            }

    def get_progress(self) -> float:
        with self._lock:
            return self._percentage

    def get_current_step(self) -> int:
        with self._lock:
            return self._current_step

    def get_total_steps(self) -> int:
        with self._lock:
            return self._total_steps

    def get_current_message(self) -> str:
        with self._lock:
            return self._message

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def get_elapsed_time(self) -> float:
        """Seconds since start (0 before start)."""
        with self._lock:
            return self._elapsed()

    def get_estimated_time_remaining(self) -> float:
        """Seconds left, extrapolated from elapsed time and percentage."""
        with self._lock:
            return _estimate_remaining(self._elapsed(), self._percentage)

    # Internals

    def _elapsed(self) -> float:
        if not self._started:
            return 0.0
        end = self._stop_time if self._stop_time is not None else time.monotonic()
        return end - self._start_time

    def _touch(self) -> ProgressUpdate:
        self._last_update = time.monotonic()
        return ProgressUpdate(
            current_step=self._current_step,
            total_steps=self._total_steps,
            percentage=self._percentage,
            message=self._message,
            details=self._details,
        )

    def _enqueue(self, update: ProgressUpdate) -> None:
        # Caller holds the lock
        try:
            self._updates.put_nowait(update)
        except queue.Full:
            # The next tick redraws from the latest state anyway
            self.dropped_updates += 1

    def _display_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                update = self._updates.get(timeout=self._refresh_interval)
            except queue.Empty:
                update = None
            if self._stop_event.is_set():
                break
            if update is not None:
                logger.debug(
                    "progress_update",
                    step=update.current_step,
                    total=update.total_steps,
                    percentage=round(update.percentage, 1),
                    message=update.message,
                )
            self._render()

    def _render(self) -> None:
        with self._lock:
            if self._bar is None or not self._running:
                return
            self._draw()

    def _draw(self) -> None:
        if self._bar is not None:
            self._bar.n = self._percentage
            self._bar.set_description_str(self._describe(), refresh=False)
            self._bar.set_postfix_str(self._details, refresh=False)
            self._bar.refresh()

    def _describe(self) -> str:
        return f"[{self._current_step}/{self._total_steps}] {self._message}"


def _estimate_remaining(elapsed: float, percentage: float) -> float:
    if percentage <= 0:
        return 0.0
    remaining = elapsed / percentage * 100 - elapsed
    return max(0.0, remaining)

