"""Supervision of external processes.

ProcessSupervisor runs one command to completion, or kills it, and turns
everything that happened into an ExecutionResult:

1. Start the child with both output streams piped.
2. Drain stdout and stderr concurrently with one OutputPump each. Reading
   them one after the other deadlocks as soon as the child fills the pipe
   nobody is reading.
3. Race process exit against the cancellation token and the timeout. The
   first to fire decides the outcome; a losing child is killed.
4. Wait for both pumps before assembling the result so no buffered output
   is lost when the child exits quickly. A background process still holding
   the pipes after the exit is bounded by the same timeout and token.
"""

import asyncio
import contextlib
import os
import signal
import sys
from collections.abc import Mapping, Sequence
from typing import Any

from ora2pg_admin.exceptions import (
    ExecutionCancelledError,
    ExecutionTimeoutError,
    NonZeroExitError,
    ProcessStartError,
)
from ora2pg_admin.service.cancellation import CancelReason, CancellationToken
from ora2pg_admin.service.classifier import LineClassifier, default_classifier
from ora2pg_admin.service.models import ExecutionOptions, ExecutionResult, ProgressInfo
from ora2pg_admin.service.pump import OutputPump
from ora2pg_admin.utils.logging import get_logger

# Stream buffer limit; longer lines are read in pieces
DEFAULT_LINE_LIMIT = 1024 * 1024

# How long buffered output may still be read after a kill
DRAIN_GRACE = 1.0

_POSIX = sys.platform != "win32"


def build_environment(overlay: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the inherited environment with ``overlay`` applied on top."""
    env = dict(os.environ)
    if overlay:
        env.update({str(key): str(value) for key, value in overlay.items()})
    return env


class ProcessSupervisor:
    """Runs external commands and captures their outcome.

    Args:
        logger: structlog-style logger for lifecycle events and important
            output lines (defaults to this module's logger)
        classifier: Line classifier shared by both output pumps
        line_limit: Stream buffer limit in bytes; longer lines are still kept whole
    """

    def __init__(
        self,
        logger: Any = None,
        classifier: LineClassifier | None = None,
        line_limit: int = DEFAULT_LINE_LIMIT,
    ):
        self._logger = logger or get_logger(__name__)
        self._classifier = classifier or default_classifier
        self._line_limit = line_limit

    async def execute(
        self,
        args: Sequence[str],
        options: ExecutionOptions,
        cancel_token: CancellationToken | None = None,
        progress_queue: "asyncio.Queue[ProgressInfo] | None" = None,
        result: ExecutionResult | None = None,
    ) -> ExecutionResult:
        """Run ``args`` and return the populated result.

        Failures never raise out of this method: they are recorded on the
        returned result. Call ``result.raise_for_status()`` to turn a
        failure back into an exception.

        Args:
            args: Command and arguments, ``args[0]`` being the executable
            options: Working directory, environment overlay and timeout
            cancel_token: Kills the child when it fires
            progress_queue: Receives progress snapshots as output is parsed
            result: Pre-created PENDING result to fill in

        Returns:
            ExecutionResult in a terminal status
        """
        result = result or ExecutionResult()
        command = args[0] if args else ""

        if not args:
            result.fail(ProcessStartError(command, details="empty command"))
            return result

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=options.working_dir or None,
                env=build_environment(options.environment),
                limit=self._line_limit,
                start_new_session=_POSIX,
            )
        except (OSError, ValueError) as e:
            error = ProcessStartError(command, details=str(e))
            self._logger.error("process_start_failed", command=command, error=str(e))
            result.fail(error)
            return result

        result.mark_running(process.pid)
        self._logger.info("process_started", command=command, args=list(args[1:]), pid=process.pid)

        progress = result.progress if result.progress is not None else ProgressInfo()
        pumps = [
            self._create_pump("stdout", process.stdout, progress, progress_queue),
            self._create_pump("stderr", process.stderr, progress, progress_queue),
        ]
        pump_tasks = [asyncio.create_task(pump.run(), name=f"pump-{pump.name}") for pump in pumps]

        timeout = options.timeout if options.timeout and options.timeout > 0 else None
        deadline = asyncio.get_running_loop().time() + timeout if timeout else None

        try:
            error = await self._wait_for_exit(process, timeout, cancel_token)
            if error is None:
                error = await self._wait_for_output(
                    process, pump_tasks, timeout, deadline, cancel_token
                )
            # Barrier: both streams fully drained, or stopped after a kill
            if error is None:
                await asyncio.gather(*pump_tasks)
            else:
                await self._stop_pumps(pump_tasks)
        except asyncio.CancelledError:
            # Caller cancelled us: never leave the child running
            self._kill(process)
            await asyncio.shield(process.wait())
            for task in pump_tasks:
                task.cancel()
            raise

        stdout_pump, stderr_pump = pumps
        result.output = stdout_pump.text()
        result.error_output = stderr_pump.text()
        result.progress = progress if progress.has_data else None

        if error is None:
            returncode = process.returncode
            if returncode is not None and returncode < 0:
                exit_code = -1
                error = NonZeroExitError(
                    exit_code, details=f"terminated by signal {_signal_name(-returncode)}"
                )
            else:
                exit_code = returncode or 0
                if exit_code != 0:
                    error = NonZeroExitError(exit_code, details=_last_line(result.error_output))
        else:
            exit_code = -1

        if error is None:
            error = next((pump.read_error for pump in pumps if pump.read_error), None)

        result.finish(exit_code, error)

        log = self._logger.info if result.succeeded else self._logger.warning
        log(
            "process_finished",
            command=command,
            pid=process.pid,
            status=result.status.value,
            exit_code=exit_code,
            duration=round(result.duration, 3),
            error=str(error) if error else None,
        )
        return result

    def _create_pump(
        self,
        name: str,
        stream: asyncio.StreamReader | None,
        progress: ProgressInfo,
        notifications: "asyncio.Queue[ProgressInfo] | None",
    ) -> OutputPump:
        if stream is None:
            raise RuntimeError(f"{name} of the child process is not piped")
        return OutputPump(
            name,
            stream,
            progress,
            classifier=self._classifier,
            logger=self._logger,
            notifications=notifications,
        )

    async def _wait_for_exit(
        self,
        process: asyncio.subprocess.Process,
        timeout: float | None,
        cancel_token: CancellationToken | None,
    ) -> Exception | None:
        """Race exit, cancellation and timeout.

        Returns:
            None when the process exited on its own, otherwise the
            cancellation or timeout error (the process is killed and reaped)
        """
        wait_task = asyncio.create_task(process.wait(), name="process-wait")
        waiters: set[asyncio.Task] = {wait_task}
        cancel_task = None
        if cancel_token is not None:
            cancel_task = asyncio.create_task(cancel_token.wait(), name="cancel-wait")
            waiters.add(cancel_task)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            wait_task.cancel()
            raise
        finally:
            if cancel_task is not None and not cancel_task.done():
                cancel_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await cancel_task

        if wait_task in done or wait_task.done():
            return None

        if cancel_task is not None and cancel_task in done:
            reason = cancel_task.result()
            error: Exception = ExecutionCancelledError(reason)
            self._logger.warning("process_cancelled", pid=process.pid, reason=reason)
        else:
            error = ExecutionTimeoutError(timeout or 0)
            self._logger.warning("process_timed_out", pid=process.pid, timeout=timeout)

        self._kill(process)
        await wait_task
        return error

    async def _wait_for_output(
        self,
        process: asyncio.subprocess.Process,
        pump_tasks: list[asyncio.Task],
        timeout: float | None,
        deadline: float | None,
        cancel_token: CancellationToken | None,
    ) -> Exception | None:
        """Wait for end of data on both streams after the child exited.

        A background process that inherited the pipes keeps them open past
        the exit, so the rest of the timeout and the token still apply. The
        streams always get at least the grace period, and no more than that
        when the token has already fired.

        Returns:
            None when both streams ended, otherwise the cancellation or
            timeout error (the process group is killed)
        """
        barrier = asyncio.gather(*pump_tasks)
        waiters: set[asyncio.Future] = {barrier}
        remaining = None
        if deadline is not None:
            remaining = max(DRAIN_GRACE, deadline - asyncio.get_running_loop().time())

        cancel_task = None
        if cancel_token is not None:
            if cancel_token.cancelled:
                remaining = DRAIN_GRACE if remaining is None else min(remaining, DRAIN_GRACE)
            else:
                cancel_task = asyncio.create_task(cancel_token.wait(), name="cancel-wait")
                waiters.add(cancel_task)

        try:
            await asyncio.wait(waiters, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if cancel_task is not None and not cancel_task.done():
                cancel_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await cancel_task

        if barrier.done():
            barrier.result()
            return None

        error: Exception
        if cancel_token is not None and cancel_token.cancelled:
            reason = cancel_token.reason or CancelReason.REQUESTED.value
            error = ExecutionCancelledError(reason)
            self._logger.warning("output_drain_cancelled", pid=process.pid, reason=reason)
        else:
            error = ExecutionTimeoutError(timeout or 0)
            self._logger.warning("output_drain_timed_out", pid=process.pid, timeout=timeout)

        self._kill(process)
        return error

    async def _stop_pumps(self, pump_tasks: list[asyncio.Task]) -> None:
        """Let the pumps read what is buffered, then stop them."""
        _, pending = await asyncio.wait(pump_tasks, timeout=DRAIN_GRACE)
        for task in pending:
            task.cancel()
        for outcome in await asyncio.gather(*pump_tasks, return_exceptions=True):
            if isinstance(outcome, Exception):
                self._logger.error("output_pump_failed", error=str(outcome))

    def _kill(self, process: asyncio.subprocess.Process) -> None:
        """Forcibly terminate the child and anything left in its session.

        On POSIX the whole process group is killed, even after the child
        itself exited, so background processes holding the pipes go too.
        """
        if not _POSIX:
            if process.returncode is None:
                process.kill()
            return
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        except PermissionError:
            if process.returncode is None:
                process.kill()


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


def _last_line(text: str) -> str | None:
    for line in reversed(text.splitlines()):
        if line.strip():
            return line.strip()
    return None
