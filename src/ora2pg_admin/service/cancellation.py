"""Cancellation of running migrations.

A CancellationToken is shared by everything that takes part in one
migration run. It fires when the user interrupts the run (SIGINT or
SIGTERM), when code calls ``cancel()``, or when an optional overall
deadline passes. The process supervisor races it against the child
process, and the migration service checks it before starting each step.
"""

import asyncio
import signal
import time
from enum import Enum

from ora2pg_admin.utils.logging import get_logger

logger = get_logger(__name__)


class CancelReason(Enum):
    """Why a run was cancelled."""

    REQUESTED = "cancellation requested"
    SIGNAL_SIGINT = "interrupted (SIGINT)"
    SIGNAL_SIGTERM = "terminated (SIGTERM)"
    DEADLINE_EXCEEDED = "deadline exceeded"


class CancellationToken:
    """Event-based cancellation signal with an optional deadline.

    Args:
        timeout: Seconds from creation after which the token cancels itself
            (None or 0 for no deadline)

    Example:
        >>> token = CancellationToken(timeout=7200)
        >>> token.register_signals()
        >>> results = await service.execute_with_progress(types, tracker, token)
    """

    def __init__(self, timeout: float | None = None):
        self._event = asyncio.Event()
        self._reason: CancelReason | None = None
        self._deadline = time.monotonic() + timeout if timeout else None
        self._signal_handlers_registered = False

    @property
    def reason(self) -> str | None:
        """Human readable reason, or None while not cancelled."""
        self._check_deadline()
        return self._reason.value if self._reason else None

    @property
    def cancelled(self) -> bool:
        self._check_deadline()
        return self._event.is_set()

    @property
    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self, reason: CancelReason = CancelReason.REQUESTED) -> None:
        """Fire the token. Later calls keep the first reason."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.info("cancellation_requested", reason=reason.value)

    async def wait(self) -> str:
        """Block until the token fires; return the reason."""
        self._check_deadline()
        remaining = self.remaining
        if remaining is None:
            await self._event.wait()
        else:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=remaining)
            except TimeoutError:
                self.cancel(CancelReason.DEADLINE_EXCEEDED)
        return self.reason or CancelReason.REQUESTED.value

    def _check_deadline(self) -> None:
        if self._deadline is not None and not self._event.is_set():
            if time.monotonic() >= self._deadline:
                self.cancel(CancelReason.DEADLINE_EXCEEDED)

    def register_signals(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Cancel the token on SIGINT and SIGTERM.

        Args:
            loop: Event loop to register handlers on. Defaults to the
                running event loop.
        """
        if self._signal_handlers_registered:
            logger.warning("signal_handlers_already_registered")
            return

        loop = loop or asyncio.get_running_loop()
        reasons = {
            signal.SIGINT: CancelReason.SIGNAL_SIGINT,
            signal.SIGTERM: CancelReason.SIGNAL_SIGTERM,
        }
        for sig, reason in reasons.items():
            try:
                loop.add_signal_handler(sig, self.cancel, reason)
            except (NotImplementedError, RuntimeError):
                # No add_signal_handler on Windows loops or outside the main thread
                logger.warning("signal_handling_not_supported", signal=sig.name)

        self._signal_handlers_registered = True
        logger.debug("signal_handlers_registered")

    def unregister_signals(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Restore default handling for SIGINT and SIGTERM."""
        if not self._signal_handlers_registered:
            return

        loop = loop or asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, ValueError):
                pass

        self._signal_handlers_registered = False
        logger.debug("signal_handlers_unregistered")
