"""
Unit tests for CancellationToken.
"""

import asyncio

import pytest

from ora2pg_admin.service.cancellation import CancellationToken, CancelReason


class TestCancel:
    """Tests for explicit cancellation."""

    @pytest.mark.asyncio
    async def test_new_token_not_cancelled(self):
        token = CancellationToken()

        assert token.cancelled is False
        assert token.reason is None
        assert token.remaining is None

    @pytest.mark.asyncio
    async def test_first_reason_wins(self):
        token = CancellationToken()

        token.cancel(CancelReason.SIGNAL_SIGTERM)
        token.cancel(CancelReason.REQUESTED)

        assert token.cancelled is True
        assert token.reason == CancelReason.SIGNAL_SIGTERM.value

    @pytest.mark.asyncio
    async def test_wait_returns_reason(self):
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)

        token.cancel(CancelReason.SIGNAL_SIGINT)

        assert await asyncio.wait_for(waiter, timeout=1) == CancelReason.SIGNAL_SIGINT.value


class TestDeadline:
    """Tests for the overall deadline."""

    @pytest.mark.asyncio
    async def test_wait_fires_at_deadline(self):
        token = CancellationToken(timeout=0.05)

        reason = await asyncio.wait_for(token.wait(), timeout=2)

        assert reason == CancelReason.DEADLINE_EXCEEDED.value
        assert token.cancelled is True
        assert token.remaining == 0.0

    @pytest.mark.asyncio
    async def test_deadline_checked_on_access(self):
        token = CancellationToken(timeout=0.01)

        await asyncio.sleep(0.05)

        assert token.cancelled is True
        assert token.reason == CancelReason.DEADLINE_EXCEEDED.value

    @pytest.mark.asyncio
    async def test_zero_timeout_means_no_deadline(self):
        token = CancellationToken(timeout=0)

        assert token.remaining is None
        assert token.cancelled is False


class TestSignals:
    """Tests for signal handler registration."""

    @pytest.mark.asyncio
    async def test_register_and_unregister(self):
        token = CancellationToken()

        token.register_signals()
        token.register_signals()
        token.unregister_signals()
        token.unregister_signals()

        assert token.cancelled is False
