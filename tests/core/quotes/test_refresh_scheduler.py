"""
Tests for the refresh scheduler.
"""

import asyncio

import pytest

from quotekit.core.quotes.scheduler import RefreshScheduler


class TestRefreshScheduler:
    """Tests for RefreshScheduler arming, cancelling and the ceiling."""

    @pytest.mark.asyncio
    async def test_fires_after_interval(self):
        fired = asyncio.Event()
        scheduler = RefreshScheduler(interval_seconds=0.01)

        scheduler.arm(fired.set)

        await asyncio.wait_for(fired.wait(), timeout=1)
        assert scheduler.armed is False

    @pytest.mark.asyncio
    async def test_awaits_async_callbacks(self):
        done = asyncio.Event()

        async def callback():
            done.set()

        RefreshScheduler(interval_seconds=0.01).arm(callback)

        await asyncio.wait_for(done.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_rearm_replaces_pending_timer(self):
        calls = []
        scheduler = RefreshScheduler(interval_seconds=0.02)

        scheduler.arm(lambda: calls.append("first"))
        scheduler.arm(lambda: calls.append("second"))
        await asyncio.sleep(0.06)

        assert calls == ["second"]

    @pytest.mark.asyncio
    async def test_cancel(self):
        calls = []
        scheduler = RefreshScheduler(interval_seconds=0.01)

        scheduler.arm(lambda: calls.append(1))
        scheduler.cancel()
        await asyncio.sleep(0.03)

        assert calls == []
        assert scheduler.armed is False

    @pytest.mark.asyncio
    async def test_halts_past_ceiling(self, clock):
        calls = []
        halted = []
        scheduler = RefreshScheduler(
            interval_seconds=0.01,
            ceiling_seconds=120,
            clock=clock,
            on_halt=halted.append,
        )
        scheduler.reset_ceiling()

        clock.advance(121)
        scheduler.arm(lambda: calls.append(1))
        await asyncio.sleep(0.03)

        assert calls == []
        assert scheduler.halted is True
        assert len(halted) == 1
        assert halted[0].ceiling_seconds == 120

        # Halted schedulers ignore arm until the ceiling is reset
        scheduler.arm(lambda: calls.append(2))
        assert scheduler.armed is False

        scheduler.reset_ceiling()
        assert scheduler.halted is False
