"""Tests for PeriodicTicker on a real event loop."""

from __future__ import annotations

import asyncio

import pytest

from hikepal.core.ticker import PeriodicTicker


class TestPeriodicTicker:
    @pytest.mark.asyncio
    async def test_fires_until_stopped(self):
        calls = []
        ticker = PeriodicTicker("test", 0.01, lambda: calls.append(1))
        ticker.start()
        await asyncio.sleep(0.055)
        ticker.stop()
        fired = len(calls)
        assert fired >= 2

        await asyncio.sleep(0.05)
        assert len(calls) == fired
        assert not ticker.running

    @pytest.mark.asyncio
    async def test_start_twice_keeps_single_task(self):
        calls = []
        ticker = PeriodicTicker("test", 0.01, lambda: calls.append(1))
        ticker.start()
        task = ticker._task
        ticker.start()
        assert ticker._task is task
        ticker.stop()

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_loop(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first tick fails")

        ticker = PeriodicTicker("flaky", 0.01, flaky)
        ticker.start()
        await asyncio.sleep(0.055)
        ticker.stop()
        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_stop_when_not_started_is_noop(self):
        ticker = PeriodicTicker("idle", 0.01, lambda: None)
        ticker.stop()
        assert not ticker.running
