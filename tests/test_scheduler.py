"""Tests for the fixed-period polling driver."""

import asyncio
from unittest.mock import AsyncMock, patch

from hdfsdrop.ingest.scheduler import run_forever


class TestRunForever:
    async def test_runs_requested_number_of_ticks(self, ingest_config, client):
        with patch("hdfsdrop.ingest.scheduler.run_tick", new_callable=AsyncMock) as tick:
            ticks = await run_forever(ingest_config, client=client, interval=0.01, max_ticks=3)

        assert ticks == 3
        assert tick.await_count == 3

    async def test_ticks_never_overlap(self, ingest_config, client):
        running = 0
        peak = 0

        async def slow_tick(*args, **kwargs):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            # Longer than the interval below.
            await asyncio.sleep(0.03)
            running -= 1

        with patch("hdfsdrop.ingest.scheduler.run_tick", side_effect=slow_tick):
            await run_forever(ingest_config, client=client, interval=0.01, max_ticks=4)

        assert peak == 1

    async def test_tick_failure_does_not_stop_loop(self, ingest_config, client, caplog):
        tick = AsyncMock(side_effect=[RuntimeError("listing exploded"), None, None])

        with patch("hdfsdrop.ingest.scheduler.run_tick", tick):
            ticks = await run_forever(ingest_config, client=client, interval=0.01, max_ticks=3)

        assert ticks == 3
        assert "Tick failed" in caplog.text

    async def test_stop_event_ends_loop(self, ingest_config, client):
        stop = asyncio.Event()

        async def tick_then_stop(*args, **kwargs):
            stop.set()

        with patch("hdfsdrop.ingest.scheduler.run_tick", side_effect=tick_then_stop):
            ticks = await asyncio.wait_for(
                run_forever(ingest_config, client=client, interval=60, stop=stop),
                timeout=5,
            )

        assert ticks == 1

    async def test_sleeps_remainder_of_period(self, ingest_config, client):
        with (
            patch("hdfsdrop.ingest.scheduler.run_tick", new_callable=AsyncMock),
            patch("hdfsdrop.ingest.scheduler.asyncio.sleep", new_callable=AsyncMock) as sleep,
        ):
            await run_forever(ingest_config, client=client, interval=60, max_ticks=2)

        # One sleep between two ticks, close to the full period.
        assert sleep.await_count == 1
        assert 59 < sleep.await_args.args[0] <= 60

    async def test_default_interval_from_config(self, ingest_config, client):
        with (
            patch("hdfsdrop.ingest.scheduler.run_tick", new_callable=AsyncMock),
            patch("hdfsdrop.ingest.scheduler.asyncio.sleep", new_callable=AsyncMock) as sleep,
        ):
            await run_forever(ingest_config, client=client, max_ticks=2)

        assert sleep.await_args.args[0] <= ingest_config.poll_interval_seconds
        assert sleep.await_args.args[0] > ingest_config.poll_interval_seconds - 1
