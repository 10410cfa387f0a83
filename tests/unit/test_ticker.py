"""
Unit tests for the repeating task and external call helper.
"""

import asyncio
import time

import pytest

from racecast.exceptions import ExternalFetchError
from racecast.scheduler.ticker import RepeatingTask, call_external


async def _spin(turns: int = 20) -> None:
    for _ in range(turns):
        await asyncio.sleep(0)


class TestRepeatingTask:
    """Test the fixed-interval loop."""

    @pytest.mark.asyncio
    async def test_ticks_until_stopped(self):
        calls = []
        sleeps = []

        async def callback():
            calls.append(1)

        async def fast_sleep(seconds):
            sleeps.append(seconds)
            await asyncio.sleep(0)

        task = RepeatingTask("test", 300, callback, sleep=fast_sleep)
        task.start()
        await _spin()
        task.stop()
        ticks = len(calls)
        await _spin()

        assert ticks > 0
        assert len(calls) == ticks
        assert set(sleeps) == {300}
        assert task.is_running is False

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, hold_sleep):
        async def callback():
            pass

        task = RepeatingTask("test", 5, callback, sleep=hold_sleep)
        task.start()
        first = task._task
        task.start()

        assert task._task is first
        task.stop()

    @pytest.mark.asyncio
    async def test_stop_lets_running_tick_finish(self):
        release = asyncio.Event()
        entered = asyncio.Event()
        finished = []

        async def callback():
            entered.set()
            await release.wait()
            finished.append(1)

        async def fast_sleep(_seconds):
            await asyncio.sleep(0)

        task = RepeatingTask("test", 1, callback, sleep=fast_sleep)
        task.start()
        await asyncio.wait_for(entered.wait(), timeout=1)

        task.stop()
        release.set()
        await _spin()

        assert finished == [1]

    @pytest.mark.asyncio
    async def test_callback_error_does_not_stop_loop(self):
        calls = []

        async def callback():
            calls.append(1)
            raise RuntimeError("cycle failed")

        async def fast_sleep(_seconds):
            await asyncio.sleep(0)

        task = RepeatingTask("test", 1, callback, sleep=fast_sleep)
        task.start()
        await _spin()
        task.stop()

        assert len(calls) > 1


class TestCallExternal:
    """Test blocking calls run off the loop."""

    @pytest.mark.asyncio
    async def test_returns_value(self):
        assert await call_external(lambda a, b: a + b, 2, 3, timeout=1, scope="sum") == 5

    @pytest.mark.asyncio
    async def test_wraps_errors(self):
        def boom():
            raise ValueError("bad payload")

        with pytest.raises(ExternalFetchError) as exc_info:
            await call_external(boom, timeout=1, scope="meets")

        assert exc_info.value.scope == "meets"
        assert "bad payload" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout(self):
        with pytest.raises(ExternalFetchError, match="Timed out"):
            await call_external(time.sleep, 0.5, timeout=0.05, scope="slow")
