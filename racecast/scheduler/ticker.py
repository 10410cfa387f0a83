"""
Repeating task

A cancellable fixed-interval loop bound to the running event loop, plus
the helper the agents use to run blocking feed calls off the loop with a
timeout. Stopping prevents future ticks; a tick already in progress runs
to completion.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from functools import partial
from typing import Any, Optional

from racecast.exceptions import ExternalFetchError

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


class RepeatingTask:
    """Runs ``callback`` every ``interval_seconds`` until stopped."""

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        callback: Callable[[], Awaitable[None]],
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.name = name
        self.interval_seconds = interval_seconds
        self.callback = callback
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self._in_callback = False
        self.next_run_time: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Arm the timer; the first tick fires one interval from now."""
        if self.is_running:
            logger.debug(f"[{self.name}] Timer already armed")
            return

        self._generation += 1
        self._task = asyncio.get_running_loop().create_task(
            self._loop(self._generation), name=f"repeating-{self.name}"
        )
        logger.debug(f"[{self.name}] Timer armed: every {self.interval_seconds}s")

    def stop(self) -> None:
        """Cancel future ticks."""
        self._generation += 1
        self.next_run_time = None
        if self._task is not None and not self._in_callback:
            self._task.cancel()
        self._task = None
        logger.debug(f"[{self.name}] Timer cancelled")

    async def _loop(self, generation: int) -> None:
        while generation == self._generation:
            self.next_run_time = datetime.now() + timedelta(seconds=self.interval_seconds)
            await self._sleep(self.interval_seconds)
            if generation != self._generation:
                break

            self._in_callback = True
            try:
                await self.callback()
            except Exception as e:
                logger.exception(f"[{self.name}] Error in scheduled cycle: {e}")
            finally:
                self._in_callback = False


async def call_external(
    func: Callable[..., Any],
    *args: Any,
    timeout: float,
    scope: str,
) -> Any:
    """
    Run a blocking collaborator call in the default executor.

    Raises:
        ExternalFetchError: The call failed or exceeded ``timeout``
    """
    loop = asyncio.get_running_loop()
    try:
        return await asyncio.wait_for(loop.run_in_executor(None, partial(func, *args)), timeout)
    except ExternalFetchError:
        raise
    except asyncio.TimeoutError as e:
        raise ExternalFetchError(f"Timed out after {timeout}s", scope=scope) from e
    except Exception as e:
        raise ExternalFetchError(str(e), scope=scope) from e
