from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[object]]


class PeriodicTask:
    """Run a coroutine now and then every `interval` seconds until stopped.

    Ticks never overlap: the next one starts only after the previous callback
    returns, sleeping for whatever is left of the interval. Stopping cancels
    the loop task, including a callback that is still awaiting a request.
    """

    def __init__(self, name: str, interval: float, callback: TickCallback) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._name = name
        self._interval = interval
        self._callback = callback
        self._task: asyncio.Task | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=self._name)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                await self._callback()
            except Exception as exc:
                logger.exception("%s tick failed: %s", self._name, exc)
            elapsed = loop.time() - started
            await asyncio.sleep(max(self._interval - elapsed, 0.0))
