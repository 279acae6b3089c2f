"""Cancellable periodic refresh owned by a page-level tracker."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from home_helper.config import settings

logger = logging.getLogger(__name__)


class PollingSubscription:
    """Runs ``callback`` every ``interval`` seconds until stopped.

    The first call happens one interval after ``start()``; the owner is
    expected to have fetched once already. A failing callback is logged and
    polling continues.
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[Any]],
        interval: Optional[float] = None,
        name: str = "poll",
    ) -> None:
        self._callback = callback
        self._interval = interval if interval is not None else settings.polling.interval_sec
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self.runs = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.active:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self._name)
        logger.debug("Polling '%s' every %.1fs", self._name, self._interval)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.runs += 1
            try:
                await self._callback()
            except Exception:
                logger.exception("Polling '%s' run %d failed", self._name, self.runs)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.debug("Polling '%s' stopped after %d runs", self._name, self.runs)

    async def __aenter__(self) -> PollingSubscription:
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()
