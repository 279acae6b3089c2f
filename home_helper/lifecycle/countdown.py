"""
Countdown to a response deadline with exactly-once expiry.

One timer per deadline. It recomputes the remaining seconds immediately on
start and then once per tick, stops ticking when it reaches zero, and calls
``on_expire`` once. The ticking task is owned by the timer and released on
``stop()``/``aclose()`` or when the ``async with`` block exits.

Usage:
    async with CountdownTimer(record.expires_at, on_expire=handle_expiry) as timer:
        print(timer.display())  # "4:59"
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime
from typing import Any, Callable, Optional

from home_helper.config import settings
from home_helper.utils import utc_now

logger = logging.getLogger(__name__)

PLACEHOLDER = "--:--"
EXPIRED_LABEL = "Expired"


def format_remaining(seconds: Optional[int]) -> str:
    """Render remaining seconds as ``m:ss``.

    Examples:
        >>> format_remaining(None)
        '--:--'
        >>> format_remaining(125)
        '2:05'
        >>> format_remaining(0)
        'Expired'
    """
    if seconds is None:
        return PLACEHOLDER
    if seconds <= 0:
        return EXPIRED_LABEL
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


def remaining_seconds(expires_at: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole seconds left until ``expires_at`` (rounded up), 0 once it has passed."""
    if expires_at is None:
        return None
    diff = (expires_at - now).total_seconds()
    if diff <= 0:
        return 0
    return math.ceil(diff)


class CountdownTimer:
    """Live countdown for a single deadline."""

    def __init__(
        self,
        expires_at: Optional[datetime],
        on_expire: Optional[Callable[[], Any]] = None,
        *,
        tick_interval: Optional[float] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._expires_at = expires_at
        self._on_expire = on_expire
        self._tick_interval = tick_interval if tick_interval is not None else settings.timers.tick_sec
        self._clock = clock
        self._remaining: Optional[int] = None
        self._fired = False
        self._task: Optional[asyncio.Task] = None

    @property
    def expires_at(self) -> Optional[datetime]:
        return self._expires_at

    @property
    def remaining(self) -> Optional[int]:
        return self._remaining

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> Optional[int]:
        """Recompute once. Fires ``on_expire`` the first time the count hits zero."""
        if self._fired or self._expires_at is None:
            return self._remaining

        remaining = remaining_seconds(self._expires_at, self._clock())
        if self._remaining is not None:
            remaining = min(remaining, self._remaining)
        self._remaining = remaining

        if remaining == 0:
            self._fired = True
            if self._on_expire is not None:
                self._on_expire()
        return remaining

    def display(self) -> str:
        if self._expires_at is None:
            return ""
        return format_remaining(self._remaining)

    def start(self) -> None:
        """Begin ticking on the running event loop. No-op without a deadline."""
        if self._expires_at is None or self._fired or self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        try:
            while True:
                self.tick()
                if self._fired:
                    return
                await asyncio.sleep(self._tick_interval)
        except Exception:
            logger.exception("Expiry callback failed for deadline %s", self._expires_at)
        finally:
            if self._task is asyncio.current_task():
                self._task = None

    def stop(self) -> None:
        """Cancel ticking. Safe to call repeatedly; never fires ``on_expire``."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def aclose(self) -> None:
        """Stop and wait until the ticking task has actually finished."""
        task = self._task
        self.stop()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def reset(self, expires_at: Optional[datetime]) -> None:
        """Point the timer at a new deadline, restarting it if it was active."""
        if expires_at == self._expires_at:
            return
        restart = self.running or self._fired
        self.stop()
        self._expires_at = expires_at
        self._remaining = None
        self._fired = False
        if restart:
            self.start()

    async def __aenter__(self) -> CountdownTimer:
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
