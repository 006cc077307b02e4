"""
retry.py
Polling policy shared by the bootstrapper and the confirmation waiter.

A policy is `{interval, max_attempts, timeout, cancel}`; leaving
`max_attempts` and `timeout` unset polls forever. The cancel event lets
`GuessNumberClient.stop()` interrupt any wait immediately.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional, TypeVar

from guess_client.exceptions import PollCancelled, RetryExhausted

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    interval: float
    max_attempts: Optional[int] = None
    timeout: Optional[float] = None
    cancel: Optional[asyncio.Event] = None

    def with_interval(self, interval: float) -> "RetryPolicy":
        return replace(self, interval=interval)

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    async def pause(self) -> None:
        """Sleep one interval. Raises PollCancelled if cancel fires first."""
        if self.cancel is None:
            await asyncio.sleep(self.interval)
            return
        if self.cancel.is_set():
            raise PollCancelled("poll cancelled")
        try:
            await asyncio.wait_for(self.cancel.wait(), timeout=self.interval)
        except asyncio.TimeoutError:
            return
        raise PollCancelled("poll cancelled")

    async def poll(self, probe: Callable[[], Awaitable[Optional[T]]], what: str = "poll") -> T:
        """
        Await `probe()` until it returns something other than None.

        Raises RetryExhausted when `max_attempts` or `timeout` is hit and
        PollCancelled when the cancel event is set.
        """
        if self.timeout is None:
            return await self._poll(probe, what)
        try:
            async with asyncio.timeout(self.timeout):
                return await self._poll(probe, what)
        except TimeoutError as exc:
            raise RetryExhausted(f"{what}: no result after {self.timeout:.1f}s") from exc

    async def _poll(self, probe: Callable[[], Awaitable[Optional[T]]], what: str) -> T:
        attempts = 0
        while True:
            if self.cancelled:
                raise PollCancelled(f"{what}: cancelled")
            attempts += 1
            result = await probe()
            if result is not None:
                return result
            if self.max_attempts is not None and attempts >= self.max_attempts:
                raise RetryExhausted(f"{what}: gave up after {attempts} attempts")
            await self.pause()
