from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List

from guess_client.exceptions import RemoteReadError
from guess_client.interfaces import EventCallback

logger = logging.getLogger(__name__)


class EventWatch:
    """
    Background task that polls a ledger for new events and hands each
    decoded event to `callback`. Fetch failures are logged and retried on
    the next interval. Returned by the adapters' `subscribe()`.
    """

    def __init__(
        self,
        name: str,
        fetch: Callable[[], Awaitable[List[Dict[str, Any]]]],
        callback: EventCallback,
        interval: float,
    ):
        self.name = name
        self.fetch = fetch
        self.callback = callback
        self.interval = interval
        self._task = asyncio.create_task(self._run(), name=f"watch-{name}")

    async def _run(self) -> None:
        while True:
            try:
                events = await self.fetch()
            except RemoteReadError as exc:
                logger.warning("Polling %s events failed: %s", self.name, exc)
                events = []
            for args in events:
                try:
                    result = self.callback(args)
                    if inspect.isawaitable(result):
                        await result
                except Exception:
                    logger.exception("%s event handler failed", self.name)
            await asyncio.sleep(self.interval)

    async def close(self) -> None:
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
