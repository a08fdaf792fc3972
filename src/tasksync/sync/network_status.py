# src/tasksync/sync/network_status.py

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

StatusListener = Callable[[bool], Awaitable[None] | None]


class NetworkStatusMonitor:
    """
    Tracks online/offline transitions and fans them out to listeners.

    Listeners fire only when the state actually changes. The state can be fed
    by the caller (set_online) or by the probe loop in watch().
    """

    def __init__(self, *, online: bool = True) -> None:
        self._online = bool(online)
        self._listeners: list[StatusListener] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    async def set_online(self, online: bool) -> None:
        online = bool(online)
        if online == self._online:
            return
        self._online = online
        logger.info("Network status -> %s", "online" if online else "offline")
        for listener in list(self._listeners):
            try:
                res = listener(online)
                if inspect.isawaitable(res):
                    await res
            except Exception:
                logger.exception("Network status listener failed")

    async def probe(self, client: httpx.AsyncClient, url: str) -> bool:
        try:
            r = await client.head(url)
        except httpx.HTTPError as e:
            logger.debug("Probe failed url=%s err=%s", url, e.__class__.__name__)
            return False
        # Any HTTP answer means the network is up; 5xx is a server problem.
        return r.status_code < 500

    async def watch(
            self,
            url: str,
            *,
            interval_seconds: float = 15.0,
            timeout_seconds: float = 5.0,
    ) -> None:
        """
        Poll url forever and update the status from the result.

        To stop the probe, cancel the coroutine/task.
        """
        sleep_s = max(0.5, float(interval_seconds))
        timeout = httpx.Timeout(timeout_seconds, connect=timeout_seconds)
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            while True:
                online = await self.probe(client, url)
                await self.set_online(online)
                await asyncio.sleep(sleep_s)
