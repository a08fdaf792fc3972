# tests/test_network_status.py

from __future__ import annotations

import httpx
import pytest

from tasksync.sync.network_status import NetworkStatusMonitor


@pytest.mark.asyncio
async def test_listeners_fire_only_on_transitions() -> None:
    monitor = NetworkStatusMonitor(online=True)
    events: list[bool] = []
    unsubscribe = monitor.subscribe(events.append)

    await monitor.set_online(True)
    await monitor.set_online(False)
    await monitor.set_online(False)
    await monitor.set_online(True)
    unsubscribe()
    await monitor.set_online(False)

    assert events == [False, True]
    assert monitor.is_online is False


@pytest.mark.asyncio
async def test_failing_listener_does_not_block_others() -> None:
    monitor = NetworkStatusMonitor(online=False)
    events: list[bool] = []

    def broken(_online: bool) -> None:
        raise RuntimeError("listener bug")

    async def ok(online: bool) -> None:
        events.append(online)

    monitor.subscribe(broken)
    monitor.subscribe(ok)
    await monitor.set_online(True)

    assert events == [True]


@pytest.mark.asyncio
async def test_probe_maps_responses() -> None:
    monitor = NetworkStatusMonitor()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/down":
            raise httpx.ConnectError("no route", request=request)
        if request.url.path == "/broken":
            return httpx.Response(503)
        return httpx.Response(404)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert await monitor.probe(client, "http://probe.test/ok") is True
        assert await monitor.probe(client, "http://probe.test/broken") is False
        assert await monitor.probe(client, "http://probe.test/down") is False
