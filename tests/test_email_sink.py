# tests/test_email_sink.py

from __future__ import annotations

import json
from datetime import UTC, datetime
from types import SimpleNamespace

import httpx
import pytest

from tasksync.notifications.email_sink import (
    HttpEmailSink,
    NullEmailSink,
    build_assignment_mail,
    create_email_sink,
)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_posts_json_payload() -> None:
    received: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    async with _client(handler) as client:
        sink = HttpEmailSink("http://mail.test/send", client=client)
        assert await sink.send(to="bob@example.com", subject="s", body="b") is True

    assert received == [{"to": "bob@example.com", "subject": "s", "body": "b"}]


@pytest.mark.asyncio
async def test_non_2xx_is_reported_as_failure() -> None:
    async with _client(lambda request: httpx.Response(500, text="down")) as client:
        sink = HttpEmailSink("http://mail.test/send", client=client)
        assert await sink.send(to="bob@example.com", subject="s", body="b") is False


@pytest.mark.asyncio
async def test_transport_error_is_reported_as_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _client(handler) as client:
        sink = HttpEmailSink("http://mail.test/send", client=client)
        assert await sink.send(to="bob@example.com", subject="s", body="b") is False


def test_assignment_mail_contents() -> None:
    mail = build_assignment_mail(
        to="bob@example.com",
        task_id="t1",
        title="Ship it",
        content=None,
        due_date=datetime(2024, 6, 10, 9, 30, tzinfo=UTC),
        priority="high",
        status="not-started",
        frontend_url="http://app.test/",
    )
    assert mail.to == "bob@example.com"
    assert "Ship it" in mail.body
    assert "2024-06-10 09:30" in mail.body
    assert "http://app.test/tasks/t1" in mail.body


def test_factory_picks_sink_from_settings() -> None:
    assert isinstance(create_email_sink(SimpleNamespace(email_webhook_url=None)), NullEmailSink)
    sink = create_email_sink(SimpleNamespace(email_webhook_url="http://mail.test", email_timeout_seconds=2.0))
    assert isinstance(sink, HttpEmailSink)
