# src/tasksync/notifications/email_sink.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

import httpx

logger = logging.getLogger(__name__)

_NO_DESCRIPTION = "説明なし"
_NO_DUE_DATE = "期限なし"
_UNSET = "未設定"


@dataclass(frozen=True, slots=True)
class Mail:
    to: str
    subject: str
    body: str


def _fmt_dt(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else _NO_DUE_DATE


def build_assignment_mail(
        *,
        to: str,
        task_id: str,
        title: str,
        content: str | None,
        due_date: datetime | None,
        priority: str | None,
        status: str | None,
        frontend_url: str,
) -> Mail:
    link = f"{frontend_url.rstrip('/')}/tasks/{task_id}"
    body = (
        "タスクが割り当てられました。\n\n"
        f"タスク名: {title}\n"
        f"説明: {content or _NO_DESCRIPTION}\n"
        f"期限: {_fmt_dt(due_date)}\n"
        f"優先度: {priority or _UNSET}\n"
        f"ステータス: {status or _UNSET}\n\n"
        f"タスクの詳細は以下のリンクから確認できます：\n{link}\n"
    )
    return Mail(to=to, subject="【タスク管理アプリ】タスクが割り当てられました", body=body)


def build_mention_mail(*, to: str, content: str | None, sender_name: str) -> Mail:
    body = (
        "コメントでメンションされました。\n\n"
        f"コメント: {content or '内容なし'}\n"
        f"投稿者: {sender_name}\n"
    )
    return Mail(to=to, subject="コメントでメンションされました", body=body)


class HttpEmailSink:
    """
    Posts {to, subject, body} as JSON to a mail-sending webhook.

    Non-2xx answers and transport errors are logged and reported as False.
    No retries: the sink is fire-and-forget by contract.
    """

    def __init__(self, url: str, *, timeout_seconds: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
        self._url = url
        self._timeout = httpx.Timeout(timeout_seconds, connect=min(5.0, timeout_seconds))
        self._client = client

    async def send(self, *, to: str, subject: str, body: str) -> bool:
        payload = {"to": to, "subject": subject, "body": body}
        try:
            if self._client is not None:
                r = await self._client.post(self._url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    r = await client.post(self._url, json=payload)
        except httpx.HTTPError as e:
            logger.error("Email send failed to=%s: %s", to, e.__class__.__name__)
            return False

        if r.is_success:
            logger.info("Email sent to=%s subject=%s", to, subject)
            return True
        logger.error("Email sink rejected to=%s status=%s body=%s", to, r.status_code, r.text[:200])
        return False


class NullEmailSink:
    """Used when no webhook is configured; logs the mail and reports success."""

    async def send(self, *, to: str, subject: str, body: str) -> bool:
        logger.info("Email sink disabled; would send to=%s subject=%s", to, subject)
        return True


def create_email_sink(settings) -> HttpEmailSink | NullEmailSink:
    url = getattr(settings, "email_webhook_url", None)
    if not url:
        return NullEmailSink()
    return HttpEmailSink(url, timeout_seconds=float(getattr(settings, "email_timeout_seconds", 10.0)))
