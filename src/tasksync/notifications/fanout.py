# src/tasksync/notifications/fanout.py

from __future__ import annotations

"""
Notification fan-out.

One notification record per recipient, written concurrently. A failed write
is logged for that recipient only; nothing is rolled back and nothing is
retried. Callers launch the fan-out through spawn() and never await it, so
their own write result does not depend on it.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Coroutine, Iterable
from datetime import datetime
from typing import Any

from ..core.ports import CurrentUser, DocumentStore, EmailSink
from ..messages.message_models import Message
from ..store.codec import utcnow
from ..tasks.task_models import UNTITLED_TASK_TITLE, Assignee, Task
from .email_sink import Mail, build_assignment_mail, build_mention_mail
from .notification_models import ANONYMOUS_NAME, Notification, NotificationType

logger = logging.getLogger(__name__)

NOTIFICATIONS = "notifications"
_EXCERPT_LEN = 50


class NotificationFanout:
    def __init__(
            self,
            store: DocumentStore,
            *,
            email_sink: EmailSink | None = None,
            frontend_url: str = "http://localhost:4200",
            clock: Callable[[], datetime] = utcnow,
            max_errors: int = 100,
    ) -> None:
        self._store = store
        self._email_sink = email_sink
        self._frontend_url = frontend_url
        self._clock = clock
        self._pending: set[asyncio.Task[Any]] = set()
        # Error channel for detached work: the most recent exceptions that escaped a spawned job.
        self.errors: deque[BaseException] = deque(maxlen=max_errors)

    # ---- detached execution ----

    def spawn(self, coro: Coroutine[Any, Any, Any], *, label: str = "fanout") -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=label)
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Detached job %s failed", task.get_name(), exc_info=exc)
            self.errors.append(exc)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every spawned job (shutdown and tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ---- fan-out ----

    async def notify_assignment(self, task_id: str, task: Task, actor: CurrentUser | None) -> list[str]:
        """One assignment notification per assignee with an email. Returns created ids."""
        if actor is None:
            logger.error("Assignment notifications skipped: no signed-in user (task=%s)", task_id)
            return []
        if not task.assigned_users:
            logger.debug("No assignees on task %s; nothing to notify", task_id)
            return []

        title = task.title or UNTITLED_TASK_TITLE
        now = self._clock()

        def build(user: Assignee) -> tuple[Notification, Mail]:
            note = Notification(
                task_id=task_id,
                task_title=title,
                sender_email=actor.email or "",
                sender_name=actor.display_name or ANONYMOUS_NAME,
                recipient_email=user.email,
                recipient_name=user.display_name or ANONYMOUS_NAME,
                type=NotificationType.ASSIGNMENT,
                created_at=now,
            )
            mail = build_assignment_mail(
                to=user.email,
                task_id=task_id,
                title=title,
                content=task.content,
                due_date=task.due_date,
                priority=task.priority.value,
                status=task.status.value,
                frontend_url=self._frontend_url,
            )
            return note, mail

        return await self._fan_out(task.assigned_users, build, label=f"task {task_id}")

    async def notify_mentions(
            self,
            message_id: str,
            message: Message,
            recipients: Iterable[Assignee],
            actor: CurrentUser | None,
    ) -> list[str]:
        """One mention notification per mentioned user. Returns created ids."""
        if actor is None:
            logger.error("Mention notifications skipped: no signed-in user (message=%s)", message_id)
            return []

        excerpt = message.content[:_EXCERPT_LEN]
        now = self._clock()

        def build(user: Assignee) -> tuple[Notification, Mail]:
            note = Notification(
                task_id=message.tag_id,
                task_title=excerpt,
                sender_email=actor.email or "",
                sender_name=actor.display_name or ANONYMOUS_NAME,
                recipient_email=user.email,
                recipient_name=user.display_name or ANONYMOUS_NAME,
                type=NotificationType.MENTION,
                created_at=now,
                message_id=message_id,
            )
            mail = build_mention_mail(
                to=user.email,
                content=message.content,
                sender_name=message.sender_name or ANONYMOUS_NAME,
            )
            return note, mail

        return await self._fan_out(recipients, build, label=f"message {message_id}")

    async def _fan_out(
            self,
            recipients: Iterable[Assignee],
            build: Callable[[Assignee], tuple[Notification, Mail]],
            *,
            label: str,
    ) -> list[str]:
        jobs = []
        targets: list[Assignee] = []
        for user in recipients:
            if not user.email:
                logger.warning("Recipient without email skipped (%s): %r", label, user)
                continue
            note, mail = build(user)
            targets.append(user)
            jobs.append(self._deliver(note, mail))

        if not jobs:
            return []

        results = await asyncio.gather(*jobs, return_exceptions=True)
        created: list[str] = []
        for user, res in zip(targets, results):
            if isinstance(res, BaseException):
                logger.error("Notification to %s failed (%s)", user.email, label, exc_info=res)
                continue
            created.append(res)

        logger.info("Sent %d/%d notification(s) for %s", len(created), len(jobs), label)
        return created

    async def _deliver(self, note: Notification, mail: Mail) -> str:
        note_id = await self._store.add(NOTIFICATIONS, note.to_doc())
        if self._email_sink is not None:
            try:
                ok = await self._email_sink.send(to=mail.to, subject=mail.subject, body=mail.body)
            except Exception:
                logger.exception("Email sink raised for %s", mail.to)
                ok = False
            if not ok:
                logger.error("Notification email to %s was not sent", mail.to)
        return note_id
