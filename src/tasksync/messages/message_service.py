# src/tasksync/messages/message_service.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable

from ..core.auth import require_user
from ..core.ports import AuthProvider, Document, DocumentStore, Unsubscribe
from ..directory.assignees import AssigneeCache
from ..notifications.fanout import NotificationFanout
from ..notifications.notification_models import ANONYMOUS_NAME
from ..store.codec import utcnow
from ..tasks.task_models import Assignee
from .mentions import MentionResolver
from .message_models import Message

logger = logging.getLogger(__name__)

MESSAGES = "messages"

MessagesCallback = Callable[[list[Message]], Awaitable[None] | None]


class MessageService:
    """Per-tag comment threads with @mentions."""

    def __init__(
            self,
            store: DocumentStore,
            auth: AuthProvider,
            cache: AssigneeCache,
            fanout: NotificationFanout,
    ) -> None:
        self._store = store
        self._auth = auth
        self._cache = cache
        self._resolver = MentionResolver(cache)
        self._fanout = fanout

    async def list_messages(self, tag_id: str) -> list[Message]:
        if not tag_id:
            logger.error("list_messages called with empty tag id")
            return []
        docs = await self._store.query(MESSAGES, where=("tagId", "==", tag_id), order_by="createdAt", descending=True)
        return [Message.from_doc(d) for d in docs]

    async def watch_messages(self, tag_id: str, callback: MessagesCallback) -> Unsubscribe:
        if not tag_id:
            logger.error("watch_messages called with empty tag id")
            res = callback([])
            if asyncio.iscoroutine(res):
                await res
            return lambda: None

        async def on_snapshot(docs: list[Document]) -> None:
            res = callback([Message.from_doc(d) for d in docs])
            if asyncio.iscoroutine(res):
                await res

        return await self._store.watch(
            MESSAGES,
            on_snapshot,
            where=("tagId", "==", tag_id),
            order_by="createdAt",
            descending=True,
        )

    async def send_message(
            self,
            tag_id: str,
            content: str,
            attachments: Iterable[dict[str, str]] = (),
    ) -> str:
        return await self._post(tag_id, content, attachments=list(attachments))

    async def send_reply_message(self, tag_id: str, content: str, reply_to_id: str, reply_to_name: str) -> str:
        return await self._post(tag_id, content, reply_to=reply_to_id, reply_to_name=reply_to_name)

    async def _post(
            self,
            tag_id: str,
            content: str,
            *,
            attachments: list[dict[str, str]] | None = None,
            reply_to: str | None = None,
            reply_to_name: str | None = None,
    ) -> str:
        actor = require_user(self._auth, "send message")
        result = await self._resolver.extract_mentions(content, tag_id)

        message = Message(
            tag_id=tag_id,
            sender_email=actor.email or "",
            sender_name=actor.display_name or ANONYMOUS_NAME,
            content=result.formatted_content,
            created_at=utcnow(),
            reply_to=reply_to,
            reply_to_name=reply_to_name,
            mentions=result.mentions,
            attachments=attachments or [],
        )
        message_id = await self._store.add(MESSAGES, message.to_doc())
        message.id = message_id
        logger.info("Message created id=%s tag=%s mentions=%d", message_id, tag_id, len(result.mentions))

        if result.mentions:
            recipients = self._recipients(result.mentions)
            self._fanout.spawn(
                self._fanout.notify_mentions(message_id, message, recipients, actor),
                label=f"mention {message_id}",
            )
        return message_id

    def _recipients(self, emails: list[str]) -> list[Assignee]:
        known = {u.email.casefold(): u for u in self._cache.users()}
        return [known.get(e.casefold()) or Assignee(email=e, display_name=ANONYMOUS_NAME) for e in emails]

    async def update_message(self, message_id: str, content: str) -> None:
        await self._store.update(MESSAGES, message_id, {"content": content, "updatedAt": utcnow()})

    async def delete_message(self, message_id: str) -> None:
        await self._store.delete(MESSAGES, message_id)

    async def mark_as_read(self, message_id: str) -> None:
        await self._store.update(MESSAGES, message_id, {"isRead": True})
