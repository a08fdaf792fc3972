# src/tasksync/messages/message_models.py

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..store.codec import to_datetime


@dataclass(slots=True)
class Message:
    tag_id: str
    sender_email: str
    sender_name: str
    content: str
    created_at: datetime | None = None
    id: str = ""
    updated_at: datetime | None = None
    is_read: bool = False
    reply_to: str | None = None
    reply_to_name: str | None = None
    mentions: list[str] = field(default_factory=list)
    attachments: list[dict[str, str]] = field(default_factory=list)

    @classmethod
    def from_doc(cls, doc: Mapping[str, Any]) -> Message:
        return cls(
            id=str(doc.get("id") or ""),
            tag_id=str(doc.get("tagId") or ""),
            sender_email=str(doc.get("senderEmail") or ""),
            sender_name=str(doc.get("senderName") or ""),
            content=str(doc.get("content") or ""),
            created_at=to_datetime(doc.get("createdAt")),
            updated_at=to_datetime(doc.get("updatedAt")),
            is_read=bool(doc.get("isRead") or False),
            reply_to=doc.get("replyTo") or None,
            reply_to_name=doc.get("replyToName") or None,
            mentions=[str(m) for m in (doc.get("mentions") or []) if m],
            attachments=[dict(a) for a in (doc.get("attachments") or []) if isinstance(a, Mapping)],
        )

    def to_doc(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "tagId": self.tag_id,
            "senderEmail": self.sender_email,
            "senderName": self.sender_name,
            "content": self.content,
            "createdAt": self.created_at,
            "mentions": list(self.mentions),
            "attachments": list(self.attachments),
        }
        if self.reply_to:
            doc["replyTo"] = self.reply_to
            doc["replyToName"] = self.reply_to_name or ""
        return doc
