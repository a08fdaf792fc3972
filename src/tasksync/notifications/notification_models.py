# src/tasksync/notifications/notification_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

ANONYMOUS_NAME = "匿名"


class NotificationType(StrEnum):
    ASSIGNMENT = "assignment"
    MENTION = "mention"
    UPDATE = "update"


@dataclass(frozen=True, slots=True)
class Notification:
    """
    One inbox entry for one recipient.

    For mention notifications task_id carries the tag id of the conversation,
    task_title a short excerpt of the message, and message_id the message.
    """

    task_id: str
    task_title: str
    sender_email: str
    sender_name: str
    recipient_email: str
    recipient_name: str
    type: NotificationType
    created_at: datetime
    is_read: bool = False
    message_id: str | None = None
    id: str = ""

    def to_doc(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "taskId": self.task_id,
            "taskTitle": self.task_title,
            "senderEmail": self.sender_email,
            "senderName": self.sender_name,
            "recipientEmail": self.recipient_email,
            "recipientName": self.recipient_name,
            "type": self.type.value,
            "createdAt": self.created_at,
            "isRead": self.is_read,
        }
        if self.message_id:
            doc["messageId"] = self.message_id
        return doc
