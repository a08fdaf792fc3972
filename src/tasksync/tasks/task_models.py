# src/tasksync/tasks/task_models.py

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..core.errors import TaskValidationError
from ..store.codec import to_datetime

PLACEHOLDER_DISPLAY_NAME = "ユーザー"
UNTITLED_TASK_TITLE = "無題のタスク"


class TaskPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


class TaskStatus(StrEnum):
    """
    Task progress status.

    Older documents store the Japanese labels; from_db maps them.
    """

    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    DONE = "done"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.NOT_STARTED
        legacy = _LEGACY_STATUS.get(raw)
        if legacy is not None:
            return legacy
        try:
            return cls(raw)
        except ValueError:
            return cls.NOT_STARTED


_LEGACY_STATUS = {
    "未着手": TaskStatus.NOT_STARTED,
    "進行中": TaskStatus.IN_PROGRESS,
    "完了": TaskStatus.DONE,
}


class LifecycleState(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"


# ---- assignees ----


@dataclass(frozen=True, slots=True)
class Assignee:
    email: str
    display_name: str

    @classmethod
    def from_record(cls, raw: Mapping[str, Any]) -> Assignee:
        return cls(
            email=str(raw.get("email") or ""),
            display_name=str(raw.get("displayName") or PLACEHOLDER_DISPLAY_NAME),
        )

    def to_record(self) -> dict[str, str]:
        return {"email": self.email, "displayName": self.display_name}


ProfileLookup = Callable[[str], Awaitable[Assignee]]


@dataclass(frozen=True, slots=True)
class AssigneeSet:
    """
    Canonical assignee list.

    Two encodings coexist in stored documents: embedded {email, displayName}
    records and a bare user id list that needs a profile lookup. Both are
    resolved here, at the boundary, into Assignee pairs.
    """

    members: tuple[Assignee, ...] = ()

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any] | Assignee] | None) -> AssigneeSet:
        out: list[Assignee] = []
        for r in records or ():
            if isinstance(r, Assignee):
                out.append(r)
            elif isinstance(r, Mapping):
                out.append(Assignee.from_record(r))
        return cls(tuple(out))

    @classmethod
    async def from_ids(cls, user_ids: Iterable[str] | None, lookup: ProfileLookup) -> AssigneeSet:
        out = [await lookup(uid) for uid in user_ids or () if uid]
        return cls(tuple(out))

    @classmethod
    async def canonical(
            cls,
            records: Iterable[Mapping[str, Any]] | None,
            user_ids: Iterable[str] | None,
            lookup: ProfileLookup,
    ) -> AssigneeSet:
        embedded = cls.from_records(records)
        if embedded:
            return embedded
        return await cls.from_ids(user_ids, lookup)

    def __iter__(self) -> Iterator[Assignee]:
        return iter(self.members)

    def __len__(self) -> int:
        return len(self.members)

    def emails(self) -> list[str]:
        return [m.email for m in self.members if m.email]

    def contains_email(self, email: str | None) -> bool:
        if not email:
            return False
        needle = email.casefold()
        return any(m.email.casefold() == needle for m in self.members if m.email)

    def unique_by_email(self) -> AssigneeSet:
        seen: set[str] = set()
        out: list[Assignee] = []
        for m in self.members:
            key = m.email.casefold()
            if key in seen:
                continue
            seen.add(key)
            out.append(m)
        return AssigneeSet(tuple(out))

    def to_records(self) -> list[dict[str, str]]:
        return [m.to_record() for m in self.members]


# ---- task ----


@dataclass(frozen=True, slots=True)
class Location:
    lat: float
    lng: float
    address: str | None = None

    @classmethod
    def from_record(cls, raw: Any) -> Location | None:
        if not isinstance(raw, Mapping):
            return None
        try:
            return cls(lat=float(raw["lat"]), lng=float(raw["lng"]), address=raw.get("address"))
        except (KeyError, TypeError, ValueError):
            return None

    def to_record(self) -> dict[str, Any]:
        rec: dict[str, Any] = {"lat": self.lat, "lng": self.lng}
        if self.address is not None:
            rec["address"] = self.address
        return rec


@dataclass(slots=True)
class Task:
    title: str
    id: str = ""
    content: str = ""
    start_date: datetime | None = None
    due_date: datetime | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.NOT_STARTED
    tag: str | None = None
    owner_id: str = ""
    assigned_users: AssigneeSet = field(default_factory=AssigneeSet)
    assigned_user_ids: list[str] = field(default_factory=list)

    archived: bool = False
    archived_at: datetime | None = None
    deleted: bool = False
    deleted_at: datetime | None = None
    reminder: bool = False

    created_at: datetime | None = None
    updated_at: datetime | None = None

    image_url: str | None = None
    location: Location | None = None

    @property
    def lifecycle(self) -> LifecycleState:
        if self.deleted:
            return LifecycleState.DELETED
        if self.archived:
            return LifecycleState.ARCHIVED
        return LifecycleState.ACTIVE

    @classmethod
    def from_doc(cls, doc: Mapping[str, Any]) -> Task:
        return cls(
            id=str(doc.get("id") or ""),
            title=str(doc.get("title") or ""),
            content=str(doc.get("content") or ""),
            start_date=to_datetime(doc.get("startDate")),
            due_date=to_datetime(doc.get("dueDate")),
            priority=TaskPriority.from_db(doc.get("priority")),
            status=TaskStatus.from_db(doc.get("status")),
            tag=doc.get("tag") or None,
            owner_id=str(doc.get("ownerId") or ""),
            assigned_users=AssigneeSet.from_records(doc.get("assignedUsers")),
            assigned_user_ids=[str(u) for u in (doc.get("assignedUserIds") or []) if u],
            archived=bool(doc.get("archived") or False),
            archived_at=to_datetime(doc.get("archivedAt")),
            deleted=bool(doc.get("deleted") or False),
            deleted_at=to_datetime(doc.get("deletedAt")),
            reminder=doc.get("reminder") is True,
            created_at=to_datetime(doc.get("createdAt")),
            updated_at=to_datetime(doc.get("updatedAt")),
            image_url=doc.get("imageUrl") or None,
            location=Location.from_record(doc.get("location")),
        )

    def to_doc(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "startDate": self.start_date,
            "dueDate": self.due_date,
            "priority": self.priority.value,
            "status": self.status.value,
            "tag": self.tag,
            "ownerId": self.owner_id,
            "assignedUsers": self.assigned_users.to_records(),
            "assignedUserIds": list(self.assigned_user_ids),
            "archived": self.archived,
            "archivedAt": self.archived_at,
            "deleted": self.deleted,
            "deletedAt": self.deleted_at,
            "reminder": self.reminder,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "imageUrl": self.image_url,
            "location": self.location.to_record() if self.location else None,
        }


# Task attribute -> stored field name.
_TASK_FIELDS: dict[str, str] = {
    "title": "title",
    "content": "content",
    "start_date": "startDate",
    "due_date": "dueDate",
    "priority": "priority",
    "status": "status",
    "tag": "tag",
    "owner_id": "ownerId",
    "assigned_users": "assignedUsers",
    "assigned_user_ids": "assignedUserIds",
    "archived": "archived",
    "archived_at": "archivedAt",
    "deleted": "deleted",
    "deleted_at": "deletedAt",
    "reminder": "reminder",
    "image_url": "imageUrl",
    "location": "location",
}


def task_patch_to_doc(patch: Mapping[str, Any]) -> dict[str, Any]:
    """Convert a partial update keyed by Task attribute names into stored fields."""
    out: dict[str, Any] = {}
    for key, value in patch.items():
        stored = _TASK_FIELDS.get(key)
        if stored is None:
            raise TaskValidationError(f"Unknown task field: {key}")
        if key == "assigned_users":
            value = AssigneeSet.from_records(value).to_records()
        elif key == "priority" and value is not None:
            value = TaskPriority(value).value
        elif key == "status" and value is not None:
            value = TaskStatus(value).value
        elif key == "location" and isinstance(value, Location):
            value = value.to_record()
        elif key == "assigned_user_ids":
            value = list(value or [])
        out[stored] = value
    return out


def validate_task_fields(
        *,
        title: str | None = None,
        start_date: datetime | None = None,
        due_date: datetime | None = None,
        check_title: bool = True,
) -> None:
    if check_title and (title is None or not str(title).strip()):
        raise TaskValidationError("title is required")
    if start_date is not None and due_date is not None and due_date < start_date:
        raise TaskValidationError("due date must not be before start date")


# ---- tag ----


@dataclass(slots=True)
class Tag:
    name: str
    id: str = ""
    owner_id: str = ""
    assigned_user_ids: list[str] = field(default_factory=list)
    assigned_users: AssigneeSet = field(default_factory=AssigneeSet)
    order: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_doc(cls, doc: Mapping[str, Any]) -> Tag:
        try:
            order = int(doc.get("order") or 0)
        except (TypeError, ValueError):
            order = 0
        return cls(
            id=str(doc.get("id") or ""),
            name=str(doc.get("name") or ""),
            owner_id=str(doc.get("ownerId") or ""),
            assigned_user_ids=[str(u) for u in (doc.get("assignedUserIds") or []) if u],
            assigned_users=AssigneeSet.from_records(doc.get("assignedUsers")),
            order=order,
            created_at=to_datetime(doc.get("createdAt")),
        )

    def to_doc(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "ownerId": self.owner_id,
            "assignedUserIds": list(self.assigned_user_ids),
            "assignedUsers": self.assigned_users.to_records(),
            "order": self.order,
            "createdAt": self.created_at,
        }
