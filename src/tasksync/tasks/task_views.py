# src/tasksync/tasks/task_views.py

"""
Pure view predicates over tasks.

Every task view is a narrow store query followed by one of these filters, so
the filtering logic is testable without a store connection.

Access rule (shared by all user views): the viewer owns the task, OR the
viewer's uid is in assignedUserIds, OR the viewer's email is in
assignedUsers. The relation is stored twice, so both encodings are checked.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from enum import StrEnum

from ..core.ports import CurrentUser
from .task_models import Task

DEFAULT_RETENTION = timedelta(days=7)


class TaskView(StrEnum):
    ACTIVE = "active"
    DUE_DATE = "due_date"
    REMINDERS = "reminders"
    ARCHIVED = "archived"
    DELETED = "deleted"


# view -> (order field, descending)
VIEW_ORDER: dict[TaskView, tuple[str, bool]] = {
    TaskView.ACTIVE: ("createdAt", True),
    TaskView.DUE_DATE: ("dueDate", False),
    TaskView.REMINDERS: ("createdAt", True),
    TaskView.ARCHIVED: ("archivedAt", True),
    TaskView.DELETED: ("deletedAt", True),
}


def is_owner(task: Task, viewer: CurrentUser) -> bool:
    return bool(task.owner_id) and task.owner_id == viewer.uid


def is_assigned_by_id(task: Task, viewer: CurrentUser) -> bool:
    return viewer.uid in task.assigned_user_ids


def is_assigned_by_email(task: Task, viewer: CurrentUser) -> bool:
    return task.assigned_users.contains_email(viewer.email)


def is_visible_to(task: Task, viewer: CurrentUser) -> bool:
    return is_owner(task, viewer) or is_assigned_by_id(task, viewer) or is_assigned_by_email(task, viewer)


def in_active_view(task: Task, viewer: CurrentUser) -> bool:
    return not task.deleted and not task.archived and is_visible_to(task, viewer)


def in_due_date_view(task: Task, viewer: CurrentUser) -> bool:
    return in_active_view(task, viewer) and task.due_date is not None


def in_reminder_view(task: Task, viewer: CurrentUser) -> bool:
    return in_active_view(task, viewer) and task.reminder is True


def in_archived_view(task: Task, viewer: CurrentUser) -> bool:
    # deleted overrides archived
    return not task.deleted and task.archived and is_visible_to(task, viewer)


def in_deleted_view(task: Task, viewer: CurrentUser) -> bool:
    return task.deleted and is_visible_to(task, viewer)


def in_tag_view(task: Task, tag_name: str) -> bool:
    """Tag pages list every live task of the project, regardless of assignment."""
    return not task.deleted and not task.archived and task.tag == tag_name


_PREDICATES: dict[TaskView, Callable[[Task, CurrentUser], bool]] = {
    TaskView.ACTIVE: in_active_view,
    TaskView.DUE_DATE: in_due_date_view,
    TaskView.REMINDERS: in_reminder_view,
    TaskView.ARCHIVED: in_archived_view,
    TaskView.DELETED: in_deleted_view,
}


def filter_view(view: TaskView, tasks: Iterable[Task], viewer: CurrentUser) -> list[Task]:
    pred = _PREDICATES[TaskView(view)]
    return [t for t in tasks if pred(t, viewer)]


def is_expired(task: Task, now: datetime, retention: timedelta = DEFAULT_RETENTION) -> bool:
    """True when a trashed task has been in the trash longer than the retention window."""
    if not task.deleted or task.deleted_at is None:
        return False
    return task.deleted_at < now - retention
