# tests/test_task_views.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from tasksync.core.ports import CurrentUser
from tasksync.tasks.task_models import Assignee, AssigneeSet, Task, TaskStatus
from tasksync.tasks.task_views import (
    TaskView,
    filter_view,
    in_active_view,
    in_archived_view,
    in_deleted_view,
    in_tag_view,
    is_expired,
    is_visible_to,
)

VIEWER = CurrentUser(uid="u1", email="me@example.com", display_name="Me")
NOW = datetime(2024, 6, 10, 9, 0, tzinfo=UTC)


def test_visibility_owner_id_or_email() -> None:
    assert is_visible_to(Task(title="own", owner_id="u1"), VIEWER)
    assert is_visible_to(Task(title="by id", owner_id="x", assigned_user_ids=["u1"]), VIEWER)
    by_email = Task(
        title="by email",
        owner_id="x",
        assigned_users=AssigneeSet((Assignee("ME@example.com", "Me"),)),
    )
    assert is_visible_to(by_email, VIEWER)
    assert not is_visible_to(Task(title="other", owner_id="x"), VIEWER)


def test_deleted_overrides_archived() -> None:
    task = Task(title="t", owner_id="u1", archived=True, deleted=True)
    assert in_deleted_view(task, VIEWER)
    assert not in_archived_view(task, VIEWER)
    assert not in_active_view(task, VIEWER)


def test_filter_views() -> None:
    tasks = [
        Task(title="plain", owner_id="u1"),
        Task(title="due", owner_id="u1", due_date=NOW),
        Task(title="remind", owner_id="u1", reminder=True),
        Task(title="archived", owner_id="u1", archived=True),
        Task(title="trash", owner_id="u1", deleted=True),
        Task(title="not mine", owner_id="x", due_date=NOW, reminder=True),
    ]

    def titles(view: TaskView) -> list[str]:
        return [t.title for t in filter_view(view, tasks, VIEWER)]

    assert titles(TaskView.ACTIVE) == ["plain", "due", "remind"]
    assert titles(TaskView.DUE_DATE) == ["due"]
    assert titles(TaskView.REMINDERS) == ["remind"]
    assert titles(TaskView.ARCHIVED) == ["archived"]
    assert titles(TaskView.DELETED) == ["trash"]


def test_tag_view_ignores_assignment() -> None:
    assert in_tag_view(Task(title="t", owner_id="x", tag="Website"), "Website")
    assert not in_tag_view(Task(title="t", tag="Website", archived=True), "Website")
    assert not in_tag_view(Task(title="t", tag="Other"), "Website")


def test_is_expired_uses_retention_window() -> None:
    old = Task(title="old", deleted=True, deleted_at=NOW - timedelta(days=8))
    recent = Task(title="recent", deleted=True, deleted_at=NOW - timedelta(days=6))
    live = Task(title="live", deleted=False, deleted_at=NOW - timedelta(days=30))

    assert is_expired(old, NOW)
    assert not is_expired(recent, NOW)
    assert not is_expired(live, NOW)
    assert is_expired(recent, NOW, timedelta(days=5))


def test_legacy_status_labels_are_mapped() -> None:
    assert TaskStatus.from_db("完了") is TaskStatus.DONE
    assert TaskStatus.from_db("進行中") is TaskStatus.IN_PROGRESS
    assert TaskStatus.from_db(None) is TaskStatus.NOT_STARTED
    assert Task.from_doc({"id": "x", "title": "t", "status": "未着手"}).status is TaskStatus.NOT_STARTED
