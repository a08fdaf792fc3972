# tests/test_task_repository.py

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from tasksync.core.auth import StaticAuthProvider
from tasksync.core.errors import NotAuthenticatedError, TaskValidationError
from tasksync.notifications.fanout import NotificationFanout
from tasksync.sync.offline_queue import OfflineSyncQueue, SyncItemType
from tasksync.tasks.auto_delete import run_auto_delete
from tasksync.tasks.tag_service import TagService
from tasksync.tasks.task_models import Assignee, AssigneeSet, Task
from tasksync.tasks.task_repository import TaskRepository
from tasksync.tasks.task_views import TaskView

from .fakes import FlakyStore

BOB = Assignee("bob@example.com", "Bob")
CAROL = Assignee("carol@example.com", "Carol")


def _repo(store, auth, storage, monitor=None, **kwargs) -> tuple[TaskRepository, NotificationFanout, OfflineSyncQueue]:
    fanout = NotificationFanout(store, frontend_url="http://app.test")
    queue = OfflineSyncQueue(store, storage, monitor)
    repo = TaskRepository(store, auth, fanout, sync_queue=queue, tags=TagService(store), **kwargs)
    return repo, fanout, queue


@pytest.mark.asyncio
async def test_add_task_stamps_owner_and_defaults(store, auth, storage, alice) -> None:
    repo, _, _ = _repo(store, auth, storage)

    task_id = await repo.add_task(Task(title="Write report", tag="Website"))

    task = await repo.get_task(task_id)
    assert task is not None
    assert task.owner_id == alice.uid
    assert task.created_at is not None and task.updated_at is not None
    assert not task.archived and not task.deleted and not task.reminder

    # The referenced tag is created on first use.
    tag = await store.get("tags", "Website")
    assert tag is not None
    assert tag["assignedUserIds"] == [alice.uid]
    assert tag["order"] == 0


@pytest.mark.asyncio
async def test_add_task_requires_signed_in_user(store, storage) -> None:
    repo, _, _ = _repo(store, StaticAuthProvider(None), storage)
    with pytest.raises(NotAuthenticatedError):
        await repo.add_task(Task(title="x"))
    assert await store.query("tasks") == []


@pytest.mark.asyncio
async def test_validation_rejects_before_write(store, auth, storage) -> None:
    repo, _, _ = _repo(store, auth, storage)
    start = datetime(2024, 6, 10, tzinfo=UTC)

    with pytest.raises(TaskValidationError):
        await repo.add_task(Task(title="   "))
    with pytest.raises(TaskValidationError):
        await repo.add_task(Task(title="t", start_date=start, due_date=start - timedelta(days=1)))
    with pytest.raises(TaskValidationError):
        await repo.update_task("any", {"no_such_field": 1})

    assert await store.query("tasks") == []


@pytest.mark.asyncio
async def test_archive_then_restore_returns_to_active_view(store, auth, storage) -> None:
    repo, _, _ = _repo(store, auth, storage)
    task_id = await repo.add_task(Task(title="t"))

    await repo.archive_task(task_id)
    assert [t.id for t in await repo.list_view(TaskView.ARCHIVED)] == [task_id]
    assert await repo.list_view(TaskView.ACTIVE) == []

    await repo.restore_task(task_id)
    active = await repo.list_view(TaskView.ACTIVE)
    assert [t.id for t in active] == [task_id]
    assert active[0].archived_at is None


@pytest.mark.asyncio
async def test_trash_and_restore(store, auth, storage) -> None:
    repo, _, _ = _repo(store, auth, storage)
    task_id = await repo.add_task(Task(title="t"))

    await repo.move_to_trash(task_id)
    assert [t.id for t in await repo.list_view(TaskView.DELETED)] == [task_id]

    await repo.restore_from_trash(task_id)
    assert [t.id for t in await repo.list_view(TaskView.ACTIVE)] == [task_id]

    await repo.delete_task(task_id)
    assert await repo.get_task(task_id) is None


@pytest.mark.asyncio
async def test_two_assignees_produce_two_notifications(store, auth, storage, alice) -> None:
    repo, fanout, _ = _repo(store, auth, storage)

    task_id = await repo.add_task(Task(title="Ship it", assigned_users=AssigneeSet((BOB, CAROL))))
    await fanout.drain()

    notes = await store.query("notifications")
    assert sorted(n["recipientEmail"] for n in notes) == ["bob@example.com", "carol@example.com"]
    assert all(n["taskId"] == task_id for n in notes)
    assert all(n["type"] == "assignment" for n in notes)
    assert all(n["senderEmail"] == alice.email for n in notes)
    assert all(n["isRead"] is False for n in notes)


@pytest.mark.asyncio
async def test_update_with_assignees_renotifies(store, auth, storage) -> None:
    repo, fanout, _ = _repo(store, auth, storage)
    task_id = await repo.add_task(Task(title="t"))

    await repo.update_task(task_id, {"assigned_users": [BOB]})
    await repo.update_task(task_id, {"assigned_users": [BOB]})
    await fanout.drain()

    notes = await store.query("notifications")
    assert [n["recipientEmail"] for n in notes] == ["bob@example.com", "bob@example.com"]
    assert all(n["taskTitle"] == "t" for n in notes)


@pytest.mark.asyncio
async def test_notification_failure_does_not_fail_the_write(backend, auth, storage) -> None:
    store = FlakyStore(backend, fail_collections={"notifications"})
    repo, fanout, _ = _repo(store, auth, storage)

    task_id = await repo.add_task(Task(title="t", assigned_users=AssigneeSet((BOB,))))
    await fanout.drain()

    assert await backend.get("tasks", task_id) is not None
    assert await backend.query("notifications") == []
    assert not fanout.errors


@pytest.mark.asyncio
async def test_offline_writes_are_queued_and_replayed(store, auth, storage, monitor) -> None:
    repo, fanout, queue = _repo(store, auth, storage, monitor)

    await monitor.set_online(False)
    task_id = await repo.add_task(Task(title="offline", assigned_users=AssigneeSet((BOB,))))
    await repo.set_status(task_id, "done")

    assert [i.type for i in queue.pending_items()] == [SyncItemType.CREATE, SyncItemType.UPDATE]
    assert fanout.pending == 0

    await monitor.set_online(True)

    assert queue.pending_count == 0
    task = await repo.get_task(task_id)
    assert task is not None
    assert task.title == "offline"
    assert task.status.value == "done"


@pytest.mark.asyncio
async def test_offline_task_with_new_tag_creates_tag_on_replay(store, auth, storage, monitor, alice) -> None:
    repo, _, queue = _repo(store, auth, storage, monitor)

    await monitor.set_online(False)
    task_id = await repo.add_task(Task(title="offline", tag="NewProject"))

    assert [(i.collection, i.id) for i in queue.pending_items()] == [("tags", "NewProject"), ("tasks", task_id)]

    await monitor.set_online(True)

    assert queue.pending_count == 0
    tag = await store.get("tags", "NewProject")
    assert tag is not None
    assert tag["name"] == "NewProject"
    assert tag["ownerId"] == alice.uid
    assert tag["assignedUserIds"] == [alice.uid]
    assert (await repo.get_task(task_id)).tag == "NewProject"


@pytest.mark.asyncio
async def test_online_task_with_existing_tag_queues_nothing(store, auth, storage, monitor) -> None:
    repo, _, queue = _repo(store, auth, storage, monitor)
    await repo.add_task(Task(title="first", tag="Website"))
    await repo.add_task(Task(title="second", tag="Website"))

    assert queue.pending_count == 0
    assert len(await store.query("tags")) == 1


@pytest.mark.asyncio
async def test_update_with_one_date_is_checked_against_stored_date(store, auth, storage) -> None:
    repo, _, _ = _repo(store, auth, storage)
    start = datetime(2024, 6, 10, tzinfo=UTC)
    task_id = await repo.add_task(Task(title="t", start_date=start, due_date=start + timedelta(days=3)))

    with pytest.raises(TaskValidationError):
        await repo.update_task(task_id, {"due_date": start - timedelta(days=5)})
    with pytest.raises(TaskValidationError):
        await repo.update_task(task_id, {"start_date": start + timedelta(days=10)})

    task = await repo.get_task(task_id)
    assert task.start_date == start
    assert task.due_date == start + timedelta(days=3)

    await repo.update_task(task_id, {"due_date": start + timedelta(days=1)})
    assert (await repo.get_task(task_id)).due_date == start + timedelta(days=1)


@pytest.mark.asyncio
async def test_list_tag_tasks(store, auth, storage) -> None:
    repo, _, _ = _repo(store, auth, storage)
    a = await repo.add_task(Task(title="a", tag="Website"))
    await repo.add_task(Task(title="b", tag="Mobile"))

    assert [t.id for t in await repo.list_tag_tasks("Website")] == [a]


@pytest.mark.asyncio
async def test_watch_view_pushes_filtered_lists(store, auth, storage) -> None:
    repo, _, _ = _repo(store, auth, storage)
    seen: list[list[str]] = []

    unsubscribe = await repo.watch_view(TaskView.REMINDERS, lambda tasks: seen.append([t.title for t in tasks]))
    task_id = await repo.add_task(Task(title="r"))
    await repo.toggle_reminder(task_id, True)
    unsubscribe()

    assert seen[0] == []
    assert seen[-1] == ["r"]


async def _trash(store, task_id: str, deleted_at: datetime) -> None:
    await store.update("tasks", task_id, {"deleted": True, "deletedAt": deleted_at})


@pytest.mark.asyncio
async def test_auto_delete_removes_only_expired(store, auth, storage) -> None:
    now = datetime(2024, 6, 10, tzinfo=UTC)
    repo, _, _ = _repo(store, auth, storage)
    old = await repo.add_task(Task(title="old"))
    recent = await repo.add_task(Task(title="recent"))
    await _trash(store, old, now - timedelta(days=8))
    await _trash(store, recent, now - timedelta(days=6))

    assert [t.id for t in await repo.get_tasks_to_auto_delete(now)] == [old]
    assert await repo.auto_delete_old_tasks(now) == 1

    assert await repo.get_task(old) is None
    assert await repo.get_task(recent) is not None


@pytest.mark.asyncio
async def test_auto_delete_is_best_effort(backend, auth, storage) -> None:
    now = datetime(2024, 6, 10, tzinfo=UTC)
    store = FlakyStore(backend)
    repo, _, _ = _repo(store, auth, storage)
    ids = [await repo.add_task(Task(title=f"t{i}")) for i in range(3)]
    for task_id in ids:
        await _trash(backend, task_id, now - timedelta(days=10))
    store.fail_ids = {ids[1]}

    assert await repo.auto_delete_old_tasks(now) == 2
    assert await backend.get("tasks", ids[1]) is not None


@pytest.mark.asyncio
async def test_auto_delete_loop_runs_immediately(store, auth, storage) -> None:
    repo, _, _ = _repo(store, auth, storage)
    task_id = await repo.add_task(Task(title="old"))
    await _trash(store, task_id, datetime.now(UTC) - timedelta(days=30))

    runner = asyncio.create_task(run_auto_delete(repo, interval_seconds=0.01))
    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert await repo.get_task(task_id) is None
