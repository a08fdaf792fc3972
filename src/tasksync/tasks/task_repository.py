# src/tasksync/tasks/task_repository.py

from __future__ import annotations

"""
Task repository.

All tasks live in one collection. Views are a narrow store query (one order
field) followed by an in-memory predicate from task_views.

Writes that fail because the store is unreachable are handed to the offline
sync queue and the call returns normally. Assignment notifications are
spawned as detached jobs after a successful write.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

from ..core.auth import require_user
from ..core.errors import StoreError, StoreUnavailableError
from ..core.ports import AuthProvider, CurrentUser, Document, DocumentStore, Unsubscribe
from ..notifications.fanout import NotificationFanout
from ..store.codec import to_datetime, utcnow
from ..sync.offline_queue import OfflineSyncQueue, SyncItem, SyncItemType, apply_sync_item
from .tag_service import TAGS, TagService
from .task_models import (
    AssigneeSet,
    Task,
    TaskPriority,
    TaskStatus,
    task_patch_to_doc,
    validate_task_fields,
)
from .task_views import (
    DEFAULT_RETENTION,
    VIEW_ORDER,
    TaskView,
    filter_view,
    in_tag_view,
    is_expired,
)

logger = logging.getLogger(__name__)

TASKS = "tasks"

ViewCallback = Callable[[list[Task]], Awaitable[None] | None]


class TaskRepository:
    def __init__(
            self,
            store: DocumentStore,
            auth: AuthProvider,
            fanout: NotificationFanout,
            *,
            sync_queue: OfflineSyncQueue | None = None,
            tags: TagService | None = None,
            retention: timedelta = DEFAULT_RETENTION,
            clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._auth = auth
        self._fanout = fanout
        self._sync_queue = sync_queue
        self._tags = tags
        self._retention = retention
        self._clock = clock

    # ---- write path ----

    async def _write(self, item: SyncItem) -> bool:
        """Apply a mutation now, or queue it when the store is unreachable. True if applied."""
        try:
            await apply_sync_item(self._store, item)
            return True
        except StoreUnavailableError:
            if self._sync_queue is None:
                raise
            logger.warning("Store unreachable; queueing %s %s/%s", item.type.value, item.collection, item.id)
            self._sync_queue.enqueue(item)
            return False

    async def _patch(self, task_id: str, patch: dict[str, Any]) -> bool:
        patch["updatedAt"] = self._clock()
        return await self._write(SyncItem(type=SyncItemType.UPDATE, collection=TASKS, id=task_id, data=patch))

    # ---- reads ----

    async def get_task(self, task_id: str) -> Task | None:
        doc = await self._store.get(TASKS, task_id)
        return Task.from_doc(doc) if doc else None

    async def list_view(self, view: TaskView) -> list[Task]:
        viewer = require_user(self._auth, f"list {view} tasks")
        order_by, descending = VIEW_ORDER[TaskView(view)]
        docs = await self._store.query(TASKS, order_by=order_by, descending=descending)
        return filter_view(view, (Task.from_doc(d) for d in docs), viewer)

    async def watch_view(self, view: TaskView, callback: ViewCallback) -> Unsubscribe:
        """Live view: callback receives the filtered task list on every change."""
        viewer = require_user(self._auth, f"watch {view} tasks")
        order_by, descending = VIEW_ORDER[TaskView(view)]

        async def on_snapshot(docs: list[Document]) -> None:
            tasks = filter_view(view, (Task.from_doc(d) for d in docs), viewer)
            res = callback(tasks)
            if asyncio.iscoroutine(res):
                await res

        return await self._store.watch(TASKS, on_snapshot, order_by=order_by, descending=descending)

    async def list_tag_tasks(self, tag_name: str) -> list[Task]:
        docs = await self._store.query(TASKS, order_by="createdAt", descending=True)
        return [t for t in (Task.from_doc(d) for d in docs) if in_tag_view(t, tag_name)]

    # ---- mutations ----

    async def add_task(self, task: Task) -> str:
        """
        Create a task owned by the signed-in user and return its id.

        The id is generated client side so an offline create can be replayed
        later under the same id.
        """
        actor = require_user(self._auth, "add task")
        validate_task_fields(title=task.title, start_date=task.start_date, due_date=task.due_date)

        now = self._clock()
        task.owner_id = task.owner_id or actor.uid
        task.created_at = now
        task.updated_at = now
        task.deleted = False
        task.deleted_at = None
        task.archived = False
        task.archived_at = None
        task.reminder = False
        task.id = task.id or self._store.new_id()

        if task.tag and self._tags is not None:
            await self._ensure_tag(task.tag, actor)

        applied = await self._write(SyncItem(type=SyncItemType.CREATE, collection=TASKS, id=task.id, data=task.to_doc()))
        logger.info("Task added id=%s queued=%s assignees=%d", task.id, not applied, len(task.assigned_users))

        if applied and task.assigned_users:
            self._fanout.spawn(self._fanout.notify_assignment(task.id, task, actor), label=f"assign {task.id}")
        return task.id

    async def _ensure_tag(self, name: str, actor: CurrentUser) -> None:
        """
        Lazily create the task's tag. Offline, the tag create is queued ahead
        of the task create so both land on replay (add is an upsert on id=name).
        """
        try:
            await self._tags.ensure_tag(name, actor)
        except StoreUnavailableError:
            if self._sync_queue is None:
                logger.warning("Store unreachable; tag %s not created", name)
                return
            tag = self._tags.lazy_tag(name, actor)
            self._sync_queue.enqueue(SyncItem(type=SyncItemType.CREATE, collection=TAGS, id=name, data=tag.to_doc()))
            logger.warning("Store unreachable; queued lazy create of tag %s", name)
        except StoreError:
            logger.exception("Could not ensure tag %s; saving the task anyway", name)

    async def update_task(self, task_id: str, patch: Mapping[str, Any]) -> None:
        """
        Patch a task (keys are Task attribute names).

        When the patch carries only one of start_date/due_date, the other one
        is taken from the stored task so the date order is always checked.

        A non-empty assigned_users in the patch re-sends assignment
        notifications to everyone listed, even when the list did not change.
        """
        start_date = to_datetime(patch.get("start_date"))
        due_date = to_datetime(patch.get("due_date"))
        if ("start_date" in patch) != ("due_date" in patch):
            current = await self._safe_get(task_id)
            if current is not None:
                if "start_date" not in patch:
                    start_date = current.start_date
                if "due_date" not in patch:
                    due_date = current.due_date

        validate_task_fields(
            title=patch.get("title"),
            start_date=start_date,
            due_date=due_date,
            check_title="title" in patch,
        )
        doc_patch = task_patch_to_doc(patch)
        applied = await self._patch(task_id, doc_patch)
        logger.info("Task updated id=%s fields=%s queued=%s", task_id, sorted(patch), not applied)

        assignees = AssigneeSet.from_records(patch.get("assigned_users"))
        if applied and assignees:
            actor = self._auth.current_user()
            task = await self._safe_get(task_id) or Task(id=task_id, title=str(patch.get("title") or ""))
            task.assigned_users = assignees
            self._fanout.spawn(self._fanout.notify_assignment(task_id, task, actor), label=f"assign {task_id}")

    async def _safe_get(self, task_id: str) -> Task | None:
        try:
            return await self.get_task(task_id)
        except StoreError:
            logger.exception("Could not read task %s", task_id)
            return None

    async def set_status(self, task_id: str, status: TaskStatus) -> None:
        await self._patch(task_id, {"status": TaskStatus(status).value})

    async def set_priority(self, task_id: str, priority: TaskPriority) -> None:
        await self._patch(task_id, {"priority": TaskPriority(priority).value})

    async def toggle_reminder(self, task_id: str, reminder: bool) -> None:
        await self._patch(task_id, {"reminder": bool(reminder)})

    async def archive_task(self, task_id: str) -> None:
        await self._patch(task_id, {"archived": True, "archivedAt": self._clock()})
        logger.info("Task archived id=%s", task_id)

    async def restore_task(self, task_id: str) -> None:
        """Bring an archived task back to the active list."""
        await self._patch(task_id, {"archived": False, "archivedAt": None})
        logger.info("Task restored from archive id=%s", task_id)

    async def move_to_trash(self, task_id: str) -> None:
        await self._patch(task_id, {"deleted": True, "deletedAt": self._clock()})
        logger.info("Task moved to trash id=%s", task_id)

    async def restore_from_trash(self, task_id: str) -> None:
        await self._patch(task_id, {"deleted": False, "deletedAt": None})
        logger.info("Task restored from trash id=%s", task_id)

    async def delete_task(self, task_id: str) -> None:
        """Permanent delete."""
        await self._write(SyncItem(type=SyncItemType.DELETE, collection=TASKS, id=task_id))
        logger.info("Task deleted id=%s", task_id)

    # ---- auto-expire ----

    async def get_tasks_to_auto_delete(self, now: datetime | None = None) -> list[Task]:
        now = now or self._clock()
        docs = await self._store.query(TASKS, where=("deleted", "==", True))
        return [t for t in (Task.from_doc(d) for d in docs) if is_expired(t, now, self._retention)]

    async def auto_delete_old_tasks(self, now: datetime | None = None) -> int:
        """
        Hard-delete every trashed task older than the retention window.

        Best-effort: a failed delete is logged and the rest of the batch goes on.
        Returns the number of tasks removed.
        """
        expired = await self.get_tasks_to_auto_delete(now)
        if not expired:
            return 0

        results = await asyncio.gather(
            *(self._store.delete(TASKS, t.id) for t in expired),
            return_exceptions=True,
        )
        removed = 0
        for task, res in zip(expired, results):
            if isinstance(res, BaseException):
                logger.error("Auto-delete failed for task %s", task.id, exc_info=res)
                continue
            removed += 1

        logger.info("Auto-deleted %d/%d expired task(s)", removed, len(expired))
        return removed
