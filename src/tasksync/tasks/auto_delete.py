# src/tasksync/tasks/auto_delete.py

from __future__ import annotations

"""
Trash auto-expire loop.

Runs the sweep once immediately, then every interval_seconds. A failed sweep
is logged and the loop keeps going.
"""

import asyncio
import logging

from .task_repository import TaskRepository

logger = logging.getLogger(__name__)


async def run_auto_delete(repo: TaskRepository, *, interval_seconds: float = 3600.0) -> None:
    """
    Periodic sweep of expired trashed tasks.

    To stop the loop, cancel the coroutine/task.
    """
    sleep_s = max(0.5, float(interval_seconds))

    while True:
        try:
            removed = await repo.auto_delete_old_tasks()
            if removed:
                logger.info("Auto-delete sweep removed %d task(s)", removed)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Auto-delete sweep failed")

        await asyncio.sleep(sleep_s)
