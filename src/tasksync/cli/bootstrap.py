# src/tasksync/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the document store, the offline queue and the services into AppState.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from ..config import get_settings
from ..core.auth import StaticAuthProvider
from ..core.state import AppState
from ..directory.assignees import AssigneeCache, TagDirectory
from ..messages.message_service import MessageService
from ..notifications.email_sink import create_email_sink
from ..notifications.fanout import NotificationFanout
from ..store.document_store import ConnectivityGatedStore, SQLiteDocumentStore
from ..store.local_storage import JsonFileStorage
from ..sync.network_status import NetworkStatusMonitor
from ..sync.offline_queue import OfflineSyncQueue
from ..tasks.tag_service import TagService
from ..tasks.task_repository import TaskRepository

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.local_storage_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    monitor = NetworkStatusMonitor(online=settings.start_online)
    backend = SQLiteDocumentStore(settings.store_db_path)
    store = ConnectivityGatedStore(backend, monitor)
    storage = JsonFileStorage(settings.local_storage_path)
    sync_queue = OfflineSyncQueue(store, storage, monitor)

    auth = StaticAuthProvider.from_settings(settings)
    if auth.current_user() is None:
        logger.warning("No user configured (%s_USER_ID); task writes will be refused.", settings.app_name.upper())

    fanout = NotificationFanout(
        store,
        email_sink=create_email_sink(settings),
        frontend_url=settings.frontend_url,
    )
    tags = TagService(store)
    tasks = TaskRepository(
        store,
        auth,
        fanout,
        sync_queue=sync_queue,
        tags=tags,
        retention=timedelta(days=settings.trash_retention_days),
    )
    assignees = AssigneeCache(store)

    state = AppState(
        settings=settings,
        monitor=monitor,
        backend=backend,
        store=store,
        sync_queue=sync_queue,
        auth=auth,
        fanout=fanout,
        tags=tags,
        tasks=tasks,
        directory=TagDirectory(store),
        assignees=assignees,
        messages=MessageService(store, auth, assignees, fanout),
    )
    logger.info(
        "State ready: db=%s queued=%d online=%s",
        settings.store_db_path,
        sync_queue.pending_count,
        monitor.is_online,
    )
    return state
