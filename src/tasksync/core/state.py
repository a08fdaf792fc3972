# src/tasksync/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..core.auth import StaticAuthProvider
from ..directory.assignees import AssigneeCache, TagDirectory
from ..messages.message_service import MessageService
from ..notifications.fanout import NotificationFanout
from ..store.document_store import ConnectivityGatedStore, SQLiteDocumentStore
from ..sync.network_status import NetworkStatusMonitor
from ..sync.offline_queue import OfflineSyncQueue
from ..tasks.tag_service import TagService
from ..tasks.task_repository import TaskRepository


@dataclass
class AppState:
    # Settings are kept on the state for easy access in other modules.
    settings: Any

    monitor: NetworkStatusMonitor
    backend: SQLiteDocumentStore
    store: ConnectivityGatedStore
    sync_queue: OfflineSyncQueue
    auth: StaticAuthProvider
    fanout: NotificationFanout

    tags: TagService
    tasks: TaskRepository
    directory: TagDirectory
    assignees: AssigneeCache
    messages: MessageService
