# src/tasksync/sync/offline_queue.py

from __future__ import annotations

"""
Offline sync queue.

Mutations that could not reach the store are kept in an ordered list,
persisted to local storage after every change, and replayed strictly FIFO
whenever the network comes back:

- take the head item,
- dispatch it (create -> add, update -> update by id, delete -> delete by id),
- on success pop it, persist, and continue with the next one,
- on failure keep the queue as-is and stop until the next online transition.

There is no backoff timer; a failed drain waits for the next trigger.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..core.errors import StoreError
from ..core.ports import DocumentStore, LocalStorage
from ..store import codec
from .network_status import NetworkStatusMonitor

logger = logging.getLogger(__name__)

SYNC_QUEUE_KEY = "syncQueue"


class SyncItemType(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(slots=True)
class SyncItem:
    type: SyncItemType
    collection: str
    id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    @classmethod
    def from_record(cls, raw: dict[str, Any]) -> SyncItem | None:
        try:
            item_type = SyncItemType(raw["type"])
            collection = str(raw["collection"])
        except (KeyError, ValueError, TypeError):
            return None
        data = raw.get("data")
        return cls(
            type=item_type,
            collection=collection,
            id=raw.get("id") or None,
            data=data if isinstance(data, dict) else {},
            timestamp=int(raw.get("timestamp") or 0),
        )

    def to_record(self) -> dict[str, Any]:
        rec: dict[str, Any] = {
            "type": self.type.value,
            "collection": self.collection,
            "data": self.data,
            "timestamp": self.timestamp,
        }
        if self.id:
            rec["id"] = self.id
        return rec


async def apply_sync_item(store: DocumentStore, item: SyncItem) -> bool:
    """
    Apply one mutation to the store.

    Returns False without touching the store when an update/delete has no id.
    Store errors propagate to the caller.
    """
    if item.type == SyncItemType.CREATE:
        await store.add(item.collection, item.data, doc_id=item.id)
        return True
    if item.type == SyncItemType.UPDATE:
        if not item.id:
            return False
        await store.update(item.collection, item.id, item.data)
        return True
    if item.type == SyncItemType.DELETE:
        if not item.id:
            return False
        await store.delete(item.collection, item.id)
        return True
    return False


class OfflineSyncQueue:
    def __init__(
            self,
            store: DocumentStore,
            storage: LocalStorage,
            monitor: NetworkStatusMonitor | None = None,
    ) -> None:
        self._store = store
        self._storage = storage
        self._queue: list[SyncItem] = []
        self.sync_in_progress = False
        self.status = ""

        self._load()

        self._unsubscribe = None
        if monitor is not None:
            self._unsubscribe = monitor.subscribe(self._on_status_change)

    # ---- persistence ----

    def _load(self) -> None:
        raw = self._storage.get_item(SYNC_QUEUE_KEY)
        if not raw:
            return
        try:
            records = codec.loads(raw)
        except ValueError:
            logger.exception("Persisted sync queue is not valid JSON; ignoring it.")
            return
        if not isinstance(records, list):
            return
        for rec in records:
            item = SyncItem.from_record(rec) if isinstance(rec, dict) else None
            if item is None:
                logger.warning("Dropping malformed sync item: %r", rec)
                continue
            self._queue.append(item)
        if self._queue:
            self.status = f"{len(self._queue)} item(s) waiting to sync"
            logger.info("Loaded sync queue: %d pending item(s)", len(self._queue))

    def _save(self) -> None:
        self._storage.set_item(SYNC_QUEUE_KEY, codec.dumps([i.to_record() for i in self._queue]))

    # ---- public API ----

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    @property
    def is_syncing(self) -> bool:
        return self.sync_in_progress

    def pending_items(self) -> list[SyncItem]:
        return list(self._queue)

    def enqueue(self, item: SyncItem) -> None:
        self._queue.append(item)
        self._save()
        self.status = f"{len(self._queue)} item(s) waiting to sync"
        logger.info(
            "Queued %s %s/%s (pending=%d)",
            item.type.value,
            item.collection,
            item.id or "-",
            len(self._queue),
        )

    async def process_queue(self) -> int:
        """
        Drain the queue head-first until it is empty or an item fails.

        Returns the number of items applied by this call (0 when the call was a
        no-op because the queue is empty or another drain is running).
        """
        if not self._queue or self.sync_in_progress:
            return 0

        self.sync_in_progress = True
        self.status = "sync started"
        applied = 0
        try:
            while self._queue:
                item = self._queue[0]
                try:
                    ok = await apply_sync_item(self._store, item)
                except StoreError as e:
                    logger.warning(
                        "Sync of %s %s/%s failed (%s); will retry later",
                        item.type.value,
                        item.collection,
                        item.id or "-",
                        e,
                    )
                    self.status = "sync error; will retry later"
                    break
                except Exception:
                    logger.exception("Unexpected sync failure for %s %s", item.type.value, item.collection)
                    self.status = "sync error; will retry later"
                    break

                if not ok:
                    logger.warning(
                        "Sync item %s %s has no id; keeping it for a later retry",
                        item.type.value,
                        item.collection,
                    )
                    self.status = "sync failed; will retry later"
                    break

                self._queue.pop(0)
                self._save()
                applied += 1
                self.status = f"{len(self._queue)} item(s) left to sync"
                logger.debug("Synced %s %s/%s", item.type.value, item.collection, item.id or "-")
        finally:
            self.sync_in_progress = False

        if applied:
            logger.info("Sync drained %d item(s), %d pending", applied, len(self._queue))
        return applied

    async def _on_status_change(self, online: bool) -> None:
        if online:
            await self.process_queue()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
