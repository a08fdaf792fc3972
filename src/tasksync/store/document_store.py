# src/tasksync/store/document_store.py

from __future__ import annotations

import contextlib
import inspect
import logging
import sqlite3
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..core.errors import DocumentNotFoundError, StoreError, StoreUnavailableError
from ..core.ports import Document, DocumentStore, SnapshotCallback, Unsubscribe, Where
from . import codec

logger = logging.getLogger(__name__)

_OPS = ("==", "array-contains")


def new_document_id() -> str:
    """20-char opaque id, same shape as the hosted store's auto ids."""
    return uuid.uuid4().hex[:20]


def _matches(doc: Document, where: Where | None) -> bool:
    if where is None:
        return True
    field, op, value = where
    if field not in doc:
        return False
    current = doc[field]
    if op == "==":
        return current == value
    if op == "array-contains":
        return isinstance(current, list) and value in current
    raise ValueError(f"Unsupported query operator: {op}")


def _sort_key(field: str):
    def key(doc: Document) -> tuple[int, Any]:
        v = doc.get(field)
        if v is None:
            return (0, 0)
        return (1, v)

    return key


def apply_query(
        docs: list[Document],
        *,
        where: Where | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
) -> list[Document]:
    """
    Filter/sort a collection snapshot the way the hosted store does.

    Ordering by a field drops documents that do not carry that field at all
    (a null value is kept and sorts first).
    """
    if where is not None and where[1] not in _OPS:
        raise ValueError(f"Unsupported query operator: {where[1]}")

    out = [d for d in docs if _matches(d, where)]
    if order_by:
        out = [d for d in out if order_by in d]
        try:
            out.sort(key=_sort_key(order_by), reverse=descending)
        except TypeError:
            out.sort(key=lambda d: str(d.get(order_by)), reverse=descending)
    if limit is not None:
        out = out[: max(0, int(limit))]
    return out


@dataclass(slots=True)
class _Listener:
    collection: str
    callback: SnapshotCallback
    where: Where | None
    order_by: str | None
    descending: bool
    active: bool = True


class SQLiteDocumentStore:
    """
    SQLite-backed document store.

    One row per document: (collection, id, JSON data). Queries load the
    collection and filter in Python, which mirrors the single-filter /
    single-order capability of the hosted store.

    Change notification:
    - watch() delivers an initial snapshot, then a fresh snapshot after every
      write to the watched collection made through this instance.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "documents.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._listeners: list[_Listener] = []
        self._ensure_schema()
        logger.info("SQLiteDocumentStore ready db=%s", self._db_path)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        self._listeners.clear()

    def new_id(self) -> str:
        return new_document_id()

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        except sqlite3.OperationalError as e:
            raise StoreUnavailableError(str(e)) from e
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    data TEXT NOT NULL DEFAULT '{}',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (collection, id)
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection)")
            conn.commit()
        finally:
            conn.close()

    def _run(self, fn):
        conn = self._get_conn()
        try:
            return fn(conn)
        except sqlite3.OperationalError as e:
            raise StoreUnavailableError(str(e)) from e
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    @staticmethod
    def _row_to_doc(row: sqlite3.Row) -> Document:
        try:
            data = codec.loads(row["data"])
        except ValueError:
            logger.exception("Corrupt document %s/%s; treating as empty.", row["collection"], row["id"])
            data = {}
        if not isinstance(data, dict):
            data = {}
        data["id"] = row["id"]
        return data

    @staticmethod
    def _strip_id(data: Document) -> Document:
        return {k: v for k, v in data.items() if k != "id"}

    def _load_collection(self, collection: str) -> list[Document]:
        def q(conn: sqlite3.Connection) -> list[Document]:
            cur = conn.execute(
                "SELECT collection, id, data FROM documents WHERE collection = ? ORDER BY created_at ASC",
                (collection,),
            )
            return [self._row_to_doc(r) for r in cur.fetchall()]

        return self._run(q)

    # ---- public API ----

    async def add(self, collection: str, data: Document, *, doc_id: str | None = None) -> str:
        doc_id = doc_id or self.new_id()
        now = time.time()
        payload = codec.dumps(self._strip_id(data))

        def q(conn: sqlite3.Connection) -> None:
            conn.execute(
                """
                INSERT INTO documents(collection, id, data, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(collection, id) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at
                """,
                (collection, doc_id, payload, now, now),
            )
            conn.commit()

        self._run(q)
        logger.debug("Document added %s/%s", collection, doc_id)
        await self._notify(collection)
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        await self.add(collection, data, doc_id=doc_id)

    async def get(self, collection: str, doc_id: str) -> Document | None:
        def q(conn: sqlite3.Connection) -> Document | None:
            cur = conn.execute(
                "SELECT collection, id, data FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            )
            row = cur.fetchone()
            return self._row_to_doc(row) if row else None

        return self._run(q)

    async def update(self, collection: str, doc_id: str, patch: Document) -> None:
        def q(conn: sqlite3.Connection) -> None:
            cur = conn.execute(
                "SELECT collection, id, data FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            )
            row = cur.fetchone()
            if row is None:
                raise DocumentNotFoundError(collection, doc_id)
            current = self._strip_id(self._row_to_doc(row))
            current.update(self._strip_id(patch))
            conn.execute(
                "UPDATE documents SET data = ?, updated_at = ? WHERE collection = ? AND id = ?",
                (codec.dumps(current), time.time(), collection, doc_id),
            )
            conn.commit()

        self._run(q)
        logger.debug("Document updated %s/%s fields=%s", collection, doc_id, sorted(patch))
        await self._notify(collection)

    async def delete(self, collection: str, doc_id: str) -> None:
        def q(conn: sqlite3.Connection) -> int:
            cur = conn.execute("DELETE FROM documents WHERE collection = ? AND id = ?", (collection, doc_id))
            conn.commit()
            return cur.rowcount

        removed = self._run(q)
        logger.debug("Document deleted %s/%s removed=%s", collection, doc_id, removed)
        await self._notify(collection)

    async def query(
            self,
            collection: str,
            *,
            where: Where | None = None,
            order_by: str | None = None,
            descending: bool = False,
            limit: int | None = None,
    ) -> list[Document]:
        docs = self._load_collection(collection)
        return apply_query(docs, where=where, order_by=order_by, descending=descending, limit=limit)

    async def watch(
            self,
            collection: str,
            callback: SnapshotCallback,
            *,
            where: Where | None = None,
            order_by: str | None = None,
            descending: bool = False,
    ) -> Unsubscribe:
        listener = _Listener(
            collection=collection,
            callback=callback,
            where=where,
            order_by=order_by,
            descending=descending,
        )
        self._listeners.append(listener)
        await self._deliver(listener, self._load_collection(collection))

        def unsubscribe() -> None:
            listener.active = False
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    # ---- change notification ----

    async def _notify(self, collection: str) -> None:
        listeners = [lst for lst in self._listeners if lst.active and lst.collection == collection]
        if not listeners:
            return
        try:
            docs = self._load_collection(collection)
        except StoreError:
            logger.exception("Snapshot load failed for %s", collection)
            return
        for listener in listeners:
            await self._deliver(listener, docs)

    @staticmethod
    async def _deliver(listener: _Listener, docs: list[Document]) -> None:
        if not listener.active:
            return
        snapshot = apply_query(
            [dict(d) for d in docs],
            where=listener.where,
            order_by=listener.order_by,
            descending=listener.descending,
        )
        try:
            res = listener.callback(snapshot)
            if inspect.isawaitable(res):
                await res
        except Exception:
            logger.exception("Snapshot listener failed for %s", listener.collection)


class ConnectivityGatedStore:
    """
    Wraps a store and fails every call with StoreUnavailableError while the
    network monitor reports offline. Live subscriptions stay registered.
    """

    def __init__(self, inner: DocumentStore, monitor) -> None:
        self._inner = inner
        self._monitor = monitor

    def _check(self, op: str, collection: str) -> None:
        if not self._monitor.is_online:
            raise StoreUnavailableError(f"offline: {op} {collection}")

    def new_id(self) -> str:
        return self._inner.new_id()

    async def add(self, collection: str, data: Document, *, doc_id: str | None = None) -> str:
        self._check("add", collection)
        return await self._inner.add(collection, data, doc_id=doc_id)

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        self._check("set", collection)
        await self._inner.set(collection, doc_id, data)

    async def get(self, collection: str, doc_id: str) -> Document | None:
        self._check("get", collection)
        return await self._inner.get(collection, doc_id)

    async def update(self, collection: str, doc_id: str, patch: Document) -> None:
        self._check("update", collection)
        await self._inner.update(collection, doc_id, patch)

    async def delete(self, collection: str, doc_id: str) -> None:
        self._check("delete", collection)
        await self._inner.delete(collection, doc_id)

    async def query(self, collection: str, **kwargs: Any) -> list[Document]:
        self._check("query", collection)
        return await self._inner.query(collection, **kwargs)

    async def watch(self, collection: str, callback: SnapshotCallback, **kwargs: Any) -> Unsubscribe:
        return await self._inner.watch(collection, callback, **kwargs)
