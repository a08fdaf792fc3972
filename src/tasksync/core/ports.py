# src/tasksync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

Services depend on Protocols instead of concrete implementations.
This keeps the store/auth/email backends swappable and makes testing easier.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

Document = dict[str, Any]
# A stored document: field map plus its "id".

Where = tuple[str, str, Any]
# (field, op, value); op is "==" or "array-contains".

SnapshotCallback = Callable[[list[Document]], Awaitable[None] | None]
Unsubscribe = Callable[[], None]


@dataclass(frozen=True, slots=True)
class CurrentUser:
    uid: str
    email: str | None = None
    display_name: str | None = None


class AuthProvider(Protocol):
    """Who is signed in right now (None when nobody is)."""

    def current_user(self) -> CurrentUser | None: ...


class DocumentStore(Protocol):
    """
    Hosted document database, addressed by collection name and opaque string id.

    Queries support a single equality/array-containment filter and a single
    order field; everything else is filtered by the caller in memory.
    """

    def new_id(self) -> str: ...

    async def add(self, collection: str, data: Document, *, doc_id: str | None = None) -> str: ...
    async def set(self, collection: str, doc_id: str, data: Document) -> None: ...
    async def get(self, collection: str, doc_id: str) -> Document | None: ...
    async def update(self, collection: str, doc_id: str, patch: Document) -> None: ...
    async def delete(self, collection: str, doc_id: str) -> None: ...

    async def query(
            self,
            collection: str,
            *,
            where: Where | None = None,
            order_by: str | None = None,
            descending: bool = False,
            limit: int | None = None,
    ) -> list[Document]: ...

    async def watch(
            self,
            collection: str,
            callback: SnapshotCallback,
            *,
            where: Where | None = None,
            order_by: str | None = None,
            descending: bool = False,
    ) -> Unsubscribe: ...


class LocalStorage(Protocol):
    """Small durable key/value storage owned by this process."""

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...


class EmailSink(Protocol):
    """External mail sender. Returns False on failure; never retries."""

    async def send(self, *, to: str, subject: str, body: str) -> bool: ...
