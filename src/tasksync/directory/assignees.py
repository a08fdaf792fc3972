# src/tasksync/directory/assignees.py

from __future__ import annotations

import asyncio
import logging

from ..core.errors import StoreError
from ..core.ports import Document, DocumentStore, Unsubscribe
from ..tasks.task_models import PLACEHOLDER_DISPLAY_NAME, Assignee, AssigneeSet

logger = logging.getLogger(__name__)

TAGS = "tags"
USERS = "users"


async def resolve_user_profile(store: DocumentStore, user_id: str) -> Assignee:
    """
    Project users/{uid} to an Assignee.

    Missing profiles (or a failed read) fall back to the raw id as email and
    the placeholder display name.
    """
    try:
        doc = await store.get(USERS, user_id)
    except StoreError:
        logger.exception("Failed to read user profile %s", user_id)
        return Assignee(email=user_id, display_name=PLACEHOLDER_DISPLAY_NAME)

    if doc is None:
        logger.warning("User profile not found: %s", user_id)
        return Assignee(email=user_id, display_name=PLACEHOLDER_DISPLAY_NAME)

    return Assignee(
        email=str(doc.get("email") or user_id),
        display_name=str(doc.get("displayName") or PLACEHOLDER_DISPLAY_NAME),
    )


async def assignees_of_tag(store: DocumentStore, tag_doc: Document) -> AssigneeSet:
    """Embedded assignedUsers win when non-empty; otherwise resolve assignedUserIds."""

    async def lookup(uid: str) -> Assignee:
        return await resolve_user_profile(store, uid)

    return await AssigneeSet.canonical(
        tag_doc.get("assignedUsers") or [],
        tag_doc.get("assignedUserIds") or [],
        lookup,
    )


class TagDirectory:
    """Resolves a tag reference (name first, then id) to its assignee list."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def find_tag(self, tag_ref: str) -> Document | None:
        if not tag_ref:
            return None
        found = await self._store.query(TAGS, where=("name", "==", tag_ref), limit=1)
        if found:
            logger.debug("Tag found by name: %s", tag_ref)
            return found[0]
        return await self._store.get(TAGS, tag_ref)

    async def get_assigned_users(self, tag_ref: str) -> list[Assignee]:
        try:
            tag_doc = await self.find_tag(tag_ref)
        except StoreError:
            logger.exception("Failed to look up tag %s", tag_ref)
            return []

        if tag_doc is None:
            logger.info("Tag not found: %s", tag_ref)
            return []

        users = await assignees_of_tag(self._store, tag_doc)
        if not users:
            logger.info("Tag %s has no assigned users", tag_ref)
        return list(users)


class AssigneeCache:
    """
    Process-wide assignee list across all tags, kept fresh by a live
    subscription on the tags collection.

    The subscription handler is the only writer. Readers get the last
    published tuple; a read during a refresh may return the previous one.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._users: tuple[Assignee, ...] = ()
        self._loaded = asyncio.Event()
        self._unsubscribe: Unsubscribe | None = None
        self._load_lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._loaded.is_set()

    def users(self) -> tuple[Assignee, ...]:
        return self._users

    async def start(self) -> None:
        """Initial load (via the subscription's first snapshot) and live refresh."""
        if self._unsubscribe is not None:
            return
        try:
            self._unsubscribe = await self._store.watch(TAGS, self._on_snapshot)
        except StoreError:
            logger.exception("Failed to subscribe to tags; assignee cache stays empty")

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def wait_loaded(self) -> tuple[Assignee, ...]:
        """Block until at least one load has completed; load now if nothing is running."""
        if self.loaded:
            return self._users
        async with self._load_lock:
            if not self.loaded:
                try:
                    docs = await self._store.query(TAGS)
                except StoreError:
                    logger.exception("Failed to load tags for the assignee cache")
                    return self._users
                await self._on_snapshot(docs)
        return self._users

    async def _on_snapshot(self, docs: list[Document]) -> None:
        collected: list[Assignee] = []
        for doc in docs:
            collected.extend(await assignees_of_tag(self._store, doc))
        self._users = AssigneeSet(tuple(a for a in collected if a.email)).unique_by_email().members
        self._loaded.set()
        logger.debug("Assignee cache refreshed: %d user(s)", len(self._users))
