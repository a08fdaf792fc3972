# src/tasksync/tasks/tag_service.py

from __future__ import annotations

import asyncio
import logging

from ..core.errors import DuplicateTagError
from ..core.ports import CurrentUser, DocumentStore
from ..store.codec import utcnow
from .task_models import PLACEHOLDER_DISPLAY_NAME, Assignee, AssigneeSet, Tag

logger = logging.getLogger(__name__)

TAGS = "tags"


class TagService:
    """
    Projects (tags): listing, creation with a per-owner name check, sidebar
    ordering and deletion.

    Deleting a tag does not touch tasks; their `tag` string simply dangles.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def list_tags(self, viewer: CurrentUser) -> list[Tag]:
        owned = await self._store.query(TAGS, where=("ownerId", "==", viewer.uid))
        assigned = await self._store.query(TAGS, where=("assignedUserIds", "array-contains", viewer.uid))

        seen: set[str] = set()
        out: list[Tag] = []
        for doc in [*owned, *assigned]:
            if doc["id"] in seen:
                continue
            seen.add(doc["id"])
            out.append(Tag.from_doc(doc))
        out.sort(key=lambda t: t.order)
        return out

    async def find_owned(self, name: str, owner_id: str) -> Tag | None:
        docs = await self._store.query(TAGS, where=("name", "==", name))
        for doc in docs:
            if doc.get("ownerId") == owner_id:
                return Tag.from_doc(doc)
        return None

    async def add_tag(self, tag: Tag) -> str:
        """Insert a new tag; the name must be unused by the same owner."""
        if await self.find_owned(tag.name, tag.owner_id) is not None:
            raise DuplicateTagError(tag.name)
        if tag.created_at is None:
            tag.created_at = utcnow()
        tag_id = await self._store.add(TAGS, tag.to_doc(), doc_id=tag.id or None)
        logger.info("Tag created id=%s name=%s owner=%s", tag_id, tag.name, tag.owner_id)
        return tag_id

    async def ensure_tag(self, name: str, owner: CurrentUser) -> Tag:
        """
        Return the tag a task refers to, creating it on first use.

        Lookup is by name, then by id. A created tag uses the name as its id
        and starts with the creator as its only assignee.
        """
        found = await self._store.query(TAGS, where=("name", "==", name), limit=1)
        if found:
            return Tag.from_doc(found[0])
        doc = await self._store.get(TAGS, name)
        if doc is not None:
            return Tag.from_doc(doc)

        tag = self.lazy_tag(name, owner)
        await self._store.set(TAGS, name, tag.to_doc())
        logger.info("Tag created lazily name=%s owner=%s", name, owner.uid)
        return tag

    @staticmethod
    def lazy_tag(name: str, owner: CurrentUser) -> Tag:
        """The document ensure_tag writes for a first-time tag name (id = name)."""
        return Tag(
            id=name,
            name=name,
            owner_id=owner.uid,
            assigned_user_ids=[owner.uid],
            assigned_users=AssigneeSet(
                (Assignee(email=owner.email or "", display_name=owner.display_name or PLACEHOLDER_DISPLAY_NAME),)
            ),
            order=0,
            created_at=utcnow(),
        )

    async def update_tag_orders(self, tags: list[Tag]) -> list[str]:
        """
        Write order = index for every tag with an id.

        Best-effort, not atomic: all writes are attempted, each failure is
        logged, and the ids that could not be reordered are returned. A tag's
        in-memory order changes only when its write succeeded.
        """
        targets = [(index, tag) for index, tag in enumerate(tags) if tag.id]
        results = await asyncio.gather(
            *(self._store.update(TAGS, tag.id, {"order": index}) for index, tag in targets),
            return_exceptions=True,
        )

        failed: list[str] = []
        for (index, tag), res in zip(targets, results):
            if isinstance(res, BaseException):
                logger.error("Reorder failed for tag %s", tag.id, exc_info=res)
                failed.append(tag.id)
                continue
            tag.order = index

        if failed:
            logger.warning("Tag order partially applied: %d/%d failed", len(failed), len(targets))
        return failed

    async def delete_tag(self, tag_id: str) -> None:
        await self._store.delete(TAGS, tag_id)
        logger.info("Tag deleted id=%s (tasks keep their tag name)", tag_id)
