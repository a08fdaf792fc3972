# src/tasksync/core/errors.py

from __future__ import annotations


class TaskSyncError(Exception):
    """Base class for every error raised by tasksync."""


class StoreError(TaskSyncError):
    """A document store operation failed."""


class StoreUnavailableError(StoreError):
    """
    The store could not be reached.

    Writes failing with this error are queued for replay instead of surfacing.
    """


class DocumentNotFoundError(StoreError):
    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"{collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class NotAuthenticatedError(TaskSyncError):
    """No signed-in user; the operation is aborted without retry."""


class TaskValidationError(TaskSyncError, ValueError):
    """Rejected before any write is attempted."""


class DuplicateTagError(TaskSyncError):
    def __init__(self, name: str) -> None:
        super().__init__(f"A tag named {name!r} already exists")
        self.name = name
