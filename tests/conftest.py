# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from tasksync.core.auth import StaticAuthProvider
from tasksync.core.ports import CurrentUser
from tasksync.store.document_store import ConnectivityGatedStore, SQLiteDocumentStore
from tasksync.store.local_storage import JsonFileStorage
from tasksync.sync.network_status import NetworkStatusMonitor

from .fakes import RecordingEmailSink


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="tasksync",
        log_level="INFO",
        # Signed-in account
        user_id="u-alice",
        user_email="alice@example.com",
        user_display_name="Alice",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        store_db_path=tmp_path / "documents.sqlite3",
        local_storage_path=tmp_path / "local_storage.json",
        # Connectivity
        start_online=True,
        probe_url=None,
        probe_interval_seconds=0.01,
        probe_timeout_seconds=1.0,
        # Auto-delete
        auto_delete_enabled=False,
        auto_delete_interval_seconds=0.01,
        trash_retention_days=7,
        # Email
        email_webhook_url=None,
        email_timeout_seconds=1.0,
        frontend_url="http://app.test",
    )


@pytest.fixture()
def alice() -> CurrentUser:
    return CurrentUser(uid="u-alice", email="alice@example.com", display_name="Alice")


@pytest.fixture()
def auth(alice: CurrentUser) -> StaticAuthProvider:
    return StaticAuthProvider(alice)


@pytest.fixture()
def backend(settings: SimpleNamespace) -> SQLiteDocumentStore:
    """Real SQLite store: its query/watch semantics are part of what we test."""
    return SQLiteDocumentStore(settings.store_db_path)


@pytest.fixture()
def monitor() -> NetworkStatusMonitor:
    return NetworkStatusMonitor(online=True)


@pytest.fixture()
def store(backend: SQLiteDocumentStore, monitor: NetworkStatusMonitor) -> ConnectivityGatedStore:
    return ConnectivityGatedStore(backend, monitor)


@pytest.fixture()
def storage(settings: SimpleNamespace) -> JsonFileStorage:
    return JsonFileStorage(settings.local_storage_path)


@pytest.fixture()
def email_sink() -> RecordingEmailSink:
    return RecordingEmailSink()
