# src/tasksync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Every path lives under a local (gitignored) data dir by default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

ENV_PREFIX = "TASKSYNC"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Signed-in user (the worker acts on behalf of one account) ----
    user_id: Optional[str]
    user_email: Optional[str]
    user_display_name: Optional[str]

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    store_db_path: Path
    local_storage_path: Path

    # ---- Connectivity ----
    start_online: bool
    probe_url: Optional[str]
    probe_interval_seconds: float
    probe_timeout_seconds: float

    # ---- Auto-delete sweep ----
    auto_delete_enabled: bool
    auto_delete_interval_seconds: float
    trash_retention_days: int

    # ---- Email sink ----
    email_webhook_url: Optional[str]
    email_timeout_seconds: float
    frontend_url: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "tasksync") or "tasksync"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        user_id = _first_env(_k("USER_ID"), default=None)
        user_email = _first_env(_k("USER_EMAIL"), default=None)
        user_display_name = _first_env(_k("USER_DISPLAY_NAME"), default=None)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/tasksync"))
        store_db_path = _env_path(_k("STORE_DB_PATH"), data_dir / "documents.sqlite3")
        local_storage_path = _env_path(_k("LOCAL_STORAGE_PATH"), data_dir / "local_storage.json")

        start_online = _env_bool(_k("START_ONLINE"), True)
        probe_url = (_first_env(_k("PROBE_URL"), default="") or "").strip() or None
        probe_interval_seconds = _env_float(_k("PROBE_INTERVAL_SECONDS"), 15.0)
        probe_timeout_seconds = _env_float(_k("PROBE_TIMEOUT_SECONDS"), 5.0)

        auto_delete_enabled = _env_bool(_k("AUTO_DELETE_ENABLED"), True)
        auto_delete_interval_seconds = _env_float(_k("AUTO_DELETE_INTERVAL_SECONDS"), 3600.0)
        trash_retention_days = _env_int(_k("TRASH_RETENTION_DAYS"), 7)

        email_webhook_url = (_first_env(_k("EMAIL_WEBHOOK_URL"), default="") or "").strip() or None
        email_timeout_seconds = _env_float(_k("EMAIL_TIMEOUT_SECONDS"), 10.0)
        frontend_url = _env(_k("FRONTEND_URL"), "http://localhost:4200")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            user_id=user_id,
            user_email=user_email,
            user_display_name=user_display_name,
            data_dir=data_dir,
            store_db_path=store_db_path,
            local_storage_path=local_storage_path,
            start_online=start_online,
            probe_url=probe_url,
            probe_interval_seconds=probe_interval_seconds,
            probe_timeout_seconds=probe_timeout_seconds,
            auto_delete_enabled=auto_delete_enabled,
            auto_delete_interval_seconds=auto_delete_interval_seconds,
            trash_retention_days=trash_retention_days,
            email_webhook_url=email_webhook_url,
            email_timeout_seconds=email_timeout_seconds,
            frontend_url=frontend_url,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
