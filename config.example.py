# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real account data. Use a local, gitignored .env.

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "TASKSYNC_APP_NAME": "App display name (default: tasksync).",
    "TASKSYNC_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Signed-in account
    "TASKSYNC_USER_ID": "User id the worker acts as (empty => not signed in, writes are refused).",
    "TASKSYNC_USER_EMAIL": "Email of that user (used as notification sender).",
    "TASKSYNC_USER_DISPLAY_NAME": "Display name of that user.",
    # Paths (gitignored)
    "TASKSYNC_DATA_DIR": "Local data directory, also holds tasksync.log (default: .local/tasksync).",
    "TASKSYNC_STORE_DB_PATH": "Document store SQLite path (default: <data_dir>/documents.sqlite3).",
    "TASKSYNC_LOCAL_STORAGE_PATH": (
        "Key/value JSON file holding the offline sync queue (default: <data_dir>/local_storage.json)."
    ),
    # Connectivity
    "TASKSYNC_START_ONLINE": "Initial connectivity state (true/false, default: true).",
    "TASKSYNC_PROBE_URL": "URL polled to detect connectivity (empty => no probe).",
    "TASKSYNC_PROBE_INTERVAL_SECONDS": "Seconds between probes (default: 15).",
    "TASKSYNC_PROBE_TIMEOUT_SECONDS": "Probe request timeout (default: 5).",
    # Trash auto-delete
    "TASKSYNC_AUTO_DELETE_ENABLED": "Run the periodic trash sweep (true/false, default: true).",
    "TASKSYNC_AUTO_DELETE_INTERVAL_SECONDS": "Seconds between sweeps (default: 3600).",
    "TASKSYNC_TRASH_RETENTION_DAYS": "Days a trashed task is kept before hard delete (default: 7).",
    # Email
    "TASKSYNC_EMAIL_WEBHOOK_URL": "Webhook receiving {to, subject, body} JSON (empty => mails are only logged).",
    "TASKSYNC_EMAIL_TIMEOUT_SECONDS": "Webhook request timeout (default: 10).",
    "TASKSYNC_FRONTEND_URL": "Base URL used for task links in mails (default: http://localhost:4200).",
}
