# src/tasksync/logging_setup.py

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Mapping
from pathlib import Path

# Per-document / per-item debug output. Always in the file log; on the console
# only at the given level or above, even when the console runs at DEBUG.
CHATTY_LOGGERS: dict[str, int] = {
    "tasksync.store.document_store": logging.INFO,
    "tasksync.sync.offline_queue": logging.INFO,
    "tasksync.directory.assignees": logging.INFO,
}

# Third-party loggers capped at WARNING at the logger itself (file log included).
QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console filter for the worker:
    - tasksync logs pass, except chatty components below their floor
    - third-party records and captured 'py.warnings' pass only at ERROR+
    """

    def __init__(self, chatty: Mapping[str, int] | None = None) -> None:
        super().__init__()
        self._chatty = dict(CHATTY_LOGGERS if chatty is None else chatty)

    def _floor(self, name: str) -> int:
        for prefix, level in self._chatty.items():
            if name == prefix or name.startswith(prefix + "."):
                return level
        return logging.NOTSET

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == "tasksync" or name.startswith("tasksync."):
            return record.levelno >= self._floor(name)
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/tasksync",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    chatty: Mapping[str, int] | None = None,
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> Path:
    """
    Install a filtered console handler and a full file handler on the root logger.

    Call once, before the first log line. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "tasksync.log"

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter(chatty))
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
    return log_file
