# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from tasksync.logging_setup import _ConsoleNoiseFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter_keeps_own_logs_and_quiets_others() -> None:
    f = _ConsoleNoiseFilter()

    assert f.filter(_record("tasksync.tasks.task_repository", logging.DEBUG))
    assert f.filter(_record("tasksync", logging.INFO))
    assert not f.filter(_record("httpx", logging.WARNING))
    assert f.filter(_record("httpx", logging.ERROR))
    assert not f.filter(_record("py.warnings", logging.WARNING))


def test_chatty_components_stay_off_a_debug_console() -> None:
    f = _ConsoleNoiseFilter()

    assert not f.filter(_record("tasksync.sync.offline_queue", logging.DEBUG))
    assert not f.filter(_record("tasksync.store.document_store", logging.DEBUG))
    assert f.filter(_record("tasksync.store.document_store", logging.INFO))
    # Prefix match is per dotted component.
    assert f.filter(_record("tasksync.store.document_store_extra", logging.DEBUG))


def test_chatty_floors_are_configurable() -> None:
    f = _ConsoleNoiseFilter({"tasksync.tasks": logging.WARNING})

    assert not f.filter(_record("tasksync.tasks.auto_delete", logging.INFO))
    assert f.filter(_record("tasksync.sync.offline_queue", logging.DEBUG))


@pytest.fixture()
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    quiet_levels = {n: logging.getLogger(n).level for n in ("httpx", "httpcore")}
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    for name, lvl in quiet_levels.items():
        logging.getLogger(name).setLevel(lvl)
    logging.captureWarnings(False)


def test_setup_logging_writes_file_and_quiets_http_libs(tmp_path: Path, restore_root_logging) -> None:
    log_file = setup_logging(log_dir=tmp_path / "logs", console_level=logging.WARNING)

    logging.getLogger("tasksync.test").debug("to the file only")
    for h in logging.getLogger().handlers:
        h.flush()

    assert log_file == tmp_path / "logs" / "tasksync.log"
    assert "to the file only" in log_file.read_text("utf-8")
    assert logging.getLogger("httpx").level == logging.WARNING
