# src/tasksync/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the background worker:
- assignee cache subscription,
- connectivity probe (optional) which drains the offline queue on reconnect,
- trash auto-delete sweep (optional).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..tasks.auto_delete import run_auto_delete

logger = logging.getLogger(__name__)


async def _shutdown(state: AppState, jobs: list[asyncio.Task]) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    for job in jobs:
        job.cancel()
    for job in jobs:
        with contextlib.suppress(asyncio.CancelledError):
            try:
                await job
            except Exception:
                logger.exception("Background job %s failed during shutdown.", job.get_name())

    try:
        await state.fanout.drain()
    except Exception:
        logger.exception("Failed to drain pending notifications.")

    state.sync_queue.close()
    state.assignees.stop()
    # SQLiteDocumentStore uses short-lived connections per call; close() only drops listeners.
    state.backend.close()

    if state.sync_queue.pending_count:
        logger.warning("%d item(s) still waiting to sync; they will be retried on next start.",
                       state.sync_queue.pending_count)


async def run(state: AppState) -> None:
    settings = state.settings

    stop_main = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _handle_signal(signum: int) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _handle_signal, sig)
        except (NotImplementedError, RuntimeError):
            # Some platforms do not support signal handlers on the loop.
            pass

    jobs: list[asyncio.Task] = []
    try:
        await state.assignees.start()

        # Replay anything left over from a previous offline session.
        if state.monitor.is_online:
            await state.sync_queue.process_queue()

        if settings.probe_url:
            jobs.append(asyncio.create_task(
                state.monitor.watch(
                    settings.probe_url,
                    interval_seconds=settings.probe_interval_seconds,
                    timeout_seconds=settings.probe_timeout_seconds,
                ),
                name="network-probe",
            ))
        else:
            logger.info("No probe URL configured; connectivity stays %s.",
                        "online" if state.monitor.is_online else "offline")

        if settings.auto_delete_enabled:
            jobs.append(asyncio.create_task(
                run_auto_delete(state.tasks, interval_seconds=settings.auto_delete_interval_seconds),
                name="auto-delete",
            ))

        logger.info("Worker running. Press Ctrl+C to stop.")
        await stop_main.wait()
    finally:
        await _shutdown(state, jobs)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/tasksync")
    log_file = setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s... (log file: %s)", getattr(settings, "app_name", "tasksync"), log_file)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    try:
        asyncio.run(run(state))
    except KeyboardInterrupt:
        pass
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
