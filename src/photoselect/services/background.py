"""
Background execution for optimizer passes and the daily sweep.

Request handlers and startup code hand coroutines to a TaskRunner instead of
awaiting them. The cleanup scheduler wraps APScheduler so the sweep runs on a
cron trigger in the application's event loop.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any, Protocol

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ..config import Settings
from ..logging_config import get_logger
from .sweeper import RetentionSweeper, SweepResult

logger = get_logger(__name__)

SWEEP_JOB_ID = "retention_sweep"


class TaskRunner(Protocol):
    """Starts a coroutine without waiting for it."""

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> Any: ...


class AsyncioTaskRunner:
    """Fire-and-forget runner on the running event loop.

    Holds a reference to every pending task so it is not garbage collected
    mid-flight, and logs failures that nobody awaits.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("background_task_failed", task=task.get_name(), error=str(error), exc_info=error)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every pending task (used on shutdown and by the CLI)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)


class CleanupScheduler:
    """Runs the retention sweep daily at the configured hour and minute."""

    def __init__(self, sweeper: RetentionSweeper, settings: Settings, scheduler: Any = None) -> None:
        self.sweeper = sweeper
        self.settings = settings
        self.scheduler = scheduler if scheduler is not None else AsyncIOScheduler()

    def start(self) -> None:
        """Register the sweep job and start the scheduler (requires a running loop)."""
        self.scheduler.add_job(
            self.sweeper.sweep,
            CronTrigger(hour=self.settings.cleanup_hour, minute=self.settings.cleanup_minute),
            id=SWEEP_JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self.scheduler.start()
        logger.info(
            "cleanup_scheduled",
            hour=self.settings.cleanup_hour,
            minute=self.settings.cleanup_minute,
        )

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("cleanup_scheduler_stopped")

    async def run_now(self) -> SweepResult:
        """Run one sweep immediately, outside the schedule."""
        return await self.sweeper.sweep()
