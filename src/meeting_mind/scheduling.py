"""Named, cancellable timer tasks for the pipeline's event loop."""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from .logging_utils import get_logger

logger = get_logger(__name__)

Callback = Callable[[], Any]
SleepFn = Callable[[float], Awaitable[Any]]


class TaskScheduler:
    """
    Owns a set of named asyncio tasks.

    Each timer (chunk tick, silence check, dismiss deadline) is registered
    under a name. Scheduling a name that is already active cancels the old
    task first, so one owner never holds two timers for the same purpose.
    Cancelling by name or cancelling everything deterministically stops
    exactly the tasks this scheduler created.
    """

    def __init__(self, owner: str = "scheduler", sleep: SleepFn | None = None) -> None:
        """
        Initialize the scheduler.

        Args:
            owner: Label used in task names and log messages
            sleep: Awaitable delay function (defaults to asyncio.sleep)
        """
        self.owner = owner
        self._sleep = sleep or asyncio.sleep
        self._tasks: dict[str, asyncio.Task] = {}

    def schedule_repeating(
        self, name: str, interval: float, callback: Callback
    ) -> asyncio.Task:
        """
        Run ``callback`` every ``interval`` seconds until cancelled.

        Args:
            name: Timer name
            interval: Period in seconds
            callback: Sync or async callable

        Returns:
            The created task
        """
        if interval <= 0:
            raise ValueError("Interval must be positive")

        self.cancel(name)
        task = asyncio.create_task(
            self._run_repeating(name, interval, callback),
            name=f"{self.owner}:{name}",
        )
        self._tasks[name] = task
        logger.trace(f"Scheduled repeating '{name}' every {interval:.3f}s")
        return task

    def schedule_once(self, name: str, delay: float, callback: Callback) -> asyncio.Task:
        """
        Run ``callback`` once after ``delay`` seconds unless cancelled first.

        Args:
            name: Timer name
            delay: Delay in seconds
            callback: Sync or async callable

        Returns:
            The created task
        """
        self.cancel(name)
        task = asyncio.create_task(
            self._run_once(name, delay, callback),
            name=f"{self.owner}:{name}",
        )
        self._tasks[name] = task
        logger.trace(f"Scheduled '{name}' in {delay:.3f}s")
        return task

    def cancel(self, name: str) -> bool:
        """
        Cancel the timer registered under ``name``.

        Returns:
            True if an active task was cancelled
        """
        task = self._tasks.pop(name, None)
        if task is None or task.done():
            return False
        if task is asyncio.current_task():
            # A timer cancelling itself from its own callback just unregisters
            return False
        task.cancel()
        logger.trace(f"Cancelled '{name}'")
        return True

    def cancel_all(self) -> int:
        """Cancel every active timer and return how many were cancelled."""
        cancelled = 0
        for name in list(self._tasks):
            if self.cancel(name):
                cancelled += 1
        return cancelled

    async def shutdown(self) -> None:
        """Cancel all timers and wait until they have finished."""
        tasks = [t for t in self._tasks.values() if t is not asyncio.current_task()]
        self.cancel_all()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def is_scheduled(self, name: str) -> bool:
        """Check whether ``name`` has a pending task."""
        task = self._tasks.get(name)
        return task is not None and not task.done()

    @property
    def active_names(self) -> list[str]:
        """Names of all pending timers."""
        return [name for name, task in self._tasks.items() if not task.done()]

    async def _run_repeating(self, name: str, interval: float, callback: Callback) -> None:
        while True:
            await self._sleep(interval)
            try:
                await _invoke(callback)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # A failing tick must not stop the timer
                logger.error(f"❌ Error in scheduled '{name}': {e}", exc_info=True)

    async def _run_once(self, name: str, delay: float, callback: Callback) -> None:
        await self._sleep(delay)
        if self._tasks.get(name) is asyncio.current_task():
            del self._tasks[name]
        try:
            await _invoke(callback)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"❌ Error in scheduled '{name}': {e}", exc_info=True)


async def _invoke(callback: Callback) -> Any:
    result = callback()
    if inspect.isawaitable(result):
        return await result
    return result
