"""Named asyncio task tracking for the calendar client."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Generator
from typing import Any

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle to a task spawned by a TaskRegistry.

    Awaiting the handle yields the task result, or None when it was cancelled.
    """

    def __init__(self, name: str, task: asyncio.Task) -> None:
        self.name = name
        self._task = task

    def __await__(self) -> Generator[Any, None, Any]:
        return self._wait().__await__()

    async def _wait(self) -> Any:
        try:
            return await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if self._task.cancelled():
                return None
            raise

    def cancel(self) -> bool:
        return self._task.cancel()

    def done(self) -> bool:
        return self._task.done()

    def cancelled(self) -> bool:
        return self._task.cancelled()

    def __repr__(self) -> str:
        state = "done" if self.done() else "pending"
        return f"<ScheduledTask {self.name} {state}>"


class TaskRegistry:
    """Spawns named tasks and periodic loops, and cancels them all on close."""

    def __init__(self) -> None:
        self._tasks: dict[str, ScheduledTask] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, name: str) -> ScheduledTask | None:
        handle = self._tasks.get(name)
        if handle is not None and handle.done():
            return None
        return handle

    def spawn(self, name: str, coro: Coroutine[Any, Any, Any]) -> ScheduledTask:
        """Run a coroutine as a named task, replacing a finished one of the same name."""
        if self._closed:
            coro.close()
            raise RuntimeError(f"Cannot spawn '{name}': task registry is closed")

        existing = self.get(name)
        if existing is not None:
            coro.close()
            raise RuntimeError(f"Task '{name}' is already running")

        task = asyncio.get_running_loop().create_task(coro, name=name)
        handle = ScheduledTask(name, task)
        self._tasks[name] = handle
        task.add_done_callback(lambda t: self._on_done(name, handle, t))
        return handle

    def every(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[Any]],
    ) -> ScheduledTask:
        """Call ``callback`` every ``interval`` seconds until cancelled.

        The first call happens one interval after scheduling. A failing call is
        logged and the loop keeps running.
        """

        async def _loop() -> None:
            while True:
                await asyncio.sleep(interval)
                try:
                    await callback()
                except Exception as e:
                    logger.error(f"Periodic task '{name}' failed: {e}")

        return self.spawn(name, _loop())

    def cancel(self, name: str) -> bool:
        handle = self._tasks.pop(name, None)
        if handle is None or handle.done():
            return False
        return handle.cancel()

    async def cancel_all(self) -> None:
        """Close the registry, then cancel and await every outstanding task."""
        self._closed = True
        handles = list(self._tasks.values())
        self._tasks.clear()

        # A task closing its own registry must not await itself
        current = asyncio.current_task()
        pending = [handle._task for handle in handles if handle._task is not current]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    def _on_done(self, name: str, handle: ScheduledTask, task: asyncio.Task) -> None:
        if self._tasks.get(name) is handle:
            del self._tasks[name]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Task '{name}' failed: {exc!r}")

    def __len__(self) -> int:
        return sum(1 for handle in self._tasks.values() if not handle.done())
