"""Task scope: the set of background tasks owned by a view model."""

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class TaskScope:
    """Launches tasks on the running loop and keeps track of them until done."""

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def launch(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Task %s crashed", task.get_name(), exc_info=exc)

    @property
    def active(self) -> int:
        return len(self._tasks)

    async def join(self) -> None:
        """Wait until every task, including ones launched meanwhile, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def close(self) -> None:
        """Cancel all tasks and wait for them to finish."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
