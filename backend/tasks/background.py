"""
Background Worker
=================
Runs detached units of work after the HTTP response has already gone out.

Each submitted coroutine gets its own error boundary: failures are logged
and end there. Nothing is retried and nothing reports back to the request
that spawned the work.
"""

import asyncio
from typing import Any, Coroutine, Optional

import structlog


class BackgroundWorker:

    def __init__(self, name: str = "background"):
        self.name = name
        self._tasks: set[asyncio.Task] = set()
        self._logger = structlog.get_logger().bind(component=name)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Coroutine[Any, Any, Any], label: str = "task") -> asyncio.Task:
        """Schedule coro on the running loop and return immediately."""
        task = asyncio.create_task(self._guard(coro, label), name=f"{self.name}:{label}")
        # Keep a strong reference until done, the loop only holds weak ones
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, coro: Coroutine[Any, Any, Any], label: str) -> Any:
        try:
            return await coro
        except asyncio.CancelledError:
            self._logger.warning("background_task_cancelled", label=label)
            raise
        except Exception as e:
            self._logger.exception("background_task_failed", label=label, error=str(e))
            return None

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait until every task submitted so far (and any they submit) is done."""
        async with asyncio.timeout(timeout):
            while self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float = 10.0) -> None:
        try:
            await self.drain(timeout)
        except TimeoutError:
            leftover = list(self._tasks)
            self._logger.warning("background_shutdown_timeout", cancelled=len(leftover))
            for task in leftover:
                task.cancel()
            await asyncio.gather(*leftover, return_exceptions=True)
