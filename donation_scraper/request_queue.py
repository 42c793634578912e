"""FIFO serialization of report requests."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class _QueuedTask:
    task: Callable[[], Awaitable[Any]]
    future: "asyncio.Future[Any]"


class RequestQueue:
    """Runs submitted coroutine functions one at a time, in submission order.

    A failing task only fails its own ``submit`` call; later tasks still run.
    The consumer loop is started on first use and must run on the same event
    loop as the callers.
    """

    def __init__(self) -> None:
        self._queue: Optional[asyncio.Queue[Optional[_QueuedTask]]] = None
        self._worker: Optional[asyncio.Task[None]] = None

    async def __aenter__(self) -> "RequestQueue":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def start(self) -> None:
        if (
            self._worker is not None
            and not self._worker.done()
            and self._worker.get_loop() is asyncio.get_running_loop()
        ):
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._consume(self._queue))

    async def submit(self, task: Callable[[], Awaitable[T]]) -> T:
        self.start()
        assert self._queue is not None
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        await self._queue.put(_QueuedTask(task=task, future=future))
        logger.debug("Queued task, %d waiting", self._queue.qsize())
        return await future

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def aclose(self) -> None:
        """Finish already queued tasks, then stop the consumer."""

        if self._worker is None or self._queue is None:
            return
        await self._queue.put(None)
        await self._worker
        self._worker = None
        self._queue = None

    async def _consume(self, queue: "asyncio.Queue[Optional[_QueuedTask]]") -> None:
        while True:
            item = await queue.get()
            try:
                if item is None:
                    return
                if item.future.cancelled():
                    continue
                try:
                    result = await item.task()
                except Exception as exc:
                    logger.exception("Queued task failed")
                    if not item.future.cancelled():
                        item.future.set_exception(exc)
                else:
                    if not item.future.cancelled():
                        item.future.set_result(result)
            finally:
                queue.task_done()
