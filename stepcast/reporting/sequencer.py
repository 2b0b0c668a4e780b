"""
Async operation sequencer.

Lifecycle events can arrive faster than the reporting service answers.
Every reporting operation of a run is therefore queued here and executed
one after another, in the order it was added, by a single worker task.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[object]]


class OperationSequencer:
    """
    FIFO queue of asynchronous operations.

    Guarantees:
        - operations run in enqueue order
        - each one completes (or fails) before the next starts
        - a failing operation is logged and does not halt the queue

    Example:
        sequencer = OperationSequencer()
        sequencer.add(lambda: client.start_item(...), "start suite")
        sequencer.add(lambda: client.finish_item(...), "finish suite")
        await sequencer.drain()
    """

    def __init__(self):
        self._queue: asyncio.Queue[tuple[str, Operation]] | None = None
        self._worker: asyncio.Task | None = None
        self.failures = 0
        self.completed = 0

    @property
    def pending(self) -> int:
        """Number of operations not yet started."""
        return self._queue.qsize() if self._queue else 0

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def _ensure_worker(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if not self.is_running:
            loop = asyncio.get_running_loop()
            self._worker = loop.create_task(self._run())
        return self._queue

    def add(self, operation: Operation, name: str = "operation") -> None:
        """
        Enqueue a zero-argument coroutine function.

        Must be called from within a running event loop.
        """
        queue = self._ensure_worker()
        queue.put_nowait((name, operation))

    async def _run(self) -> None:
        while True:
            name, operation = await self._queue.get()
            try:
                await operation()
                self.completed += 1
            except Exception:
                self.failures += 1
                logger.exception(f"Reporting operation '{name}' failed")
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every enqueued operation has finished."""
        if self._queue is None:
            return
        await self._queue.join()

    async def close(self) -> None:
        """Drain the queue, then stop the worker."""
        await self.drain()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
