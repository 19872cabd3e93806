"""
Flush timing for a coalescer.

Both the periodic tick and the size threshold go through ``request_flush``,
which drains the pending batch in one step and posts the snapshot to a queue
consumed by a single worker task.
"""

from __future__ import annotations

import asyncio
import typing as t

import structlog

from wisebatch.enums import FlushReason

log = structlog.get_logger(__name__)

_FlushItem = tuple[FlushReason, list[str]]


class BatchScheduler:
    """
    Drive flushes of a pending batch.

    Parameters
    ----------
    drain : Callable[[], list[str]]
        Snapshot-and-clear of the pending batch.
    execute : Callable[..., Awaitable[None]]
        Flush procedure, called as ``execute(keys=..., reason=...)``.
    flush_interval_seconds : float
        Period of the flush tick.
    max_concurrent_flushes : int
        Upper bound on simultaneously outstanding flushes.
    """

    def __init__(
        self,
        *,
        drain: t.Callable[[], list[str]],
        execute: t.Callable[..., t.Awaitable[None]],
        flush_interval_seconds: float,
        max_concurrent_flushes: int = 4,
    ) -> None:
        if flush_interval_seconds <= 0:
            raise ValueError("flush_interval_seconds must be positive")
        if max_concurrent_flushes < 1:
            raise ValueError("max_concurrent_flushes must be at least 1")
        self._drain = drain
        self._execute = execute
        self._flush_interval_seconds = flush_interval_seconds
        self._max_concurrent_flushes = max_concurrent_flushes

        self._queue: asyncio.Queue[_FlushItem | None] | None = None
        self._slots: asyncio.Semaphore | None = None
        self._tick_task: asyncio.Task[None] | None = None
        self._worker_task: asyncio.Task[None] | None = None
        self._flush_tasks: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        return self._worker_task is not None and not self._worker_task.done()

    @property
    def active_flush_count(self) -> int:
        return len(self._flush_tasks)

    def start(self) -> None:
        """
        Start the tick and worker tasks on the running event loop.
        """
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._slots = asyncio.Semaphore(self._max_concurrent_flushes)
        self._worker_task = asyncio.create_task(coro=self._work(), name="wisebatch_flush_worker")
        self._tick_task = asyncio.create_task(coro=self._tick(), name="wisebatch_flush_tick")
        log.debug(
            event="Started batch scheduler",
            flush_interval_seconds=self._flush_interval_seconds,
            max_concurrent_flushes=self._max_concurrent_flushes,
        )

    def request_flush(self, *, reason: FlushReason) -> int:
        """
        Drain the pending batch and hand the snapshot to the worker.

        Parameters
        ----------
        reason : FlushReason
            Trigger of the flush.

        Returns
        -------
        int
            Number of keys handed over; ``0`` when the batch was empty.
        """
        if self._queue is None:
            raise RuntimeError("BatchScheduler is not started")
        keys = self._drain()
        if not keys:
            return 0
        log.debug(event="Flush requested", reason=str(reason), key_count=len(keys))
        self._queue.put_nowait((reason, keys))
        return len(keys)

    async def _tick(self) -> None:
        try:
            while True:
                await asyncio.sleep(delay=self._flush_interval_seconds)
                self.request_flush(reason=FlushReason.interval)
        except asyncio.CancelledError:
            log.debug(event="Flush tick cancelled")
            raise

    async def _work(self) -> None:
        assert self._queue is not None and self._slots is not None
        while True:
            item = await self._queue.get()
            if item is None:
                self._queue.task_done()
                return
            reason, keys = item
            await self._slots.acquire()
            task = asyncio.create_task(
                coro=self._run_flush(reason=reason, keys=keys),
                name=f"wisebatch_flush_{reason}",
            )
            self._flush_tasks.add(task)
            task.add_done_callback(self._flush_tasks.discard)
            self._queue.task_done()

    async def _run_flush(self, *, reason: FlushReason, keys: list[str]) -> None:
        assert self._slots is not None
        try:
            await self._execute(keys=keys, reason=reason)
        except Exception as e:
            log.error(
                event="Flush failed",
                reason=str(reason),
                key_count=len(keys),
                error=str(object=e),
            )
        finally:
            self._slots.release()

    async def stop(self) -> None:
        """
        Stop ticking, flush what is still pending and wait for every flush.
        """
        if self._queue is None or self._worker_task is None:
            return
        if self._tick_task is not None and not self._tick_task.done():
            self._tick_task.cancel()
            try:
                await self._tick_task
            except asyncio.CancelledError:
                pass
        self._tick_task = None

        flushed = self.request_flush(reason=FlushReason.close)
        if flushed:
            log.info(event="Submitting final batch on close", key_count=flushed)
        self._queue.put_nowait(None)
        await self._worker_task
        if self._flush_tasks:
            await asyncio.gather(*self._flush_tasks)
        log.debug(event="Batch scheduler stopped")
