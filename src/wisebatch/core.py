"""
Core engine coalescing individual key lookups into bulk queries.
Lookups are collected into a pending batch and flushed when either the batch
reaches its size threshold or the periodic flush tick fires. Concurrent lookups
for the same key share a single slot in the outgoing query.
"""

from __future__ import annotations

import asyncio
import typing as t

import structlog

from wisebatch.codec import LookupResult, ResultCodec
from wisebatch.enums import FlushReason, TransportErrorPolicy
from wisebatch.exceptions import LookupClosedError
from wisebatch.executor import BulkQueryExecutor
from wisebatch.registry import InFlightRegistry, PendingBatch, PendingCallback
from wisebatch.scheduler import BatchScheduler
from wisebatch.settings import DEFAULT_BATCH_SIZE, DEFAULT_FLUSH_INTERVAL_SECONDS
from wisebatch.transport import BulkQueryTransport

log = structlog.get_logger(__name__)


class LookupFacade:
    """
    Public entry point of a coalescer.

    Each instance owns its in-flight registry, its pending batch and its
    scheduler. Batches are flushed when either:
    - the pending batch reaches ``batch_size`` keys, OR
    - the ``flush_interval_seconds`` tick fires with a non-empty batch

    Notes
    -----
    All state is mutated on the event loop the facade was started on. Use
    ``fetch_threadsafe`` from other threads; callbacks then run on that loop.
    """

    def __init__(
        self,
        transport: BulkQueryTransport,
        batch_size: int = DEFAULT_BATCH_SIZE,
        flush_interval_seconds: float = DEFAULT_FLUSH_INTERVAL_SECONDS,
        transport_error_policy: TransportErrorPolicy = TransportErrorPolicy.error,
        max_concurrent_flushes: int = 4,
        codec: ResultCodec | None = None,
    ):
        """
        Initialize the coalescer.

        Parameters
        ----------
        transport : BulkQueryTransport
            Bulk query collaborator, called once per flush.
        batch_size : int
            Flush as soon as this many distinct keys are pending.
        flush_interval_seconds : float
            Period of the flush tick.
        transport_error_policy : TransportErrorPolicy
            ``error`` delivers a ``BulkQueryError`` to every caller of a failed
            batch, ``empty`` resolves them with ``EMPTY_RESULT``.
        max_concurrent_flushes : int
            Upper bound on simultaneously outstanding bulk queries.
        codec : ResultCodec | None
            Decoder for raw records.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._batch_size = batch_size
        self._flush_interval_seconds = flush_interval_seconds

        self._registry = InFlightRegistry()
        self._pending = PendingBatch()
        self._executor = BulkQueryExecutor(
            transport=transport,
            registry=self._registry,
            codec=codec,
            transport_error_policy=transport_error_policy,
        )
        self._scheduler = BatchScheduler(
            drain=self._pending.drain,
            execute=self._executor.execute,
            flush_interval_seconds=flush_interval_seconds,
            max_concurrent_flushes=max_concurrent_flushes,
        )
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closed = False

        log.debug(
            event="Initialized LookupFacade",
            batch_size=batch_size,
            flush_interval_seconds=flush_interval_seconds,
            transport_error_policy=str(transport_error_policy),
            max_concurrent_flushes=max_concurrent_flushes,
        )

    @property
    def closed(self) -> bool:
        """Whether ``close`` was called."""
        return self._closed

    @property
    def pending_count(self) -> int:
        """Number of keys waiting for the next flush."""
        return len(self._pending)

    @property
    def in_flight_count(self) -> int:
        """Number of keys with at least one waiting caller."""
        return len(self._registry)

    def start(self) -> None:
        """
        Bind the coalescer to the running event loop and start flushing.

        Raises
        ------
        LookupClosedError
            If the coalescer was closed.
        RuntimeError
            If called without a running event loop.
        """
        if self._closed:
            raise LookupClosedError("Cannot start a closed LookupFacade")
        if self._scheduler.running:
            return
        self._loop = asyncio.get_running_loop()
        self._scheduler.start()

    def fetch(self, key: str, callback: PendingCallback) -> None:
        """
        Request the enrichment of ``key``.

        ``callback(error, result)`` is invoked exactly once, never from within
        this call. Duplicate keys requested before their batch resolves share
        the same bulk query slot.

        Parameters
        ----------
        key : str
            IP address, domain or any other opaque lookup key.
        callback : PendingCallback
            Continuation receiving ``(None, LookupResult)`` or ``(error, None)``.

        Raises
        ------
        RuntimeError
            If called without a running event loop. Use ``fetch_threadsafe``
            from other threads.
        """
        loop = asyncio.get_running_loop()
        if self._closed:
            loop.call_soon(callback, LookupClosedError(f"Lookup for {key!r} after close"), None)
            return
        if not self._scheduler.running:
            self.start()

        if not self._registry.register(key=key, callback=callback):
            log.debug(
                event="Joined in-flight lookup",
                lookup_key=key,
                waiting_count=self._registry.waiting_count(key),
            )
            return

        self._pending.add(key)
        pending_count = len(self._pending)
        if pending_count >= self._batch_size:
            log.debug(event="Batch size reached", batch_size=self._batch_size)
            self._scheduler.request_flush(reason=FlushReason.size)

    get_ip = fetch
    get_domain = fetch

    def fetch_threadsafe(self, key: str, callback: PendingCallback) -> None:
        """
        Request the enrichment of ``key`` from a thread other than the loop's.

        Parameters
        ----------
        key : str
            Lookup key.
        callback : PendingCallback
            Continuation, invoked on the coalescer's event loop.

        Raises
        ------
        RuntimeError
            If the coalescer was never started.
        """
        if self._loop is None:
            raise RuntimeError("LookupFacade must be started before fetch_threadsafe")
        self._loop.call_soon_threadsafe(self.fetch, key, callback)

    async def lookup(self, key: str) -> LookupResult:
        """
        Await the enrichment of ``key``.

        Parameters
        ----------
        key : str
            Lookup key.

        Returns
        -------
        LookupResult
            Decoded result, possibly ``EMPTY_RESULT``.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[LookupResult] = loop.create_future()

        def _resolve(error: BaseException | None, result: LookupResult | None) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(t.cast(LookupResult, result))

        self.fetch(key, _resolve)
        return await future

    async def lookup_many(
        self, keys: t.Iterable[str]
    ) -> dict[str, LookupResult | BaseException]:
        """
        Await the enrichment of several keys.

        Parameters
        ----------
        keys : Iterable[str]
            Lookup keys; duplicates are coalesced.

        Returns
        -------
        dict[str, LookupResult | BaseException]
            Result or delivered error per key.
        """
        unique_keys = list(dict.fromkeys(keys))
        outcomes = await asyncio.gather(
            *(self.lookup(key) for key in unique_keys), return_exceptions=True
        )
        return dict(zip(unique_keys, outcomes))

    async def close(self) -> None:
        """
        Flush pending keys, wait for outstanding queries and stop the scheduler.
        """
        if self._closed:
            return
        self._closed = True
        await self._scheduler.stop()
        log.debug(event="LookupFacade closed")

    async def __aenter__(self) -> "LookupFacade":
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: t.Any,
    ) -> None:
        await self.close()
