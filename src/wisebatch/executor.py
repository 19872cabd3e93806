"""
Flush execution: one bulk query per drained batch, with the response
demultiplexed back to every callback waiting on each key.
"""

from __future__ import annotations

import uuid

import structlog

from wisebatch.codec import EMPTY_RESULT, LookupResult, ResultCodec
from wisebatch.enums import FlushReason, TransportErrorPolicy
from wisebatch.exceptions import BulkQueryError
from wisebatch.logging import logging_context
from wisebatch.registry import InFlightRegistry, PendingCallback
from wisebatch.transport import BulkQueryTransport, RawRecords

log = structlog.get_logger(__name__)


class BulkQueryExecutor:
    """
    Issue bulk queries and resolve the callbacks registered for their keys.

    Every key of an executed batch is resolved exactly once: with its decoded
    result, with ``EMPTY_RESULT`` when the response has no record for it, or
    with an error when the query failed and the policy is
    ``TransportErrorPolicy.error``.
    """

    def __init__(
        self,
        *,
        transport: BulkQueryTransport,
        registry: InFlightRegistry,
        codec: ResultCodec | None = None,
        transport_error_policy: TransportErrorPolicy = TransportErrorPolicy.error,
    ) -> None:
        """
        Initialize the executor.

        Parameters
        ----------
        transport : BulkQueryTransport
            Outbound bulk query collaborator.
        registry : InFlightRegistry
            Registry holding the callbacks to resolve.
        codec : ResultCodec | None, optional
            Decoder for raw records.
        transport_error_policy : TransportErrorPolicy, optional
            How a failed bulk query is reported to callers.
        """
        self._transport = transport
        self._registry = registry
        self._codec = codec or ResultCodec()
        self._transport_error_policy = TransportErrorPolicy(transport_error_policy)

    async def execute(self, *, keys: list[str], reason: FlushReason = FlushReason.interval) -> None:
        """
        Query ``keys`` in one bulk call and resolve their callbacks.

        Parameters
        ----------
        keys : list[str]
            Drained batch, without duplicates.
        reason : FlushReason, optional
            Trigger that produced the batch, for logging.
        """
        if not keys:
            raise ValueError("Cannot execute an empty key batch")

        batch_id = str(object=uuid.uuid4())
        with logging_context(batch_id=batch_id):
            log.info(event="Executing bulk query", reason=str(reason), key_count=len(keys))
            try:
                records = await self._transport.query(list(keys))
            except Exception as e:
                log.error(
                    event="Bulk query failed",
                    key_count=len(keys),
                    error=str(object=e),
                    policy=str(self._transport_error_policy),
                )
                if self._transport_error_policy is TransportErrorPolicy.error:
                    error = BulkQueryError(
                        keys=keys,
                        message=f"Bulk query for {len(keys)} key(s) failed: {e}",
                    )
                    error.__cause__ = e
                    self._fail_keys(keys=keys, error=error)
                    return
                records = {}

            try:
                resolved = self._apply_results(keys=keys, records=records)
                self._resolve_missing(keys=keys, resolved=resolved)
            except Exception as e:
                log.error(event="Failed to demultiplex bulk response", error=str(object=e))
                self._fail_keys(keys=keys, error=e)
                raise

    def _apply_results(self, *, keys: list[str], records: RawRecords) -> set[str]:
        """
        Resolve callbacks for every batch key present in the response.

        Parameters
        ----------
        keys : list[str]
            Keys of the executed batch.
        records : RawRecords
            Raw records returned by the transport.

        Returns
        -------
        set[str]
            Keys that were resolved.
        """
        requested = set(keys)
        resolved: set[str] = set()
        for key, record in records.items():
            if key not in requested:
                log.debug(event="Ignoring result for key outside batch", lookup_key=key)
                continue
            if key not in self._registry:
                log.debug(event="Ignoring result for key nobody awaits", lookup_key=key)
                continue
            error: Exception | None = None
            result: LookupResult | None = None
            try:
                result = self._codec.decode(record)
            except Exception as e:
                log.error(event="Failed to decode record", lookup_key=key, error=str(object=e))
                error = e
            callbacks = self._registry.pop(key) or []
            resolved.add(key)
            self._deliver(key=key, callbacks=callbacks, error=error, result=result)
        log.info(
            event="Mapped bulk results to waiting callers",
            resolved_count=len(resolved),
            key_count=len(keys),
        )
        return resolved

    def _resolve_missing(self, *, keys: list[str], resolved: set[str]) -> None:
        missing = [key for key in keys if key not in resolved]
        if not missing:
            return
        log.debug(event="Resolving keys absent from response as empty", missing_count=len(missing))
        for key in missing:
            callbacks = self._registry.pop(key)
            if callbacks:
                self._deliver(key=key, callbacks=callbacks, error=None, result=EMPTY_RESULT)

    def _fail_keys(self, *, keys: list[str], error: BaseException) -> None:
        for key in keys:
            callbacks = self._registry.pop(key)
            if callbacks:
                self._deliver(key=key, callbacks=callbacks, error=error, result=None)

    @staticmethod
    def _deliver(
        *,
        key: str,
        callbacks: list[PendingCallback],
        error: BaseException | None,
        result: LookupResult | None,
    ) -> None:
        for callback in callbacks:
            try:
                callback(error, result)
            except Exception as e:
                log.error(
                    event="Lookup callback raised",
                    lookup_key=key,
                    callback=getattr(callback, "__qualname__", repr(callback)),
                    error=str(object=e),
                )
