"""
Owned mutable state of a coalescer: callbacks awaiting each key and the keys
queued for the next bulk query.
"""

from __future__ import annotations

import typing as t

import structlog

from wisebatch.codec import LookupResult

log = structlog.get_logger(__name__)

PendingCallback = t.Callable[[BaseException | None, LookupResult | None], None]


class InFlightRegistry:
    """
    Map each key being looked up to its callbacks, in fetch order.

    A key is present exactly while at least one caller awaits its result.
    """

    def __init__(self) -> None:
        self._callbacks: dict[str, list[PendingCallback]] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._callbacks

    def __len__(self) -> int:
        return len(self._callbacks)

    def register(self, *, key: str, callback: PendingCallback) -> bool:
        """
        Attach a callback to ``key``.

        Parameters
        ----------
        key : str
            Lookup key.
        callback : PendingCallback
            Continuation invoked when the key resolves.

        Returns
        -------
        bool
            ``True`` if this created the entry, ``False`` if the key was
            already awaited and the callback joined the existing list.
        """
        callbacks = self._callbacks.get(key)
        if callbacks is not None:
            callbacks.append(callback)
            return False
        self._callbacks[key] = [callback]
        return True

    def pop(self, key: str) -> list[PendingCallback] | None:
        """
        Remove ``key`` and return its callbacks.

        Parameters
        ----------
        key : str
            Lookup key.

        Returns
        -------
        list[PendingCallback] | None
            Callbacks in fetch order, or ``None`` if nobody awaits ``key``.
        """
        return self._callbacks.pop(key, None)

    def waiting_count(self, key: str) -> int:
        return len(self._callbacks.get(key, ()))


class PendingBatch:
    """
    Keys queued for the next outbound bulk query.

    Each key appears at most once and iteration follows insertion order.
    """

    def __init__(self) -> None:
        self._keys: dict[str, None] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __bool__(self) -> bool:
        return bool(self._keys)

    def add(self, key: str) -> None:
        self._keys[key] = None

    def drain(self) -> list[str]:
        """
        Snapshot the queued keys and clear the batch.

        Returns
        -------
        list[str]
            Keys in insertion order.
        """
        keys = list(self._keys)
        self._keys = {}
        log.debug(event="Drained pending batch", drained_count=len(keys))
        return keys
