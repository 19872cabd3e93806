"""
Wisebatch-specific runtime exceptions.
"""

from __future__ import annotations

import typing as t


class WisebatchError(RuntimeError):
    """Base class for errors raised or delivered by wisebatch."""


class BulkQueryError(WisebatchError):
    """
    Signal that a bulk query failed at the transport or protocol level.

    Parameters
    ----------
    keys : Sequence[str]
        Keys carried by the failed bulk query.
    message : str
        Human readable failure summary.
    """

    def __init__(self, *, keys: t.Sequence[str], message: str) -> None:
        super().__init__(message)
        self.keys = tuple(keys)


class LookupClosedError(WisebatchError):
    """Signal that a lookup was requested on a closed coalescer."""


class MissingCredentialsError(ValueError):
    """Signal that the enrichment API credentials are not configured."""


def describe_error(*, error: BaseException) -> str:
    """
    Render an exception chain as a compact one-line description.

    Parameters
    ----------
    error : BaseException
        Top-level exception.

    Returns
    -------
    str
        ``"Outer: message <- Inner: message"`` style description.
    """
    parts: list[str] = []
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        parts.append(f"{type(current).__name__}: {current}")
        current = current.__cause__
    return " <- ".join(parts)
