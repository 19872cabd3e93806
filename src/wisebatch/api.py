"""
Main endpoint for users.
Exposes a `passivetotal_lookup` function building a LookupFacade wired to the
PassiveTotal bulk enrichment API from environment configuration.
"""

import typing as t

import httpx

from wisebatch.core import LookupFacade
from wisebatch.enums import TransportErrorPolicy
from wisebatch.settings import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_FLUSH_INTERVAL_SECONDS,
    PassiveTotalSettings,
)
from wisebatch.transport import BulkQueryTransport, DryRunTransport, PassiveTotalTransport


def passivetotal_lookup(
    settings: PassiveTotalSettings | None = None,
    dry_run: bool = False,
    client_factory: t.Callable[[], httpx.AsyncClient] | None = None,
    **overrides: t.Any,
) -> LookupFacade:
    """
    Build a coalescer for PassiveTotal tag enrichment.

    Parameters
    ----------
    settings : PassiveTotalSettings | None, optional
        Explicit settings. Loaded with ``PassiveTotalSettings.from_env`` when
        omitted, unless ``dry_run`` is set.
    dry_run : bool, optional
        If ``True``, resolve every key as empty without any HTTP traffic.
    client_factory : Callable[[], httpx.AsyncClient] | None, optional
        HTTP client factory forwarded to the transport.
    **overrides : typing.Any
        Settings fields overriding the environment.

    Returns
    -------
    LookupFacade
        Unstarted coalescer; use it as an async context manager.

    Notes
    -----
    >>> async with passivetotal_lookup() as lookup:
    ...     result = await lookup.lookup("8.8.8.8")
    """
    transport: BulkQueryTransport
    if dry_run:
        transport = DryRunTransport()
        batch_size = overrides.get("batch_size", settings.batch_size if settings else DEFAULT_BATCH_SIZE)
        flush_interval_seconds = overrides.get(
            "flush_interval_seconds",
            settings.flush_interval_seconds if settings else DEFAULT_FLUSH_INTERVAL_SECONDS,
        )
        policy = overrides.get(
            "transport_error_policy",
            settings.transport_error_policy if settings else TransportErrorPolicy.error,
        )
    else:
        if settings is None:
            settings = PassiveTotalSettings.from_env(**overrides)
        elif overrides:
            settings = settings.model_copy(update=overrides)
        transport = PassiveTotalTransport(settings=settings, client_factory=client_factory)
        batch_size = settings.batch_size
        flush_interval_seconds = settings.flush_interval_seconds
        policy = settings.transport_error_policy

    return LookupFacade(
        transport=transport,
        batch_size=int(batch_size),
        flush_interval_seconds=float(flush_interval_seconds),
        transport_error_policy=TransportErrorPolicy(policy),
    )
