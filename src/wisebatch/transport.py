"""
Bulk query transports consumed by the flush executor.
"""

from __future__ import annotations

import typing as t
from urllib.parse import quote

import httpx
import structlog

from wisebatch.models import BulkEnrichmentRequest, BulkEnrichmentResponse
from wisebatch.settings import PassiveTotalSettings

log = structlog.get_logger(__name__)

BULK_ENRICHMENT_PATH = "/v2/enrichment/bulk"
SEARCH_URL_TEMPLATE = "https://community.riskiq.com/search/{key}/resolutions"

RawRecords = t.Mapping[str, t.Mapping[str, t.Any]]


class BulkQueryTransport(t.Protocol):
    """
    Outbound collaborator issuing one bulk query per flush.

    Implementations return a mapping of key to raw record containing only the
    keys the remote side has data for, and raise on transport or protocol
    failure.
    """

    async def query(self, keys: list[str]) -> RawRecords: ...


def search_url(key: str) -> str:
    """
    Build the PassiveTotal community search link for a key.

    Parameters
    ----------
    key : str
        IP address or domain.

    Returns
    -------
    str
        Search URL.
    """
    return SEARCH_URL_TEMPLATE.format(key=quote(key, safe=""))


class PassiveTotalTransport:
    """
    Query the PassiveTotal bulk enrichment endpoint over HTTPS.

    Parameters
    ----------
    settings : PassiveTotalSettings
        Credentials, base URL and timeout.
    client_factory : Callable[[], httpx.AsyncClient] | None, optional
        Factory for the HTTP client used by each query.
    """

    def __init__(
        self,
        settings: PassiveTotalSettings,
        client_factory: t.Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._settings = settings
        self._client_factory: t.Callable[[], httpx.AsyncClient] = client_factory or (
            lambda: httpx.AsyncClient(timeout=settings.timeout_seconds)
        )

    @property
    def url(self) -> str:
        return f"{self._settings.base_url.rstrip('/')}{BULK_ENRICHMENT_PATH}"

    async def query(self, keys: list[str]) -> RawRecords:
        """
        Issue one bulk enrichment query.

        Parameters
        ----------
        keys : list[str]
            Keys to enrich.

        Returns
        -------
        Mapping[str, Mapping[str, typing.Any]]
            Raw records of the keys the API returned.

        Raises
        ------
        httpx.HTTPError
            On network failure or a non-success status.
        pydantic.ValidationError
            If the response body does not have the expected shape.
        """
        payload = BulkEnrichmentRequest(query=keys)
        log.debug(event="Sending bulk enrichment query", url=self.url, key_count=len(keys))
        async with self._client_factory() as client:
            response = await client.request(
                method="GET",
                url=self.url,
                json=payload.model_dump(),
                auth=(self._settings.user, self._settings.key.get_secret_value()),
            )
            response.raise_for_status()
            body = response.json()
        enrichment = BulkEnrichmentResponse.model_validate(body)
        log.debug(
            event="Received bulk enrichment response",
            url=self.url,
            key_count=len(keys),
            result_count=len(enrichment.results),
        )
        return enrichment.records()


class DryRunTransport:
    """
    Resolve every query without I/O, as if the API knew nothing.

    Queried key lists are recorded in ``calls``.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def query(self, keys: list[str]) -> RawRecords:
        self.calls.append(list(keys))
        log.info(event="Dry-run bulk query resolved", key_count=len(keys))
        return {}
