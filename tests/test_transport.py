"""
Tests for the bulk query transports in wisebatch.transport.
"""

import base64
import json

import httpx
import pydantic
import pytest

from tests.mocks.transports import FakePassiveTotalAPI, make_passivetotal_transport
from wisebatch.codec import EMPTY_RESULT
from wisebatch.core import LookupFacade
from wisebatch.models import BulkEnrichmentResponse, RawRecord
from wisebatch.settings import PassiveTotalSettings
from wisebatch.transport import DryRunTransport, PassiveTotalTransport, search_url


@pytest.fixture
def settings() -> PassiveTotalSettings:
    return PassiveTotalSettings(user="analyst@example.com", key="secret")


@pytest.fixture
def api() -> FakePassiveTotalAPI:
    return FakePassiveTotalAPI(
        records={
            "8.8.8.8": {"tags": ["scanner", 42, "tor"], "classification": "non-malicious"},
            "x.com": {"tags": []},
        }
    )


def _transport(api: FakePassiveTotalAPI, settings: PassiveTotalSettings) -> PassiveTotalTransport:
    mock_transport = make_passivetotal_transport(api=api)
    return PassiveTotalTransport(
        settings=settings,
        client_factory=lambda: httpx.AsyncClient(transport=mock_transport),
    )


@pytest.mark.asyncio
async def test_query_sends_bulk_enrichment_request(
    api: FakePassiveTotalAPI, settings: PassiveTotalSettings
):
    records = await _transport(api=api, settings=settings).query(["8.8.8.8", "x.com", "none.org"])

    assert len(api.requests) == 1
    request = api.requests[0]
    assert request.method == "GET"
    assert str(request.url) == "https://api.passivetotal.org/v2/enrichment/bulk"
    assert json.loads(request.read()) == {
        "additional": ["osint", "malware"],
        "query": ["8.8.8.8", "x.com", "none.org"],
    }
    expected_auth = base64.b64encode(b"analyst@example.com:secret").decode()
    assert request.headers["authorization"] == f"Basic {expected_auth}"

    assert set(records) == {"8.8.8.8", "x.com"}
    assert records["8.8.8.8"]["tags"] == ["scanner", 42, "tor"]
    assert records["8.8.8.8"]["classification"] == "non-malicious"


@pytest.mark.asyncio
async def test_query_raises_on_error_status(settings: PassiveTotalSettings):
    api = FakePassiveTotalAPI(status_code=503)

    with pytest.raises(httpx.HTTPStatusError):
        await _transport(api=api, settings=settings).query(["a.com"])


@pytest.mark.asyncio
async def test_query_rejects_malformed_body(settings: PassiveTotalSettings):
    mock_transport = httpx.MockTransport(
        handler=lambda request: httpx.Response(status_code=200, json={"results": ["a.com"]})
    )
    transport = PassiveTotalTransport(
        settings=settings,
        client_factory=lambda: httpx.AsyncClient(transport=mock_transport),
    )

    with pytest.raises(pydantic.ValidationError):
        await transport.query(["a.com"])


@pytest.mark.asyncio
async def test_query_tolerates_null_results(settings: PassiveTotalSettings):
    mock_transport = httpx.MockTransport(
        handler=lambda request: httpx.Response(
            status_code=200, json={"results": {"a.com": None, "b.com": {"tags": "bad"}}}
        )
    )
    transport = PassiveTotalTransport(
        settings=settings,
        client_factory=lambda: httpx.AsyncClient(transport=mock_transport),
    )

    records = await transport.query(["a.com", "b.com"])

    assert set(records) == {"b.com"}
    assert records["b.com"]["tags"] is None


@pytest.mark.asyncio
async def test_custom_base_url(api: FakePassiveTotalAPI):
    settings = PassiveTotalSettings(
        user="analyst@example.com", key="secret", base_url="http://pt.internal:8080/"
    )

    await _transport(api=api, settings=settings).query(["x.com"])

    assert str(api.requests[0].url) == "http://pt.internal:8080/v2/enrichment/bulk"


@pytest.mark.asyncio
async def test_facade_over_passivetotal_transport(
    api: FakePassiveTotalAPI, settings: PassiveTotalSettings
):
    transport = _transport(api=api, settings=settings)

    async with LookupFacade(transport=transport, flush_interval_seconds=0.02) as facade:
        outcomes = await facade.lookup_many(["8.8.8.8", "x.com", "8.8.8.8"])

    assert len(api.requests) == 1
    assert outcomes["8.8.8.8"].tags == ["scanner", "tor"]
    assert outcomes["x.com"] is EMPTY_RESULT


@pytest.mark.asyncio
async def test_dry_run_transport_records_calls():
    transport = DryRunTransport()

    assert await transport.query(["a.com", "b.com"]) == {}
    assert transport.calls == [["a.com", "b.com"]]


def test_search_url_quotes_key():
    assert search_url("8.8.8.8") == "https://community.riskiq.com/search/8.8.8.8/resolutions"
    assert search_url("a b/c") == "https://community.riskiq.com/search/a%20b%2Fc/resolutions"


def test_response_models_keep_unknown_fields_without_aliasing():
    response = BulkEnrichmentResponse.model_validate(
        {"success": True, "results": {"a.com": {"tags": ["t"], "classification": "x"}}}
    )

    assert response.records() == {"a.com": {"tags": ["t"], "classification": "x"}}
    for model in (RawRecord, BulkEnrichmentResponse):
        assert model.model_config == {"extra": "allow"}
