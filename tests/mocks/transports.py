import asyncio
import json
import typing as t

import httpx

Records = dict[str, dict[str, t.Any]]


class RecordingTransport:
    """
    Bulk query transport returning canned records and recording every call.
    """

    def __init__(
        self,
        records: Records | None = None,
        *,
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self.records: Records = records or {}
        self.delay = delay
        self.error = error
        self.calls: list[list[str]] = []

    async def query(self, keys: list[str]) -> Records:
        self.calls.append(list(keys))
        if self.delay:
            await asyncio.sleep(delay=self.delay)
        if self.error is not None:
            raise self.error
        return dict(self.records)


class FakePassiveTotalAPI:
    """
    Emulate the PassiveTotal bulk enrichment endpoint.
    """

    def __init__(self, records: Records | None = None, *, status_code: int = 200) -> None:
        self.records: Records = records or {}
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        """
        Answer bulk enrichment requests with the known records of the queried keys.

        Parameters
        ----------
        request : httpx.Request
            Incoming HTTP request.

        Returns
        -------
        httpx.Response
            Mock response.
        """
        self.requests.append(request)
        if request.method != "GET" or request.url.path != "/v2/enrichment/bulk":
            return httpx.Response(status_code=404, json={"error": "not found"})
        if self.status_code != 200:
            return httpx.Response(status_code=self.status_code, json={"error": "unavailable"})
        payload = json.loads(request.read())
        results = {key: self.records[key] for key in payload["query"] if key in self.records}
        return httpx.Response(status_code=200, json={"success": True, "results": results})


def make_passivetotal_transport(api: FakePassiveTotalAPI) -> httpx.MockTransport:
    """
    Create a mock PassiveTotal transport for tests.

    Parameters
    ----------
    api : FakePassiveTotalAPI
        Fake API answering the requests.

    Returns
    -------
    httpx.MockTransport
        Mock transport routing requests to ``api``.
    """
    return httpx.MockTransport(handler=api.handler)


class CallbackRecorder:
    """
    Collect ``(error, result)`` deliveries per named callback, in call order.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, t.Any, t.Any]] = []

    def make(self, name: str) -> t.Callable[[t.Any, t.Any], None]:
        def _callback(error: t.Any, result: t.Any) -> None:
            self.calls.append((name, error, result))

        return _callback

    def names(self) -> list[str]:
        return [name for name, _, _ in self.calls]
