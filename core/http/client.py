"""
HTTP Capture

Turns an outbound httpx call into a frozen Exchange, and provides an
httpx-backed client whose every request is recorded.
"""

from __future__ import annotations

import json
import time
from typing import Any, Awaitable, Optional, TYPE_CHECKING

import httpx

from core.clock import Clock, RealClock
from core.schemas.errors import ErrorCodes, NetworkError, RecordingError
from core.schemas.records import Exchange, RecordOptions, RequestCapture, ResponseCapture

if TYPE_CHECKING:
    from core.receipts import RecordedResponse
    from orchestrator.pipeline import ProofClient


def decode_body(content: bytes) -> Any:
    """
    Body value as archived: parsed JSON when the bytes are JSON, otherwise
    text. Empty bodies become None.
    """
    if not content:
        return None
    text = content.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


def _request_of(response: httpx.Response) -> Optional[httpx.Request]:
    try:
        return response.request
    except RuntimeError:
        return None


def _request_body(request: Optional[httpx.Request]) -> Any:
    if request is None:
        return None
    try:
        return decode_body(request.content)
    except httpx.RequestNotRead:
        return None


async def capture_exchange(
    call: Awaitable[httpx.Response],
    options: Optional[RecordOptions] = None,
    *,
    clock: Optional[Clock] = None,
) -> tuple[httpx.Response, Exchange]:
    """
    Await an outbound call and capture what was sent and received.

    The response body is read here once; the returned response stays fully
    readable by the caller. Method, headers and body given in options take
    precedence over what the response's request carries.

    Raises:
        NetworkError: the call itself failed at the transport level
        RecordingError: no request URL can be determined
    """
    options = options or RecordOptions()
    clock = clock or RealClock()

    started_at = clock.now()
    started = time.perf_counter()
    try:
        response = await call
        await response.aread()
    except httpx.HTTPError as e:
        try:
            url = str(e.request.url)
        except RuntimeError:
            url = options.url
        raise NetworkError(f"Recorded request failed: {e}", url=url) from e
    duration_ms = (time.perf_counter() - started) * 1000
    finished_at = clock.now()

    request = _request_of(response)
    url = options.url or (str(request.url) if request is not None else None)
    if not url:
        raise RecordingError(
            "Cannot determine the request URL; pass RecordOptions(url=...)",
            code=ErrorCodes.INCOMPLETE_EXCHANGE,
        )

    if options.headers is not None:
        request_headers = dict(options.headers)
    elif request is not None:
        request_headers = dict(request.headers.items())
    else:
        request_headers = {}

    exchange = Exchange(
        request=RequestCapture(
            url=url,
            method=(options.method or (request.method if request is not None else "GET")).upper(),
            headers=request_headers,
            body=options.body if options.body is not None else _request_body(request),
            timestamp=started_at,
        ),
        response=ResponseCapture(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers.items()),
            body=decode_body(response.content),
            timestamp=finished_at,
            duration_ms=duration_ms,
        ),
    )
    return response, exchange


class RecordingHttpClient:
    """
    httpx client whose requests are anchored through a ProofClient.

    Usage:
        async with RecordingHttpClient(proof_client) as http:
            recorded = await http.get("https://api.example.com/data")
            print(recorded.receipt.record_id, recorded.json())
    """

    def __init__(
        self,
        proof_client: "ProofClient",
        *,
        timeout: float = 30.0,
        default_headers: Optional[dict[str, str]] = None,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.proof_client = proof_client
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout, headers=default_headers)

    async def request(
        self,
        method: str,
        url: str,
        *,
        options: Optional[RecordOptions] = None,
        **kwargs: Any,
    ) -> "RecordedResponse":
        """Send a request and record it. Extra keyword arguments go to httpx."""
        return await self.proof_client.record(self._http.request(method, url, **kwargs), options)

    async def get(self, url: str, **kwargs: Any) -> "RecordedResponse":
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> "RecordedResponse":
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> "RecordedResponse":
        return await self.request("PUT", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> "RecordedResponse":
        return await self.request("DELETE", url, **kwargs)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "RecordingHttpClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
