"""
HTTP Capture Unit Tests
Tests for core/http/client.py
"""
import httpx
import pytest

from core.clock import FrozenClock
from core.http import RecordingHttpClient, capture_exchange, decode_body
from core.schemas.errors import ErrorCodes, RecordingError
from core.schemas.records import RecordOptions

from fixtures.common import FIXED_TIME


def _mock_http(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestDecodeBody:
    def test_json(self):
        assert decode_body(b'{"a": [1, 2]}') == {"a": [1, 2]}

    def test_text(self):
        assert decode_body(b"plain text") == "plain text"

    def test_empty(self):
        assert decode_body(b"") is None


class TestCaptureExchange:
    @pytest.mark.asyncio
    async def test_captures_both_halves(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": True}, headers={"x-rate-limit": "99"})

        async with _mock_http(handler) as http:
            response, exchange = await capture_exchange(
                http.get("https://api.example.com/v1/status", headers={"accept": "application/json"}),
                clock=FrozenClock(FIXED_TIME),
            )

        assert exchange.request.url == "https://api.example.com/v1/status"
        assert exchange.request.method == "GET"
        assert exchange.request.headers["accept"] == "application/json"
        assert exchange.request.timestamp == FIXED_TIME
        assert exchange.response.status == 200
        assert exchange.response.status_text == "OK"
        assert exchange.response.headers["x-rate-limit"] == "99"
        assert exchange.response.body == {"ok": True}
        assert exchange.response.duration_ms >= 0
        assert response.json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_response_without_request_needs_url(self):
        async def call():
            return httpx.Response(200, text="orphan")

        with pytest.raises(RecordingError) as exc_info:
            await capture_exchange(call())
        assert exc_info.value.code == ErrorCodes.INCOMPLETE_EXCHANGE

    @pytest.mark.asyncio
    async def test_url_from_options(self):
        async def call():
            return httpx.Response(200, text="orphan")

        _, exchange = await capture_exchange(
            call(),
            RecordOptions(url="https://api.example.com/manual", method="post", body={"q": 1}),
        )

        assert exchange.request.url == "https://api.example.com/manual"
        assert exchange.request.method == "POST"
        assert exchange.request.body == {"q": 1}
        assert exchange.response.body == "orphan"


class TestRecordingHttpClient:
    @pytest.mark.asyncio
    async def test_every_request_is_recorded(self, client, gateway):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"path": request.url.path})

        async with RecordingHttpClient(client, http=_mock_http(handler)) as http:
            first = await http.get("https://api.example.com/a")
            second = await http.post("https://api.example.com/b", json={"x": 1})

        assert first.json() == {"path": "/a"}
        assert second.json() == {"path": "/b"}
        assert first.receipt.record_id != second.receipt.record_id
        assert gateway.transaction_count("storeAPIRecord") == 2
