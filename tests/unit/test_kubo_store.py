"""
Kubo Content Store Unit Tests
Tests for core/storage/kubo.py against httpx.MockTransport
"""
import httpx
import pytest

from core.config.runtime import StorageConfig
from core.schemas.errors import ErrorCodes, NetworkError, StorageError
from core.storage.kubo import KuboContentStore


def _store(handler) -> KuboContentStore:
    config = StorageConfig(
        host="127.0.0.1",
        port=5001,
        protocol="http",
        headers={"authorization": "Basic dGVzdDp0ZXN0"},
    )
    return KuboContentStore(config, transport=httpx.MockTransport(handler))


class TestKuboContentStore:
    @pytest.mark.asyncio
    async def test_put_posts_to_add(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"Name": "proof-record.json", "Hash": "bafyabc", "Size": "42"})

        store = _store(handler)
        locator, size = await store.put(b'{"a": 1}')
        await store.close()

        assert (locator, size) == ("bafyabc", 42)
        assert seen["path"] == "/api/v0/add"
        assert seen["params"]["pin"] == "true"
        assert seen["params"]["cid-version"] == "1"
        assert seen["auth"] == "Basic dGVzdDp0ZXN0"

    @pytest.mark.asyncio
    async def test_get_uses_cat(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v0/cat"
            assert request.url.params["arg"] == "bafyabc"
            return httpx.Response(200, content=b"stored bytes")

        async with _store(handler) as store:
            assert await store.get("bafyabc") == b"stored bytes"

    @pytest.mark.asyncio
    async def test_stat_reads_cumulative_size(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["arg"] == "/ipfs/bafyabc"
            return httpx.Response(200, json={"CumulativeSize": 120, "Size": 100})

        async with _store(handler) as store:
            assert await store.stat("bafyabc") == 120

    @pytest.mark.asyncio
    async def test_error_status_raises_storage_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"Message": "merkledag: not found", "Code": 0})

        async with _store(handler) as store:
            with pytest.raises(StorageError) as exc_info:
                await store.get("bafymissing")

        assert "merkledag: not found" in exc_info.value.message
        assert exc_info.value.details["locator"] == "bafymissing"

    @pytest.mark.asyncio
    async def test_malformed_add_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="not json")

        async with _store(handler) as store:
            with pytest.raises(StorageError):
                await store.put(b"data")

    @pytest.mark.asyncio
    async def test_timeout_raises_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with _store(handler) as store:
            with pytest.raises(NetworkError) as exc_info:
                await store.get("bafyabc")

        assert exc_info.value.code == ErrorCodes.GATEWAY_TIMEOUT
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_connect_error_raises_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _store(handler) as store:
            with pytest.raises(NetworkError) as exc_info:
                await store.pin("bafyabc")

        assert exc_info.value.code == ErrorCodes.NETWORK_ERROR
