"""
Kubo Content Store

ContentStore backed by the Kubo (go-ipfs) HTTP RPC API, as served by a
local node or a hosted endpoint such as Infura.

Endpoints used (all POST):
    /api/v0/add        upload, CIDv1, pinned on add
    /api/v0/cat        download
    /api/v0/pin/add    pin
    /api/v0/pin/rm     unpin
    /api/v0/files/stat size lookup
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from core.config.runtime import StorageConfig
from core.schemas.errors import ErrorCodes, NetworkError, StorageError


logger = logging.getLogger(__name__)

UPLOAD_FILENAME = "proof-record.json"


class KuboContentStore:
    """
    Content store talking to a Kubo RPC endpoint.

    Usage:
        store = KuboContentStore(StorageConfig(host="127.0.0.1", port=5001, protocol="http"))
        locator, size = await store.put(b'{"hello": "world"}')
        data = await store.get(locator)
        await store.close()
    """

    def __init__(
        self,
        config: StorageConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            config: Storage configuration (endpoint, auth headers, timeout)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.api_url,
                headers=dict(self.config.headers),
                timeout=self.config.timeout,
                transport=self._transport,
            )
        return self._client

    async def _rpc(
        self,
        command: str,
        *,
        params: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        locator: Optional[str] = None,
    ) -> httpx.Response:
        client = self._get_client()
        try:
            response = await client.post(f"/api/v0/{command}", params=params, files=files)
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Storage call '{command}' timed out",
                url=self.config.api_url,
                code=ErrorCodes.GATEWAY_TIMEOUT,
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(
                f"Storage call '{command}' failed: {e}",
                url=self.config.api_url,
            ) from e

        if response.status_code >= 400:
            raise StorageError(
                f"Storage call '{command}' failed with HTTP {response.status_code}: "
                f"{self._error_message(response)}",
                locator=locator,
                details={"status_code": response.status_code},
            )
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return str(response.json().get("Message", response.text))
        except ValueError:
            return response.text

    async def put(self, data: bytes) -> tuple[str, int]:
        response = await self._rpc(
            "add",
            params={"pin": "true", "cid-version": "1", "wrap-with-directory": "false"},
            files={"file": (UPLOAD_FILENAME, data)},
        )
        try:
            result = response.json()
            locator = result["Hash"]
            size = int(result.get("Size", len(data)))
        except (ValueError, KeyError) as e:
            raise StorageError(f"Unexpected add response: {response.text[:200]}") from e
        logger.debug(f"Stored {size} bytes as {locator}")
        return locator, size

    async def get(self, locator: str) -> bytes:
        response = await self._rpc("cat", params={"arg": locator}, locator=locator)
        return response.content

    async def pin(self, locator: str) -> None:
        await self._rpc("pin/add", params={"arg": locator}, locator=locator)
        logger.info(f"Pinned content: {locator}")

    async def unpin(self, locator: str) -> None:
        await self._rpc("pin/rm", params={"arg": locator}, locator=locator)
        logger.info(f"Unpinned content: {locator}")

    async def stat(self, locator: str) -> int:
        response = await self._rpc(
            "files/stat", params={"arg": f"/ipfs/{locator}"}, locator=locator
        )
        try:
            stats = response.json()
        except ValueError as e:
            raise StorageError(f"Unexpected stat response for {locator}", locator=locator) from e
        return int(stats.get("CumulativeSize") or stats.get("Size") or 0)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "KuboContentStore":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
