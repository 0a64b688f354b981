"""
Archive Adapter

Stores request/response payloads and certificates in content-addressed
storage and hands back locators plus gateway URLs.

Payloads can be sealed (AES-256-GCM) before upload. Requesting encryption
without a configured key is a configuration error; the adapter never
silently falls back to plaintext.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional, Sequence

from core.archive.certificate import render_certificate
from core.clock import Clock, RealClock
from core.crypto.sealing import PayloadSealer, is_sealed
from core.schemas.errors import (
    ConfigurationError,
    ErrorCodes,
    NetworkError,
    StorageError,
)
from core.schemas.records import ArchiveResult, CertificateData
from core.storage.base import ContentStore


logger = logging.getLogger(__name__)

# Uploads in flight during archive_batch
BATCH_CONCURRENCY = 5


class ArchiveAdapter:
    """
    Archive layer over a ContentStore.

    Usage:
        archive = ArchiveAdapter(store, gateway_url="https://ipfs.io/ipfs/")
        result = await archive.archive({"request": ..., "response": ...})
        payload = await archive.retrieve(result.locator)
    """

    def __init__(
        self,
        store: ContentStore,
        *,
        gateway_url: str = "https://ipfs.io/ipfs/",
        sealer: Optional[PayloadSealer] = None,
        clock: Optional[Clock] = None,
        batch_concurrency: int = BATCH_CONCURRENCY,
    ) -> None:
        self.store = store
        self.gateway_url = gateway_url
        self.sealer = sealer
        self.clock = clock or RealClock()
        self.batch_concurrency = batch_concurrency

    def url_for(self, locator: str) -> str:
        """Gateway URL for a locator."""
        return f"{self.gateway_url}{locator}"

    def _require_sealer(self) -> PayloadSealer:
        if self.sealer is None:
            raise ConfigurationError(
                "Encryption requested but no encryption key is configured. "
                "Set ENCRYPTION_KEY or disable encrypt_data.",
                code=ErrorCodes.MISSING_ENCRYPTION_KEY,
            )
        return self.sealer

    async def archive(self, payload: Any, *, encrypt: bool = False) -> ArchiveResult:
        """
        Upload a payload.

        Strings are stored verbatim, anything else as indented JSON.

        Raises:
            ConfigurationError: encrypt=True without an encryption key
            StorageError / NetworkError: upload failed
            TypeError / ValueError: payload is not JSON-serializable
        """
        content = payload if isinstance(payload, str) else json.dumps(payload, indent=2)
        if encrypt:
            content = self._require_sealer().seal(content)

        locator, size = await self.store.put(content.encode("utf-8"))
        logger.debug(f"Archived {size} bytes as {locator} (encrypted={encrypt})")
        return ArchiveResult(
            locator=locator,
            url=self.url_for(locator),
            size=size,
            timestamp=self.clock.now(),
        )

    async def retrieve(self, locator: str, *, decrypt: bool = False) -> Any:
        """
        Download a payload.

        With decrypt=True a sealed payload is opened; content without a
        format marker comes back unchanged. The result is parsed as JSON
        when possible and returned as text otherwise.
        """
        raw = await self.store.get(locator)
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StorageError(f"Content is not UTF-8 text: {locator}", locator=locator) from e

        if decrypt and is_sealed(content):
            content = self._require_sealer().open(content)

        try:
            return json.loads(content)
        except ValueError:
            return content

    async def pin(self, locator: str) -> None:
        await self.store.pin(locator)

    async def unpin(self, locator: str) -> None:
        await self.store.unpin(locator)

    async def exists(self, locator: str) -> bool:
        """
        Best-effort availability probe.

        Storage or transport failures count as "not available".
        """
        try:
            await self.store.stat(locator)
        except (StorageError, NetworkError) as e:
            logger.debug(f"Content {locator} not available: {e}")
            return False
        return True

    async def size(self, locator: str) -> int:
        """Stored size of the content in bytes."""
        return await self.store.stat(locator)

    async def archive_batch(
        self,
        payloads: Sequence[Any],
        *,
        encrypt: bool = False,
    ) -> list[ArchiveResult]:
        """
        Upload several payloads concurrently.

        At most batch_concurrency uploads are in flight at a time.
        Results are returned in input order. The first failure propagates
        once all started uploads have settled.
        """
        semaphore = asyncio.Semaphore(self.batch_concurrency)

        async def _upload(payload: Any) -> ArchiveResult:
            async with semaphore:
                return await self.archive(payload, encrypt=encrypt)

        results = await asyncio.gather(
            *(_upload(p) for p in payloads),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)

    async def create_certificate(self, data: CertificateData) -> ArchiveResult:
        """Render and archive a verification certificate (never encrypted)."""
        html = render_certificate(data, generated_at=self.clock.now())
        return await self.archive(html, encrypt=False)
