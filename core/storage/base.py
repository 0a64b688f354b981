"""
Content Store Boundary

The archive layer only needs five operations from storage:
put(bytes) -> locator, get, pin, unpin and stat. Anything that offers them
(Kubo RPC, a pinning service, an in-memory dict) can back an ArchiveAdapter.
"""

from __future__ import annotations

from typing import Protocol

from core.crypto.hashing import sha256
from core.schemas.errors import StorageError


class ContentStore(Protocol):
    """
    Protocol for content-addressed storage.

    Implementations raise StorageError (or NetworkError for transport
    failures) and never return partial results.
    """

    async def put(self, data: bytes) -> tuple[str, int]:
        """Store bytes and return (locator, stored size)."""
        ...

    async def get(self, locator: str) -> bytes:
        """Fetch the bytes stored under a locator."""
        ...

    async def pin(self, locator: str) -> None:
        """Protect content from garbage collection."""
        ...

    async def unpin(self, locator: str) -> None:
        """Make content eligible for garbage collection."""
        ...

    async def stat(self, locator: str) -> int:
        """Size in bytes of the content under a locator."""
        ...

    async def close(self) -> None:
        """Release transport resources."""
        ...


class InMemoryContentStore:
    """
    Dict-backed content store for tests and local development.

    Locators are derived from the content, so storing the same bytes twice
    yields the same locator.
    """

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}
        self._pinned: set[str] = set()

    @staticmethod
    def locator_for(data: bytes) -> str:
        return "bafy" + sha256(data).hex()[:52]

    async def put(self, data: bytes) -> tuple[str, int]:
        locator = self.locator_for(data)
        self._blobs[locator] = bytes(data)
        self._pinned.add(locator)
        return locator, len(data)

    async def get(self, locator: str) -> bytes:
        try:
            return self._blobs[locator]
        except KeyError:
            raise StorageError(f"Content not found: {locator}", locator=locator) from None

    async def pin(self, locator: str) -> None:
        if locator not in self._blobs:
            raise StorageError(f"Cannot pin unknown content: {locator}", locator=locator)
        self._pinned.add(locator)

    async def unpin(self, locator: str) -> None:
        if locator not in self._pinned:
            raise StorageError(f"Content is not pinned: {locator}", locator=locator)
        self._pinned.discard(locator)

    async def stat(self, locator: str) -> int:
        return len(await self.get(locator))

    async def close(self) -> None:
        pass

    def is_pinned(self, locator: str) -> bool:
        return locator in self._pinned

    @property
    def locators(self) -> list[str]:
        return list(self._blobs)
