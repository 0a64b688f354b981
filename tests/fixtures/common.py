"""
Common test fixtures shared by all modules.

Provides factory functions for the core data structures:
- RequestCapture / ResponseCapture / Exchange
- BatchEntry
- A ProofClient wired to the simulated ledger and in-memory storage

All factories are deterministic unless a caller varies their arguments.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from core.archive import ArchiveAdapter
from core.clock import FrozenClock
from core.config.runtime import ProofConfig
from core.crypto.sealing import PayloadSealer
from core.ledger.memory import InMemoryContractGateway
from core.schemas.records import (
    BatchEntry,
    Exchange,
    RequestCapture,
    ResponseCapture,
)
from core.storage.base import InMemoryContentStore
from orchestrator.pipeline import ProofClient, create_local_client


FIXED_TIME = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
TEST_ENCRYPTION_KEY = "test-encryption-secret-0123456789abcdef"


# =============================================================================
# Exchange Factories
# =============================================================================

def make_request_capture(
    url: str = "https://api.example.com/v1/prices?symbol=BTC",
    method: str = "GET",
    headers: Optional[dict[str, str]] = None,
    body: Any = None,
    timestamp: datetime = FIXED_TIME,
) -> RequestCapture:
    """Create a RequestCapture for testing."""
    return RequestCapture(
        url=url,
        method=method,
        headers=headers if headers is not None else {"accept": "application/json"},
        body=body,
        timestamp=timestamp,
    )


def make_response_capture(
    status: int = 200,
    body: Any = None,
    headers: Optional[dict[str, str]] = None,
    timestamp: datetime = FIXED_TIME + timedelta(milliseconds=120),
    duration_ms: float = 120.0,
) -> ResponseCapture:
    """Create a ResponseCapture for testing."""
    return ResponseCapture(
        status=status,
        status_text="OK" if status == 200 else "",
        headers=headers if headers is not None else {"content-type": "application/json"},
        body=body if body is not None else {"symbol": "BTC", "price": "101250.00"},
        timestamp=timestamp,
        duration_ms=duration_ms,
    )


def make_exchange(
    url: str = "https://api.example.com/v1/prices?symbol=BTC",
    status: int = 200,
    response_body: Any = None,
    method: str = "GET",
) -> Exchange:
    """Create an Exchange for testing."""
    return Exchange(
        request=make_request_capture(url=url, method=method),
        response=make_response_capture(status=status, body=response_body),
    )


def make_batch_entry(
    index: int = 0,
    metadata: Optional[dict[str, Any]] = None,
) -> BatchEntry:
    """Create a BatchEntry whose URL and body vary with index."""
    return BatchEntry(
        exchange=make_exchange(
            url=f"https://api.example.com/v1/items/{index}",
            response_body={"id": index},
        ),
        metadata=metadata or {"index": index},
        captured_at=FIXED_TIME,
    )


# =============================================================================
# Client Factories
# =============================================================================

def make_local_client(
    *,
    token_balance: int = 1_000,
    gateway: Optional[InMemoryContractGateway] = None,
    store: Optional[InMemoryContentStore] = None,
    config: Optional[ProofConfig] = None,
    clock: Optional[FrozenClock] = None,
    encryption_key: Optional[str] = None,
    **kwargs: Any,
) -> ProofClient:
    """
    Create a ProofClient over the simulated ledger and in-memory storage.

    Pass gateway/store to inspect ledger or storage state afterwards.
    """
    clock = clock or FrozenClock(FIXED_TIME)
    if gateway is None:
        gateway = InMemoryContractGateway(clock=clock)
        gateway.mint(gateway.account_address, token_balance)
    return create_local_client(
        config=config,
        gateway=gateway,
        store=store or InMemoryContentStore(),
        clock=clock,
        encryption_key=encryption_key,
        **kwargs,
    )


def make_archive(
    store: Optional[InMemoryContentStore] = None,
    *,
    encryption_key: Optional[str] = TEST_ENCRYPTION_KEY,
) -> ArchiveAdapter:
    """Create an ArchiveAdapter over an in-memory store."""
    return ArchiveAdapter(
        store or InMemoryContentStore(),
        gateway_url="https://ipfs.io/ipfs/",
        sealer=PayloadSealer(encryption_key) if encryption_key else None,
        clock=FrozenClock(FIXED_TIME),
    )
