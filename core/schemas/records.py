"""
Record Schemas

Data model for captured exchanges, archive results and ledger records.

Key Design Principles:
1. An Exchange is frozen once captured; the pipeline only reads it
2. request/response halves are fingerprinted separately
3. Ledger-side values (record ids, amounts) are carried as strings so they
   survive JSON transport without precision loss
"""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Visibility(IntEnum):
    """
    Access-control classification attached to an anchored record.

    Values match the registry contract's uint8 encoding.
    """
    PUBLIC = 0
    PRIVATE = 1
    SHARED = 2


# =============================================================================
# Captured Exchange
# =============================================================================

class RequestCapture(BaseModel):
    """Request half of an exchange."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str = Field(..., description="Requested URL")
    method: str = Field(default="GET", description="HTTP method")
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = Field(default=None, description="Request body (text or JSON value)")
    timestamp: datetime = Field(..., description="When the request was sent")
    ip: Optional[str] = Field(default=None, description="Client address, when intercepted")


class ResponseCapture(BaseModel):
    """Response half of an exchange."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    status: int = Field(..., description="HTTP status code")
    status_text: str = Field(default="", description="Reason phrase")
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = Field(default=None, description="Response body (text or JSON value)")
    timestamp: datetime = Field(..., description="When the response completed")
    duration_ms: float = Field(default=0.0, ge=0.0)


class Exchange(BaseModel):
    """A single request/response pair captured for recording."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    request: RequestCapture
    response: ResponseCapture

    def request_document(self) -> dict[str, Any]:
        """JSON form of the request half, as fingerprinted and archived."""
        return self.request.model_dump(mode="json", exclude_none=True)

    def response_document(self) -> dict[str, Any]:
        """JSON form of the response half, as fingerprinted and archived."""
        return self.response.model_dump(mode="json", exclude_none=True)


class FingerprintPair(BaseModel):
    """Digests of the request and response halves of one exchange."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    request_digest: str = Field(..., description="0x-prefixed SHA-256 of the request")
    response_digest: str = Field(..., description="0x-prefixed SHA-256 of the response")


class BatchEntry(BaseModel):
    """An exchange waiting in the interception queue for a batched anchor."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    exchange: Exchange
    metadata: dict[str, Any] = Field(default_factory=dict)
    captured_at: datetime = Field(..., description="When the entry was queued")


class RecordOptions(BaseModel):
    """Per-call options for a single recording."""

    model_config = ConfigDict(extra="forbid")

    url: Optional[str] = Field(
        default=None,
        description="Request URL when the response carries no request",
    )
    method: Optional[str] = Field(
        default=None,
        description="Overrides the method read from the response's request",
    )
    headers: Optional[dict[str, str]] = Field(
        default=None,
        description="Overrides the request headers read from the response",
    )
    body: Any = Field(default=None, description="Overrides the request body")
    metadata: dict[str, Any] = Field(default_factory=dict)
    visibility: Optional[Visibility] = Field(
        default=None,
        description="Record visibility; PUBLIC when unset",
    )


# =============================================================================
# Archive
# =============================================================================

class ArchiveResult(BaseModel):
    """Outcome of storing a payload in content-addressed storage."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    locator: str = Field(..., description="Content identifier returned by storage")
    url: str = Field(..., description="Gateway URL for the content")
    size: int = Field(..., ge=0, description="Stored size in bytes")
    timestamp: datetime


class CertificateEntry(BaseModel):
    """One recorded call listed on a certificate."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    request_url: str
    response_status: int


class CertificateData(BaseModel):
    """Inputs for the human-readable verification certificate."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    record_id: str
    transaction_hash: str
    timestamp: datetime
    network: str
    explorer_url: str = ""
    entries: list[CertificateEntry] = Field(default_factory=list)


# =============================================================================
# Ledger
# =============================================================================

class AnchorRecord(BaseModel):
    """A record as stored by the registry contract."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    record_id: str
    request_digest: str
    response_digest: str
    timestamp: int = Field(..., description="Block timestamp (seconds since epoch)")
    submitter: str = Field(..., description="Address that anchored the record")
    archive_locator: str
    visibility: Visibility


class RecordIdResolution(BaseModel):
    """
    How the record id of an anchor transaction was obtained.

    source="event" means the id was decoded from the registry's event.
    source="transaction" is the degraded variant: no matching event decoded,
    so the transaction hash stands in for the record id.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    record_id: str
    source: Literal["event", "transaction"]

    @property
    def degraded(self) -> bool:
        return self.source == "transaction"


class TokenBalance(BaseModel):
    """Balances of the signing account, formatted in whole units."""

    proof: str
    native: str


class UserStatistics(BaseModel):
    """Recording statistics for one address."""

    address: str
    record_count: int
    proof_balance: str
    total_spent: str


class RegistryStatistics(BaseModel):
    """Registry-wide statistics."""

    total_records: int
    contract_balance: str
    current_burn_rate: int
    current_price: str


class PricingInfo(BaseModel):
    """Current pricing as reported by the registry."""

    record_price: str
    proof_price_usd: str
    current_burn_rate: int
    using_manual_price: bool
