"""
API Response Models

Pydantic models for API response serialization.
"""

from typing import Any

from pydantic import BaseModel, Field

from core.schemas.records import (
    AnchorRecord,
    PricingInfo,
    RegistryStatistics,
    TokenBalance,
    UserStatistics,
)


class HealthResponse(BaseModel):
    """Response for GET /health endpoint."""

    ok: bool = True
    service: str = "proof-anchor-api"
    version: str = "v1"
    network: str | None = Field(default=None, description="Network label of the configured ledger")


class RecordResponse(BaseModel):
    """Response for GET /records/{record_id}."""

    ok: bool = True
    record: AnchorRecord


class StatsResponse(BaseModel):
    """Response for GET /stats."""

    ok: bool = True
    registry: RegistryStatistics
    account: UserStatistics


class PricingResponse(BaseModel):
    """Response for GET /pricing."""

    ok: bool = True
    pricing: PricingInfo


class BalanceResponse(BaseModel):
    """Response for GET /balance."""

    ok: bool = True
    address: str
    balance: TokenBalance


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Error response structure."""

    ok: bool = False
    error: ErrorDetail
