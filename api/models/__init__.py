"""API response models."""

from api.models.responses import (
    BalanceResponse,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    PricingResponse,
    RecordResponse,
    StatsResponse,
)

__all__ = [
    "HealthResponse",
    "RecordResponse",
    "StatsResponse",
    "PricingResponse",
    "BalanceResponse",
    "ErrorDetail",
    "ErrorResponse",
]
