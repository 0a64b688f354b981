"""
API Error Handling

Standardized error responses for the query API, including the mapping of
pipeline exceptions to HTTP status codes.
"""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from api.models.responses import ErrorDetail, ErrorResponse
from core.schemas.errors import (
    ConfigurationError,
    ErrorCodes,
    InsufficientBalance,
    LedgerRejection,
    NetworkError,
    ProofException,
    StorageError,
)


class APIError(Exception):
    """Base API error with structured response."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code=self.code,
                message=self.message,
                details=self.details,
            ),
        )


class InvalidRequestError(APIError):
    """Invalid request parameters."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code="INVALID_REQUEST",
            message=message,
            status_code=400,
            details=details,
        )


class RecordNotFoundError(APIError):
    """No record with the given id on the registry."""

    def __init__(self, record_id: str):
        super().__init__(
            code="RECORD_NOT_FOUND",
            message=f"Record not found: {record_id}",
            status_code=404,
            details={"record_id": record_id},
        )


class InternalError(APIError):
    """Internal server error."""

    def __init__(self, message: str = "Internal server error", details: dict[str, Any] | None = None):
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
            details=details,
        )


def status_for(exc: ProofException) -> int:
    """HTTP status for a pipeline exception."""
    if isinstance(exc, ConfigurationError):
        return 503
    if isinstance(exc, InsufficientBalance):
        return 402
    if isinstance(exc, LedgerRejection):
        return 422
    if isinstance(exc, NetworkError):
        return 504 if exc.code == ErrorCodes.GATEWAY_TIMEOUT else 502
    if isinstance(exc, StorageError):
        return 502
    return 400


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(),
    )


async def proof_error_handler(request: Request, exc: ProofException) -> JSONResponse:
    """Handle pipeline exceptions raised by the client."""
    error = exc.to_error_model()
    return JSONResponse(
        status_code=status_for(exc),
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code=error.code,
                message=error.message,
                details=error.details,
            ),
        ).model_dump(),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            ok=False,
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
                details={"type": type(exc).__name__},
            ),
        ).model_dump(),
    )
