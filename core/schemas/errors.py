"""
Schemas - Error Taxonomy
File: errors.py

Purpose: Standard error taxonomy across the recording pipeline.
Defines both Pydantic models for structured error communication
and Python exceptions for control flow.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes used across the pipeline."""

    # Configuration
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    MISSING_SIGNING_KEY = "MISSING_SIGNING_KEY"
    MISSING_ENCRYPTION_KEY = "MISSING_ENCRYPTION_KEY"

    # Network
    NETWORK_ERROR = "NETWORK_ERROR"
    GATEWAY_TIMEOUT = "GATEWAY_TIMEOUT"

    # Ledger
    LEDGER_REJECTION = "LEDGER_REJECTION"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"

    # Storage
    STORAGE_ERROR = "STORAGE_ERROR"
    DECRYPTION_FAILED = "DECRYPTION_FAILED"

    # Pipeline
    EMPTY_BATCH = "EMPTY_BATCH"
    BATCH_LENGTH_MISMATCH = "BATCH_LENGTH_MISMATCH"
    INCOMPLETE_EXCHANGE = "INCOMPLETE_EXCHANGE"


# =============================================================================
# Pydantic Error Model (Structured Communication)
# =============================================================================

class ProofError(BaseModel):
    """
    Error model for structured error communication.

    Used when an error has to cross a serialization boundary (API responses,
    logs shipped as JSON) without raising.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.LEDGER_REJECTION],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the operation can be retried",
    )

    def to_exception(self) -> "ProofException":
        """Convert this error model to a raised exception."""
        return ProofException(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class ProofException(Exception):
    """
    Base exception for all recording pipeline errors.

    Carries structured error information and can be converted
    to a ProofError model.
    """

    def __init__(
        self,
        message: str,
        code: str = "PROOF_ERROR",
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_error_model(self) -> ProofError:
        """Convert this exception to a ProofError model."""
        return ProofError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class ConfigurationError(ProofException):
    """Missing or invalid configuration (signing key, encryption key, addresses)."""

    def __init__(
        self,
        message: str,
        code: str = ErrorCodes.CONFIGURATION_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=code,
            details=details,
            retryable=False,
        )


class NetworkError(ProofException):
    """The recorded exchange or a gateway call failed at the transport level."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        code: str = ErrorCodes.NETWORK_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if url:
            full_details["url"] = url
        super().__init__(
            message=message,
            code=code,
            details=full_details,
            retryable=True,
        )


class LedgerRejection(ProofException):
    """A transaction reverted or a read call against the ledger failed."""

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        code: str = ErrorCodes.LEDGER_REJECTION,
        tx_hash: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if reason:
            full_details["reason"] = reason
        if tx_hash:
            full_details["tx_hash"] = tx_hash
        super().__init__(
            message=message,
            code=code,
            details=full_details,
            retryable=False,
        )
        self.reason = reason


class InsufficientBalance(LedgerRejection):
    """The signer cannot pay for the anchor (token balance, allowance or gas)."""

    def __init__(
        self,
        message: str = "Insufficient PROOF tokens. Please purchase more tokens.",
        reason: str | None = None,
        required: str | None = None,
        balance: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if required is not None:
            full_details["required"] = required
        if balance is not None:
            full_details["balance"] = balance
        super().__init__(
            message=message,
            reason=reason,
            code=ErrorCodes.INSUFFICIENT_FUNDS,
            details=full_details,
        )


class StorageError(ProofException):
    """Upload, retrieval or pinning against the content store failed."""

    def __init__(
        self,
        message: str,
        locator: str | None = None,
        code: str = ErrorCodes.STORAGE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if locator:
            full_details["locator"] = locator
        super().__init__(
            message=message,
            code=code,
            details=full_details,
            retryable=False,
        )


class RecordingError(ProofException):
    """Invalid input to the recording pipeline itself (e.g. an empty batch)."""

    def __init__(
        self,
        message: str,
        code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=code,
            details=details,
            retryable=False,
        )
