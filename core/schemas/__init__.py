"""
Schemas

Purpose: Export the public API for the schemas module.
This is the main entry point for other modules to import schema definitions.
"""

# Error models and exceptions
from .errors import (
    ConfigurationError,
    ErrorCodes,
    InsufficientBalance,
    LedgerRejection,
    NetworkError,
    ProofError,
    ProofException,
    RecordingError,
    StorageError,
)

# Record schemas
from .records import (
    AnchorRecord,
    ArchiveResult,
    BatchEntry,
    CertificateData,
    CertificateEntry,
    Exchange,
    FingerprintPair,
    PricingInfo,
    RecordIdResolution,
    RecordOptions,
    RegistryStatistics,
    RequestCapture,
    ResponseCapture,
    TokenBalance,
    UserStatistics,
    Visibility,
)

__all__ = [
    # Errors
    "ConfigurationError",
    "ErrorCodes",
    "InsufficientBalance",
    "LedgerRejection",
    "NetworkError",
    "ProofError",
    "ProofException",
    "RecordingError",
    "StorageError",
    # Records
    "AnchorRecord",
    "ArchiveResult",
    "BatchEntry",
    "CertificateData",
    "CertificateEntry",
    "Exchange",
    "FingerprintPair",
    "PricingInfo",
    "RecordIdResolution",
    "RecordOptions",
    "RegistryStatistics",
    "RequestCapture",
    "ResponseCapture",
    "TokenBalance",
    "UserStatistics",
    "Visibility",
]
