"""
Core cryptographic utilities.

Fingerprinting for anchored exchanges and sealing for archived payloads.
"""
from .hashing import (
    sha256,
    fingerprint,
    to_hex,
    from_hex,
    normalize_hex,
)
from .sealing import PayloadSealer, SEALED_MARKER, is_sealed

__all__ = [
    "sha256",
    "fingerprint",
    "to_hex",
    "from_hex",
    "normalize_hex",
    "PayloadSealer",
    "SEALED_MARKER",
    "is_sealed",
]
