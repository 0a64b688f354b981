"""
Hashing Utilities

Fingerprinting of captured request/response data for ledger anchoring.

This module provides:
- SHA-256 hashing for raw bytes
- fingerprint(): digest of a JSON-serializable value
- Hex encoding/decoding with 0x prefix

Determinism Notes:
- The serialization is plain json.dumps with compact separators. Keys are
  NOT sorted: two logically equal dicts built in a different order produce
  different fingerprints, which is fine because a fingerprint only has to
  identify the exact bytes that were archived.
- Circular or non-serializable input raises; errors are never swallowed.
"""
from __future__ import annotations

import hashlib
import json
from typing import Any


# Matches a plain JSON stringify: no whitespace after separators
FINGERPRINT_JSON_SEPARATORS: tuple[str, str] = (",", ":")

DIGEST_HEX_LENGTH = 66  # "0x" + 64 hex chars


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of raw bytes.

    Example:
        >>> sha256(b"hello").hex()
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    return hashlib.sha256(data).digest()


def serialize_for_fingerprint(value: Any) -> str:
    """
    Serialize a value the way fingerprint() sees it.

    Raises:
        ValueError: On circular references
        TypeError: On values json cannot encode
    """
    return json.dumps(
        value,
        separators=FINGERPRINT_JSON_SEPARATORS,
        ensure_ascii=False,
    )


def fingerprint(value: Any) -> str:
    """
    Compute the 0x-prefixed SHA-256 fingerprint of a JSON-serializable value.

    Pure function: identical structures always yield identical digests.

    Args:
        value: dict, list, str, number, bool or None (nested freely)

    Returns:
        0x-prefixed hex digest, 66 characters long

    Example:
        >>> fingerprint({"url": "https://api.example.com"})[:2]
        '0x'
    """
    return to_hex(sha256(serialize_for_fingerprint(value).encode("utf-8")))


def to_hex(data: bytes) -> str:
    """
    Convert bytes to hexadecimal string with 0x prefix.

    Example:
        >>> to_hex(bytes.fromhex("deadbeef"))
        '0xdeadbeef'
    """
    return "0x" + data.hex()


def from_hex(hex_string: str) -> bytes:
    """
    Convert hexadecimal string (with 0x prefix) to bytes.

    Raises:
        ValueError: If string doesn't start with 0x, has odd length,
                   or contains invalid hex characters
    """
    if not hex_string.startswith("0x"):
        raise ValueError(
            f"Hex string must start with '0x' prefix, got: {hex_string[:10]}..."
        )

    hex_content = hex_string[2:]

    if len(hex_content) % 2 != 0:
        raise ValueError(
            f"Hex string must have even length after 0x prefix, "
            f"got length {len(hex_content)}"
        )

    try:
        return bytes.fromhex(hex_content)
    except ValueError as e:
        raise ValueError(f"Invalid hex characters in string: {e}") from e


def normalize_hex(value: Any) -> str:
    """
    Render a bytes-like or hex value as a lowercase 0x-prefixed string.

    Ledger clients return identifiers as bytes (or bytes subclasses);
    receipts and lookups always carry strings.
    """
    if isinstance(value, (bytes, bytearray)):
        return to_hex(bytes(value))
    text = str(value)
    if not text.startswith("0x"):
        text = "0x" + text
    return text.lower()


__all__ = [
    "DIGEST_HEX_LENGTH",
    "sha256",
    "serialize_for_fingerprint",
    "fingerprint",
    "to_hex",
    "from_hex",
    "normalize_hex",
]
