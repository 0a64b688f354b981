"""
Payload Sealing

AES-256-GCM sealing of archive payloads before they leave the process.

Format (v2):
    "ENCRYPTED_V2:" + base64(nonce[12] || tag[16] || ciphertext)

The key is SHA-256 of the configured secret, derived once when the sealer
is constructed. Every seal() call draws a fresh random nonce.

The legacy "ENCRYPTED:" marker is plain base64 from the first release.
It is still readable but carries no confidentiality.
"""
from __future__ import annotations

import base64
import binascii
import logging

from Crypto.Cipher import AES
from Crypto.Random import get_random_bytes

from core.crypto.hashing import sha256
from core.schemas.errors import ConfigurationError, ErrorCodes, StorageError


logger = logging.getLogger(__name__)

SEALED_MARKER = "ENCRYPTED_V2:"
LEGACY_MARKER = "ENCRYPTED:"

NONCE_SIZE = 12
TAG_SIZE = 16


def is_sealed(content: str) -> bool:
    """Check whether content carries a sealing format marker."""
    return content.startswith(SEALED_MARKER) or content.startswith(LEGACY_MARKER)


class PayloadSealer:
    """
    Authenticated symmetric encryption for archive payloads.

    Usage:
        sealer = PayloadSealer(os.environ["ENCRYPTION_KEY"])
        sealed = sealer.seal('{"request": ...}')
        assert sealer.open(sealed) == '{"request": ...}'
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ConfigurationError(
                "Encryption key not configured. Set ENCRYPTION_KEY "
                "(32 bytes hex or 64 char string).",
                code=ErrorCodes.MISSING_ENCRYPTION_KEY,
            )
        self._key = sha256(secret.encode("utf-8"))

    def __repr__(self) -> str:
        return "PayloadSealer(key=<redacted>)"

    def seal(self, content: str) -> str:
        """Encrypt UTF-8 text and return the marked, base64 encoded envelope."""
        nonce = get_random_bytes(NONCE_SIZE)
        cipher = AES.new(self._key, AES.MODE_GCM, nonce=nonce)
        ciphertext, tag = cipher.encrypt_and_digest(content.encode("utf-8"))
        combined = nonce + tag + ciphertext
        return SEALED_MARKER + base64.b64encode(combined).decode("ascii")

    def open(self, content: str) -> str:
        """
        Decrypt an envelope produced by seal().

        Content without a marker is returned unchanged.

        Raises:
            StorageError: If the envelope is malformed or fails authentication
        """
        if content.startswith(SEALED_MARKER):
            return self._open_v2(content[len(SEALED_MARKER):])
        if content.startswith(LEGACY_MARKER):
            logger.warning(
                "Legacy base64 encoding detected. This is NOT secure encryption. "
                "Re-encrypt your data."
            )
            return self._decode_b64(content[len(LEGACY_MARKER):]).decode("utf-8")
        return content

    def _open_v2(self, encoded: str) -> str:
        combined = self._decode_b64(encoded)
        if len(combined) < NONCE_SIZE + TAG_SIZE:
            raise StorageError(
                "Sealed payload is truncated",
                code=ErrorCodes.DECRYPTION_FAILED,
            )
        nonce = combined[:NONCE_SIZE]
        tag = combined[NONCE_SIZE:NONCE_SIZE + TAG_SIZE]
        ciphertext = combined[NONCE_SIZE + TAG_SIZE:]

        cipher = AES.new(self._key, AES.MODE_GCM, nonce=nonce)
        try:
            plaintext = cipher.decrypt_and_verify(ciphertext, tag)
        except ValueError as e:
            raise StorageError(
                "Sealed payload failed authentication (wrong key or tampered content)",
                code=ErrorCodes.DECRYPTION_FAILED,
            ) from e
        return plaintext.decode("utf-8")

    @staticmethod
    def _decode_b64(encoded: str) -> bytes:
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise StorageError(
                "Sealed payload is not valid base64",
                code=ErrorCodes.DECRYPTION_FAILED,
            ) from e
