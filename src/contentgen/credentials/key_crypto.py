"""Encryption at rest for user supplied provider keys.

Keys are sealed with XChaCha20-Poly1305 (PyNaCl ``SecretBox``). The nonce
is random per encryption and stored next to the ciphertext; the master key
is a base64 encoded 32-byte value from ``API_KEY_ENCRYPTION_KEY``. Plaintext
keys and ciphertext are never logged.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os

from nacl.exceptions import CryptoError as NaclCryptoError
from nacl.secret import SecretBox

from ..exceptions import AppError

logger = logging.getLogger(__name__)

NONCE_SIZE = SecretBox.NONCE_SIZE
MASTER_KEY_SIZE = SecretBox.KEY_SIZE


class CryptoError(AppError):
    """Raised when a key cannot be sealed or opened."""


class KeyCipher:
    """Seal and open provider keys with a single master key."""

    def __init__(self, master_key: bytes) -> None:
        if len(master_key) != MASTER_KEY_SIZE:
            raise CryptoError(
                f"Master key must be {MASTER_KEY_SIZE} bytes, got {len(master_key)} bytes"
            )
        self._box = SecretBox(master_key)

    @classmethod
    def from_base64(cls, value: str | None) -> "KeyCipher":
        if not value:
            raise CryptoError("API_KEY_ENCRYPTION_KEY environment variable is not set")
        try:
            master_key = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise CryptoError(f"API_KEY_ENCRYPTION_KEY is not valid base64: {exc}") from exc
        return cls(master_key)

    def encrypt(self, plaintext: str) -> tuple[bytes, bytes]:
        """Return ``(ciphertext, nonce)`` for ``plaintext``."""
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._box.encrypt(plaintext.encode("utf-8"), nonce=nonce)
        return sealed.ciphertext, nonce

    def decrypt(self, ciphertext: bytes, nonce: bytes) -> str:
        if len(nonce) != NONCE_SIZE:
            raise CryptoError(f"Nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")
        try:
            plaintext = self._box.decrypt(ciphertext, nonce=nonce)
        except NaclCryptoError as exc:
            logger.warning("credentials.decrypt.failed")
            raise CryptoError("Stored API key could not be decrypted") from exc
        return plaintext.decode("utf-8")


def key_fingerprint(api_key: str) -> str:
    """Last four characters, safe to store and display."""
    if len(api_key) <= 4:
        return ""
    return api_key[-4:]


def mask_fingerprint(fingerprint: str) -> str:
    return f"{'*' * 8}{fingerprint}"
