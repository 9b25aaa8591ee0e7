"""
Optional envelope encryption for sensitive free-text fields.

Selected once at process start: a key enables AES-256-GCM, no key selects
a pass-through cipher. Envelope format: enc:v1:<iv>:<tag>:<ciphertext>,
each part hex-encoded.
"""
import hashlib
import os
from abc import ABC, abstractmethod
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

ENVELOPE_PREFIX = "enc:v1"
_IV_BYTES = 12
_TAG_BYTES = 16


class TextCipher(ABC):
    """Capability-checked text encryption interface."""

    enabled: bool = False

    @abstractmethod
    def encrypt(self, plaintext: str) -> str:
        """Encrypt plaintext into a storable string."""
        pass

    @abstractmethod
    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a stored string back into plaintext."""
        pass


class NoOpTextCipher(TextCipher):
    """Pass-through used when no key is configured."""

    enabled = False

    def encrypt(self, plaintext: str) -> str:
        return plaintext

    def decrypt(self, ciphertext: str) -> str:
        return ciphertext


class AesGcmTextCipher(TextCipher):
    """AES-256-GCM cipher keyed by the SHA-256 digest of the key material."""

    enabled = True

    def __init__(self, key_material: str):
        if not key_material:
            raise ValueError("key_material must be a non-empty string")
        self._aead = AESGCM(hashlib.sha256(key_material.encode("utf-8")).digest())

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(_IV_BYTES)
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        body, tag = sealed[:-_TAG_BYTES], sealed[-_TAG_BYTES:]
        return f"{ENVELOPE_PREFIX}:{iv.hex()}:{tag.hex()}:{body.hex()}"

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt an envelope. Values without the envelope prefix are
        returned unchanged so rows written before encryption was enabled
        stay readable.

        Raises:
            ValueError: If the envelope is malformed or fails authentication
        """
        if not ciphertext.startswith(f"{ENVELOPE_PREFIX}:"):
            return ciphertext

        parts = ciphertext.split(":")
        if len(parts) != 5:
            raise ValueError("Invalid ciphertext envelope")

        try:
            iv = bytes.fromhex(parts[2])
            tag = bytes.fromhex(parts[3])
            body = bytes.fromhex(parts[4])
            plaintext = self._aead.decrypt(iv, body + tag, None)
        except (InvalidTag, ValueError) as e:
            raise ValueError(f"Failed to decrypt text: {str(e) or 'authentication failed'}")

        return plaintext.decode("utf-8")


def create_text_cipher(key_material: Optional[str] = None) -> TextCipher:
    """Return an AES-GCM cipher when key material is supplied, else a no-op cipher."""
    if not key_material:
        return NoOpTextCipher()
    return AesGcmTextCipher(key_material)
