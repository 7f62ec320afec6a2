"""
Cryptographic primitives for AES-256-GCM field encryption.

This module provides:
- SecureKey: Secure key wrapper with automatic zeroization
- EncryptedData: IV, detached auth tag and ciphertext
- AesGcmCipher: AES-256-GCM encryption/decryption operations
"""

from __future__ import annotations

import hmac
import re
import secrets
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import AuthenticationError, ConfigurationError, EncryptionError, MalformedEnvelopeError

# Cryptographic constants
AES_256_KEY_SIZE: int = 32  # 256 bits
IV_SIZE: int = 16  # 128 bits, matches stored envelopes
TAG_SIZE: int = 16  # 128 bits (authentication tag)

_MASTER_KEY_HEX = re.compile(r"[0-9a-fA-F]{64}")


class SecureKey:
    """
    Secure key wrapper with automatic memory cleanup on deletion.

    Uses bytearray internally for mutable zeroing in __del__.
    Note: Python's garbage collector doesn't guarantee immediate cleanup,
    so this is best-effort zeroization.
    """

    __slots__ = ("_bytes",)

    def __init__(self, key_bytes: bytes | bytearray) -> None:
        """
        Create a SecureKey from raw bytes.

        Args:
            key_bytes: Raw key material (should be 32 bytes for AES-256)
        """
        if not isinstance(key_bytes, (bytes, bytearray)):
            raise EncryptionError("Key must be bytes or bytearray")
        self._bytes = bytearray(key_bytes)

    @classmethod
    def generate(cls) -> SecureKey:
        """Generate a cryptographically secure random 32-byte key."""
        return cls(secrets.token_bytes(AES_256_KEY_SIZE))

    @classmethod
    def from_hex(cls, value: Optional[str]) -> SecureKey:
        """
        Parse a 64-character hex master key.

        Raises:
            ConfigurationError: If the value is missing, not hex, or not 32 bytes
        """
        if not value:
            raise ConfigurationError("Master key is not configured")
        value = value.strip()
        if not _MASTER_KEY_HEX.fullmatch(value):
            raise ConfigurationError(
                f"Master key must be {AES_256_KEY_SIZE * 2} hex characters "
                f"({AES_256_KEY_SIZE} bytes)"
            )
        return cls(bytes.fromhex(value))

    def as_bytes(self) -> bytes:
        """Return key as immutable bytes."""
        return bytes(self._bytes)

    def __len__(self) -> int:
        """Return key length in bytes."""
        return len(self._bytes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecureKey):
            return NotImplemented
        return hmac.compare_digest(bytes(self._bytes), bytes(other._bytes))

    # Mutable key holder, equal by content: not hashable.
    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        """Redacted representation to prevent accidental key disclosure."""
        return "SecureKey([REDACTED])"

    def __del__(self) -> None:
        """Zero memory on deletion (best-effort)."""
        if hasattr(self, "_bytes"):
            for i in range(len(self._bytes)):
                self._bytes[i] = 0


@dataclass(frozen=True)
class EncryptedData:
    """
    Encrypted payload with a detached authentication tag.

    AESGCM appends the tag to the ciphertext; envelopes store it as its own
    field, so it is split off here.
    """

    iv: bytes  # 16 bytes
    auth_tag: bytes  # 16 bytes
    ciphertext: bytes  # same length as the plaintext

    @classmethod
    def from_aead_output(cls, iv: bytes, output: bytes) -> EncryptedData:
        """Split AESGCM output (ciphertext || tag) into its parts."""
        return cls(iv=iv, auth_tag=output[-TAG_SIZE:], ciphertext=output[:-TAG_SIZE])

    def to_aead_input(self) -> bytes:
        """Recombine into the ciphertext || tag layout AESGCM expects."""
        return self.ciphertext + self.auth_tag


class AesGcmCipher:
    """
    AES-256-GCM authenticated encryption.

    Provides static methods for encryption and decryption with a 16-byte IV
    and detached 16-byte tag.
    """

    @staticmethod
    def encrypt(
        key: SecureKey,
        plaintext: bytes,
        iv: Optional[bytes] = None,
    ) -> EncryptedData:
        """
        Encrypt plaintext with AES-256-GCM.

        Args:
            key: 32-byte encryption key
            plaintext: Data to encrypt
            iv: Explicit IV; a fresh random one is used when omitted

        Returns:
            EncryptedData with IV, auth tag and ciphertext

        Raises:
            EncryptionError: If key or IV size is invalid or encryption fails
        """
        if len(key) != AES_256_KEY_SIZE:
            raise EncryptionError(
                f"Invalid key size: expected {AES_256_KEY_SIZE}, got {len(key)}"
            )

        if iv is None:
            iv = secrets.token_bytes(IV_SIZE)
        elif len(iv) != IV_SIZE:
            raise EncryptionError(f"Invalid IV size: expected {IV_SIZE}, got {len(iv)}")

        aesgcm = AESGCM(key.as_bytes())

        try:
            output = aesgcm.encrypt(iv, plaintext, None)
        except Exception as e:
            raise EncryptionError(f"Encryption error: {e}") from e

        return EncryptedData.from_aead_output(iv, output)

    @staticmethod
    def decrypt(key: SecureKey, encrypted: EncryptedData) -> bytes:
        """
        Decrypt ciphertext with AES-256-GCM.

        Args:
            key: 32-byte decryption key
            encrypted: EncryptedData with IV, auth tag and ciphertext

        Returns:
            Decrypted plaintext bytes

        Raises:
            EncryptionError: If the key size is invalid
            MalformedEnvelopeError: If IV or tag size is invalid
            AuthenticationError: If the tag does not verify
        """
        if len(key) != AES_256_KEY_SIZE:
            raise EncryptionError(
                f"Invalid key size: expected {AES_256_KEY_SIZE}, got {len(key)}"
            )

        if len(encrypted.iv) != IV_SIZE:
            raise MalformedEnvelopeError(
                f"Invalid IV size: expected {IV_SIZE}, got {len(encrypted.iv)}"
            )
        if len(encrypted.auth_tag) != TAG_SIZE:
            raise MalformedEnvelopeError(
                f"Invalid auth tag size: expected {TAG_SIZE}, got {len(encrypted.auth_tag)}"
            )

        aesgcm = AESGCM(key.as_bytes())

        try:
            return aesgcm.decrypt(encrypted.iv, encrypted.to_aead_input(), None)
        except InvalidTag:
            # Generic error to prevent oracle attacks
            raise AuthenticationError("Decryption failed: authentication tag mismatch") from None


def generate_random_bytes(length: int) -> bytes:
    """
    Generate cryptographically secure random bytes.

    Args:
        length: Number of bytes to generate

    Returns:
        Random bytes of specified length
    """
    return secrets.token_bytes(length)


def generate_master_key() -> str:
    """Generate a new master key as 64 hex characters (for ENCRYPTION_KEY)."""
    return secrets.token_hex(AES_256_KEY_SIZE)
