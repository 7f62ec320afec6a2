"""
Tenant cipher: encrypt to v2 envelopes, decrypt v2 and legacy envelopes.

Crypto flow (encrypt):
1. Derive the tenant key (master key for system scope)
2. Generate a fresh 16-byte IV
3. AES-256-GCM encrypt -> IV, tag, ciphertext
4. Serialize as v2:<tenant|system>:<iv>:<tag>:<ciphertext>

Crypto flow (decrypt_any):
1. Classify the string (v2, legacy v1, or malformed)
2. v2: derive the key from the embedded tenant id
   v1: use the master key directly
3. AES-256-GCM decrypt; tag mismatch raises AuthenticationError
"""

from __future__ import annotations

import logging
from typing import Optional

from .crypto import AesGcmCipher, SecureKey
from .envelope import (
    SYSTEM_TENANT,
    MalformedEnvelope,
    V1Envelope,
    V2Envelope,
    parse_envelope,
    validate_tenant_id,
)
from .errors import (
    AuthenticationError,
    DecryptionError,
    EncryptionError,
    UnknownFormatError,
)
from .kdf import TenantKeyring

logger = logging.getLogger(__name__)


def _scope(tenant_id: Optional[str]) -> str:
    return SYSTEM_TENANT if tenant_id is None else tenant_id


class TenantCipher:
    """
    Tenant-scoped field encryption.

    Stateless apart from the keyring; safe to share between threads.
    """

    def __init__(self, keyring: TenantKeyring) -> None:
        """
        Initialize cipher with a keyring.

        Args:
            keyring: TenantKeyring holding the master key and key cache
        """
        self._keyring = keyring

    @property
    def keyring(self) -> TenantKeyring:
        return self._keyring

    def encrypt(self, plaintext: str, tenant_id: Optional[str] = None) -> str:
        """
        Encrypt a string into a v2 envelope.

        Args:
            plaintext: Text to encrypt
            tenant_id: Owning tenant, or None for system scope

        Returns:
            Envelope string

        Raises:
            InvalidTenantIdError: If the tenant id cannot be embedded
            EncryptionError: If plaintext is not a string or encryption fails
        """
        if not isinstance(plaintext, str):
            raise EncryptionError(f"Plaintext must be a string, got {type(plaintext).__name__}")
        validate_tenant_id(tenant_id)

        key = self._keyring.derive_tenant_key(tenant_id)
        try:
            data = plaintext.encode("utf-8")
        except UnicodeEncodeError:
            raise EncryptionError("Plaintext is not encodable as UTF-8") from None
        encrypted = AesGcmCipher.encrypt(key, data)
        return V2Envelope.from_encrypted_data(tenant_id, encrypted).serialize()

    def decrypt(self, envelope: str, tenant_id: Optional[str] = None) -> str:
        """
        Decrypt a v2 envelope. Legacy envelopes are rejected; use decrypt_any.

        Args:
            envelope: v2 envelope string
            tenant_id: Expected tenant; None trusts the embedded tenant id

        Returns:
            Plaintext

        Raises:
            MalformedEnvelopeError, UnknownFormatError, AuthenticationError
        """
        parsed = parse_envelope(envelope)
        if isinstance(parsed, MalformedEnvelope):
            raise self._reject(parsed.error, tenant_id)
        if not isinstance(parsed, V2Envelope):
            raise self._reject(
                UnknownFormatError(f"Expected a v2 envelope, got {parsed.version}"), tenant_id
            )
        return self._decrypt_v2(parsed, tenant_id)

    def decrypt_any(self, ciphertext: str, tenant_id: Optional[str] = None) -> str:
        """
        Decrypt a v2 or legacy v1 envelope.

        Args:
            ciphertext: Stored envelope string
            tenant_id: Expected tenant; ignored for legacy envelopes

        Returns:
            Plaintext

        Raises:
            MalformedEnvelopeError, UnknownFormatError, AuthenticationError
        """
        parsed = parse_envelope(ciphertext)
        if isinstance(parsed, V2Envelope):
            return self._decrypt_v2(parsed, tenant_id)
        if isinstance(parsed, V1Envelope):
            return self._decrypt_with(self._keyring.master_key, parsed, None)
        raise self._reject(parsed.error, tenant_id)

    def reencrypt(
        self,
        ciphertext: str,
        tenant_id: Optional[str],
        new_tenant_id: Optional[str],
    ) -> str:
        """
        Decrypt any supported envelope and encrypt it again as v2 for new_tenant_id.

        Used when a record changes owner or to upgrade legacy data on write.
        """
        validate_tenant_id(new_tenant_id)
        plaintext = self.decrypt_any(ciphertext, tenant_id)
        return self.encrypt(plaintext, new_tenant_id)

    @staticmethod
    def needs_upgrade(ciphertext: str) -> bool:
        """True when the value is a legacy envelope that should be re-encrypted."""
        return isinstance(parse_envelope(ciphertext), V1Envelope)

    def _decrypt_v2(self, envelope: V2Envelope, tenant_id: Optional[str]) -> str:
        # A caller passing "system" expects a system-scope envelope.
        if tenant_id is not None and tenant_id != envelope.tenant_segment:
            raise self._reject(
                AuthenticationError("Envelope belongs to a different tenant"), tenant_id
            )
        key = self._keyring.derive_tenant_key(envelope.tenant_id)
        return self._decrypt_with(key, envelope, envelope.tenant_id)

    def _decrypt_with(
        self,
        key: SecureKey,
        envelope: V1Envelope | V2Envelope,
        tenant_id: Optional[str],
    ) -> str:
        try:
            plaintext = AesGcmCipher.decrypt(key, envelope.to_encrypted_data())
        except DecryptionError as e:
            raise self._reject(e, tenant_id) from None
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise DecryptionError("Decrypted value is not valid UTF-8") from None

    @staticmethod
    def _reject(error: DecryptionError, tenant_id: Optional[str]) -> DecryptionError:
        if isinstance(error, (AuthenticationError, UnknownFormatError)):
            logger.warning(
                "envelope_decrypt_failed code=%s tenant_id=%s", error.code, _scope(tenant_id)
            )
        else:
            logger.info(
                "envelope_decrypt_failed code=%s tenant_id=%s", error.code, _scope(tenant_id)
            )
        return error
