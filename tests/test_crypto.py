"""
Tests for AES-256-GCM primitives and SecureKey.
"""

from __future__ import annotations

import pytest

from tenant_crypto import (
    AES_256_KEY_SIZE,
    IV_SIZE,
    TAG_SIZE,
    AesGcmCipher,
    AuthenticationError,
    ConfigurationError,
    EncryptedData,
    EncryptionError,
    MalformedEnvelopeError,
    SecureKey,
    generate_master_key,
)


class TestSecureKey:
    def test_from_hex(self, master_key_hex: str) -> None:
        key = SecureKey.from_hex(master_key_hex)
        assert len(key) == AES_256_KEY_SIZE
        assert key.as_bytes() == bytes.fromhex(master_key_hex)

    @pytest.mark.parametrize(
        "value",
        [None, "", "not-hex" * 8, "00" * 16, "00" * 33, " ".join(["ab"] * 32), "0x" + "00" * 31],
    )
    def test_from_hex_rejects_bad_keys(self, value) -> None:
        with pytest.raises(ConfigurationError):
            SecureKey.from_hex(value)

    def test_repr_is_redacted(self, master_key: SecureKey, master_key_hex: str) -> None:
        assert repr(master_key) == "SecureKey([REDACTED])"
        assert master_key_hex not in repr(master_key)

    def test_equality(self, master_key: SecureKey, master_key_hex: str) -> None:
        assert master_key == SecureKey.from_hex(master_key_hex)
        assert master_key != SecureKey.generate()

    def test_surrounding_whitespace_is_stripped(self, master_key_hex: str) -> None:
        assert SecureKey.from_hex(f"  {master_key_hex}\n") == SecureKey.from_hex(master_key_hex)

    def test_not_hashable(self, master_key: SecureKey) -> None:
        with pytest.raises(TypeError):
            hash(master_key)

    def test_rejects_non_bytes(self) -> None:
        with pytest.raises(EncryptionError):
            SecureKey("abc")  # type: ignore[arg-type]


def test_generate_master_key() -> None:
    value = generate_master_key()
    assert len(value) == AES_256_KEY_SIZE * 2
    assert SecureKey.from_hex(value)
    assert generate_master_key() != value


class TestAesGcmCipher:
    def test_round_trip(self, master_key: SecureKey) -> None:
        encrypted = AesGcmCipher.encrypt(master_key, b"Sensitive data")

        assert len(encrypted.iv) == IV_SIZE
        assert len(encrypted.auth_tag) == TAG_SIZE
        assert len(encrypted.ciphertext) == len(b"Sensitive data")
        assert AesGcmCipher.decrypt(master_key, encrypted) == b"Sensitive data"

    def test_empty_plaintext(self, master_key: SecureKey) -> None:
        encrypted = AesGcmCipher.encrypt(master_key, b"")
        assert encrypted.ciphertext == b""
        assert AesGcmCipher.decrypt(master_key, encrypted) == b""

    def test_fresh_iv_per_call(self, master_key: SecureKey) -> None:
        first = AesGcmCipher.encrypt(master_key, b"same")
        second = AesGcmCipher.encrypt(master_key, b"same")
        assert first.iv != second.iv
        assert first.ciphertext != second.ciphertext

    def test_wrong_key_fails_authentication(self, master_key: SecureKey) -> None:
        encrypted = AesGcmCipher.encrypt(master_key, b"data")
        with pytest.raises(AuthenticationError):
            AesGcmCipher.decrypt(SecureKey.generate(), encrypted)

    def test_tampered_tag_fails_authentication(self, master_key: SecureKey) -> None:
        encrypted = AesGcmCipher.encrypt(master_key, b"data")
        tag = bytes([encrypted.auth_tag[0] ^ 0x01]) + encrypted.auth_tag[1:]
        tampered = EncryptedData(iv=encrypted.iv, auth_tag=tag, ciphertext=encrypted.ciphertext)
        with pytest.raises(AuthenticationError):
            AesGcmCipher.decrypt(master_key, tampered)

    def test_invalid_key_size(self) -> None:
        with pytest.raises(EncryptionError):
            AesGcmCipher.encrypt(SecureKey(b"short"), b"data")

    def test_invalid_iv_size(self, master_key: SecureKey) -> None:
        with pytest.raises(EncryptionError):
            AesGcmCipher.encrypt(master_key, b"data", iv=b"\x00" * 12)

        encrypted = AesGcmCipher.encrypt(master_key, b"data")
        short = EncryptedData(iv=encrypted.iv[:12], auth_tag=encrypted.auth_tag, ciphertext=encrypted.ciphertext)
        with pytest.raises(MalformedEnvelopeError):
            AesGcmCipher.decrypt(master_key, short)
