"""
Pytest configuration and fixtures for tenant encryption tests.
"""

from __future__ import annotations

import pytest

from tenant_crypto import (
    FieldEncryptor,
    SecureKey,
    TenantCipher,
    TenantKeyCache,
    TenantKeyring,
)

MASTER_KEY_HEX = "00112233445566778899aabbccddeeff" "ffeeddccbbaa99887766554433221100"
TENANT_A = "64f9b8a1c2e3d4f5a6b7c8d9"
TENANT_B = "64f9b8a1c2e3d4f5a6b7c8da"


@pytest.fixture
def master_key_hex() -> str:
    return MASTER_KEY_HEX


@pytest.fixture
def master_key() -> SecureKey:
    return SecureKey.from_hex(MASTER_KEY_HEX)


@pytest.fixture
def key_cache() -> TenantKeyCache:
    """Create an empty derived-key cache."""
    return TenantKeyCache()


@pytest.fixture
def keyring(master_key: SecureKey, key_cache: TenantKeyCache) -> TenantKeyring:
    """Create a keyring backed by the test cache."""
    return TenantKeyring(master_key, cache=key_cache)


@pytest.fixture
def cipher(keyring: TenantKeyring) -> TenantCipher:
    return TenantCipher(keyring)


@pytest.fixture
def client_fields(cipher: TenantCipher) -> FieldEncryptor:
    """Field encryptor configured like client PII records."""
    return FieldEncryptor(
        cipher,
        fields=["nationalId", "phone", "passportNumber", "compensation.bankDetails.iban"],
        searchable_fields=["nationalId"],
    )
