"""
Tests for field-level document encryption.
"""

from __future__ import annotations

import pytest

from tenant_crypto import (
    AuthenticationError,
    ConfigurationError,
    FieldEncryptor,
    TenantCipher,
    looks_encrypted,
)

FIRM_A = "64f9b8a1c2e3d4f5a6b7c8d9"
FIRM_B = "64f9b8a1c2e3d4f5a6b7c8da"


def _client() -> dict:
    return {
        "name": "Acme Trading",
        "nationalId": "1012345678",
        "phone": "+966500000000",
        "passportNumber": None,
        "compensation": {"basicSalary": 15000, "bankDetails": {"iban": "SA0380000000608010167519"}},
    }


def test_encrypt_document(client_fields: FieldEncryptor) -> None:
    doc = _client()
    encrypted = client_fields.encrypt_document(doc, FIRM_A)

    assert encrypted["name"] == "Acme Trading"
    assert encrypted["nationalId"].startswith(f"v2:{FIRM_A}:")
    assert looks_encrypted(encrypted["phone"])
    assert looks_encrypted(encrypted["compensation"]["bankDetails"]["iban"])
    assert encrypted["compensation"]["basicSalary"] == 15000
    assert encrypted["passportNumber"] is None
    # Input is not modified
    assert doc == _client()


def test_searchable_field_gets_hash(client_fields: FieldEncryptor) -> None:
    encrypted = client_fields.encrypt_document(_client(), FIRM_A)

    assert encrypted["nationalId_hash"] == client_fields.search_hash("1012345678", FIRM_A)
    assert "phone_hash" not in encrypted


def test_decrypt_document(client_fields: FieldEncryptor) -> None:
    encrypted = client_fields.encrypt_document(_client(), FIRM_A)
    decrypted = client_fields.decrypt_document(encrypted, FIRM_A)

    assert decrypted["nationalId"] == "1012345678"
    assert decrypted["phone"] == "+966500000000"
    assert decrypted["compensation"]["bankDetails"]["iban"] == "SA0380000000608010167519"


def test_decrypt_wrong_firm(client_fields: FieldEncryptor) -> None:
    encrypted = client_fields.encrypt_document(_client(), FIRM_A)
    with pytest.raises(AuthenticationError):
        client_fields.decrypt_document(encrypted, FIRM_B)


def test_encrypt_is_idempotent(client_fields: FieldEncryptor) -> None:
    once = client_fields.encrypt_document(_client(), FIRM_A)
    twice = client_fields.encrypt_document(once, FIRM_A)
    assert twice["phone"] == once["phone"]


def test_plain_values_pass_through_decrypt(client_fields: FieldEncryptor) -> None:
    decrypted = client_fields.decrypt_document(_client(), FIRM_A)
    assert decrypted == _client()


def test_missing_nested_parent(client_fields: FieldEncryptor) -> None:
    doc = {"phone": "0500000000", "compensation": None}
    encrypted = client_fields.encrypt_document(doc, FIRM_A)
    assert encrypted["compensation"] is None
    assert client_fields.decrypt_document(encrypted, FIRM_A) == doc


def test_non_string_values_are_stringified(cipher: TenantCipher) -> None:
    fields = FieldEncryptor(cipher, fields=["compensation.basicSalary"])
    encrypted = fields.encrypt_document({"compensation": {"basicSalary": 15000}}, FIRM_A)
    decrypted = fields.decrypt_document(encrypted, FIRM_A)
    assert decrypted["compensation"]["basicSalary"] == "15000"


class TestSearchHash:
    def test_normalized(self, client_fields: FieldEncryptor) -> None:
        assert client_fields.search_hash(" ABC123 ", FIRM_A) == client_fields.search_hash("abc123", FIRM_A)

    def test_tenant_scoped(self, client_fields: FieldEncryptor) -> None:
        assert client_fields.search_hash("1012345678", FIRM_A) != client_fields.search_hash("1012345678", FIRM_B)

    def test_search_filter(self, client_fields: FieldEncryptor) -> None:
        encrypted = client_fields.encrypt_document(_client(), FIRM_A)
        query = client_fields.search_filter("nationalId", "1012345678", FIRM_A)
        assert query == {"nationalId_hash": encrypted["nationalId_hash"]}

    def test_search_filter_requires_searchable(self, client_fields: FieldEncryptor) -> None:
        with pytest.raises(ConfigurationError):
            client_fields.search_filter("phone", "0500000000", FIRM_A)


class TestConfiguration:
    def test_searchable_must_be_encrypted(self, cipher: TenantCipher) -> None:
        with pytest.raises(ConfigurationError):
            FieldEncryptor(cipher, fields=["phone"], searchable_fields=["nationalId"])

    def test_invalid_path(self, cipher: TenantCipher) -> None:
        with pytest.raises(ConfigurationError):
            FieldEncryptor(cipher, fields=["compensation..iban"])

    def test_exposes_fields(self, client_fields: FieldEncryptor) -> None:
        assert "compensation.bankDetails.iban" in client_fields.fields
        assert client_fields.searchable_fields == frozenset({"nationalId"})
