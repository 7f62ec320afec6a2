"""
Field-level encryption for stored documents.

Encrypts named fields (dotted paths such as "compensation.bankDetails.iban")
of a document dict before it is written, and decrypts them after it is read.
Searchable fields also get a sibling "<field>_hash" blind index so equality
lookups work without decrypting every record.
"""

from __future__ import annotations

import copy
import hashlib
import hmac
import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from .codec import TenantCipher
from .envelope import looks_encrypted
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

HASH_SUFFIX = "_hash"


def _split_path(path: str) -> Tuple[str, ...]:
    parts = tuple(path.split("."))
    if not all(parts):
        raise ConfigurationError(f"Invalid field path: {path!r}")
    return parts


def _parent(doc: Dict[str, Any], parts: Tuple[str, ...]) -> Optional[Dict[str, Any]]:
    node: Any = doc
    for part in parts[:-1]:
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node if isinstance(node, dict) else None


class FieldEncryptor:
    """Encrypt and decrypt configured fields of a document."""

    def __init__(
        self,
        cipher: TenantCipher,
        fields: Iterable[str],
        searchable_fields: Iterable[str] = (),
    ) -> None:
        """
        Args:
            cipher: TenantCipher used for every field
            fields: Dotted paths of fields to encrypt
            searchable_fields: Subset of fields that also get a blind index

        Raises:
            ConfigurationError: If a path is invalid or a searchable field is not encrypted
        """
        self._cipher = cipher
        self._fields = {path: _split_path(path) for path in fields}
        self._searchable = frozenset(searchable_fields)
        unknown = self._searchable - set(self._fields)
        if unknown:
            raise ConfigurationError(
                f"Searchable fields must also be encrypted: {', '.join(sorted(unknown))}"
            )

    @property
    def fields(self) -> Tuple[str, ...]:
        return tuple(self._fields)

    @property
    def searchable_fields(self) -> frozenset:
        return self._searchable

    def search_hash(self, value: Any, tenant_id: Optional[str]) -> str:
        """Deterministic per-tenant HMAC-SHA256 of the normalised value."""
        key = self._cipher.keyring.search_key(tenant_id)
        normalized = str(value).strip().lower().encode("utf-8")
        return hmac.new(key.as_bytes(), normalized, hashlib.sha256).hexdigest()

    def encrypt_document(self, doc: Dict[str, Any], tenant_id: Optional[str]) -> Dict[str, Any]:
        """
        Return a copy of doc with configured fields encrypted.

        Missing, None and empty values are left alone, as are values that are
        already envelopes.
        """
        result = copy.deepcopy(doc)
        for path, parts in self._fields.items():
            parent = _parent(result, parts)
            if parent is None:
                continue
            leaf = parts[-1]
            value = parent.get(leaf)
            if value is None or value == "" or looks_encrypted(value):
                continue
            if path in self._searchable:
                parent[leaf + HASH_SUFFIX] = self.search_hash(value, tenant_id)
            parent[leaf] = self._cipher.encrypt(str(value), tenant_id)
        return result

    def decrypt_document(self, doc: Dict[str, Any], tenant_id: Optional[str]) -> Dict[str, Any]:
        """
        Return a copy of doc with configured fields decrypted.

        Values that are not envelopes (written before encryption was enabled)
        are returned as stored.
        """
        result = copy.deepcopy(doc)
        for path, parts in self._fields.items():
            parent = _parent(result, parts)
            if parent is None:
                continue
            leaf = parts[-1]
            value = parent.get(leaf)
            if not looks_encrypted(value):
                if value not in (None, ""):
                    logger.debug("field_not_encrypted path=%s", path)
                continue
            parent[leaf] = self._cipher.decrypt_any(value, tenant_id)
        return result

    def search_filter(self, path: str, value: Any, tenant_id: Optional[str]) -> Dict[str, str]:
        """
        Build an equality filter on the blind index of a searchable field.

        Returns:
            {"<path>_hash": <hash>}
        """
        if path not in self._searchable:
            raise ConfigurationError(f"Field {path!r} is not searchable")
        return {path + HASH_SUFFIX: self.search_hash(value, tenant_id)}
