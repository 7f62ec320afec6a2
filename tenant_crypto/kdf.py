"""
Per-tenant key derivation.

This module provides:
- derive_tenant_key: HKDF-SHA256 derivation of a tenant key from the master key
- TenantKey: A derived key and the tenant it belongs to (never persisted)
- TenantKeyCache: Thread-safe read-through cache of derived keys
- TenantKeyring: Master key holder that derives and caches tenant keys

Hierarchy: MasterKey -> HKDF(info="tenant:<id>") -> TenantKey -> Envelope

The system scope (tenant_id None) uses the master key directly; it is also
the key legacy envelopes were written with.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .crypto import AES_256_KEY_SIZE, SecureKey
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_KDF_SALT: bytes = b"tenant-crypto-envelope-kdf-v1"
TENANT_INFO_PREFIX: str = "tenant:"
SEARCH_INFO_PREFIX: str = "search:"


def derive_subkey(
    master_key: bytes,
    info: bytes,
    salt: bytes = DEFAULT_KDF_SALT,
    length: int = AES_256_KEY_SIZE,
) -> bytes:
    """
    Derive a key from the master key with HKDF-SHA256.

    Args:
        master_key: 32-byte master key
        info: Context string separating the derived keys
        salt: Application-level salt
        length: Output length in bytes

    Returns:
        Derived key bytes
    """
    if len(master_key) != AES_256_KEY_SIZE:
        raise ConfigurationError(
            f"Invalid master key size: expected {AES_256_KEY_SIZE}, got {len(master_key)}"
        )
    hkdf = HKDF(algorithm=hashes.SHA256(), length=length, salt=salt, info=info)
    return hkdf.derive(master_key)


def derive_tenant_key(
    master_key: bytes,
    tenant_id: Optional[str],
    salt: bytes = DEFAULT_KDF_SALT,
) -> bytes:
    """
    Derive the 32-byte key for a tenant.

    Pure function: the same master key, salt and tenant id always yield the
    same bytes. A tenant id of None returns the master key unchanged.

    Args:
        master_key: 32-byte master key
        tenant_id: Tenant identifier, or None for system scope
        salt: Application-level salt

    Returns:
        32-byte key
    """
    if tenant_id is None:
        if len(master_key) != AES_256_KEY_SIZE:
            raise ConfigurationError(
                f"Invalid master key size: expected {AES_256_KEY_SIZE}, got {len(master_key)}"
            )
        return bytes(master_key)
    info = (TENANT_INFO_PREFIX + tenant_id).encode("utf-8")
    return derive_subkey(master_key, info, salt)


@dataclass(frozen=True)
class TenantKey:
    """Derived tenant key. Ephemeral, recomputed on demand."""

    tenant_id: Optional[str]
    key: SecureKey


class TenantKeyCache:
    """
    Thread-safe read-through cache of derived tenant keys.

    Entries are never evicted: derivation is deterministic and the master key
    does not change while the process runs. Call clear() on shutdown.
    """

    def __init__(self) -> None:
        self._keys: Dict[Optional[str], TenantKey] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, tenant_id: Optional[str]) -> Optional[TenantKey]:
        """Get a cached key, or None."""
        with self._lock:
            entry = self._keys.get(tenant_id)
            if entry is None:
                self.misses += 1
            else:
                self.hits += 1
            return entry

    def put(self, entry: TenantKey) -> TenantKey:
        """Store a key unless another thread stored one first; return the cached entry."""
        with self._lock:
            return self._keys.setdefault(entry.tenant_id, entry)

    def clear(self) -> None:
        """Drop all cached keys."""
        with self._lock:
            self._keys.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def __contains__(self, tenant_id: object) -> bool:
        with self._lock:
            return tenant_id in self._keys


class TenantKeyring:
    """
    Holds the master key and derives tenant keys from it.

    The cache is injected so its lifecycle follows the owner that built the
    keyring; without one every call derives afresh.
    """

    def __init__(
        self,
        master_key: SecureKey,
        salt: bytes = DEFAULT_KDF_SALT,
        cache: Optional[TenantKeyCache] = None,
    ) -> None:
        """
        Initialize keyring.

        Args:
            master_key: 32-byte master key
            salt: Application-level HKDF salt
            cache: Optional derived-key cache

        Raises:
            ConfigurationError: If the master key or salt is invalid
        """
        if not isinstance(master_key, SecureKey) or len(master_key) != AES_256_KEY_SIZE:
            raise ConfigurationError(f"Master key must be a {AES_256_KEY_SIZE}-byte SecureKey")
        if not salt:
            raise ConfigurationError("KDF salt must not be empty")
        self._master_key = master_key
        self._salt = bytes(salt)
        self._cache = cache

    @classmethod
    def from_hex(
        cls,
        master_key_hex: Optional[str],
        salt: bytes = DEFAULT_KDF_SALT,
        cache: Optional[TenantKeyCache] = None,
    ) -> TenantKeyring:
        """Build a keyring from a 64-character hex master key."""
        return cls(SecureKey.from_hex(master_key_hex), salt=salt, cache=cache)

    @property
    def master_key(self) -> SecureKey:
        """Master key, used directly for system scope and legacy envelopes."""
        return self._master_key

    @property
    def cache(self) -> Optional[TenantKeyCache]:
        return self._cache

    def tenant_key(self, tenant_id: Optional[str]) -> TenantKey:
        """
        Get the derived key for a tenant, through the cache when present.

        Args:
            tenant_id: Tenant identifier, or None for system scope

        Returns:
            TenantKey for the tenant
        """
        if self._cache is not None:
            cached = self._cache.get(tenant_id)
            if cached is not None:
                return cached

        if tenant_id is None:
            entry = TenantKey(tenant_id=None, key=self._master_key)
        else:
            raw = derive_tenant_key(self._master_key.as_bytes(), tenant_id, self._salt)
            entry = TenantKey(tenant_id=tenant_id, key=SecureKey(raw))
            logger.debug("tenant_key_derived tenant_id=%s", tenant_id)

        if self._cache is not None:
            entry = self._cache.put(entry)
        return entry

    def derive_tenant_key(self, tenant_id: Optional[str]) -> SecureKey:
        """Derive (or fetch) the 32-byte key for a tenant."""
        return self.tenant_key(tenant_id).key

    def search_key(self, tenant_id: Optional[str]) -> SecureKey:
        """
        Derive the blind-index key for a tenant.

        Kept separate from the encryption key so hashes never reuse it.
        """
        scope = tenant_id if tenant_id is not None else "system"
        info = (SEARCH_INFO_PREFIX + scope).encode("utf-8")
        return SecureKey(derive_subkey(self._master_key.as_bytes(), info, self._salt))
