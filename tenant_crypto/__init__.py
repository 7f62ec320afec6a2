"""
Tenant Envelope Encryption Library

Per-tenant field encryption for multi-tenant services: one master key,
HKDF-derived tenant keys, and a versioned AES-256-GCM envelope that stays
readable alongside legacy single-key data.

Quick Start
-----------
```python
from tenant_crypto import build_cipher, load_settings

cipher = build_cipher(load_settings())  # reads ENCRYPTION_KEY

envelope = cipher.encrypt("hello world", "64f9b8a1c2e3d4f5a6b7c8d9")
# "v2:64f9b8a1c2e3d4f5a6b7c8d9:<iv>:<tag>:<ciphertext>"

plaintext = cipher.decrypt_any(envelope, "64f9b8a1c2e3d4f5a6b7c8d9")
```

Key Features
------------
- **AES-256-GCM**: Authenticated encryption, tampering is detected
- **Per-Tenant Keys**: HKDF-SHA256 from the master key, no key storage
- **Versioned Envelopes**: v2 format embeds the tenant id
- **Legacy Compatibility**: 3-field master-key envelopes still decrypt
- **Field Encryption**: Dotted-path document fields with blind indexes
- **Memory Security**: Best-effort key zeroization on deletion

Modules
-------
- `crypto`: AES-256-GCM encryption primitives
- `kdf`: Tenant key derivation and the derived-key cache
- `envelope`: Envelope wire format and format detection
- `codec`: TenantCipher (encrypt, decrypt, decrypt_any)
- `fields`: Field-level document encryption
- `config`: Settings from environment and process-start wiring
- `errors`: Exception hierarchy
"""

__version__ = "0.1.0"

# =============================================================================
# Crypto Exports
# =============================================================================

from .crypto import (
    AES_256_KEY_SIZE,
    IV_SIZE,
    TAG_SIZE,
    AesGcmCipher,
    EncryptedData,
    SecureKey,
    generate_master_key,
    generate_random_bytes,
)

# =============================================================================
# Error Exports
# =============================================================================

from .errors import (
    AuthenticationError,
    ConfigurationError,
    DecryptionError,
    EncryptionError,
    EnvelopeError,
    InvalidTenantIdError,
    MalformedEnvelopeError,
    UnknownFormatError,
)

# =============================================================================
# Key Derivation Exports
# =============================================================================

from .kdf import (
    DEFAULT_KDF_SALT,
    TenantKey,
    TenantKeyCache,
    TenantKeyring,
    derive_subkey,
    derive_tenant_key,
)

# =============================================================================
# Envelope Exports
# =============================================================================

from .envelope import (
    CURRENT_VERSION,
    SYSTEM_TENANT,
    Envelope,
    MalformedEnvelope,
    V1Envelope,
    V2Envelope,
    looks_encrypted,
    parse_envelope,
)

# =============================================================================
# Cipher, Fields and Config Exports (Primary API)
# =============================================================================

from .codec import TenantCipher
from .fields import FieldEncryptor
from .config import Settings, build_cipher, build_keyring, load_settings

# =============================================================================
# Public API
# =============================================================================

__all__ = [
    # Version
    "__version__",
    # Crypto
    "AES_256_KEY_SIZE",
    "IV_SIZE",
    "TAG_SIZE",
    "AesGcmCipher",
    "EncryptedData",
    "SecureKey",
    "generate_master_key",
    "generate_random_bytes",
    # Errors
    "EnvelopeError",
    "ConfigurationError",
    "EncryptionError",
    "InvalidTenantIdError",
    "DecryptionError",
    "MalformedEnvelopeError",
    "AuthenticationError",
    "UnknownFormatError",
    # Key derivation
    "DEFAULT_KDF_SALT",
    "TenantKey",
    "TenantKeyCache",
    "TenantKeyring",
    "derive_subkey",
    "derive_tenant_key",
    # Envelope
    "CURRENT_VERSION",
    "SYSTEM_TENANT",
    "Envelope",
    "MalformedEnvelope",
    "V1Envelope",
    "V2Envelope",
    "looks_encrypted",
    "parse_envelope",
    # Primary API
    "TenantCipher",
    "FieldEncryptor",
    "Settings",
    "build_cipher",
    "build_keyring",
    "load_settings",
]
