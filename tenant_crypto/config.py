"""
Configuration loading and process-start wiring.

Environment:
    ENCRYPTION_KEY        64 hex characters (required)
    ENCRYPTION_KDF_SALT   HKDF salt (optional)
    ENCRYPTION_KEY_CACHE  "0"/"false" disables the derived-key cache
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import load_dotenv

from .codec import TenantCipher
from .crypto import SecureKey
from .errors import ConfigurationError
from .kdf import DEFAULT_KDF_SALT, TenantKeyCache, TenantKeyring

ENV_MASTER_KEY = "ENCRYPTION_KEY"
ENV_KDF_SALT = "ENCRYPTION_KDF_SALT"
ENV_KEY_CACHE = "ENCRYPTION_KEY_CACHE"

_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Encryption settings, read once at startup."""

    master_key_hex: str
    kdf_salt: bytes = DEFAULT_KDF_SALT
    key_cache_enabled: bool = True

    def __repr__(self) -> str:
        return (
            f"Settings(master_key_hex=[REDACTED], kdf_salt={self.kdf_salt!r}, "
            f"key_cache_enabled={self.key_cache_enabled})"
        )


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[Union[str, Path]] = None,
) -> Settings:
    """
    Load settings from the environment.

    Args:
        env: Mapping to read instead of os.environ (no .env loading then)
        dotenv_path: Explicit .env file; the default search applies otherwise

    Returns:
        Settings

    Raises:
        ConfigurationError: If ENCRYPTION_KEY is missing or malformed
    """
    if env is None:
        load_dotenv(dotenv_path)
        env = os.environ

    master_key_hex = (env.get(ENV_MASTER_KEY) or "").strip()
    if not master_key_hex:
        raise ConfigurationError(f"{ENV_MASTER_KEY} must be set in environment or .env file")
    # Validate now so a bad key fails at startup, not on first request.
    SecureKey.from_hex(master_key_hex)

    salt_value = env.get(ENV_KDF_SALT)
    kdf_salt = salt_value.encode("utf-8") if salt_value else DEFAULT_KDF_SALT

    cache_value = (env.get(ENV_KEY_CACHE) or "").strip().lower()
    key_cache_enabled = cache_value not in _FALSE_VALUES

    return Settings(
        master_key_hex=master_key_hex,
        kdf_salt=kdf_salt,
        key_cache_enabled=key_cache_enabled,
    )


def build_keyring(settings: Settings) -> TenantKeyring:
    """Create the keyring and, when enabled, its derived-key cache."""
    cache = TenantKeyCache() if settings.key_cache_enabled else None
    return TenantKeyring.from_hex(settings.master_key_hex, salt=settings.kdf_salt, cache=cache)


def build_cipher(settings: Optional[Settings] = None) -> TenantCipher:
    """
    Build a TenantCipher for the process.

    Args:
        settings: Settings to use; loaded from the environment when omitted

    Returns:
        TenantCipher
    """
    if settings is None:
        settings = load_settings()
    return TenantCipher(build_keyring(settings))
