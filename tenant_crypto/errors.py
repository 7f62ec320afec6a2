"""
Exception classes for tenant envelope encryption.

Every failure to recover plaintext is a DecryptionError; the subclasses let
callers tell corruption (malformed or unknown format) apart from tampering or
wrong-tenant use (authentication failure).
"""

from __future__ import annotations


class EnvelopeError(Exception):
    """Base exception for all tenant encryption operations."""

    pass


class ConfigurationError(EnvelopeError):
    """Master key missing or malformed. Fatal at startup."""

    pass


class EncryptionError(EnvelopeError):
    """Encryption could not be performed."""

    pass


class InvalidTenantIdError(EncryptionError):
    """Tenant id cannot be embedded in an envelope."""

    pass


class DecryptionError(EnvelopeError):
    """Plaintext could not be recovered."""

    code = "DECRYPTION_FAILED"


class MalformedEnvelopeError(DecryptionError):
    """Envelope does not parse into the fields its version requires."""

    code = "MALFORMED_ENVELOPE"


class AuthenticationError(DecryptionError):
    """GCM tag verification failed or the envelope belongs to another tenant."""

    code = "AUTHENTICATION_FAILURE"


class UnknownFormatError(DecryptionError):
    """Envelope matches neither the legacy nor the current format."""

    code = "UNKNOWN_FORMAT"
