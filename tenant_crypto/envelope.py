"""
Envelope wire format and format detection.

Two formats coexist in stored data:

    v2:<tenant_id|system>:<iv_hex>:<tag_hex>:<ciphertext_hex>   (current)
    <iv_hex>:<tag_hex>:<ciphertext_hex>                          (legacy v1)

parse_envelope() classifies a string into V1Envelope, V2Envelope or
MalformedEnvelope and never raises; callers dispatch on the variant.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Union

from .crypto import IV_SIZE, TAG_SIZE, EncryptedData
from .errors import DecryptionError, InvalidTenantIdError, MalformedEnvelopeError, UnknownFormatError

ENVELOPE_DELIMITER: str = ":"
CURRENT_VERSION: str = "v2"
SYSTEM_TENANT: str = "system"
LEGACY_FIELD_COUNT: int = 3
V2_FIELD_COUNT: int = 5

_VERSION_TAG = re.compile(r"^v\d+$")
_HEX = re.compile(r"[0-9a-fA-F]*")


def validate_tenant_id(tenant_id: Optional[str]) -> None:
    """
    Check that a tenant id can be embedded in an envelope.

    Raises:
        InvalidTenantIdError: If it is empty, contains the delimiter or is the sentinel
    """
    if tenant_id is None:
        return
    if not isinstance(tenant_id, str) or not tenant_id:
        raise InvalidTenantIdError("Tenant id must be a non-empty string")
    if ENVELOPE_DELIMITER in tenant_id:
        raise InvalidTenantIdError(f"Tenant id must not contain {ENVELOPE_DELIMITER!r}")
    if tenant_id == SYSTEM_TENANT:
        raise InvalidTenantIdError(f"Tenant id {SYSTEM_TENANT!r} is reserved for system scope")


def _decode_hex(value: str, name: str, size: Optional[int] = None) -> bytes:
    # bytes.fromhex skips whitespace; each record must have one wire form.
    if not isinstance(value, str) or not _HEX.fullmatch(value) or len(value) % 2:
        raise MalformedEnvelopeError(f"Envelope {name} is not valid hex")
    raw = bytes.fromhex(value)
    if size is not None and len(raw) != size:
        raise MalformedEnvelopeError(f"Envelope {name} must be {size} bytes, got {len(raw)}")
    return raw


@dataclass(frozen=True)
class V1Envelope:
    """Legacy envelope, always encrypted with the master key."""

    iv: bytes
    auth_tag: bytes
    ciphertext: bytes

    version = "v1"

    @classmethod
    def from_parts(cls, parts: Dict[str, str]) -> V1Envelope:
        """
        Build from a split record: {"encrypted", "iv", "authTag"}.

        Raises:
            MalformedEnvelopeError: If a part is missing or invalid
        """
        try:
            iv, tag, ciphertext = parts["iv"], parts["authTag"], parts["encrypted"]
        except (KeyError, TypeError):
            raise MalformedEnvelopeError("Split envelope needs encrypted, iv and authTag") from None
        return cls(
            iv=_decode_hex(iv, "IV", IV_SIZE),
            auth_tag=_decode_hex(tag, "auth tag", TAG_SIZE),
            ciphertext=_decode_hex(ciphertext, "ciphertext"),
        )

    def to_parts(self) -> Dict[str, str]:
        return {
            "encrypted": self.ciphertext.hex(),
            "iv": self.iv.hex(),
            "authTag": self.auth_tag.hex(),
        }

    def to_encrypted_data(self) -> EncryptedData:
        return EncryptedData(iv=self.iv, auth_tag=self.auth_tag, ciphertext=self.ciphertext)

    def serialize(self) -> str:
        return ENVELOPE_DELIMITER.join(
            (self.iv.hex(), self.auth_tag.hex(), self.ciphertext.hex())
        )


@dataclass(frozen=True)
class V2Envelope:
    """Tenant-scoped envelope. tenant_id None means system scope."""

    tenant_id: Optional[str]
    iv: bytes
    auth_tag: bytes
    ciphertext: bytes

    version = CURRENT_VERSION

    @classmethod
    def from_encrypted_data(cls, tenant_id: Optional[str], data: EncryptedData) -> V2Envelope:
        validate_tenant_id(tenant_id)
        return cls(
            tenant_id=tenant_id,
            iv=data.iv,
            auth_tag=data.auth_tag,
            ciphertext=data.ciphertext,
        )

    @property
    def tenant_segment(self) -> str:
        return SYSTEM_TENANT if self.tenant_id is None else self.tenant_id

    def to_encrypted_data(self) -> EncryptedData:
        return EncryptedData(iv=self.iv, auth_tag=self.auth_tag, ciphertext=self.ciphertext)

    def serialize(self) -> str:
        return ENVELOPE_DELIMITER.join(
            (
                CURRENT_VERSION,
                self.tenant_segment,
                self.iv.hex(),
                self.auth_tag.hex(),
                self.ciphertext.hex(),
            )
        )


@dataclass(frozen=True)
class MalformedEnvelope:
    """Input that could not be classified; carries the error to raise."""

    error: DecryptionError


Envelope = Union[V1Envelope, V2Envelope, MalformedEnvelope]


def _parse_v2(segments: list) -> V2Envelope:
    if len(segments) != V2_FIELD_COUNT:
        raise MalformedEnvelopeError(
            f"{CURRENT_VERSION} envelope needs {V2_FIELD_COUNT} fields, got {len(segments)}"
        )
    _, tenant_segment, iv, tag, ciphertext = segments
    if not tenant_segment:
        raise MalformedEnvelopeError("Envelope tenant id is empty")
    return V2Envelope(
        tenant_id=None if tenant_segment == SYSTEM_TENANT else tenant_segment,
        iv=_decode_hex(iv, "IV", IV_SIZE),
        auth_tag=_decode_hex(tag, "auth tag", TAG_SIZE),
        ciphertext=_decode_hex(ciphertext, "ciphertext"),
    )


def _parse_v1(segments: list) -> V1Envelope:
    iv, tag, ciphertext = segments
    return V1Envelope(
        iv=_decode_hex(iv, "IV", IV_SIZE),
        auth_tag=_decode_hex(tag, "auth tag", TAG_SIZE),
        ciphertext=_decode_hex(ciphertext, "ciphertext"),
    )


def parse_envelope(value: object) -> Envelope:
    """
    Classify a stored ciphertext string.

    Args:
        value: Stored envelope string

    Returns:
        V2Envelope, V1Envelope, or MalformedEnvelope holding a
        MalformedEnvelopeError or UnknownFormatError
    """
    if not isinstance(value, str):
        return MalformedEnvelope(
            MalformedEnvelopeError(f"Envelope must be a string, got {type(value).__name__}")
        )

    segments = value.split(ENVELOPE_DELIMITER)
    head = segments[0]

    try:
        if head == CURRENT_VERSION:
            return _parse_v2(segments)
        if _VERSION_TAG.match(head):
            # Reserved for later versions, e.g. a key-id reference for rotation.
            raise UnknownFormatError(f"Unsupported envelope version {head!r}")
        if len(segments) == LEGACY_FIELD_COUNT:
            return _parse_v1(segments)
        raise UnknownFormatError(
            f"Unrecognized envelope format with {len(segments)} fields"
        )
    except DecryptionError as e:
        return MalformedEnvelope(e)


def looks_encrypted(value: object) -> bool:
    """True when the value parses as a v1 or v2 envelope."""
    return isinstance(parse_envelope(value), (V1Envelope, V2Envelope))
