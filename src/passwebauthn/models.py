from __future__ import annotations

import base64
import binascii
from typing import Literal, Optional, Union

from pydantic import BaseModel, field_validator

from .envelope import Assertion, Attestation
from .ids import to_fixed32

RejectReason = Literal[
    "signature_invalid",
    "challenge_mismatch",
    "authority_mismatch",
    "identity_unknown",
]

INVALID_ATTESTATION = "invalid attestation"
INVALID_CREDENTIAL = "invalid credential"


class Verdict(BaseModel):
    """Outcome of the host pipeline.

    ``reason`` is diagnostic only; callers facing the outside world should
    expose ``public()``, which never distinguishes failure kinds.
    """

    accepted: bool
    message: str = "ok"
    reason: Optional[RejectReason] = None

    def public(self) -> dict:
        return {"accepted": self.accepted, "message": self.message}


def b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.b64decode(value + padding, altchars=b"-_", validate=True)


def b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64url_field(v):
    if isinstance(v, str):
        try:
            return b64url_decode(v)
        except (binascii.Error, ValueError) as e:
            raise ValueError("expected base64url") from e
    return v


class _ProofDocument(BaseModel):
    # Byte fields travel as unpadded base64url strings
    context: Union[int, str]
    authenticator_data: bytes
    client_data: bytes
    signature: bytes
    authority: Optional[str] = None  # relying party label, e.g. "svc"

    @field_validator("authenticator_data", "client_data", "signature", mode="before")
    @classmethod
    def decode_proof_bytes(cls, v):
        return _b64url_field(v)

    def authority_id(self) -> Optional[bytes]:
        return to_fixed32(self.authority) if self.authority else None


class AttestationDocument(_ProofDocument):
    public_key: bytes
    device_id: Optional[bytes] = None

    @field_validator("public_key", "device_id", mode="before")
    @classmethod
    def decode_key_bytes(cls, v):
        return _b64url_field(v)

    def to_envelope(self) -> Attestation:
        return Attestation.new(
            self.context,
            self.authenticator_data,
            self.client_data,
            self.signature,
            self.public_key,
            authority_id=self.authority_id(),
            device_id=self.device_id,
        )


class AssertionDocument(_ProofDocument):
    user_id: bytes

    @field_validator("user_id", mode="before")
    @classmethod
    def decode_user_id(cls, v):
        return _b64url_field(v)

    def to_envelope(self) -> Assertion:
        return Assertion.new(
            self.context,
            self.user_id,
            self.authenticator_data,
            self.client_data,
            self.signature,
            authority_id=self.authority_id(),
        )


__all__ = [
    "RejectReason",
    "INVALID_ATTESTATION",
    "INVALID_CREDENTIAL",
    "Verdict",
    "b64url_decode",
    "b64url_encode",
    "AttestationDocument",
    "AssertionDocument",
]
