"""Proof envelopes: device attestation, user assertion and the stored credential.

Envelopes are read-only verdict objects. They carry the raw authenticator
output plus the host-supplied context and answer the host contract
(validity, used challenge, authority, device / user id). Identifiers that can
be derived from the signed bytes are always derived; carried copies in the
meta are only checked for agreement with them.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, Tuple, TypeVar

from .authenticator_data import AuthenticatorDataError, parse_authenticator_data
from .client_data import find_authority, find_challenge
from .crypto.cose import cose_key_to_der
from .crypto.verify import KeyDecodeError, verify_webauthn_response
from .ids import (
    DEFAULT_ID,
    AuthorityId,
    Challenge,
    DeviceId,
    HashedUserId,
    device_id_from_credential_id,
    is_fixed32,
)
from .utils.ct import ct_eq
from .utils.logging import get_logger

log = get_logger()

Cx = TypeVar("Cx")


def _freeze_bytes(obj, *names: str) -> None:
    for name in names:
        value = getattr(obj, name)
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f"{name} must be bytes")
        object.__setattr__(obj, name, bytes(value))


def _check_id(name: str, value: Optional[bytes], required: bool = False) -> None:
    if value is None and not required:
        return
    if not is_fixed32(value):
        raise ValueError(f"{name} must be 32 bytes")


def _authority_congruent(carried: Optional[AuthorityId], client_data: bytes) -> bool:
    if carried is None:
        return True
    parsed = find_authority(client_data)
    return parsed is not None and ct_eq(bytes(carried), parsed)


def _resolved_authority(carried: Optional[AuthorityId], client_data: bytes) -> AuthorityId:
    parsed = find_authority(client_data)
    if parsed is None:
        return DEFAULT_ID
    if carried is not None and not ct_eq(bytes(carried), parsed):
        return DEFAULT_ID
    return parsed


@dataclass(frozen=True)
class AttestationMeta(Generic[Cx]):
    context: Cx
    authority_id: Optional[AuthorityId] = None
    device_id: Optional[DeviceId] = None

    def __post_init__(self):
        _check_id("authority_id", self.authority_id)
        _check_id("device_id", self.device_id)


@dataclass(frozen=True)
class Attestation(Generic[Cx]):
    """Registration proof for a new device; carries its public key inline."""

    meta: AttestationMeta[Cx]
    authenticator_data: bytes
    client_data: bytes
    signature: bytes
    public_key: bytes  # DER SubjectPublicKeyInfo, P-256

    def __post_init__(self):
        _freeze_bytes(self, "authenticator_data", "client_data", "signature", "public_key")

    @classmethod
    def new(
        cls,
        context: Cx,
        authenticator_data: bytes,
        client_data: bytes,
        signature: bytes,
        public_key: bytes,
        *,
        authority_id: Optional[AuthorityId] = None,
        device_id: Optional[DeviceId] = None,
    ) -> "Attestation[Cx]":
        meta = AttestationMeta(context, authority_id=authority_id, device_id=device_id)
        return cls(meta, authenticator_data, client_data, signature, public_key)

    def challenge(self) -> Challenge:
        return find_challenge(self.client_data) or DEFAULT_ID

    def _derived_device(self) -> Tuple[bool, Optional[DeviceId], Optional[bytes]]:
        """(parsed, device id, DER public key) derived from attested credential data.

        ``parsed`` is False when the authenticator data is malformed; the ids are
        None when it parses but carries no attested credential data.
        """
        try:
            auth_data = parse_authenticator_data(self.authenticator_data)
        except AuthenticatorDataError:
            return False, None, None
        cred = auth_data.attested_credential
        if cred is None:
            return True, None, None
        try:
            key_der = cose_key_to_der(cred.public_key_cose)
        except KeyDecodeError:
            key_der = None
        return True, device_id_from_credential_id(cred.credential_id), key_der

    def is_signed(self) -> bool:
        """Signature verifies and the inline key is the one the authenticator attested."""
        parsed, derived_id, derived_key = self._derived_device()
        if not parsed:
            log.debug("attestation authenticator data is malformed")
            return False
        if derived_id is not None and derived_key != self.public_key:
            log.debug("attestation public_key disagrees with attested credential key")
            return False
        return verify_webauthn_response(
            self.authenticator_data,
            self.client_data,
            self.signature,
            self.public_key,
        )

    def is_congruent(self) -> bool:
        if not _authority_congruent(self.meta.authority_id, self.client_data):
            log.debug("attestation authority_id disagrees with client data origin")
            return False
        parsed, derived_id, derived_key = self._derived_device()
        if not parsed:
            return False
        if derived_id is None:
            # nothing in the signed bytes to check a carried id against
            return True
        if self.meta.device_id is not None and not ct_eq(bytes(self.meta.device_id), derived_id):
            log.debug("attestation device_id disagrees with attested credential id")
            return False
        return derived_key == self.public_key

    def is_valid(self) -> bool:
        return self.is_signed() and self.is_congruent()

    def used_challenge(self) -> Tuple[Cx, Challenge]:
        return self.meta.context, self.challenge()

    def authority(self) -> AuthorityId:
        return _resolved_authority(self.meta.authority_id, self.client_data)

    def device_id(self) -> DeviceId:
        parsed, derived_id, _ = self._derived_device()
        carried = self.meta.device_id
        if not parsed:
            return DEFAULT_ID
        if derived_id is None:
            return bytes(carried) if carried is not None else DEFAULT_ID
        if carried is not None and not ct_eq(bytes(carried), derived_id):
            return DEFAULT_ID
        return derived_id

    def to_credential(self) -> "Credential":
        return Credential(device_id=self.device_id(), public_key=self.public_key)


@dataclass(frozen=True)
class AssertionMeta(Generic[Cx]):
    context: Cx
    user_id: HashedUserId
    authority_id: Optional[AuthorityId] = None

    def __post_init__(self):
        _check_id("user_id", self.user_id, required=True)
        _check_id("authority_id", self.authority_id)


@dataclass(frozen=True)
class Assertion(Generic[Cx]):
    """Login proof; verified against the public key of a registered device."""

    meta: AssertionMeta[Cx]
    authenticator_data: bytes
    client_data: bytes
    signature: bytes

    def __post_init__(self):
        _freeze_bytes(self, "authenticator_data", "client_data", "signature")

    @classmethod
    def new(
        cls,
        context: Cx,
        user_id: HashedUserId,
        authenticator_data: bytes,
        client_data: bytes,
        signature: bytes,
        *,
        authority_id: Optional[AuthorityId] = None,
    ) -> "Assertion[Cx]":
        meta = AssertionMeta(context, user_id, authority_id=authority_id)
        return cls(meta, authenticator_data, client_data, signature)

    def challenge(self) -> Challenge:
        return find_challenge(self.client_data) or DEFAULT_ID

    def is_congruent(self) -> bool:
        return _authority_congruent(self.meta.authority_id, self.client_data)

    def is_signed(self, public_key: bytes) -> bool:
        return verify_webauthn_response(
            self.authenticator_data,
            self.client_data,
            self.signature,
            public_key,
        )

    def is_valid(self, public_key: bytes) -> bool:
        return self.is_signed(public_key) and self.is_congruent()

    def used_challenge(self) -> Tuple[Cx, Challenge]:
        return self.meta.context, self.challenge()

    def authority(self) -> AuthorityId:
        return _resolved_authority(self.meta.authority_id, self.client_data)

    def user_id(self) -> HashedUserId:
        return bytes(self.meta.user_id)


@dataclass(frozen=True)
class Credential:
    """Device record the host persists after a successful registration."""

    device_id: DeviceId
    public_key: bytes

    def __post_init__(self):
        _check_id("device_id", self.device_id, required=True)
        _freeze_bytes(self, "device_id", "public_key")

    @classmethod
    def from_attestation(cls, attestation: Attestation) -> "Credential":
        return attestation.to_credential()

    def verify(self, assertion: Assertion) -> bool:
        return assertion.is_valid(self.public_key)


__all__ = [
    "AttestationMeta",
    "Attestation",
    "AssertionMeta",
    "Assertion",
    "Credential",
]
