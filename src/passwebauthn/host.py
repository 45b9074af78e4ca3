"""Host binding contract.

The core never decides which challenge or relying party is expected; the host
plugs that policy in through ``Challenger`` and ``AuthorityProvider``. The
acceptance pipeline composes four independent checks and stops at the first
failure:

    signature valid -> challenge matches context -> authority matches -> identity known

Carried ids that disagree with the signed bytes resolve to the all-zero id, so
they fail at the authority or identity step rather than the signature step.
All checks are pure, so a rejected proof is never retried.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Generic, Optional, TypeVar

from .config import load_config
from .envelope import Assertion, Attestation, Credential
from .ids import DEFAULT_ID, AuthorityId, Challenge, to_fixed32
from .models import INVALID_ATTESTATION, INVALID_CREDENTIAL, RejectReason, Verdict
from .utils.ct import ct_eq
from .utils.logging import get_logger

log = get_logger()

Cx = TypeVar("Cx")


class Challenger(ABC, Generic[Cx]):
    """Maps a host context to the challenge it expects for that context."""

    @abstractmethod
    def generate(self, context: Cx) -> Challenge:
        ...

    def check_challenge(self, context: Cx, challenge: Challenge) -> bool:
        return ct_eq(to_fixed32(self.generate(context)), challenge)


class AuthorityProvider(ABC):
    @abstractmethod
    def authority_id(self) -> AuthorityId:
        ...


class StaticAuthority(AuthorityProvider):
    def __init__(self, label: str | bytes):
        self._id = to_fixed32(label)

    def authority_id(self) -> AuthorityId:
        return self._id


def authority_from_config() -> StaticAuthority:
    label = load_config().authority
    if not label:
        raise ValueError("PASSWEBAUTHN_AUTHORITY is not configured")
    return StaticAuthority(label)


IdentityCheck = Callable[[bytes], bool]


def _known(identity: bytes, identity_check: Optional[IdentityCheck]) -> bool:
    if identity == DEFAULT_ID:
        return False
    return identity_check(identity) if identity_check is not None else True


def _reject(kind: str, reason: RejectReason, message: str) -> Verdict:
    log.info(f"{kind} rejected: {reason}")
    return Verdict(accepted=False, message=message, reason=reason)


def verify_attestation(
    attestation: Attestation[Cx],
    challenger: Challenger[Cx],
    authority: AuthorityProvider,
    identity_check: Optional[IdentityCheck] = None,
) -> Verdict:
    """Run the registration pipeline for a device attestation.

    ``identity_check`` receives the device id and decides whether the host
    accepts it (e.g. not already registered); by default any derived id is.
    """
    if not attestation.is_signed():
        return _reject("attestation", "signature_invalid", INVALID_ATTESTATION)
    context, challenge = attestation.used_challenge()
    if not challenger.check_challenge(context, challenge):
        return _reject("attestation", "challenge_mismatch", INVALID_ATTESTATION)
    if not ct_eq(attestation.authority(), authority.authority_id()):
        return _reject("attestation", "authority_mismatch", INVALID_ATTESTATION)
    if not _known(attestation.device_id(), identity_check):
        return _reject("attestation", "identity_unknown", INVALID_ATTESTATION)
    return Verdict(accepted=True)


def verify_assertion(
    assertion: Assertion[Cx],
    credential: Credential,
    challenger: Challenger[Cx],
    authority: AuthorityProvider,
    identity_check: Optional[IdentityCheck] = None,
) -> Verdict:
    """Run the login pipeline for an assertion against a stored credential."""
    if not assertion.is_signed(credential.public_key):
        return _reject("assertion", "signature_invalid", INVALID_CREDENTIAL)
    context, challenge = assertion.used_challenge()
    if not challenger.check_challenge(context, challenge):
        return _reject("assertion", "challenge_mismatch", INVALID_CREDENTIAL)
    if not ct_eq(assertion.authority(), authority.authority_id()):
        return _reject("assertion", "authority_mismatch", INVALID_CREDENTIAL)
    if not _known(assertion.user_id(), identity_check):
        return _reject("assertion", "identity_unknown", INVALID_CREDENTIAL)
    return Verdict(accepted=True)


__all__ = [
    "Challenger",
    "AuthorityProvider",
    "StaticAuthority",
    "authority_from_config",
    "IdentityCheck",
    "verify_attestation",
    "verify_assertion",
]
