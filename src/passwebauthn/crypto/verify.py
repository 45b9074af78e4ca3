"""WebAuthn signature verification (ECDSA P-256 / SHA-256).

The authenticator signs ``authenticator_data || SHA-256(client_data)``.
Verification:

  1. hash the client data with SHA-256
  2. concatenate authenticator data and that hash
  3. decode the DER SubjectPublicKeyInfo P-256 public key
  4. decode the DER ECDSA signature
  5. verify the signature over the message with ECDSA/SHA-256

Step 5 hashes the concatenated message again; the two SHA-256 rounds are part
of the WebAuthn signature format.

Key and signature encodings must be canonical DER: re-encoding the decoded
value has to reproduce the input bytes. Low-S normalisation is not required.

Refs: https://www.w3.org/TR/webauthn/#sctn-verifying-assertion
      https://www.w3.org/TR/webauthn/#fig-signature
"""
from __future__ import annotations

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

from .digest import signed_message
from ..utils.logging import get_logger

log = get_logger()

# Order of the NIST P-256 base point
P256_ORDER = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551


class VerifyError(Exception):
    """Base class for WebAuthn signature verification failures."""


class KeyDecodeError(VerifyError):
    """Public key bytes are not a canonical DER P-256 SubjectPublicKeyInfo."""


class SignatureDecodeError(VerifyError):
    """Signature bytes are not a canonical DER ECDSA signature."""


class SignatureInvalid(VerifyError):
    """Signature decoded correctly but does not verify."""


def load_p256_public_key(public_key_der: bytes) -> ec.EllipticCurvePublicKey:
    data = bytes(public_key_der)
    try:
        pk = serialization.load_der_public_key(data)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise KeyDecodeError("malformed public key") from e
    if not isinstance(pk, ec.EllipticCurvePublicKey) or not isinstance(pk.curve, ec.SECP256R1):
        raise KeyDecodeError("public key is not an EC P-256 key")
    canonical = pk.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    if canonical != data:
        raise KeyDecodeError("public key is not canonical DER")
    return pk


def parse_der_signature(signature_der: bytes) -> bytes:
    data = bytes(signature_der)
    try:
        r, s = decode_dss_signature(data)
    except ValueError as e:
        raise SignatureDecodeError("malformed DER signature") from e
    if not (0 < r < P256_ORDER and 0 < s < P256_ORDER):
        raise SignatureDecodeError("signature scalar out of range")
    if encode_dss_signature(r, s) != data:
        raise SignatureDecodeError("signature is not canonical DER")
    return data


def webauthn_verify(
    authenticator_data: bytes,
    client_data: bytes,
    signature_der: bytes,
    public_key_der: bytes,
) -> None:
    """Verify a WebAuthn response signature, raising a VerifyError on failure."""
    message = signed_message(authenticator_data, client_data)
    pk = load_p256_public_key(public_key_der)
    signature = parse_der_signature(signature_der)
    log.debug(f"webauthn verify: message_len={len(message)} signature_len={len(signature)}")
    try:
        pk.verify(signature, message, ec.ECDSA(hashes.SHA256()))
    except InvalidSignature as e:
        raise SignatureInvalid("signature does not verify") from e


def verify_webauthn_response(
    authenticator_data: bytes,
    client_data: bytes,
    signature_der: bytes,
    public_key_der: bytes,
) -> bool:
    try:
        webauthn_verify(authenticator_data, client_data, signature_der, public_key_der)
        return True
    except VerifyError as e:
        log.debug(f"webauthn verify failed: {type(e).__name__}: {e}")
        return False


__all__ = [
    "VerifyError",
    "KeyDecodeError",
    "SignatureDecodeError",
    "SignatureInvalid",
    "load_p256_public_key",
    "parse_der_signature",
    "webauthn_verify",
    "verify_webauthn_response",
]
