"""COSE_Key (EC2 / P-256) to DER SubjectPublicKeyInfo conversion.

Authenticators report credential public keys as COSE_Key maps inside the
attested credential data. The verifier only consumes DER, so callers holding a
COSE key convert it here first.

COSE_Key labels (RFC 9052 / 9053):
  1: kty   (2 = EC2)
  3: alg   (-7 = ES256, optional)
 -1: crv   (1 = P-256)
 -2: x     (32-byte bstr)
 -3: y     (32-byte bstr)
"""
from __future__ import annotations

from typing import Any, Dict

import cbor2
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from .verify import KeyDecodeError, load_p256_public_key

KTY_EC2 = 2
ALG_ES256 = -7
CRV_P256 = 1

LABEL_KTY = 1
LABEL_ALG = 3
LABEL_CRV = -1
LABEL_X = -2
LABEL_Y = -3


def decode_cose_key(cose_bytes: bytes) -> Dict[Any, Any]:
    try:
        key = cbor2.loads(bytes(cose_bytes))
    except (cbor2.CBORError, ValueError, EOFError) as e:
        raise KeyDecodeError("malformed COSE key") from e
    if not isinstance(key, dict):
        raise KeyDecodeError("COSE key must be a map")
    return key


def cose_map_to_der(key: Dict[Any, Any]) -> bytes:
    if key.get(LABEL_KTY) != KTY_EC2:
        raise KeyDecodeError("unsupported COSE kty")
    if key.get(LABEL_CRV) != CRV_P256:
        raise KeyDecodeError("unsupported COSE curve")
    if LABEL_ALG in key and key[LABEL_ALG] != ALG_ES256:
        raise KeyDecodeError("unsupported COSE alg")
    x, y = key.get(LABEL_X), key.get(LABEL_Y)
    if not (isinstance(x, bytes) and isinstance(y, bytes) and len(x) == 32 and len(y) == 32):
        raise KeyDecodeError("COSE EC2 coordinates must be 32-byte strings")
    try:
        pk = ec.EllipticCurvePublicNumbers(
            int.from_bytes(x, "big"), int.from_bytes(y, "big"), ec.SECP256R1()
        ).public_key()
    except ValueError as e:
        raise KeyDecodeError("COSE point is not on P-256") from e
    return pk.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def cose_key_to_der(cose_bytes: bytes) -> bytes:
    return cose_map_to_der(decode_cose_key(cose_bytes))


def der_to_cose_key(public_key_der: bytes) -> bytes:
    """Inverse of cose_key_to_der; used when a host needs to echo COSE."""
    nums = load_p256_public_key(public_key_der).public_numbers()
    key = {
        LABEL_KTY: KTY_EC2,
        LABEL_ALG: ALG_ES256,
        LABEL_CRV: CRV_P256,
        LABEL_X: nums.x.to_bytes(32, "big"),
        LABEL_Y: nums.y.to_bytes(32, "big"),
    }
    return cbor2.dumps(key, canonical=True)


__all__ = ["decode_cose_key", "cose_map_to_der", "cose_key_to_der", "der_to_cose_key"]
