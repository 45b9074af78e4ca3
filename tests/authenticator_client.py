"""Software authenticator + client used to produce real WebAuthn responses in tests."""
from __future__ import annotations

import json
import os
import struct
from typing import Dict, Tuple
from urllib.parse import urlsplit

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from passwebauthn.authenticator_data import FLAG_AT, FLAG_UP, FLAG_UV
from passwebauthn.crypto.cose import der_to_cose_key
from passwebauthn.crypto.digest import sha256
from passwebauthn.envelope import Assertion, Attestation
from passwebauthn.host import Challenger
from passwebauthn.ids import blake2_256
from passwebauthn.models import b64url_encode


class BlockChallenger(Challenger[int]):
    """Challenge derived from a block number, as a chain host would do."""

    def generate(self, context: int) -> bytes:
        return blake2_256(context.to_bytes(8, "little"))


def public_key_der(key: ec.EllipticCurvePrivateKey) -> bytes:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def sign(key: ec.EllipticCurvePrivateKey, authenticator_data: bytes, client_data: bytes) -> bytes:
    return key.sign(authenticator_data + sha256(client_data), ec.ECDSA(hashes.SHA256()))


def client_data_json(kind: str, challenge: bytes, origin: str) -> bytes:
    return json.dumps(
        {
            "type": kind,
            "challenge": b64url_encode(challenge),
            "origin": origin,
            "crossOrigin": False,
        },
        separators=(",", ":"),
    ).encode()


class WebAuthnClient:
    def __init__(self, origin: str):
        self.origin = origin
        self.rp_id = urlsplit(origin).hostname or ""
        self.keys: Dict[bytes, ec.EllipticCurvePrivateKey] = {}
        self.sign_count = 0

    def _authenticator_data(self, flags: int, attested: bytes = b"") -> bytes:
        self.sign_count += 1
        return (
            sha256(self.rp_id.encode())
            + bytes([flags])
            + struct.pack(">I", self.sign_count)
            + attested
        )

    def create_credential(self, challenge: bytes) -> Tuple[bytes, bytes, bytes, bytes, bytes]:
        """Returns (credential_id, authenticator_data, client_data, signature, public_key_der)."""
        key = ec.generate_private_key(ec.SECP256R1())
        credential_id = os.urandom(16)
        self.keys[credential_id] = key
        der = public_key_der(key)
        attested = bytes(16) + struct.pack(">H", len(credential_id)) + credential_id + der_to_cose_key(der)
        authenticator_data = self._authenticator_data(FLAG_UP | FLAG_UV | FLAG_AT, attested)
        client_data = client_data_json("webauthn.create", challenge, self.origin)
        return credential_id, authenticator_data, client_data, sign(key, authenticator_data, client_data), der

    def attestation(self, context: int, challenger: Challenger = None, **meta) -> Tuple[bytes, Attestation]:
        challenger = challenger or BlockChallenger()
        credential_id, authenticator_data, client_data, signature, der = self.create_credential(
            challenger.generate(context)
        )
        return credential_id, Attestation.new(
            context, authenticator_data, client_data, signature, der, **meta
        )

    def credential(self, credential_id: bytes, user_id: bytes, context: int, challenger: Challenger = None, **meta) -> Assertion:
        challenger = challenger or BlockChallenger()
        key = self.keys[credential_id]
        authenticator_data = self._authenticator_data(FLAG_UP | FLAG_UV)
        client_data = client_data_json("webauthn.get", challenger.generate(context), self.origin)
        return Assertion.new(
            context,
            user_id,
            authenticator_data,
            client_data,
            sign(key, authenticator_data, client_data),
            **meta,
        )
