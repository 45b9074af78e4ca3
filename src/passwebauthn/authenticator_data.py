"""Authenticator data decoding.

Layout (https://www.w3.org/TR/webauthn/#sctn-authenticator-data):

  rpIdHash      32 bytes
  flags          1 byte   (UP=0x01, UV=0x04, BE=0x08, BS=0x10, AT=0x40, ED=0x80)
  signCount      4 bytes  big endian
  [attestedCredentialData]  present when AT is set
      aaguid        16 bytes
      credIdLen      2 bytes  big endian
      credentialId   credIdLen bytes
      credentialPublicKey  COSE_Key (CBOR)
  [extensions]  CBOR map, present when ED is set
"""
from __future__ import annotations

import io
import struct
from dataclasses import dataclass
from typing import Any, Optional

import cbor2

FLAG_UP = 0x01
FLAG_UV = 0x04
FLAG_BE = 0x08
FLAG_BS = 0x10
FLAG_AT = 0x40
FLAG_ED = 0x80

_HEADER_LEN = 37
_AAGUID_LEN = 16


class AuthenticatorDataError(ValueError):
    """Raised when authenticator data does not follow the WebAuthn layout."""


@dataclass(frozen=True)
class AttestedCredential:
    aaguid: bytes
    credential_id: bytes
    public_key_cose: bytes


@dataclass(frozen=True)
class AuthenticatorData:
    rp_id_hash: bytes
    flags: int
    sign_count: int
    attested_credential: Optional[AttestedCredential] = None
    extensions: Optional[Any] = None

    @property
    def user_present(self) -> bool:
        return bool(self.flags & FLAG_UP)

    @property
    def user_verified(self) -> bool:
        return bool(self.flags & FLAG_UV)


def _read_cbor_item(buf: bytes, offset: int) -> tuple[Any, int]:
    # CTAP2 requires canonical CBOR, so the re-encoded item gives its exact length
    try:
        item = cbor2.CBORDecoder(io.BytesIO(buf[offset:])).decode()
        encoded = cbor2.dumps(item)
    except (cbor2.CBORError, ValueError, EOFError) as e:
        raise AuthenticatorDataError("malformed CBOR in authenticator data") from e
    end = offset + len(encoded)
    if buf[offset:end] != encoded:
        raise AuthenticatorDataError("non-canonical CBOR in authenticator data")
    return item, end


def parse_authenticator_data(raw: bytes) -> AuthenticatorData:
    raw = bytes(raw)
    if len(raw) < _HEADER_LEN:
        raise AuthenticatorDataError("authenticator data too short")
    rp_id_hash = raw[:32]
    flags = raw[32]
    (sign_count,) = struct.unpack(">I", raw[33:37])
    ptr = _HEADER_LEN

    attested = None
    if flags & FLAG_AT:
        if len(raw) < ptr + _AAGUID_LEN + 2:
            raise AuthenticatorDataError("attested credential data truncated")
        aaguid = raw[ptr:ptr + _AAGUID_LEN]
        ptr += _AAGUID_LEN
        (cred_id_len,) = struct.unpack(">H", raw[ptr:ptr + 2])
        ptr += 2
        if len(raw) < ptr + cred_id_len:
            raise AuthenticatorDataError("credential id truncated")
        credential_id = raw[ptr:ptr + cred_id_len]
        ptr += cred_id_len
        _, end = _read_cbor_item(raw, ptr)
        attested = AttestedCredential(aaguid, credential_id, raw[ptr:end])
        ptr = end

    extensions = None
    if flags & FLAG_ED:
        extensions, ptr = _read_cbor_item(raw, ptr)

    if ptr != len(raw):
        raise AuthenticatorDataError("trailing bytes in authenticator data")
    return AuthenticatorData(rp_id_hash, flags, sign_count, attested, extensions)


__all__ = [
    "FLAG_UP",
    "FLAG_UV",
    "FLAG_BE",
    "FLAG_BS",
    "FLAG_AT",
    "FLAG_ED",
    "AuthenticatorDataError",
    "AttestedCredential",
    "AuthenticatorData",
    "parse_authenticator_data",
]
