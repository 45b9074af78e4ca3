"""Fixed-size identifiers shared by the envelopes and the host contract.

Challenge, AuthorityId, DeviceId and HashedUserId are all 32-byte values.
Variable-length input is mapped into that shape by taking at most 32 bytes
and zero-padding the remainder.
"""
from __future__ import annotations

import hashlib

ID_LEN = 32

Challenge = bytes
AuthorityId = bytes
DeviceId = bytes
HashedUserId = bytes

DEFAULT_ID = bytes(ID_LEN)


def to_fixed32(value: bytes | bytearray | str) -> bytes:
    if isinstance(value, str):
        value = value.encode("utf-8")
    value = bytes(value[:ID_LEN])
    return value + bytes(ID_LEN - len(value))


def is_fixed32(value: object) -> bool:
    return isinstance(value, (bytes, bytearray)) and len(value) == ID_LEN


def blake2_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=ID_LEN).digest()


def device_id_from_credential_id(credential_id: bytes) -> DeviceId:
    """DeviceId registered for a credential: BLAKE2b-256 of its raw id."""
    return blake2_256(credential_id)


__all__ = [
    "ID_LEN",
    "Challenge",
    "AuthorityId",
    "DeviceId",
    "HashedUserId",
    "DEFAULT_ID",
    "to_fixed32",
    "is_fixed32",
    "blake2_256",
    "device_id_from_credential_id",
]
