"""Targeted field extraction from WebAuthn client data.

Client data is produced by whatever browser or authenticator the caller used,
so it is treated as hostile. It is expected to be a flat UTF-8 JSON object such
as::

    {"type":"webauthn.get","challenge":"<b64url>","origin":"https://svc.example.org","crossOrigin":false}

Rather than a JSON parser, a minimal key/value scanner is used: split on ",",
split each entry on the first ":", trim whitespace, quotes and braces. This is
correct for the shape above and nothing else; do not reuse it for general
JSON. Every lookup returns None on failure instead of raising.
"""
from __future__ import annotations

import base64
import binascii
import ipaddress
from typing import Callable, Optional, TypeVar
from urllib.parse import urlsplit

from .ids import AuthorityId, Challenge, to_fixed32

T = TypeVar("T")

_TRIM = " \t\r\n\"{}"

# Not configurable: verdicts must not depend on node settings.
MAX_CLIENT_DATA_BYTES = 4096


def _lookup(client_data: bytes, key: str) -> Optional[str]:
    if len(client_data) > MAX_CLIENT_DATA_BYTES:
        return None
    try:
        text = bytes(client_data).decode("utf-8")
    except UnicodeDecodeError:
        return None
    for entry in text.split(","):
        name, sep, value = entry.partition(":")
        if sep and name.strip(_TRIM) == key:
            return value.strip(_TRIM)
    return None


def get_from_json_then_map(
    client_data: bytes,
    key: str,
    map_fn: Callable[[str], Optional[bytes]],
) -> Optional[bytes]:
    """Look up ``key``, map its string value to bytes and fix it to 32 bytes."""
    value = _lookup(client_data, key)
    if not value:
        return None
    mapped = map_fn(value)
    if not mapped:
        return None
    return to_fixed32(mapped)


def b64url_decode_nopad(value: str) -> Optional[bytes]:
    # url-safe alphabet only, unpadded
    if any(c in "=+/" for c in value) or len(value) % 4 == 1:
        return None
    try:
        return base64.b64decode(value + "=" * (-len(value) % 4), altchars=b"-_", validate=True)
    except (binascii.Error, ValueError):
        return None


def authority_label_from_origin(origin: str) -> Optional[str]:
    """First DNS label of the origin's domain: https://svc.example.org -> svc."""
    try:
        host = urlsplit(origin).hostname
    except ValueError:
        return None
    if not host:
        return None
    try:
        ipaddress.ip_address(host)
        return None  # IP literals carry no domain
    except ValueError:
        pass
    try:
        # punycode form, so internationalised domains compare by their DNS name
        host = host.encode("idna").decode("ascii")
    except UnicodeError:
        return None
    label, dot, _ = host.partition(".")
    if not dot or not label:
        return None
    return label


def find_challenge(client_data: bytes) -> Optional[Challenge]:
    return get_from_json_then_map(client_data, "challenge", b64url_decode_nopad)


def find_authority(client_data: bytes) -> Optional[AuthorityId]:
    def _map(origin: str) -> Optional[bytes]:
        label = authority_label_from_origin(origin)
        return label.encode("utf-8") if label else None

    return get_from_json_then_map(client_data, "origin", _map)


def find_type(client_data: bytes) -> Optional[str]:
    """Ceremony type ("webauthn.create" / "webauthn.get"); informational only."""
    return _lookup(client_data, "type")


__all__ = [
    "MAX_CLIENT_DATA_BYTES",
    "get_from_json_then_map",
    "b64url_decode_nopad",
    "authority_label_from_origin",
    "find_challenge",
    "find_authority",
    "find_type",
]
