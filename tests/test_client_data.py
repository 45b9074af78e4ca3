import os

import pytest
from hypothesis import given, strategies as st

from passwebauthn.client_data import (
    MAX_CLIENT_DATA_BYTES,
    authority_label_from_origin,
    b64url_decode_nopad,
    find_authority,
    find_challenge,
    find_type,
)
from passwebauthn.ids import to_fixed32
from passwebauthn.models import b64url_encode


def _client_data(challenge: str, origin: str = "https://rpid.example.com") -> bytes:
    return (
        '{"type":"webauthn.get","challenge":"%s","origin":"%s","crossOrigin":false}'
        % (challenge, origin)
    ).encode()


@given(st.binary(min_size=32, max_size=32))
def test_challenge_roundtrip(challenge):
    assert find_challenge(_client_data(b64url_encode(challenge))) == challenge


def test_challenge_pretty_printed_json():
    challenge = os.urandom(32)
    data = (
        '{\n  "challenge": "%s",\n  "origin": "https://example.com",\n  "type": "webauthn.get"\n}'
        % b64url_encode(challenge)
    ).encode()
    assert find_challenge(data) == challenge
    assert find_authority(data) == to_fixed32(b"example")


def test_short_challenge_is_zero_padded():
    assert find_challenge(_client_data(b64url_encode(b"abc"))) == b"abc" + bytes(29)


def test_long_challenge_is_truncated():
    raw = os.urandom(64)
    assert find_challenge(_client_data(b64url_encode(raw))) == raw[:32]


@pytest.mark.parametrize(
    "value",
    [
        "",
        "test-challenge!",
        "AAAA=",  # padded
        "ab+/",  # standard alphabet
        "A",  # impossible length
    ],
)
def test_bad_challenge_values(value):
    assert find_challenge(_client_data(value)) is None


def test_b64url_decode_nopad():
    assert b64url_decode_nopad("-_8") == b"\xfb\xff"
    assert b64url_decode_nopad("YQ") == b"a"
    assert b64url_decode_nopad("YQ==") is None


def test_key_match_is_exact():
    # "chellang" must not satisfy a lookup for "challenge"
    data = _client_data(b64url_encode(os.urandom(32))).replace(b"challenge", b"chellang")
    assert find_challenge(data) is None
    # crossOrigin must not shadow origin
    data = b'{"crossOrigin":false,"origin":"https://svc.example.org"}'
    assert find_authority(data) == to_fixed32(b"svc")


def test_authority_from_origin():
    assert find_authority(_client_data("x", "https://rpid.example.com")) == to_fixed32(b"rpid")
    assert find_authority(_client_data("x", "https://svc.example.org:8443")) == to_fixed32(b"svc")
    assert find_authority(_client_data("x", "https://pass_web.pass.int")) == to_fixed32(b"pass_web")


@pytest.mark.parametrize(
    "origin",
    [
        "https://localhost",
        "https://127.0.0.1",
        "https://[::1]",
        "not a url",
        "svc.example.org",
        "https://.example.org",
    ],
)
def test_authority_rejections(origin):
    assert authority_label_from_origin(origin) is None
    assert find_authority(_client_data("x", origin)) is None


def test_find_type():
    assert find_type(_client_data("x")) == "webauthn.get"


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"{",
        b'{"challenge"',
        b'{"challenge":',
        b'{"origin":"https://',
        b"\xff\xfe\x00challenge",
        b'{"challenge":"\xc3\x28"}',
        b"[1,2,3]",
        b"null",
    ],
)
def test_malformed_client_data(data):
    assert find_challenge(data) is None
    assert find_authority(data) is None


@given(st.binary(max_size=512))
def test_arbitrary_bytes_never_raise(data):
    challenge = find_challenge(data)
    authority = find_authority(data)
    assert challenge is None or len(challenge) == 32
    assert authority is None or len(authority) == 32


def _padded_client_data(challenge: bytes, size: int) -> bytes:
    head = _client_data(b64url_encode(challenge))[:-1] + b',"pad":"'
    return head + b"a" * (size - len(head) - 2) + b'"}'


def test_client_data_size_limit(monkeypatch):
    challenge = os.urandom(32)
    at_limit = _padded_client_data(challenge, MAX_CLIENT_DATA_BYTES)
    assert len(at_limit) == MAX_CLIENT_DATA_BYTES
    assert find_challenge(at_limit) == challenge
    oversized = _padded_client_data(challenge, MAX_CLIENT_DATA_BYTES + 1)
    assert find_challenge(oversized) is None
    assert find_authority(oversized) is None
    # the limit is not read from the environment
    monkeypatch.setenv("PASSWEBAUTHN_MAX_CLIENT_DATA_BYTES", "64")
    assert find_challenge(at_limit) == challenge


def test_internationalised_origin_uses_punycode_label():
    assert authority_label_from_origin("https://münchen.example.org") == "xn--mnchen-3ya"
    assert find_authority(_client_data("x", "https://münchen.example.org")) == to_fixed32(b"xn--mnchen-3ya")
    assert authority_label_from_origin("https://xn--mnchen-3ya.example.org") == "xn--mnchen-3ya"
