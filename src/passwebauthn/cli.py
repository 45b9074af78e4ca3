from __future__ import annotations

import argparse
import json
from pathlib import Path

from pydantic import ValidationError

from .client_data import find_type
from .envelope import Attestation, Credential
from .host import (
    Challenger,
    StaticAuthority,
    authority_from_config,
    verify_assertion,
    verify_attestation,
)
from .ids import to_fixed32
from .models import AssertionDocument, AttestationDocument, b64url_decode, b64url_encode


class FixedChallenger(Challenger):
    """Expects one challenge for one context; enough for a single document."""

    def __init__(self, context, challenge: bytes):
        self._context = context
        self._challenge = to_fixed32(challenge)

    def generate(self, context) -> bytes:
        return self._challenge if context == self._context else bytes(32)


def _load_document(path: str, kind: str):
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    model = AttestationDocument if kind == "attestation" else AssertionDocument
    return model.model_validate(raw)


def cmd_inspect(args: argparse.Namespace) -> int:
    doc = _load_document(args.input, args.kind)
    env = doc.to_envelope()
    context, challenge = env.used_challenge()
    info = {
        "kind": args.kind,
        "type": find_type(env.client_data),
        "context": context,
        "challenge": b64url_encode(challenge),
        "authority": env.authority().rstrip(b"\x00").decode("utf-8", errors="replace"),
    }
    if isinstance(env, Attestation):
        info["device_id"] = env.device_id().hex()
        info["valid"] = env.is_valid()
    else:
        info["user_id"] = env.user_id().hex()
        if args.public_key_b64:
            info["valid"] = env.is_valid(b64url_decode(args.public_key_b64))
    print(json.dumps(info))
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    doc = _load_document(args.input, args.kind)
    env = doc.to_envelope()
    challenger = FixedChallenger(doc.context, b64url_decode(args.challenge_b64))
    authority = StaticAuthority(args.authority) if args.authority else authority_from_config()
    if isinstance(env, Attestation):
        verdict = verify_attestation(env, challenger, authority)
    else:
        if not args.public_key_b64:
            raise SystemExit("--public-key-b64 is required for assertions")
        credential = Credential(device_id=to_fixed32(b"cli"), public_key=b64url_decode(args.public_key_b64))
        verdict = verify_assertion(env, credential, challenger, authority)
    out = verdict.model_dump() if args.diagnostic else verdict.public()
    print(json.dumps(out))
    return 0 if verdict.accepted else 1


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser("passwebauthn")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_ins = sub.add_parser("inspect")
    p_ins.add_argument("kind", choices=["attestation", "assertion"])
    p_ins.add_argument("--input", required=True)
    p_ins.add_argument("--public-key-b64", dest="public_key_b64")
    p_ins.set_defaults(func=cmd_inspect)

    p_ver = sub.add_parser("verify")
    p_ver.add_argument("kind", choices=["attestation", "assertion"])
    p_ver.add_argument("--input", required=True)
    p_ver.add_argument("--challenge-b64", dest="challenge_b64", required=True)
    p_ver.add_argument("--authority")
    p_ver.add_argument("--public-key-b64", dest="public_key_b64")
    p_ver.add_argument("--diagnostic", action="store_true")
    p_ver.set_defaults(func=cmd_verify)

    args = p.parse_args(argv)
    try:
        return args.func(args)
    except (ValidationError, ValueError, OSError) as e:
        print(json.dumps({"accepted": False, "message": f"bad input: {e}"}))
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
