"""Verifier configuration.

Loaded from the environment (a local .env is honoured). Values are re-read
whenever the relevant variables change so tests can monkeypatch them.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Any

from dotenv import load_dotenv

load_dotenv()

_DEFAULT = {
    "log_level": "INFO",
    "authority": "",
}

_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

_ENV_MAP = {
    "log_level": ("PASSWEBAUTHN_LOG_LEVEL", str),
    "authority": ("PASSWEBAUTHN_AUTHORITY", str),
}


@dataclass(frozen=True)
class VerifierConfig:
    log_level: str = _DEFAULT["log_level"]
    # Relying party label (first domain label), e.g. "svc" for https://svc.example.org
    authority: str = _DEFAULT["authority"]


_CONFIG: VerifierConfig | None = None
_SNAPSHOT: Dict[str, str | None] = {}


def _env_snapshot() -> Dict[str, str | None]:
    return {env: os.environ.get(env) for env, _ in _ENV_MAP.values()}


def load_config() -> VerifierConfig:
    global _CONFIG, _SNAPSHOT
    snapshot = _env_snapshot()
    if _CONFIG is not None and snapshot == _SNAPSHOT:
        return _CONFIG
    data: Dict[str, Any] = dict(_DEFAULT)
    for k, (env, cast) in _ENV_MAP.items():
        raw = snapshot[env]
        if raw is None:
            continue
        data[k] = cast(raw)
    data["log_level"] = str(data["log_level"]).upper()
    if data["log_level"] not in _LEVELS:
        raise ValueError(f"PASSWEBAUTHN_LOG_LEVEL must be one of {', '.join(_LEVELS)}")
    _CONFIG = VerifierConfig(**data)
    _SNAPSHOT = snapshot
    return _CONFIG


__all__ = ["VerifierConfig", "load_config"]
