import pytest

from passwebauthn.config import load_config


def test_defaults(monkeypatch):
    for env in ("PASSWEBAUTHN_LOG_LEVEL", "PASSWEBAUTHN_AUTHORITY"):
        monkeypatch.delenv(env, raising=False)
    cfg = load_config()
    assert cfg.log_level == "INFO"
    assert cfg.authority == ""


def test_env_overrides_are_picked_up(monkeypatch):
    monkeypatch.setenv("PASSWEBAUTHN_LOG_LEVEL", "debug")
    monkeypatch.setenv("PASSWEBAUTHN_AUTHORITY", "svc")
    cfg = load_config()
    assert cfg.log_level == "DEBUG"
    assert cfg.authority == "svc"
    monkeypatch.setenv("PASSWEBAUTHN_AUTHORITY", "pass_web")
    assert load_config().authority == "pass_web"


@pytest.mark.parametrize("value", ["loud", "", "TRACE"])
def test_invalid_log_level(monkeypatch, value):
    monkeypatch.setenv("PASSWEBAUTHN_LOG_LEVEL", value)
    with pytest.raises(ValueError):
        load_config()
