import json

import pytest

from tgmcp.config import Config, load_config
from tgmcp.config.loader import save_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("API_ID", "API_HASH", "SESSION_PATH", "HOST", "PORT"):
        monkeypatch.delenv(var, raising=False)
    for var in ("TGMCP_TELEGRAM__API_ID", "TGMCP_TELEGRAM__API_HASH", "TGMCP_GATEWAY__PORT"):
        monkeypatch.delenv(var, raising=False)


def test_defaults_when_file_missing(tmp_path):
    config = load_config(tmp_path / "missing.json", use_dotenv=False)
    assert config.gateway.port == 3000
    assert config.auth.max_password_attempts == 3
    assert config.credentials is None


def test_reads_camel_case_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "telegram": {"apiId": 42, "apiHash": "abc"},
        "startup": {"verifyTimeoutS": 5, "offerLogin": True},
        "sessions": {"path": str(tmp_path / "s")},
    }))

    config = load_config(path, use_dotenv=False)

    assert config.credentials.api_id == 42
    assert config.startup.verify_timeout_s == 5
    assert config.startup.offer_login is True
    assert config.sessions_path == tmp_path / "s"


def test_legacy_environment_fills_missing_values(tmp_path, monkeypatch):
    monkeypatch.setenv("API_ID", "7")
    monkeypatch.setenv("API_HASH", "legacy")
    monkeypatch.setenv("PORT", "8080")
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"telegram": {"apiHash": "from-file"}}))

    config = load_config(path, use_dotenv=False)

    assert config.telegram.api_id == 7
    assert config.telegram.api_hash == "from-file"
    assert config.gateway.port == 8080


def test_prefixed_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("TGMCP_GATEWAY__PORT", "9000")
    config = load_config(tmp_path / "missing.json", use_dotenv=False)
    assert config.gateway.port == 9000


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{oops")
    config = load_config(path, use_dotenv=False)
    assert config.gateway.host == "localhost"


def test_save_writes_camel_case(tmp_path):
    path = tmp_path / "nested" / "config.json"
    config = Config(telegram={"api_id": 1, "api_hash": "h"})

    save_config(config, path)

    data = json.loads(path.read_text())
    assert data["telegram"]["apiId"] == 1
    assert "maxPasswordAttempts" in data["auth"]
    assert load_config(path, use_dotenv=False).credentials.api_hash == "h"


def test_password_attempts_must_be_positive():
    with pytest.raises(ValueError):
        Config(auth={"max_password_attempts": 0})


def test_invalid_values_fall_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("API_ID", "not-a-number")

    config = load_config(tmp_path / "missing.json", use_dotenv=False)

    assert config.credentials is None
    assert config.gateway.port == 3000
    assert config.auth.max_password_attempts == 3


def test_file_values_take_precedence_over_prefixed_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("TGMCP_GATEWAY__PORT", "9000")
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"gateway": {"port": 4000}}))

    assert load_config(path, use_dotenv=False).gateway.port == 4000
