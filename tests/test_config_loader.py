"""Tests for configuration loading."""

import pytest

from payout_bot.core import config_loader
from payout_bot.core.config_loader import load_bot_token, load_config

OVERRIDE_VARS = ("API_BASE_URL", "REDIS_URL", "PUSHER_KEY", "PUSHER_CLUSTER", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in OVERRIDE_VARS + ("TELEGRAM_BOT_TOKEN",):
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the tests
    monkeypatch.setattr(config_loader, "load_dotenv", lambda *args, **kwargs: False)


def write_config(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_defaults_are_filled(tmp_path):
    config = load_config(write_config(tmp_path, "api:\n  base_url: https://api.test/api/\n"))

    assert config["api"]["base_url"] == "https://api.test/api"
    assert config["api"]["timeout"] == 30.0
    assert config["redis"]["url"] == "redis://localhost:6379"
    assert config["session"] == {"ttl_seconds": 86400, "key_prefix": "user_session:"}
    assert config["conversation"]["timeout_seconds"] == 300
    assert config["pusher"] == {"key": "", "cluster": "ap1"}
    assert config["history"]["page_size"] == 10


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")
    monkeypatch.setenv("PUSHER_KEY", "app-key")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    config = load_config(write_config(tmp_path, "redis:\n  url: redis://localhost:6379\n"))

    assert config["redis"]["url"] == "redis://cache:6379/1"
    assert config["pusher"]["key"] == "app-key"
    assert config["logging"]["level"] == "DEBUG"


@pytest.mark.parametrize("text", [
    "api:\n  base_url: ftp://nope\n",
    "session:\n  ttl_seconds: 0\n",
    "conversation:\n  timeout_seconds: soon\n",
    "api: [1, 2]\n",
])
def test_invalid_values_are_rejected(tmp_path, text):
    with pytest.raises(ValueError):
        load_config(write_config(tmp_path, text))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "absent.yaml"))


def test_bot_token_is_required(monkeypatch):
    with pytest.raises(ValueError, match="TELEGRAM_BOT_TOKEN"):
        load_bot_token()

    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    assert load_bot_token() == "123:abc"
