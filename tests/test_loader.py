import json

import pytest

from trading_console.config.loader import load_settings


def test_defaults_without_file(monkeypatch):
    monkeypatch.delenv("CONSOLE_BASE_URL", raising=False)
    settings = load_settings()
    assert settings.api.base_url == "http://localhost:3000"
    assert settings.api.timeout_seconds == 30
    assert settings.polling.price_interval_seconds == 1.0
    assert settings.polling.sync_interval_seconds == 60.0
    assert settings.limits.transactions == 20
    assert settings.limits.signals == 50
    assert settings.sync.change_detection == "ids"


def test_yaml_file_is_loaded(tmp_path):
    path = tmp_path / "console.yaml"
    path.write_text(
        "api:\n"
        "  base_url: http://trading.local:8080\n"
        "polling:\n"
        "  sync_interval_seconds: 30\n"
        "sync:\n"
        "  change_detection: content\n"
    )
    settings = load_settings(path)
    assert settings.api.base_url == "http://trading.local:8080"
    assert settings.polling.sync_interval_seconds == 30
    assert settings.polling.price_interval_seconds == 1.0
    assert settings.sync.change_detection == "content"


def test_json_file_is_loaded(tmp_path):
    path = tmp_path / "console.json"
    path.write_text(json.dumps({"limits": {"transactions": 5}}))
    assert load_settings(path).limits.transactions == 5


def test_missing_and_unsupported_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "absent.yaml")
    other = tmp_path / "console.ini"
    other.write_text("[api]")
    with pytest.raises(ValueError):
        load_settings(other)


def test_env_overrides_apply_and_bad_numbers_are_ignored(monkeypatch):
    monkeypatch.setenv("CONSOLE_BASE_URL", "http://env.local")
    monkeypatch.setenv("CONSOLE_SYNC_INTERVAL", "15")
    monkeypatch.setenv("CONSOLE_TIMEOUT", "not-a-number")
    settings = load_settings()
    assert settings.api.base_url == "http://env.local"
    assert settings.polling.sync_interval_seconds == 15.0
    assert settings.api.timeout_seconds == 30
