from pathlib import Path

import pytest

from birthday_roster.settings import load_settings

REQUIRED = {
    "TELEGRAM_BOT_TOKEN": "token",
    "TELEGRAM_ALLOWED_USER_ID": "111",
    "TELEGRAM_ALLOWED_CHAT_ID": "-222",
}


def _set_required(monkeypatch: pytest.MonkeyPatch) -> None:
    for key, value in REQUIRED.items():
        monkeypatch.setenv(key, value)


def test_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    _set_required(monkeypatch)
    monkeypatch.delenv("ROSTER_CONFIG_PATH", raising=False)
    monkeypatch.delenv("ROSTER_API_BASE_URL", raising=False)

    settings = load_settings()

    assert settings.telegram_allowed_chat_id == -222
    assert settings.roster_config_path == tmp_path / "config" / "roster.toml"
    assert settings.api_base_url_override is None


def test_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _set_required(monkeypatch)
    monkeypatch.setenv("ROSTER_CONFIG_PATH", str(tmp_path / "custom.toml"))
    monkeypatch.setenv("ROSTER_API_BASE_URL", " http://10.0.0.5:9000 ")

    settings = load_settings()

    assert settings.roster_config_path == tmp_path / "custom.toml"
    assert settings.api_base_url_override == "http://10.0.0.5:9000"


def test_blank_base_url_means_no_override(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_required(monkeypatch)
    monkeypatch.setenv("ROSTER_API_BASE_URL", "   ")

    assert load_settings().api_base_url_override is None


def test_missing_token_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_required(monkeypatch)
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN")

    with pytest.raises(ValueError, match="TELEGRAM_BOT_TOKEN"):
        load_settings()


def test_non_integer_user_id_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_required(monkeypatch)
    monkeypatch.setenv("TELEGRAM_ALLOWED_USER_ID", "owner")

    with pytest.raises(ValueError, match="TELEGRAM_ALLOWED_USER_ID"):
        load_settings()
