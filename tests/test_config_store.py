from pathlib import Path

import pytest

from birthday_roster.config_store import ensure_default_config, load_config, save_config_atomic, with_api_base_url
from birthday_roster.models import AppConfig


def test_roundtrip_config(tmp_path: Path) -> None:
    path = tmp_path / "roster.toml"
    config = AppConfig(
        api_base_url="https://persons.example.org/",
        request_timeout_seconds=2.5,
        max_retries=1,
        leap_day_rule="mar1",
    )

    save_config_atomic(path, config)
    loaded = load_config(path)

    assert loaded.api_base_url == "https://persons.example.org"
    assert loaded.request_timeout_seconds == 2.5
    assert loaded.max_retries == 1
    assert loaded.leap_day_rule == "mar1"


def test_ensure_default_config_writes_once(tmp_path: Path) -> None:
    path = tmp_path / "config" / "roster.toml"

    ensure_default_config(path)
    loaded = load_config(path)
    assert loaded.api_base_url == "http://localhost:8080"
    assert loaded.leap_day_rule == "feb28"

    path.write_text('api_base_url = "http://10.0.0.5:9000"\n', encoding="utf-8")
    ensure_default_config(path)
    assert load_config(path).api_base_url == "http://10.0.0.5:9000"


def test_missing_keys_use_defaults(tmp_path: Path) -> None:
    path = tmp_path / "roster.toml"
    path.write_text("", encoding="utf-8")

    loaded = load_config(path)

    assert loaded.request_timeout_seconds == 10.0
    assert loaded.max_retries == 3


@pytest.mark.parametrize(
    "body",
    [
        'api_base_url = "ftp://nope"\n',
        'api_base_url = "   "\n',
        "request_timeout_seconds = 0\n",
        "max_retries = -1\n",
        'leap_day_rule = "never"\n',
    ],
)
def test_invalid_values_rejected(tmp_path: Path, body: str) -> None:
    path = tmp_path / "roster.toml"
    path.write_text(body, encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(path)


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.toml")


def test_api_base_url_override(tmp_path: Path) -> None:
    path = tmp_path / "roster.toml"
    ensure_default_config(path)
    config = load_config(path)

    assert with_api_base_url(config, None) is config
    assert with_api_base_url(config, "https://persons.internal/").api_base_url == "https://persons.internal"
    with pytest.raises(ValueError):
        with_api_base_url(config, "persons.internal")
