from __future__ import annotations

import os
import tempfile
import tomllib
from dataclasses import replace
from pathlib import Path

from birthday_roster.date_logic import DEFAULT_LEAP_DAY_RULE, LEAP_DAY_RULES
from birthday_roster.models import AppConfig

DEFAULT_API_BASE_URL = "http://localhost:8080"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_RETRIES = 3


def _toml_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _parse_base_url(value: str) -> str:
    url = value.strip().rstrip("/")
    if not url:
        raise ValueError("api_base_url must not be empty")
    if not url.startswith(("http://", "https://")):
        raise ValueError("api_base_url must start with http:// or https://")
    return url


def validate_config(config: AppConfig) -> AppConfig:
    api_base_url = _parse_base_url(config.api_base_url)

    timeout = float(config.request_timeout_seconds)
    if timeout <= 0:
        raise ValueError("request_timeout_seconds must be positive")

    if not isinstance(config.max_retries, int) or config.max_retries < 0:
        raise ValueError("max_retries must be a non-negative integer")

    leap_day_rule = config.leap_day_rule.strip().lower()
    if leap_day_rule not in LEAP_DAY_RULES:
        raise ValueError(f"leap_day_rule must be one of {sorted(LEAP_DAY_RULES)}")

    return AppConfig(
        api_base_url=api_base_url,
        request_timeout_seconds=timeout,
        max_retries=config.max_retries,
        leap_day_rule=leap_day_rule,
    )


def load_config(path: Path) -> AppConfig:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("rb") as file_obj:
        data = tomllib.load(file_obj)

    config = AppConfig(
        api_base_url=str(data.get("api_base_url", DEFAULT_API_BASE_URL)),
        request_timeout_seconds=float(data.get("request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT_SECONDS)),
        max_retries=int(data.get("max_retries", DEFAULT_MAX_RETRIES)),
        leap_day_rule=str(data.get("leap_day_rule", DEFAULT_LEAP_DAY_RULE)),
    )
    return validate_config(config)


def render_config(config: AppConfig) -> str:
    validated = validate_config(config)

    lines = [
        f'api_base_url = "{_toml_escape(validated.api_base_url)}"',
        f"request_timeout_seconds = {validated.request_timeout_seconds}",
        f"max_retries = {validated.max_retries}",
        "",
        "# Where Feb 29 birthdays fall in non-leap years: feb28 or mar1.",
        f'leap_day_rule = "{validated.leap_day_rule}"',
    ]
    return "\n".join(lines) + "\n"


def save_config_atomic(path: Path, config: AppConfig) -> None:
    rendered = render_config(config)
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        delete=False,
    ) as temp_file:
        temp_file.write(rendered)
        temp_name = temp_file.name

    os.replace(temp_name, path)


def ensure_default_config(path: Path) -> None:
    if path.exists():
        return

    default_config = AppConfig(
        api_base_url=DEFAULT_API_BASE_URL,
        request_timeout_seconds=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        max_retries=DEFAULT_MAX_RETRIES,
        leap_day_rule=DEFAULT_LEAP_DAY_RULE,
    )
    save_config_atomic(path, default_config)


def with_api_base_url(config: AppConfig, api_base_url: str | None) -> AppConfig:
    if api_base_url is None:
        return config
    return validate_config(replace(config, api_base_url=api_base_url))
