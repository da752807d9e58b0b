from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str
    telegram_allowed_user_id: int
    telegram_allowed_chat_id: int
    roster_config_path: Path
    # Takes precedence over api_base_url in roster.toml when set.
    api_base_url_override: str | None = None


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        raise ValueError(f"Missing required environment variable: {name}")
    return value.strip()


def _optional_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _int_env(name: str) -> int:
    raw = _required_env(name)
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}") from exc


def load_settings() -> Settings:
    root = Path.cwd()

    return Settings(
        telegram_bot_token=_required_env("TELEGRAM_BOT_TOKEN"),
        telegram_allowed_user_id=_int_env("TELEGRAM_ALLOWED_USER_ID"),
        telegram_allowed_chat_id=_int_env("TELEGRAM_ALLOWED_CHAT_ID"),
        roster_config_path=Path(os.getenv("ROSTER_CONFIG_PATH", root / "config" / "roster.toml")),
        api_base_url_override=_optional_env("ROSTER_API_BASE_URL"),
    )
