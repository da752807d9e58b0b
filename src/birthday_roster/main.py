from __future__ import annotations

import logging
from pathlib import Path

from telegram.ext import Application

from birthday_roster.api_client import PersonsClient
from birthday_roster.bot_handlers import HandlerDependencies, build_handlers
from birthday_roster.config_store import ensure_default_config, load_config, with_api_base_url
from birthday_roster.roster_service import RosterService
from birthday_roster.roster_store import RosterStore, Snapshot
from birthday_roster.settings import load_settings

LOGGER = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _log_snapshot(entries: Snapshot) -> None:
    if entries:
        first = entries[0]
        LOGGER.debug(
            "Roster now has %s people; next up %s in %s days",
            len(entries),
            first.record.name,
            first.remaining_days,
        )
    else:
        LOGGER.debug("Roster is empty")


async def initial_load(application: Application) -> None:
    deps: HandlerDependencies = application.bot_data["handler_deps"]
    result = await deps.service.refresh()
    if not result.ok:
        LOGGER.warning("Initial roster load failed: %s", result.error)


def build_service(config_path: Path, *, api_base_url: str | None = None) -> RosterService:
    ensure_default_config(config_path)
    config = with_api_base_url(load_config(config_path), api_base_url)

    client = PersonsClient(
        config.api_base_url,
        timeout=config.request_timeout_seconds,
        max_retries=config.max_retries,
    )
    store = RosterStore(leap_day_rule=config.leap_day_rule)
    store.subscribe(_log_snapshot)
    return RosterService(gateway=client, store=store)


def main() -> None:
    configure_logging()

    settings = load_settings()
    service = build_service(settings.roster_config_path, api_base_url=settings.api_base_url_override)

    application = Application.builder().token(settings.telegram_bot_token).post_init(initial_load).build()
    application.bot_data["settings"] = settings
    application.bot_data["handler_deps"] = HandlerDependencies(settings=settings, service=service)

    for handler in build_handlers():
        application.add_handler(handler)

    application.run_polling()


if __name__ == "__main__":
    main()
