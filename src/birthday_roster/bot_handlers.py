from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from telegram import Update
from telegram.ext import (
    CallbackContext,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)

from birthday_roster.date_logic import validate_month_day
from birthday_roster.errors import ExternalOperationFailed, OperationResult
from birthday_roster.models import RosterEntry
from birthday_roster.roster_service import RosterService
from birthday_roster.settings import Settings

LOGGER = logging.getLogger(__name__)

(
    STATE_ADD_NAME,
    STATE_ADD_BIRTHDAY,
    STATE_ADD_CONFIRM,
    STATE_EDIT_SELECT,
    STATE_EDIT_NAME,
    STATE_EDIT_BIRTHDAY,
    STATE_EDIT_CONFIRM,
    STATE_DELETE_SELECT,
    STATE_DELETE_CONFIRM,
) = range(9)

PENDING_ADD_KEY = "pending_add_person"
PENDING_EDIT_KEY = "pending_edit_person"
PENDING_DELETE_KEY = "pending_delete_person"

YES_ANSWERS = {"yes", "y"}
NO_ANSWERS = {"no", "n"}


@dataclass(frozen=True)
class HandlerDependencies:
    settings: Settings
    service: RosterService


def is_authorized(update: Update, settings: Settings) -> bool:
    effective_user = update.effective_user
    effective_chat = update.effective_chat
    if effective_user is None or effective_chat is None:
        return False
    return (
        effective_user.id == settings.telegram_allowed_user_id
        and effective_chat.id == settings.telegram_allowed_chat_id
    )


async def _deny_unauthorized(update: Update) -> None:
    if update.effective_message:
        await update.effective_message.reply_text("This bot is restricted to its configured owner.")


def parse_birthday_text(raw_text: str) -> tuple[int, int]:
    match = re.fullmatch(r"(\d{1,2})\s*[/.-]\s*(\d{1,2})", raw_text.strip())
    if not match:
        raise ValueError("Birthday must use D/M, for example 31/12")

    day = int(match.group(1))
    month = int(match.group(2))
    validate_month_day(month, day, allow_feb_29=True)
    return day, month


def _format_birthday(day: int, month: int) -> str:
    return f"{day}/{month}"


def _format_remaining(days: int) -> str:
    if days == 0:
        return "Birthday is today"
    suffix = "" if days == 1 else "s"
    return f"{days} day{suffix} until next birthday"


def _render_help() -> str:
    return (
        "Commands:\n"
        "/list - Show everyone, soonest birthday first\n"
        "/add - Add a person\n"
        "/edit - Edit a person\n"
        "/delete - Delete a person\n"
        "/refresh - Reload the list from the server\n"
        "/help - Show this help message\n"
        "/cancel - Cancel the active wizard\n\n"
        "Birthday format: D/M, for example 31/12"
    )


def _render_list_message(entries: tuple[RosterEntry, ...]) -> str:
    lines = [f"Birthdays ({len(entries)})", "Sorted by soonest:"]

    for index, entry in enumerate(entries, start=1):
        record = entry.record
        lines.append(f"{index}. {record.name}")
        lines.append(
            f"   Birthday {_format_birthday(record.day, record.month)} | {_format_remaining(entry.remaining_days)}"
        )
        lines.append("")

    return "\n".join(lines).rstrip()


def _render_selection(entries: tuple[RosterEntry, ...], heading: str) -> str:
    lines = [heading]
    for index, entry in enumerate(entries, start=1):
        record = entry.record
        lines.append(f"{index}. {record.name} | {_format_birthday(record.day, record.month)}")
    return "\n".join(lines)


def _describe_failure(result: OperationResult) -> str:
    error = result.error
    if isinstance(error, ExternalOperationFailed):
        return f"The server could not complete the {error.operation}. Nothing was changed."
    if result.needs_resync:
        return "The local list was out of sync with the server."
    return str(error)


def _selected_id(raw_text: str, choices: list[Any]) -> Any | None:
    value = raw_text.strip()
    if not value.isdigit():
        return None
    selected = int(value)
    if selected < 1 or selected > len(choices):
        return None
    return choices[selected - 1]


def _is_skip(value: str) -> bool:
    return value.strip().lower() in {"skip", "keep", "same"}


async def _report_failure(update: Update, service: RosterService, result: OperationResult) -> None:
    message = _describe_failure(result)
    if result.needs_resync:
        reload_result = await service.refresh()
        if reload_result.ok:
            message += " It has been reloaded; check /list."
        else:
            message += " Reloading also failed; try /refresh later."
    await update.effective_message.reply_text(message)


async def help_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return
    await update.effective_message.reply_text(_render_help())


async def list_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return

    entries = deps.service.snapshot()
    if not entries:
        await update.effective_message.reply_text("No birthdays are currently tracked.")
        return
    await update.effective_message.reply_text(_render_list_message(entries))


async def refresh_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return

    result = await deps.service.refresh()
    if not result.ok:
        await _report_failure(update, deps.service, result)
        return
    await update.effective_message.reply_text(f"Reloaded {result.value} people from the server.")


async def add_start(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    context.user_data[PENDING_ADD_KEY] = {}
    await update.effective_message.reply_text("Add person wizard started.\nStep 1/3: Send the person's name.")
    return STATE_ADD_NAME


async def add_name(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    name = (update.effective_message.text or "").strip()
    if not name:
        await update.effective_message.reply_text("Name cannot be empty. Please send a name.")
        return STATE_ADD_NAME

    context.user_data[PENDING_ADD_KEY] = {"name": name}
    await update.effective_message.reply_text("Step 2/3: Send the birthday as D/M, for example 31/12.")
    return STATE_ADD_BIRTHDAY


async def add_birthday(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    try:
        day, month = parse_birthday_text(update.effective_message.text or "")
    except ValueError as exc:
        await update.effective_message.reply_text(f"{exc}. Please send D/M.")
        return STATE_ADD_BIRTHDAY

    pending = context.user_data.get(PENDING_ADD_KEY, {})
    pending.update({"day": day, "month": month})
    context.user_data[PENDING_ADD_KEY] = pending

    await update.effective_message.reply_text(
        "Step 3/3: Confirm this person:\n"
        f"Name: {pending.get('name')}\n"
        f"Birthday: {_format_birthday(day, month)}\n\n"
        "Reply with yes to save, or no to cancel."
    )
    return STATE_ADD_CONFIRM


async def add_confirm(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    decision = (update.effective_message.text or "").strip().lower()
    if decision not in YES_ANSWERS | NO_ANSWERS:
        await update.effective_message.reply_text("Please reply with yes or no.")
        return STATE_ADD_CONFIRM

    pending = context.user_data.pop(PENDING_ADD_KEY, None) or {}
    if decision in NO_ANSWERS:
        await update.effective_message.reply_text("Canceled. No changes were made.")
        return ConversationHandler.END

    if "month" not in pending:
        await update.effective_message.reply_text("Add session expired. Send /add to start again.")
        return ConversationHandler.END

    result = await deps.service.add_person(str(pending["name"]), int(pending["day"]), int(pending["month"]))
    if not result.ok:
        await _report_failure(update, deps.service, result)
        return ConversationHandler.END

    await update.effective_message.reply_text(f"Added {result.value.name}.")
    return ConversationHandler.END


async def edit_start(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    entries = deps.service.snapshot()
    if not entries:
        await update.effective_message.reply_text("No birthdays are currently tracked.")
        return ConversationHandler.END

    context.user_data[PENDING_EDIT_KEY] = {"choices": [entry.person_id for entry in entries]}
    await update.effective_message.reply_text(
        _render_selection(entries, "Edit person wizard started.\nStep 1/4: Reply with the number to edit:")
    )
    return STATE_EDIT_SELECT


async def edit_select(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    pending = context.user_data.get(PENDING_EDIT_KEY) or {}
    choices = pending.get("choices", [])
    person_id = _selected_id(update.effective_message.text or "", choices)
    if person_id is None:
        await update.effective_message.reply_text(f"Please send a number between 1 and {len(choices)}.")
        return STATE_EDIT_SELECT

    record = deps.service.store.get(person_id)
    if record is None:
        context.user_data.pop(PENDING_EDIT_KEY, None)
        await update.effective_message.reply_text("That person is no longer listed. Send /edit to start again.")
        return ConversationHandler.END

    context.user_data[PENDING_EDIT_KEY] = {
        "person_id": record.person_id,
        "original_name": record.name,
        "original_day": record.day,
        "original_month": record.month,
        "name": record.name,
        "day": record.day,
        "month": record.month,
    }
    await update.effective_message.reply_text(f'Step 2/4: Send a new name, or skip to keep "{record.name}".')
    return STATE_EDIT_NAME


async def edit_name(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    pending = context.user_data.get(PENDING_EDIT_KEY)
    if not isinstance(pending, dict) or "person_id" not in pending:
        await update.effective_message.reply_text("Edit session expired. Send /edit to start again.")
        return ConversationHandler.END

    raw_text = (update.effective_message.text or "").strip()
    if not _is_skip(raw_text):
        if not raw_text:
            await update.effective_message.reply_text("Name cannot be empty. Send a name or skip.")
            return STATE_EDIT_NAME
        pending["name"] = raw_text

    await update.effective_message.reply_text(
        "Step 3/4: Send a new birthday as D/M,\n"
        f"or skip to keep {_format_birthday(int(pending['day']), int(pending['month']))}."
    )
    return STATE_EDIT_BIRTHDAY


async def edit_birthday(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    pending = context.user_data.get(PENDING_EDIT_KEY)
    if not isinstance(pending, dict) or "person_id" not in pending:
        await update.effective_message.reply_text("Edit session expired. Send /edit to start again.")
        return ConversationHandler.END

    raw_text = (update.effective_message.text or "").strip()
    if not _is_skip(raw_text):
        try:
            day, month = parse_birthday_text(raw_text)
        except ValueError as exc:
            await update.effective_message.reply_text(f"{exc}. Please send D/M, or skip.")
            return STATE_EDIT_BIRTHDAY
        pending["day"] = day
        pending["month"] = month

    original = _format_birthday(int(pending["original_day"]), int(pending["original_month"]))
    updated = _format_birthday(int(pending["day"]), int(pending["month"]))
    await update.effective_message.reply_text(
        "Step 4/4: Confirm these edits:\n"
        f"Name: {pending['original_name']} -> {pending['name']}\n"
        f"Birthday: {original} -> {updated}\n\n"
        "Reply with yes to save, or no to cancel."
    )
    return STATE_EDIT_CONFIRM


async def edit_confirm(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    pending = context.user_data.get(PENDING_EDIT_KEY)
    if not isinstance(pending, dict) or "person_id" not in pending:
        await update.effective_message.reply_text("Edit session expired. Send /edit to start again.")
        return ConversationHandler.END

    decision = (update.effective_message.text or "").strip().lower()
    if decision not in YES_ANSWERS | NO_ANSWERS:
        await update.effective_message.reply_text("Please reply with yes or no.")
        return STATE_EDIT_CONFIRM

    context.user_data.pop(PENDING_EDIT_KEY, None)
    if decision in NO_ANSWERS:
        await update.effective_message.reply_text("Canceled. No changes were made.")
        return ConversationHandler.END

    result = await deps.service.edit_person(
        pending["person_id"],
        str(pending["name"]),
        int(pending["day"]),
        int(pending["month"]),
    )
    if not result.ok:
        await _report_failure(update, deps.service, result)
        return ConversationHandler.END

    await update.effective_message.reply_text(f"Updated {result.value.name}.")
    return ConversationHandler.END


async def delete_start(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    entries = deps.service.snapshot()
    if not entries:
        await update.effective_message.reply_text("No birthdays are currently tracked.")
        return ConversationHandler.END

    context.user_data[PENDING_DELETE_KEY] = {"choices": [entry.person_id for entry in entries]}
    await update.effective_message.reply_text(
        _render_selection(entries, "Delete person wizard started.\nStep 1/2: Reply with the number to delete:")
    )
    return STATE_DELETE_SELECT


async def delete_select(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    pending = context.user_data.get(PENDING_DELETE_KEY) or {}
    choices = pending.get("choices", [])
    person_id = _selected_id(update.effective_message.text or "", choices)
    if person_id is None:
        await update.effective_message.reply_text(f"Please send a number between 1 and {len(choices)}.")
        return STATE_DELETE_SELECT

    record = deps.service.store.get(person_id)
    name = record.name if record is not None else str(person_id)
    context.user_data[PENDING_DELETE_KEY] = {"person_id": person_id, "name": name}
    await update.effective_message.reply_text(
        f"Step 2/2: Delete {name}?\nReply with yes to delete, or no to cancel."
    )
    return STATE_DELETE_CONFIRM


async def delete_confirm(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    pending = context.user_data.get(PENDING_DELETE_KEY)
    if not isinstance(pending, dict) or "person_id" not in pending:
        await update.effective_message.reply_text("Delete session expired. Send /delete to start again.")
        return ConversationHandler.END

    decision = (update.effective_message.text or "").strip().lower()
    if decision not in YES_ANSWERS | NO_ANSWERS:
        await update.effective_message.reply_text("Please reply with yes or no.")
        return STATE_DELETE_CONFIRM

    context.user_data.pop(PENDING_DELETE_KEY, None)
    if decision in NO_ANSWERS:
        await update.effective_message.reply_text("Canceled. No changes were made.")
        return ConversationHandler.END

    result = await deps.service.delete_person(pending["person_id"])
    if not result.ok:
        await _report_failure(update, deps.service, result)
        return ConversationHandler.END

    await update.effective_message.reply_text(f"Deleted {pending['name']}.")
    return ConversationHandler.END


async def cancel_command(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    for key in (PENDING_ADD_KEY, PENDING_EDIT_KEY, PENDING_DELETE_KEY):
        context.user_data.pop(key, None)
    await update.effective_message.reply_text("Wizard canceled.")
    return ConversationHandler.END


def _text_step(callback) -> list[MessageHandler]:
    return [MessageHandler(filters.TEXT & ~filters.COMMAND, callback)]


def build_handlers() -> list:
    add_conversation = ConversationHandler(
        entry_points=[CommandHandler("add", add_start)],
        states={
            STATE_ADD_NAME: _text_step(add_name),
            STATE_ADD_BIRTHDAY: _text_step(add_birthday),
            STATE_ADD_CONFIRM: _text_step(add_confirm),
        },
        fallbacks=[CommandHandler("cancel", cancel_command)],
        name="add_person_conversation",
        persistent=False,
    )

    edit_conversation = ConversationHandler(
        entry_points=[CommandHandler("edit", edit_start)],
        states={
            STATE_EDIT_SELECT: _text_step(edit_select),
            STATE_EDIT_NAME: _text_step(edit_name),
            STATE_EDIT_BIRTHDAY: _text_step(edit_birthday),
            STATE_EDIT_CONFIRM: _text_step(edit_confirm),
        },
        fallbacks=[CommandHandler("cancel", cancel_command)],
        name="edit_person_conversation",
        persistent=False,
    )

    delete_conversation = ConversationHandler(
        entry_points=[CommandHandler("delete", delete_start)],
        states={
            STATE_DELETE_SELECT: _text_step(delete_select),
            STATE_DELETE_CONFIRM: _text_step(delete_confirm),
        },
        fallbacks=[CommandHandler("cancel", cancel_command)],
        name="delete_person_conversation",
        persistent=False,
    )

    return [
        CommandHandler("help", help_command),
        CommandHandler("list", list_command),
        CommandHandler("refresh", refresh_command),
        CommandHandler("cancel", cancel_command),
        add_conversation,
        edit_conversation,
        delete_conversation,
    ]
