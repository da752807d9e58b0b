from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from birthday_roster.date_logic import validate_month_day
from birthday_roster.errors import ExternalOperationFailed, OperationResult, ValidationError
from birthday_roster.models import PersonDraft, PersonId, Record
from birthday_roster.roster_store import RosterStore, Snapshot

LOGGER = logging.getLogger(__name__)


class PersonsGateway(Protocol):
    def fetch_all(self) -> list[Record]: ...

    def create(self, draft: PersonDraft) -> Record: ...

    def update(self, record: Record) -> Record: ...

    def delete(self, person_id: PersonId) -> None: ...


def validate_person_fields(name: str, day: int, month: int) -> PersonDraft:
    cleaned = name.strip()
    if not cleaned:
        raise ValidationError("Name must not be empty")
    validate_month_day(month, day, allow_feb_29=True)
    return PersonDraft(name=cleaned, day=day, month=month)


class RosterService:
    """Runs gateway calls in a worker thread and applies their results to the store.

    Store reconciliation happens back on the event loop, so the store is only
    ever touched from one thread.
    """

    def __init__(self, *, gateway: PersonsGateway, store: RosterStore) -> None:
        self._gateway = gateway
        self._store = store

    @property
    def store(self) -> RosterStore:
        return self._store

    def snapshot(self) -> Snapshot:
        return self._store.snapshot()

    async def refresh(self) -> OperationResult:
        try:
            records = await asyncio.to_thread(self._gateway.fetch_all)
        except ExternalOperationFailed as exc:
            return OperationResult.failure(exc)

        self._store.load(records)
        return OperationResult.success(len(records))

    async def add_person(self, name: str, day: int, month: int) -> OperationResult:
        try:
            draft = validate_person_fields(name, day, month)
        except ValidationError as exc:
            return OperationResult.failure(exc)

        try:
            created = await asyncio.to_thread(self._gateway.create, draft)
        except ExternalOperationFailed as exc:
            return OperationResult.failure(exc)

        result = self._store.insert(created)
        if result.ok:
            LOGGER.info("Added %s (id %r)", created.name, created.person_id)
        return result

    async def edit_person(self, person_id: PersonId, name: str, day: int, month: int) -> OperationResult:
        try:
            draft = validate_person_fields(name, day, month)
        except ValidationError as exc:
            return OperationResult.failure(exc)

        record = Record(person_id=person_id, name=draft.name, day=draft.day, month=draft.month)
        try:
            updated = await asyncio.to_thread(self._gateway.update, record)
        except ExternalOperationFailed as exc:
            return OperationResult.failure(exc)

        result = self._store.replace(updated)
        if result.ok:
            LOGGER.info("Updated %s (id %r)", updated.name, updated.person_id)
        return result

    async def delete_person(self, person_id: PersonId) -> OperationResult:
        try:
            await asyncio.to_thread(self._gateway.delete, person_id)
        except ExternalOperationFailed as exc:
            return OperationResult.failure(exc)

        LOGGER.info("Deleted id %r", person_id)
        return self._store.remove(person_id)
