from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from birthday_roster.date_logic import (
    DEFAULT_LEAP_DAY_RULE,
    LEAP_DAY_RULES,
    days_until_birthday,
    next_birthday,
)
from birthday_roster.errors import InvariantViolation, NotFound, OperationResult
from birthday_roster.models import PersonId, Record, RosterEntry

LOGGER = logging.getLogger(__name__)

Snapshot = tuple[RosterEntry, ...]
SnapshotListener = Callable[[Snapshot], None]


class RosterStore:
    """In-memory roster ordered by days until each person's next birthday.

    The store never talks to the external record store. It only applies
    results that were already acknowledged there, in the order they arrive.
    Access must be serialized by the caller.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = datetime.now,
        leap_day_rule: str = DEFAULT_LEAP_DAY_RULE,
    ) -> None:
        if leap_day_rule not in LEAP_DAY_RULES:
            raise ValueError(f"leap_day_rule must be one of {sorted(LEAP_DAY_RULES)}")
        self._clock = clock
        self._leap_day_rule = leap_day_rule
        self._records: dict[PersonId, Record] = {}
        self._order: list[PersonId] = []
        self._listeners: list[SnapshotListener] = []

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, person_id: object) -> bool:
        return person_id in self._records

    def get(self, person_id: PersonId) -> Record | None:
        return self._records.get(person_id)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def load(self, records: Iterable[Record]) -> None:
        records_by_id: dict[PersonId, Record] = {}
        order: list[PersonId] = []
        for record in records:
            if record.person_id not in records_by_id:
                order.append(record.person_id)
            else:
                LOGGER.warning("Duplicate id %r in loaded records; keeping the last one", record.person_id)
            records_by_id[record.person_id] = record

        self._records = records_by_id
        self._order = order
        LOGGER.info("Loaded %s records", len(order))
        self._notify()

    def insert(self, record: Record) -> OperationResult:
        if record.person_id in self._records:
            LOGGER.warning("Insert of id %r that is already in the roster", record.person_id)
            return OperationResult.failure(
                InvariantViolation(f"Person id {record.person_id!r} is already in the roster")
            )

        self._records[record.person_id] = record
        self._order.append(record.person_id)
        self._notify()
        return OperationResult.success(record)

    def replace(self, record: Record) -> OperationResult:
        if record.person_id not in self._records:
            LOGGER.warning("Replace of id %r that is not in the roster", record.person_id)
            return OperationResult.failure(NotFound(record.person_id))

        self._records[record.person_id] = record
        self._notify()
        return OperationResult.success(record)

    def remove(self, person_id: PersonId) -> OperationResult:
        if self._records.pop(person_id, None) is None:
            return OperationResult.success()

        self._order.remove(person_id)
        self._notify()
        return OperationResult.success()

    def snapshot(self, now: datetime | None = None) -> Snapshot:
        current = now if now is not None else self._clock()
        entries: dict[PersonId, RosterEntry] = {}
        for person_id in self._order:
            record = self._records[person_id]
            entries[person_id] = RosterEntry(
                record=record,
                remaining_days=days_until_birthday(record.day, record.month, current, self._leap_day_rule),
                next_birthday=next_birthday(record.day, record.month, current, self._leap_day_rule),
            )

        # list.sort is stable, so ties keep their previous relative order.
        self._order.sort(key=lambda person_id: entries[person_id].remaining_days)
        return tuple(entries[person_id] for person_id in self._order)

    def _notify(self) -> None:
        if not self._listeners:
            return
        current = self.snapshot()
        for listener in list(self._listeners):
            # The change is already applied; a failing listener must not hide that.
            try:
                listener(current)
            except Exception:
                LOGGER.exception("Snapshot listener %r failed", listener)
