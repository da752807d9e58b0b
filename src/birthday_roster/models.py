from __future__ import annotations

from dataclasses import dataclass
from datetime import date

PersonId = int | str


@dataclass(frozen=True)
class PersonDraft:
    name: str
    day: int
    month: int


@dataclass(frozen=True)
class Record:
    person_id: PersonId
    name: str
    day: int
    month: int


@dataclass(frozen=True)
class RosterEntry:
    record: Record
    remaining_days: int
    next_birthday: date

    @property
    def person_id(self) -> PersonId:
        return self.record.person_id


@dataclass(frozen=True)
class AppConfig:
    api_base_url: str
    request_timeout_seconds: float
    max_retries: int
    leap_day_rule: str
