"""HTTP client for the persons API that owns the authoritative records."""

from __future__ import annotations

import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from birthday_roster.date_logic import validate_month_day
from birthday_roster.errors import ExternalOperationFailed, ValidationError
from birthday_roster.models import PersonDraft, PersonId, Record

LOGGER = logging.getLogger(__name__)


def _whole_number(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Person payload {field_name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"Person payload {field_name} must be a whole number")
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(f"Person payload {field_name} must be an integer")


def record_from_payload(payload: Any) -> Record:
    if not isinstance(payload, dict):
        raise ValidationError("Person payload must be a JSON object")

    person_id = payload.get("id")
    if person_id is None or isinstance(person_id, bool) or not isinstance(person_id, (int, str)):
        raise ValidationError("Person payload is missing a usable id")

    name = str(payload.get("name") or "").strip()
    if not name:
        raise ValidationError("Person payload has an empty name")

    day = _whole_number(payload.get("day"), "day")
    month = _whole_number(payload.get("month"), "month")

    validate_month_day(month, day, allow_feb_29=True)
    return Record(person_id=person_id, name=name, day=day, month=month)


def payload_from_draft(draft: PersonDraft) -> dict[str, Any]:
    return {"name": draft.name, "day": draft.day, "month": draft.month}


def payload_from_record(record: Record) -> dict[str, Any]:
    return {"id": record.person_id, "name": record.name, "day": record.day, "month": record.month}


class PersonsClient:
    """Thin wrapper over the persons CRUD endpoints.

    Every failure, transport or payload, surfaces as ExternalOperationFailed.
    Retries for idempotent requests are left to the session adapter.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        max_retries: int = 3,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.strip().rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else self._create_session(max_retries)

    @staticmethod
    def _create_session(max_retries: int) -> requests.Session:
        session = requests.Session()

        # POST is not in Retry's default allowed_methods, so creates are never replayed.
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({"Accept": "application/json"})
        return session

    def _request(self, operation: str, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            LOGGER.warning("%s %s returned HTTP %s", method, url, status)
            raise ExternalOperationFailed(operation, str(exc), status_code=status) from exc
        except requests.RequestException as exc:
            LOGGER.warning("%s %s failed: %s", method, url, exc)
            raise ExternalOperationFailed(operation, str(exc)) from exc
        return response

    @staticmethod
    def _json(operation: str, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ExternalOperationFailed(operation, "response body is not valid JSON") from exc

    def fetch_all(self) -> list[Record]:
        response = self._request("fetch", "GET", "/api/persons/all")
        data = self._json("fetch", response)
        if not isinstance(data, list):
            raise ExternalOperationFailed("fetch", "expected a JSON array of persons")
        try:
            return [record_from_payload(item) for item in data]
        except ValidationError as exc:
            raise ExternalOperationFailed("fetch", str(exc)) from exc

    def create(self, draft: PersonDraft) -> Record:
        response = self._request("create", "POST", "/api/persons/add", json=payload_from_draft(draft))
        try:
            return record_from_payload(self._json("create", response))
        except ValidationError as exc:
            raise ExternalOperationFailed("create", str(exc)) from exc

    def update(self, record: Record) -> Record:
        response = self._request(
            "update",
            "PUT",
            f"/api/persons/{record.person_id}",
            json=payload_from_record(record),
        )
        try:
            return record_from_payload(self._json("update", response))
        except ValidationError as exc:
            raise ExternalOperationFailed("update", str(exc)) from exc

    def delete(self, person_id: PersonId) -> None:
        self._request("delete", "DELETE", f"/api/persons/{person_id}")
