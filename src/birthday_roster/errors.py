from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class RosterError(Exception):
    pass


class ValidationError(RosterError, ValueError):
    pass


class NotFound(RosterError):
    def __init__(self, person_id: object) -> None:
        super().__init__(f"Unknown person id: {person_id!r}")
        self.person_id = person_id


class InvariantViolation(RosterError):
    pass


class ExternalOperationFailed(RosterError):
    def __init__(self, operation: str, detail: str, *, status_code: int | None = None) -> None:
        super().__init__(f"{operation} failed: {detail}")
        self.operation = operation
        self.detail = detail
        self.status_code = status_code


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a roster operation.

    Failures are carried in ``error`` instead of being raised so callers can
    decide whether to resynchronize.
    """

    error: RosterError | None = None
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> OperationResult:
        return cls(error=None, value=value)

    @classmethod
    def failure(cls, error: RosterError) -> OperationResult:
        return cls(error=error)

    @property
    def needs_resync(self) -> bool:
        return isinstance(self.error, (NotFound, InvariantViolation))
