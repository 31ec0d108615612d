"""Mode dispatch shared by every entity family of the reference backend."""
from __future__ import annotations

import json
from datetime import date
from enum import IntEnum
from typing import Any, Generic, Iterable, Mapping, TypeVar

from lease_erp.core.envelope import ResponseEnvelope
from lease_erp.core.errors import DomainError, PreconditionError, ValidationError
from lease_erp.core.modes import endpoint_for
from lease_erp.core.wire import format_date, is_truthy, parse_amount, parse_date, parse_id
from lease_erp.domain import Principal
from lease_erp.infrastructure.store import LeaseRepository
from lease_erp.logging_config import get_logger

logger = get_logger(__name__)

M = TypeVar("M", bound=IntEnum)


class EntityHandler(Generic[M]):
    """Executes the modes of one entity family against the repository."""

    modes: type[M]

    def __init__(self, repository: LeaseRepository) -> None:
        self.repository = repository

    @property
    def endpoint(self) -> str:
        return endpoint_for(self.modes)

    def dispatch(self, raw_mode: int, parameters: Mapping[str, Any]) -> ResponseEnvelope:
        try:
            mode = self.modes(raw_mode)
        except ValueError:
            logger.info("unknown mode %s for %s", raw_mode, self.endpoint)
            return ResponseEnvelope.failure(f"Unknown mode {raw_mode} for {self.endpoint}")

        params = dict(parameters)
        try:
            principal = Principal.from_parameters(params)
            return self.handle(mode, params, principal)
        except PreconditionError as exc:
            logger.info("%s %s refused: %s", self.endpoint, mode.name, "; ".join(exc.messages))
            return ResponseEnvelope.failure(
                exc.message, ValidationMessages=exc.messages, **exc.details
            )
        except DomainError as exc:
            logger.info("%s %s refused: %s", self.endpoint, mode.name, exc.message)
            return ResponseEnvelope.failure(exc.message)
        except ValidationError as exc:
            return ResponseEnvelope.failure("; ".join(exc.messages))

    def handle(self, mode: M, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        raise NotImplementedError


# ----------------------------------------------------------------------
# parameter helpers
# ----------------------------------------------------------------------
def opt_id(params: Mapping[str, Any], key: str) -> int | None:
    value = parse_id(params.get(key), field=key)
    return value if value else None


def req_id(params: Mapping[str, Any], key: str, label: str | None = None) -> int:
    value = opt_id(params, key)
    if value is None:
        raise DomainError(f"{label or key} is required")
    return value


def opt_text(params: Mapping[str, Any], key: str) -> str | None:
    value = params.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def req_text(params: Mapping[str, Any], key: str, label: str | None = None) -> str:
    value = opt_text(params, key)
    if value is None:
        raise DomainError(f"{label or key} is required")
    return value


def opt_date(params: Mapping[str, Any], key: str) -> date | None:
    return parse_date(params.get(key))


def opt_amount(params: Mapping[str, Any], key: str) -> float | None:
    return parse_amount(params.get(key), field=key)


def opt_flag(params: Mapping[str, Any], key: str) -> bool | None:
    if key not in params or params[key] is None or params[key] == "":
        return None
    return is_truthy(params[key])


def json_rows(params: Mapping[str, Any], key: str) -> list[dict[str, Any]]:
    """Child collections travel as JSON strings (``UnitsJSON`` etc.)."""

    value = params.get(key)
    if value in (None, ""):
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            raise DomainError(f"{key} is not valid JSON") from exc
    if not isinstance(value, list):
        raise DomainError(f"{key} must be a list")
    return [dict(item) for item in value]


def normalise_record(values: Mapping[str, Any], date_fields: Iterable[str] = ()) -> dict[str, Any]:
    """Coerce wire values before storing; dates are kept as ISO strings."""

    record = dict(values)
    for key in date_fields:
        if key in record:
            record[key] = format_date(record[key])
    for key, value in list(record.items()):
        if key.endswith("ID") and isinstance(value, str):
            record[key] = parse_id(value, field=key)
    return record


def contains_text(row: Mapping[str, Any], text: str | None, fields: Iterable[str]) -> bool:
    if not text:
        return True
    needle = text.lower()
    return any(needle in str(row.get(name) or "").lower() for name in fields)


def within_dates(value: Any, start: date | None, end: date | None) -> bool:
    if start is None and end is None:
        return True
    current = parse_date(value)
    if current is None:
        return False
    if start and current < start:
        return False
    if end and current > end:
        return False
    return True


def within_amounts(value: Any, low: float | None, high: float | None) -> bool:
    amount = float(value or 0)
    if low is not None and amount < low:
        return False
    if high is not None and amount > high:
        return False
    return True


def by_id(rows: list[dict[str, Any]], id_field: str) -> list[dict[str, Any]]:
    return sorted(rows, key=lambda row: row.get(id_field) or 0)


__all__ = [
    "EntityHandler",
    "by_id",
    "contains_text",
    "json_rows",
    "normalise_record",
    "opt_amount",
    "opt_date",
    "opt_flag",
    "opt_id",
    "opt_text",
    "req_id",
    "req_text",
    "within_amounts",
    "within_dates",
]
