"""Coercion helpers for values crossing the HTTP boundary."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping

from lease_erp.core.errors import ValidationError


def format_date(value: date | datetime | str | None) -> str | None:
    """Return ``value`` as a ``YYYY-MM-DD`` string, or ``None`` when blank."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    if not text:
        return None
    parsed = parse_date(text)
    return parsed.isoformat() if parsed else None


def parse_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    # Backend timestamps arrive as "2025-01-31T00:00:00"
    if "T" in text or " " in text:
        text = text.replace(" ", "T")
        try:
            return datetime.fromisoformat(text.rstrip("Z")).date()
        except ValueError as exc:
            raise ValidationError(f"Invalid date: {value}") from exc
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value}") from exc


def parse_id(value: Any, *, field: str = "ID") -> int | None:
    """Parse identifiers that UI widgets hand over as strings."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError as exc:
        raise ValidationError(f"Invalid {field}: {value}") from exc


def parse_amount(value: Any, *, field: str = "amount") -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid {field}: {value}") from exc


def compact(parameters: Mapping[str, Any]) -> dict[str, Any]:
    """Drop ``None`` values so update modes leave those fields untouched."""

    return {key: value for key, value in parameters.items() if value is not None}


def is_truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return bool(value)


__all__ = [
    "compact",
    "format_date",
    "is_truthy",
    "parse_amount",
    "parse_date",
    "parse_id",
]
