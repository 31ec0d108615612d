"""Domain entities for the in-memory ledger store."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from lease_erp.core.wire import parse_id


@dataclass(frozen=True, slots=True)
class Principal:
    """The acting user whose identity is stamped on every mutating call."""

    user_id: int | None = None
    user_name: str | None = None

    def audit_parameters(self) -> dict[str, Any]:
        return {"CurrentUserID": self.user_id, "CurrentUserName": self.user_name}

    @classmethod
    def from_parameters(cls, parameters: Mapping[str, Any]) -> "Principal":
        return cls(
            user_id=parse_id(parameters.get("CurrentUserID"), field="CurrentUserID"),
            user_name=parameters.get("CurrentUserName"),
        )


ANONYMOUS = Principal()


@dataclass(slots=True)
class EntityTable:
    """Rows of one entity keyed by their integer identity."""

    name: str
    id_field: str
    rows: dict[int, dict[str, Any]] = field(default_factory=dict)
    next_id: int = 1

    def allocate_id(self) -> int:
        value = self.next_id
        self.next_id += 1
        return value
