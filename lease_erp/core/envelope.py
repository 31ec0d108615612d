"""Request/response envelopes shared by every entity endpoint."""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class RequestEnvelope(BaseModel):
    """``{mode, parameters}`` body POSTed to an entity endpoint."""

    mode: int = Field(ge=1)
    parameters: dict[str, Any] = Field(default_factory=dict)


class ResponseEnvelope(BaseModel):
    """``{Status, Message, data?, table1?, ...}`` returned by every mode.

    Operation specific fields (``NewReceiptID``, ``VoucherNo``, ``table3``...)
    are kept as pydantic extras so nothing the backend sends is lost.
    """

    model_config = ConfigDict(extra="allow")

    Status: Literal[0, 1]
    Message: str = ""
    data: Any = None

    @classmethod
    def success(cls, message: str = "", **fields: Any) -> "ResponseEnvelope":
        return cls(Status=1, Message=message, **fields)

    @classmethod
    def failure(cls, message: str, **fields: Any) -> "ResponseEnvelope":
        return cls(Status=0, Message=message, **fields)

    @property
    def ok(self) -> bool:
        return self.Status == 1

    @property
    def extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def get(self, name: str, default: Any = None) -> Any:
        if name in ("Status", "Message", "data"):
            return getattr(self, name)
        return (self.model_extra or {}).get(name, default)

    def table(self, index: int) -> list[dict[str, Any]]:
        value = self.get(f"table{index}")
        if isinstance(value, list):
            return value
        return []

    def rows(self) -> list[dict[str, Any]]:
        """Return the primary row set, preferring ``data`` over ``table1``."""

        if isinstance(self.data, list):
            return self.data
        if isinstance(self.data, dict):
            return [self.data]
        return self.table(1)

    def first(self) -> dict[str, Any] | None:
        rows = self.rows()
        return rows[0] if rows else None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


__all__ = ["RequestEnvelope", "ResponseEnvelope"]
