"""Uniform result type returned by every dispatch client call."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")


class FailureKind(str, Enum):
    TRANSPORT = "transport"
    DOMAIN = "domain"
    VALIDATION = "validation"
    PRECONDITION = "precondition"


@dataclass(slots=True)
class DispatchResult(Generic[T]):
    """Outcome of one dispatch call.

    ``status`` mirrors the envelope ``Status``; a call that never reached the
    backend (validation, transport) reports ``status=0`` with ``failure`` set
    accordingly. ``fields`` carries the operation specific response values
    such as ``NewReceiptID`` or ``VoucherNo``.
    """

    status: int
    message: str = ""
    data: T | None = None
    failure: FailureKind | None = None
    validation_messages: list[str] = field(default_factory=list)
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == 1

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def map(self, func: Callable[[T | None], U]) -> "DispatchResult[U]":
        if not self.ok:
            return DispatchResult(
                status=self.status,
                message=self.message,
                data=None,
                failure=self.failure,
                validation_messages=list(self.validation_messages),
                fields=dict(self.fields),
            )
        return DispatchResult(status=1, message=self.message, data=func(self.data), fields=dict(self.fields))

    @classmethod
    def succeeded(cls, data: T | None = None, message: str = "", **fields: Any) -> "DispatchResult[T]":
        return cls(status=1, message=message, data=data, fields=fields)

    @classmethod
    def failed(
        cls,
        kind: FailureKind,
        message: str,
        validation_messages: list[str] | None = None,
        **fields: Any,
    ) -> "DispatchResult[T]":
        return cls(
            status=0,
            message=message,
            failure=kind,
            validation_messages=list(validation_messages or []),
            fields=fields,
        )


__all__ = ["DispatchResult", "FailureKind"]
