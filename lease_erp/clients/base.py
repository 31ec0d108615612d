"""Shared plumbing of the per-entity dispatch clients."""
from __future__ import annotations

import json
from datetime import date
from enum import IntEnum
from typing import Any, Callable, Mapping, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from lease_erp.core.envelope import RequestEnvelope, ResponseEnvelope
from lease_erp.core.errors import TransportError, ValidationError
from lease_erp.core.modes import endpoint_for
from lease_erp.core.schema import WireRecord
from lease_erp.core.wire import format_date, parse_id
from lease_erp.domain import ANONYMOUS, Principal
from lease_erp.infrastructure.notifications import Notifier, get_notifier
from lease_erp.infrastructure.transport import DispatchTransport
from lease_erp.logging_config import get_logger

from .results import DispatchResult, FailureKind

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R", bound=BaseModel)
C = TypeVar("C", bound="DispatchClient")

Parser = Callable[[ResponseEnvelope], Any]


def _coerce(key: str, value: Any) -> Any:
    if key.endswith("ID") and not isinstance(value, (list, tuple, dict)):
        return parse_id(value, field=key)
    if isinstance(value, date):
        return format_date(value)
    if key.endswith("JSON") and not isinstance(value, str):
        return json.dumps(value, default=str)
    if key.endswith("IDs") and isinstance(value, (list, tuple)):
        return [parse_id(item, field=key) for item in value]
    return value


def prepare_parameters(parameters: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce IDs and dates to their wire form and drop ``None`` values."""

    prepared: dict[str, Any] = {}
    for key, value in parameters.items():
        if value is None:
            continue
        value = _coerce(key, value)
        if value is not None:
            prepared[key] = value
    return prepared


def payload_of(model: type[WireRecord], values: WireRecord | Mapping[str, Any]) -> dict[str, Any]:
    """Writable wire fields of ``values``; joined display fields never travel."""

    if isinstance(values, WireRecord):
        return values.writable_payload()
    return model.pick_writable(dict(values))


def rows_of(model: type[R]) -> Parser:
    def parse(response: ResponseEnvelope) -> list[R]:
        return [model.model_validate(row) for row in response.rows()]

    return parse


def one_of(model: type[R]) -> Parser:
    def parse(response: ResponseEnvelope) -> R | None:
        row = response.first()
        return model.model_validate(row) if row is not None else None

    return parse


def raw_rows(response: ResponseEnvelope) -> list[dict[str, Any]]:
    return response.rows()


def nothing(response: ResponseEnvelope) -> None:
    return None


class DispatchClient:
    """Base class: one subclass per entity family, one method per mode.

    Every method returns a :class:`DispatchResult`; nothing raises on a
    normal failure. Mutations carry the principal's audit parameters and
    notify on both outcomes, reads notify only on failure.
    """

    modes: type[IntEnum]

    def __init__(
        self,
        transport: DispatchTransport,
        principal: Principal = ANONYMOUS,
        *,
        notifier: Notifier | None = None,
    ) -> None:
        self.transport = transport
        self.principal = principal
        self._notifier = notifier

    @property
    def endpoint(self) -> str:
        return endpoint_for(self.modes)

    @property
    def notifier(self) -> Notifier:
        return self._notifier or get_notifier()

    def with_principal(self: C, principal: Principal) -> C:
        return type(self)(self.transport, principal, notifier=self._notifier)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def invalid(self, messages: str | list[str]) -> DispatchResult[Any]:
        """Refuse a call locally; nothing is sent."""

        messages = [messages] if isinstance(messages, str) else list(messages)
        logger.info("%s refused before dispatch: %s", self.endpoint, "; ".join(messages))
        self.notifier.error(messages[0])
        return DispatchResult.failed(FailureKind.VALIDATION, messages[0], messages)

    def call(
        self,
        mode: IntEnum,
        parameters: Mapping[str, Any] | None = None,
        *,
        action: str,
        parse: Parser = nothing,
        mutation: bool = False,
        success_message: str | None = None,
    ) -> DispatchResult[Any]:
        if not isinstance(mode, self.modes):
            raise TypeError(f"{mode!r} is not a {self.modes.__name__} mode")
        try:
            params = prepare_parameters(parameters or {})
        except ValidationError as exc:
            return self.invalid(exc.messages)
        if mutation:
            params.update(prepare_parameters(self.principal.audit_parameters()))

        envelope = RequestEnvelope(mode=int(mode), parameters=params)
        logger.debug("%s %s", self.endpoint, mode.name)
        try:
            response = self.transport.execute(self.endpoint, envelope)
        except TransportError as exc:
            logger.warning("%s %s failed: %s", self.endpoint, mode.name, exc)
            message = f"Failed to {action}. Please try again."
            self.notifier.error(message)
            return DispatchResult.failed(FailureKind.TRANSPORT, message)

        if not response.ok:
            extras = response.extras
            messages = [str(item) for item in extras.pop("ValidationMessages", None) or []]
            for name in [key for key in extras if key.startswith("table")]:
                extras.pop(name)
            kind = FailureKind.PRECONDITION if messages else FailureKind.DOMAIN
            message = response.Message or f"Failed to {action}"
            logger.info("%s %s refused: %s", self.endpoint, mode.name, message)
            self.notifier.error(message)
            return DispatchResult.failed(kind, message, messages, **extras)

        try:
            data = parse(response)
        except PydanticValidationError as exc:
            logger.warning("%s %s returned unexpected rows: %s", self.endpoint, mode.name, exc)
            message = f"Failed to {action}. Please try again."
            self.notifier.error(message)
            return DispatchResult.failed(FailureKind.TRANSPORT, message)

        if mutation:
            self.notifier.success(response.Message or success_message or f"{action.capitalize()} succeeded")
        fields = {key: value for key, value in response.extras.items() if not key.startswith("table")}
        return DispatchResult.succeeded(data, response.Message, **fields)


__all__ = [
    "DispatchClient",
    "nothing",
    "one_of",
    "payload_of",
    "prepare_parameters",
    "raw_rows",
    "rows_of",
]
