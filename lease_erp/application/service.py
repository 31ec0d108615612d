"""Endpoint registry of the reference backend."""
from __future__ import annotations

from typing import Any, Mapping

from lease_erp.core.envelope import RequestEnvelope, ResponseEnvelope
from lease_erp.core.modes import normalise_endpoint
from lease_erp.infrastructure.store import InMemoryLeaseRepository, LeaseRepository
from lease_erp.logging_config import get_logger

from .contracts import ContractHandler
from .dispatch import EntityHandler
from .fiscal_years import FiscalYearHandler
from .invoices import InvoiceHandler
from .masters import ChargeHandler, DocTypeHandler, PropertyHandler, SupplierHandler
from .periods import AccountingPeriodHandler
from .receipts import ReceiptHandler

logger = get_logger(__name__)

HANDLERS: tuple[type[EntityHandler], ...] = (
    AccountingPeriodHandler,
    FiscalYearHandler,
    ReceiptHandler,
    InvoiceHandler,
    ContractHandler,
    SupplierHandler,
    PropertyHandler,
    ChargeHandler,
    DocTypeHandler,
)


class DispatchService:
    """Routes request envelopes to the handler registered for their endpoint."""

    def __init__(self, repository: LeaseRepository) -> None:
        self.repository = repository
        self._handlers: dict[str, EntityHandler] = {}
        for handler_cls in HANDLERS:
            handler = handler_cls(repository)
            self._handlers[normalise_endpoint(handler.endpoint)] = handler

    def handler_for(self, endpoint: str) -> EntityHandler | None:
        return self._handlers.get(normalise_endpoint(endpoint))

    def endpoints(self) -> list[str]:
        return sorted(handler.endpoint for handler in self._handlers.values())

    def dispatch(self, endpoint: str, envelope: RequestEnvelope | Mapping[str, Any]) -> ResponseEnvelope:
        """Execute one envelope in-process; raises ``KeyError`` for unknown endpoints."""

        if not isinstance(envelope, RequestEnvelope):
            envelope = RequestEnvelope.model_validate(envelope)
        handler = self.handler_for(endpoint)
        if handler is None:
            raise KeyError(endpoint)
        logger.debug("dispatch %s mode %s", handler.endpoint, envelope.mode)
        return handler.dispatch(envelope.mode, envelope.parameters)

    def reset(self) -> None:
        self.repository.reset()


_repository = InMemoryLeaseRepository()
_service = DispatchService(_repository)


def get_dispatch_service() -> DispatchService:
    """Return the singleton dispatch service for the process."""

    return _service


def reset_backend_state() -> None:
    """Reset the in-memory store (used in tests)."""

    _service.reset()
