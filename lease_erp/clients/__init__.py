"""Typed dispatch clients, one per entity family."""

from .base import DispatchClient
from .contracts import ContractClient
from .fiscal_years import FiscalYearClient
from .invoices import InvoiceClient, can_delete_invoice, can_edit_invoice, can_post_invoice
from .masters import ChargeClient, DocTypeClient, PropertyClient, SupplierClient
from .periods import AccountingPeriodClient
from .receipts import ReceiptClient
from .results import DispatchResult, FailureKind
from .session import ListViewState, ViewSession

__all__ = [
    "AccountingPeriodClient",
    "ChargeClient",
    "ContractClient",
    "DispatchClient",
    "DispatchResult",
    "DocTypeClient",
    "FailureKind",
    "FiscalYearClient",
    "InvoiceClient",
    "ListViewState",
    "PropertyClient",
    "ReceiptClient",
    "SupplierClient",
    "ViewSession",
    "can_delete_invoice",
    "can_edit_invoice",
    "can_post_invoice",
]
