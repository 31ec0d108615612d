"""Wire-level mode numbers for every entity family.

Each family POSTs to a single endpoint; the integer ``mode`` picks the
operation. Values must match the backend dispatch tables exactly.
"""
from __future__ import annotations

from enum import IntEnum


class AccountingPeriodMode(IntEnum):
    CREATE_FOR_FISCAL_YEAR = 1
    CLOSE = 2
    REOPEN = 3
    BY_FISCAL_YEAR = 4
    CURRENT_OPEN = 5
    GET_ALL = 6
    GET_BY_ID = 7
    SEARCH = 8
    DROPDOWN = 9
    VALIDATE_POSTING_DATE = 10
    VALIDATE_CLOSURE = 11


class FiscalYearMode(IntEnum):
    CREATE = 1
    UPDATE = 2
    GET_ALL = 3
    GET_BY_ID = 4
    DELETE = 5
    SEARCH = 6
    CURRENT = 7


class ReceiptMode(IntEnum):
    CREATE = 1
    UPDATE = 2
    GET_ALL = 3
    GET_BY_ID = 4
    DELETE = 5
    SEARCH = 6
    CHANGE_STATUS = 7
    STATISTICS = 8
    ALLOCATE_TO_INVOICE = 9
    POST = 10
    REVERSE_POSTING = 11
    UNPOSTED = 12
    ALLOCATE_MULTIPLE = 13
    BY_CUSTOMER = 14
    BY_INVOICE = 15
    BULK_UPDATE = 16
    APPROVE = 18
    REJECT = 19
    RESET_APPROVAL = 20
    PENDING_APPROVAL = 21
    VALIDATE_POSTING = 22


class InvoiceMode(IntEnum):
    GENERATE = 1
    UPDATE = 2
    GET_ALL = 3
    GET_BY_ID = 4
    DELETE = 5
    SEARCH = 6
    CHANGE_STATUS = 7
    STATISTICS = 8
    UNPOSTED = 9
    POST_SINGLE = 10
    POST_MULTIPLE = 11
    REVERSE_POSTING = 12
    RECORD_PAYMENT = 13
    APPROVE = 14
    REJECT = 15
    RESET_APPROVAL = 16
    PENDING_APPROVAL = 17
    VALIDATE_POSTING = 18


class ContractMode(IntEnum):
    CREATE = 1
    UPDATE = 2
    GET_ALL = 3
    GET_BY_ID = 4
    DELETE = 5
    SEARCH = 6
    CHANGE_STATUS = 7
    STATISTICS = 8
    BY_UNIT = 9
    ADD_UNIT = 10
    UPDATE_UNIT = 11
    REMOVE_UNIT = 12
    ADD_CHARGE = 13
    UPDATE_CHARGE = 14
    REMOVE_CHARGE = 15
    ADD_ATTACHMENT = 16
    UPDATE_ATTACHMENT = 17
    REMOVE_ATTACHMENT = 18
    APPROVE = 19
    REJECT = 20
    RESET_APPROVAL = 21
    PENDING_APPROVAL = 22


class SupplierMode(IntEnum):
    CREATE = 1
    UPDATE = 2
    GET_ALL = 3
    GET_BY_ID = 4
    DELETE = 5
    SEARCH = 6
    SAVE_CONTACT = 7
    SAVE_BANK_DETAILS = 8
    CREATE_TYPE = 9
    GET_TYPES = 10
    GET_CONTACTS = 12
    GET_BANK_DETAILS = 13
    DELETE_CONTACT = 14
    DELETE_BANK_DETAILS = 15


class PropertyMode(IntEnum):
    CREATE = 1
    UPDATE = 2
    GET_ALL = 3
    GET_BY_ID = 4
    DELETE = 5
    SEARCH = 6


class ChargeMode(IntEnum):
    CREATE = 1
    UPDATE = 2
    GET_ALL = 3
    GET_BY_ID = 4
    DELETE = 5
    SEARCH = 6
    BY_CATEGORY = 7
    TOGGLE_STATUS = 8


class DocTypeMode(IntEnum):
    CREATE = 1
    UPDATE = 2
    GET_ALL = 3
    GET_BY_ID = 4
    DELETE = 5
    SEARCH = 6


ENDPOINTS: dict[type[IntEnum], str] = {
    AccountingPeriodMode: "/Master/accountingPeriod",
    FiscalYearMode: "/Master/fiscalyear",
    ReceiptMode: "/LeaseManagement/receipt",
    InvoiceMode: "/Master/contractInvoiceManagement",
    ContractMode: "/Master/contractmanagement",
    SupplierMode: "/Master/supplierManagement",
    PropertyMode: "/Master/property",
    ChargeMode: "/Master/additionalcharges",
    DocTypeMode: "/Master/docType",
}


def endpoint_for(modes: type[IntEnum]) -> str:
    return ENDPOINTS[modes]


def normalise_endpoint(path: str) -> str:
    """Endpoint lookup key; routing is case-insensitive and slash-tolerant."""

    return "/" + path.strip("/").lower()


__all__ = [
    "AccountingPeriodMode",
    "ChargeMode",
    "ContractMode",
    "DocTypeMode",
    "ENDPOINTS",
    "FiscalYearMode",
    "InvoiceMode",
    "PropertyMode",
    "ReceiptMode",
    "SupplierMode",
    "endpoint_for",
    "normalise_endpoint",
]
