"""Lifecycle rules for contracts, receipts, invoices, approvals and periods.

The same functions guard the dispatch clients before submission and the
reference backend when it executes a mode, so the UI affordance and the
authoritative rule can never drift apart.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Iterable, Mapping

from lease_erp.core.errors import DomainError, PreconditionError, ValidationError
from lease_erp.core.wire import parse_date


class _WireEnum(str, Enum):
    @classmethod
    def parse(cls, value: Any):
        if isinstance(value, cls):
            return value
        key = _status_key(value)
        for member in cls:
            if _status_key(member.value) == key or _status_key(member.name) == key:
                return member
        raise ValidationError(f"Unknown {cls.__name__}: {value}")


def _status_key(value: Any) -> str:
    return "".join(ch for ch in str(value or "").lower() if ch.isalnum())


class ContractStatus(_WireEnum):
    DRAFT = "Draft"
    PENDING = "Pending"
    ACTIVE = "Active"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"
    TERMINATED = "Terminated"


class PaymentStatus(_WireEnum):
    RECEIVED = "Received"
    PENDING = "Pending"
    DEPOSITED = "Deposited"
    CLEARED = "Cleared"
    BOUNCED = "Bounced"
    CANCELLED = "Cancelled"
    PENDING_CLEARANCE = "PendingClearance"
    REVERSED = "Reversed"


class PaymentType(_WireEnum):
    CASH = "Cash"
    CHEQUE = "Cheque"
    BANK_TRANSFER = "Bank Transfer"
    CREDIT_CARD = "Credit Card"
    ONLINE_PAYMENT = "Online Payment"
    BANK_DRAFT = "Bank Draft"


class ApprovalStatus(_WireEnum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    NOT_REQUIRED = "Not Required"


class InvoiceStatus(_WireEnum):
    DRAFT = "Draft"
    PENDING = "Pending"
    APPROVED = "Approved"
    ACTIVE = "Active"
    PAID = "Paid"
    CANCELLED = "Cancelled"
    VOIDED = "Voided"


# ----------------------------------------------------------------------
# transition tables
# ----------------------------------------------------------------------
PAYMENT_STATUS_TRANSITIONS: dict[PaymentStatus, tuple[PaymentStatus, ...]] = {
    PaymentStatus.RECEIVED: (
        PaymentStatus.DEPOSITED,
        PaymentStatus.CLEARED,
        PaymentStatus.BOUNCED,
        PaymentStatus.CANCELLED,
    ),
    PaymentStatus.PENDING: (PaymentStatus.RECEIVED, PaymentStatus.CANCELLED),
    PaymentStatus.DEPOSITED: (
        PaymentStatus.CLEARED,
        PaymentStatus.BOUNCED,
        PaymentStatus.PENDING_CLEARANCE,
    ),
    PaymentStatus.PENDING_CLEARANCE: (PaymentStatus.CLEARED, PaymentStatus.BOUNCED),
    PaymentStatus.CLEARED: (PaymentStatus.BOUNCED,),
    PaymentStatus.BOUNCED: (PaymentStatus.RECEIVED,),
    PaymentStatus.CANCELLED: (),
    PaymentStatus.REVERSED: (),
}

CHEQUE_ONLY_STATUSES = frozenset({PaymentStatus.DEPOSITED, PaymentStatus.PENDING_CLEARANCE})

CONTRACT_STATUS_TRANSITIONS: dict[ContractStatus, tuple[ContractStatus, ...]] = {
    ContractStatus.DRAFT: (ContractStatus.PENDING, ContractStatus.CANCELLED),
    ContractStatus.PENDING: (ContractStatus.ACTIVE, ContractStatus.DRAFT, ContractStatus.CANCELLED),
    ContractStatus.ACTIVE: (
        ContractStatus.EXPIRED,
        ContractStatus.COMPLETED,
        ContractStatus.TERMINATED,
    ),
    ContractStatus.EXPIRED: (ContractStatus.COMPLETED,),
    ContractStatus.CANCELLED: (),
    ContractStatus.COMPLETED: (),
    ContractStatus.TERMINATED: (),
}

INVOICE_STATUS_TRANSITIONS: dict[InvoiceStatus, tuple[InvoiceStatus, ...]] = {
    InvoiceStatus.DRAFT: (InvoiceStatus.PENDING, InvoiceStatus.CANCELLED),
    InvoiceStatus.PENDING: (InvoiceStatus.APPROVED, InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED),
    InvoiceStatus.APPROVED: (InvoiceStatus.ACTIVE, InvoiceStatus.VOIDED),
    InvoiceStatus.ACTIVE: (InvoiceStatus.PAID, InvoiceStatus.VOIDED),
    InvoiceStatus.PAID: (),
    InvoiceStatus.CANCELLED: (),
    InvoiceStatus.VOIDED: (),
}

CLEARED_FOR_POSTING = frozenset({ApprovalStatus.APPROVED, ApprovalStatus.NOT_REQUIRED})
POSTABLE_PAYMENT_STATUSES = frozenset(
    {
        PaymentStatus.RECEIVED,
        PaymentStatus.DEPOSITED,
        PaymentStatus.PENDING_CLEARANCE,
        PaymentStatus.CLEARED,
    }
)
UNPOSTABLE_INVOICE_STATUSES = frozenset(
    {InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED, InvoiceStatus.VOIDED}
)


# ----------------------------------------------------------------------
# payment status
# ----------------------------------------------------------------------
def allowed_payment_transitions(current: Any, payment_type: Any = None) -> list[PaymentStatus]:
    """Statuses reachable from ``current``; deposit states are cheque-only."""

    status = PaymentStatus.parse(current)
    targets = PAYMENT_STATUS_TRANSITIONS[status]
    if payment_type is None or PaymentType.parse(payment_type) is not PaymentType.CHEQUE:
        targets = tuple(t for t in targets if t not in CHEQUE_ONLY_STATUSES)
    return list(targets)


def can_change_payment_status(current: Any, target: Any, payment_type: Any = None) -> bool:
    return PaymentStatus.parse(target) in allowed_payment_transitions(current, payment_type)


def require_payment_transition(current: Any, target: Any, payment_type: Any = None) -> PaymentStatus:
    new_status = PaymentStatus.parse(target)
    old_status = PaymentStatus.parse(current)
    if new_status not in allowed_payment_transitions(old_status, payment_type):
        raise DomainError(
            f"Cannot change payment status from {old_status.value} to {new_status.value}"
        )
    return new_status


def initial_payment_status(value: Any) -> PaymentStatus:
    status = PaymentStatus.parse(value or PaymentStatus.RECEIVED)
    if status not in (PaymentStatus.RECEIVED, PaymentStatus.PENDING):
        raise DomainError("New receipts must start as Received or Pending")
    return status


# ----------------------------------------------------------------------
# contract & invoice status
# ----------------------------------------------------------------------
def allowed_contract_transitions(current: Any) -> list[ContractStatus]:
    return list(CONTRACT_STATUS_TRANSITIONS[ContractStatus.parse(current)])


def require_contract_transition(current: Any, target: Any, approval_status: Any = None) -> ContractStatus:
    old_status = ContractStatus.parse(current)
    new_status = ContractStatus.parse(target)
    if new_status not in CONTRACT_STATUS_TRANSITIONS[old_status]:
        raise DomainError(
            f"Cannot change contract status from {old_status.value} to {new_status.value}"
        )
    if new_status is ContractStatus.ACTIVE and approval_status is not None:
        if ApprovalStatus.parse(approval_status) not in CLEARED_FOR_POSTING:
            raise DomainError("Contract must be approved before it can be activated")
    return new_status


def can_change_contract_status(current: Any, target: Any) -> bool:
    return ContractStatus.parse(target) in CONTRACT_STATUS_TRANSITIONS[ContractStatus.parse(current)]


def allowed_invoice_transitions(current: Any) -> list[InvoiceStatus]:
    return list(INVOICE_STATUS_TRANSITIONS[InvoiceStatus.parse(current)])


def can_change_invoice_status(current: Any, target: Any) -> bool:
    return InvoiceStatus.parse(target) in INVOICE_STATUS_TRANSITIONS[InvoiceStatus.parse(current)]


def require_invoice_transition(current: Any, target: Any) -> InvoiceStatus:
    old_status = InvoiceStatus.parse(current)
    new_status = InvoiceStatus.parse(target)
    if new_status not in INVOICE_STATUS_TRANSITIONS[old_status]:
        raise DomainError(
            f"Cannot change invoice status from {old_status.value} to {new_status.value}"
        )
    return new_status


# ----------------------------------------------------------------------
# approval
# ----------------------------------------------------------------------
def initial_approval_status(requires_approval: bool) -> ApprovalStatus:
    return ApprovalStatus.PENDING if requires_approval else ApprovalStatus.NOT_REQUIRED


def require_can_approve(current: Any, entity: str) -> None:
    status = ApprovalStatus.parse(current)
    if status is not ApprovalStatus.PENDING:
        raise DomainError(f"{entity} is not pending approval (current status: {status.value})")


def require_can_reject(current: Any, entity: str, reason: str | None) -> None:
    if not (reason or "").strip():
        raise DomainError("Rejection reason is required")
    require_can_approve(current, entity)


def require_can_reset_approval(current: Any, entity: str, *, is_posted: bool = False) -> None:
    status = ApprovalStatus.parse(current)
    if status not in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
        raise DomainError(f"Only approved or rejected {entity.lower()}s can be reset")
    if is_posted:
        raise DomainError(f"Cannot reset approval of a posted {entity.lower()}")


# ----------------------------------------------------------------------
# GL posting
# ----------------------------------------------------------------------
def receipt_posting_errors(
    receipt: Mapping[str, Any] | None,
    *,
    closed_period: Mapping[str, Any] | None = None,
    debit_account_id: int | None = None,
    credit_account_id: int | None = None,
) -> list[str]:
    if receipt is None:
        return ["Receipt not found"]
    errors: list[str] = []
    if receipt.get("IsPosted"):
        errors.append("Receipt is already posted")
    status = PaymentStatus.parse(receipt.get("PaymentStatus") or PaymentStatus.RECEIVED)
    if status not in POSTABLE_PAYMENT_STATUSES:
        errors.append(f"Receipts with status {status.value} cannot be posted")
    approval = ApprovalStatus.parse(receipt.get("ApprovalStatus") or ApprovalStatus.NOT_REQUIRED)
    if approval not in CLEARED_FOR_POSTING:
        errors.append("Receipt must be approved before posting")
    if not receipt.get("ReceivedAmount") or float(receipt["ReceivedAmount"]) <= 0:
        errors.append("Receipt amount must be greater than zero")
    errors.extend(_posting_common_errors(closed_period, debit_account_id, credit_account_id))
    return errors


def invoice_posting_errors(
    invoice: Mapping[str, Any] | None,
    *,
    closed_period: Mapping[str, Any] | None = None,
    debit_account_id: int | None = None,
    credit_account_id: int | None = None,
) -> list[str]:
    if invoice is None:
        return ["Invoice not found"]
    errors: list[str] = []
    if invoice.get("IsPosted"):
        errors.append("Invoice is already posted")
    status = InvoiceStatus.parse(invoice.get("InvoiceStatus") or InvoiceStatus.DRAFT)
    if status in UNPOSTABLE_INVOICE_STATUSES:
        errors.append(f"Invoices with status {status.value} cannot be posted")
    approval = ApprovalStatus.parse(invoice.get("ApprovalStatus") or ApprovalStatus.NOT_REQUIRED)
    if approval not in CLEARED_FOR_POSTING:
        errors.append("Invoice must be approved before posting")
    if not invoice.get("TotalAmount") or float(invoice["TotalAmount"]) <= 0:
        errors.append("Invoice amount must be greater than zero")
    errors.extend(_posting_common_errors(closed_period, debit_account_id, credit_account_id))
    return errors


def _posting_common_errors(
    closed_period: Mapping[str, Any] | None,
    debit_account_id: int | None,
    credit_account_id: int | None,
) -> list[str]:
    errors: list[str] = []
    if closed_period is not None:
        errors.append(
            f"Posting date falls in closed accounting period {closed_period.get('PeriodCode')}"
        )
    if debit_account_id is not None and debit_account_id == credit_account_id:
        errors.append("Debit and credit accounts must be different")
    return errors


def reversal_errors(posting: Mapping[str, Any] | None, reason: str | None) -> list[str]:
    errors: list[str] = []
    if not (reason or "").strip():
        errors.append("Reversal reason is required")
    if posting is None:
        errors.append("Posting not found")
    elif posting.get("IsReversed"):
        errors.append("Posting has already been reversed")
    return errors


def require_no_errors(errors: list[str], **details: Any) -> None:
    if errors:
        raise PreconditionError(errors, **details)


# ----------------------------------------------------------------------
# accounting periods
# ----------------------------------------------------------------------
@dataclass(slots=True)
class PeriodClosureCheck:
    can_close: bool
    validation_messages: list[str] = field(default_factory=list)
    previous_periods_open: bool = False
    has_transactions: bool = False
    transaction_count: int = 0

    def as_fields(self) -> dict[str, Any]:
        return {
            "CanClose": self.can_close,
            "ValidationMessages": list(self.validation_messages),
            "PreviousPeriodsOpen": self.previous_periods_open,
            "HasTransactions": self.has_transactions,
            "TransactionCount": self.transaction_count,
        }


def period_closure_check(
    period: Mapping[str, Any] | None,
    siblings: Iterable[Mapping[str, Any]],
    blocking_transactions: int = 0,
) -> PeriodClosureCheck:
    """Evaluate whether ``period`` may be closed.

    ``siblings`` are the periods of the same fiscal year; every period with a
    lower ``PeriodNumber`` must already be closed. ``blocking_transactions``
    counts unposted documents dated inside the period.
    """

    if period is None:
        return PeriodClosureCheck(False, ["Period not found"])
    if period.get("IsClosed"):
        return PeriodClosureCheck(False, ["Period is already closed"])

    messages: list[str] = []
    number = int(period.get("PeriodNumber") or 0)
    earlier_open = [
        p
        for p in siblings
        if int(p.get("PeriodNumber") or 0) < number and not p.get("IsClosed")
    ]
    if earlier_open:
        messages.append("Cannot close this period. Previous periods must be closed first.")
    if blocking_transactions:
        messages.append(
            f"Cannot close this period. {blocking_transactions} unposted transaction(s) are dated within it."
        )
    return PeriodClosureCheck(
        can_close=not messages,
        validation_messages=messages or ["Period can be closed"],
        previous_periods_open=bool(earlier_open),
        has_transactions=bool(blocking_transactions),
        transaction_count=blocking_transactions,
    )


def period_reopen_errors(
    period: Mapping[str, Any] | None, siblings: Iterable[Mapping[str, Any]]
) -> list[str]:
    if period is None:
        return ["Period not found"]
    if not period.get("IsClosed"):
        return ["Period is already open"]
    number = int(period.get("PeriodNumber") or 0)
    later_closed = sorted(
        str(p.get("PeriodCode"))
        for p in siblings
        if int(p.get("PeriodNumber") or 0) > number and p.get("IsClosed")
    )
    if later_closed:
        return [
            "Cannot reopen this period while later periods are closed: " + ", ".join(later_closed)
        ]
    return []


def generate_monthly_periods(fiscal_year: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Split a fiscal year into calendar-month periods clipped to its range."""

    start = parse_date(fiscal_year.get("StartDate"))
    end = parse_date(fiscal_year.get("EndDate"))
    if start is None or end is None or end < start:
        raise DomainError("Fiscal year has an invalid date range")

    code = fiscal_year.get("FYCode") or f"FY{fiscal_year.get('FiscalYearID')}"
    periods: list[dict[str, Any]] = []
    year, month = start.year, start.month
    number = 1
    while date(year, month, 1) <= end:
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        period_start = max(first, start)
        period_end = min(last, end)
        periods.append(
            {
                "PeriodNumber": number,
                "PeriodCode": f"{code}-P{number:02d}",
                "PeriodName": f"{calendar.month_name[month]} {year}",
                "StartDate": period_start.isoformat(),
                "EndDate": period_end.isoformat(),
                "IsOpen": True,
                "IsClosed": False,
            }
        )
        number += 1
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return periods


def period_covering(periods: Iterable[Mapping[str, Any]], on_date: Any) -> Mapping[str, Any] | None:
    target = parse_date(on_date)
    if target is None:
        return None
    for period in periods:
        start = parse_date(period.get("StartDate"))
        end = parse_date(period.get("EndDate"))
        if start and end and start <= target <= end:
            return period
    return None


__all__ = [
    "ApprovalStatus",
    "CHEQUE_ONLY_STATUSES",
    "CLEARED_FOR_POSTING",
    "CONTRACT_STATUS_TRANSITIONS",
    "ContractStatus",
    "INVOICE_STATUS_TRANSITIONS",
    "InvoiceStatus",
    "PAYMENT_STATUS_TRANSITIONS",
    "POSTABLE_PAYMENT_STATUSES",
    "PaymentStatus",
    "PaymentType",
    "PeriodClosureCheck",
    "allowed_contract_transitions",
    "allowed_invoice_transitions",
    "allowed_payment_transitions",
    "can_change_contract_status",
    "can_change_invoice_status",
    "can_change_payment_status",
    "generate_monthly_periods",
    "initial_approval_status",
    "initial_payment_status",
    "invoice_posting_errors",
    "period_closure_check",
    "period_covering",
    "period_reopen_errors",
    "receipt_posting_errors",
    "require_can_approve",
    "require_can_reject",
    "require_can_reset_approval",
    "require_contract_transition",
    "require_invoice_transition",
    "require_no_errors",
    "require_payment_transition",
    "reversal_errors",
    "UNPOSTABLE_INVOICE_STATUSES",
]
