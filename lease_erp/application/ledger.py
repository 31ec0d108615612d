"""GL postings, reversals and receipt-to-invoice allocations."""
from __future__ import annotations

from datetime import date
from typing import Any

from lease_erp.core.errors import DomainError
from lease_erp.core.lifecycle import InvoiceStatus, PaymentStatus
from lease_erp.domain import Principal
from lease_erp.infrastructure.store import LeaseRepository

from .periods import period_on

VOUCHER_PREFIX = {"Receipt": "RV", "Invoice": "IV"}
UNALLOCATABLE_RECEIPT_STATUSES = frozenset(
    {PaymentStatus.CANCELLED, PaymentStatus.REVERSED, PaymentStatus.BOUNCED}
)
PAYABLE_INVOICE_STATUSES = frozenset(
    {InvoiceStatus.PENDING, InvoiceStatus.APPROVED, InvoiceStatus.ACTIVE}
)


def next_document_no(repository: LeaseRepository, series: str, prefix: str, on_date: date | None = None) -> str:
    on_date = on_date or date.today()
    return f"{prefix}-{on_date:%Y%m}-{repository.next_number(series):05d}"


def create_posting(
    repository: LeaseRepository,
    *,
    source_type: str,
    source_id: int,
    amount: float,
    posting_date: date,
    company_id: int | None,
    fiscal_year_id: int | None,
    principal: Principal,
    debit_account_id: int | None = None,
    credit_account_id: int | None = None,
    narration: str | None = None,
    reference: str | None = None,
) -> dict[str, Any]:
    prefix = VOUCHER_PREFIX[source_type]
    period = period_on(repository, company_id, posting_date)
    return repository.insert(
        "postings",
        {
            "VoucherNo": next_document_no(repository, "voucher", prefix, posting_date),
            "SourceType": source_type,
            "SourceID": source_id,
            "TransactionType": "Posting",
            "PostingDate": posting_date.isoformat(),
            "DebitAccountID": debit_account_id,
            "CreditAccountID": credit_account_id,
            "Amount": round(float(amount), 2),
            "Narration": narration or f"{source_type} {source_id}",
            "PostingReference": reference,
            "IsReversed": False,
            "CompanyID": company_id,
            "FiscalYearID": fiscal_year_id,
            "PeriodID": period["PeriodID"] if period else None,
        },
        principal,
    )


def reverse_posting(
    repository: LeaseRepository,
    posting: dict[str, Any],
    reason: str,
    principal: Principal,
    reversal_date: date | None = None,
) -> dict[str, Any]:
    """Write the mirror voucher and mark ``posting`` as reversed."""

    reversal_date = reversal_date or date.today()
    prefix = VOUCHER_PREFIX[posting["SourceType"]]
    period = period_on(repository, posting.get("CompanyID"), reversal_date)
    reversal = repository.insert(
        "postings",
        {
            "VoucherNo": next_document_no(repository, "voucher", f"{prefix}R", reversal_date),
            "SourceType": posting["SourceType"],
            "SourceID": posting["SourceID"],
            "TransactionType": "Reversal",
            "PostingDate": reversal_date.isoformat(),
            "DebitAccountID": posting.get("CreditAccountID"),
            "CreditAccountID": posting.get("DebitAccountID"),
            "Amount": posting.get("Amount"),
            "Narration": f"Reversal of {posting.get('VoucherNo')}: {reason}",
            "IsReversed": False,
            "ReversalReason": reason,
            "ReversalOfPostingID": posting["PostingID"],
            "CompanyID": posting.get("CompanyID"),
            "FiscalYearID": posting.get("FiscalYearID"),
            "PeriodID": period["PeriodID"] if period else None,
        },
        principal,
    )
    repository.update(
        "postings",
        posting["PostingID"],
        {"IsReversed": True, "ReversalReason": reason},
        principal,
    )
    return reversal


def postings_for(repository: LeaseRepository, source_type: str, source_id: int) -> list[dict[str, Any]]:
    rows = repository.list(
        "postings",
        lambda row: row.get("SourceType") == source_type and row.get("SourceID") == source_id,
    )
    return sorted(rows, key=lambda row: row["PostingID"])


def unallocated_amount(receipt: dict[str, Any]) -> float:
    return round(float(receipt.get("ReceivedAmount") or 0) - float(receipt.get("AllocatedAmount") or 0), 2)


def check_allocation(receipt: dict[str, Any], invoice: dict[str, Any], amount: float) -> None:
    if amount <= 0:
        raise DomainError("Allocated amount must be greater than zero")
    if PaymentStatus.parse(receipt.get("PaymentStatus")) in UNALLOCATABLE_RECEIPT_STATUSES:
        raise DomainError(f"Cannot allocate a {receipt['PaymentStatus']} receipt")
    if InvoiceStatus.parse(invoice.get("InvoiceStatus")) not in PAYABLE_INVOICE_STATUSES:
        raise DomainError(f"Cannot allocate to an invoice with status {invoice['InvoiceStatus']}")
    if amount - float(invoice.get("BalanceAmount") or 0) > 0.005:
        raise DomainError(f"Allocation exceeds the balance of invoice {invoice.get('InvoiceNo')}")


def apply_invoice_payment(
    repository: LeaseRepository, invoice: dict[str, Any], amount: float, principal: Principal
) -> dict[str, Any]:
    paid = round(float(invoice.get("PaidAmount") or 0) + amount, 2)
    balance = round(float(invoice.get("TotalAmount") or 0) - paid, 2)
    changes: dict[str, Any] = {"PaidAmount": paid, "BalanceAmount": max(balance, 0.0)}
    if balance <= 0.005:
        changes["InvoiceStatus"] = InvoiceStatus.PAID.value
    return repository.update("invoices", invoice["LeaseInvoiceID"], changes, principal)


def allocate_receipt(
    repository: LeaseRepository,
    receipt: dict[str, Any],
    invoice: dict[str, Any],
    amount: float,
    principal: Principal,
    *,
    allocation_date: date | None = None,
    notes: str | None = None,
) -> dict[str, Any]:
    amount = round(float(amount), 2)
    check_allocation(receipt, invoice, amount)
    if amount - unallocated_amount(receipt) > 0.005:
        raise DomainError("Allocation exceeds the unallocated receipt amount")

    allocation = repository.insert(
        "allocations",
        {
            "LeaseReceiptID": receipt["LeaseReceiptID"],
            "LeaseInvoiceID": invoice["LeaseInvoiceID"],
            "AllocatedAmount": amount,
            "AllocationDate": (allocation_date or date.today()).isoformat(),
            "Notes": notes,
        },
        principal,
    )
    receipt.update(
        repository.update(
            "receipts",
            receipt["LeaseReceiptID"],
            {"AllocatedAmount": round(float(receipt.get("AllocatedAmount") or 0) + amount, 2)},
            principal,
        )
    )
    apply_invoice_payment(repository, invoice, amount, principal)
    return allocation


def allocations_for(repository: LeaseRepository, field: str, value: int) -> list[dict[str, Any]]:
    rows = repository.list("allocations", lambda row: row.get(field) == value)
    for row in rows:
        receipt = repository.get("receipts", row.get("LeaseReceiptID"))
        invoice = repository.get("invoices", row.get("LeaseInvoiceID"))
        row["ReceiptNo"] = receipt.get("ReceiptNo") if receipt else None
        row["InvoiceNo"] = invoice.get("InvoiceNo") if invoice else None
    return sorted(rows, key=lambda row: row["AllocationID"])
