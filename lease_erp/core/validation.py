"""Client-side checks run before a request reaches the network."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping

from lease_erp.core.errors import ValidationError
from lease_erp.core.lifecycle import PaymentType
from lease_erp.core.wire import parse_date


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)


def _payment_type(value: Any) -> PaymentType | None:
    try:
        return PaymentType.parse(value) if value else None
    except ValidationError:
        return None


def validate_receipt_data(data: Mapping[str, Any], *, today: date | None = None) -> ValidationReport:
    today = today or date.today()
    report = ValidationReport()

    if not data.get("CustomerID"):
        report.errors.append("Customer is required")
    if not data.get("CompanyID"):
        report.errors.append("Company is required")
    if not data.get("FiscalYearID"):
        report.errors.append("Fiscal year is required")

    amount = data.get("ReceivedAmount")
    if amount is None or float(amount) <= 0:
        report.errors.append("Received amount must be greater than zero")

    receipt_date = parse_date(data.get("ReceiptDate"))
    if receipt_date and receipt_date > today:
        report.warnings.append("Receipt date is in the future")

    payment_type = _payment_type(data.get("PaymentType"))
    if payment_type is PaymentType.CHEQUE:
        if not data.get("ChequeNo"):
            report.errors.append("Cheque number is required for cheque payments")
        if not data.get("ChequeDate"):
            report.warnings.append("Cheque date is recommended for cheque payments")
        if not data.get("BankID"):
            report.warnings.append("Bank is recommended for cheque payments")
    elif payment_type is PaymentType.BANK_TRANSFER:
        if not data.get("TransactionReference"):
            report.warnings.append("Transaction reference is recommended for bank transfers")
        if not data.get("BankID"):
            report.warnings.append("Bank is recommended for bank transfers")

    deposit_date = parse_date(data.get("DepositDate"))
    if deposit_date and receipt_date and deposit_date < receipt_date:
        report.errors.append("Deposit date cannot be before receipt date")
    return report


def validate_posting_data(
    posting_date: Any,
    debit_account_id: int | None,
    credit_account_id: int | None,
    *,
    require_accounts: bool = True,
    today: date | None = None,
) -> ValidationReport:
    today = today or date.today()
    report = ValidationReport()
    parsed = parse_date(posting_date)
    if parsed is None:
        report.errors.append("Posting date is required")
    else:
        if parsed > today:
            report.warnings.append("Posting date is in the future")
        if parsed.weekday() >= 5:
            report.warnings.append("Posting date falls on a weekend")

    if require_accounts:
        if not debit_account_id:
            report.errors.append("Debit account is required")
        if not credit_account_id:
            report.errors.append("Credit account is required")
    if debit_account_id and debit_account_id == credit_account_id:
        report.errors.append("Debit and credit accounts must be different")
    return report


def validate_allocation_data(allocations: Iterable[Mapping[str, Any]]) -> ValidationReport:
    report = ValidationReport()
    seen: set[int] = set()
    rows = list(allocations)
    if not rows:
        report.errors.append("At least one invoice allocation is required")
    for row in rows:
        invoice_id = row.get("LeaseInvoiceID")
        if not invoice_id:
            report.errors.append("Invoice is required for each allocation")
            continue
        if invoice_id in seen:
            report.errors.append(f"Invoice {invoice_id} is allocated more than once")
        seen.add(invoice_id)
        amount = row.get("AllocatedAmount")
        if amount is None or float(amount) <= 0:
            report.errors.append(f"Allocated amount for invoice {invoice_id} must be greater than zero")
    return report


def validate_invoice_amounts(data: Mapping[str, Any]) -> ValidationReport:
    report = ValidationReport()
    total = float(data.get("TotalAmount") or 0)
    if total <= 0:
        report.errors.append("Total amount must be greater than zero")
    if data.get("SubTotal") is not None:
        expected = (
            float(data.get("SubTotal") or 0)
            + float(data.get("TaxAmount") or 0)
            - float(data.get("DiscountAmount") or 0)
        )
        if abs(expected - total) > 0.01:
            report.errors.append("Total amount does not match subtotal + tax - discount")
    return report


def validate_contract_data(data: Mapping[str, Any], units: Iterable[Mapping[str, Any]]) -> ValidationReport:
    report = ValidationReport()
    if not data.get("CustomerID"):
        report.errors.append("Customer is required")
    if not list(units):
        report.errors.append("At least one unit is required")
    if float(data.get("TotalAmount") or 0) <= 0:
        report.errors.append("Total amount must be greater than zero")
    start = parse_date(data.get("StartDate"))
    end = parse_date(data.get("EndDate"))
    if start and end and end < start:
        report.errors.append("End date cannot be before start date")
    return report


__all__ = [
    "ValidationError",
    "ValidationReport",
    "validate_allocation_data",
    "validate_contract_data",
    "validate_invoice_amounts",
    "validate_posting_data",
    "validate_receipt_data",
]
