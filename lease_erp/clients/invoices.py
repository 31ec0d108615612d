"""Contract invoice client."""
from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Mapping

from lease_erp.core.envelope import ResponseEnvelope
from lease_erp.core.errors import ValidationError
from lease_erp.core.lifecycle import (
    CLEARED_FOR_POSTING,
    UNPOSTABLE_INVOICE_STATUSES,
    ApprovalStatus,
    InvoiceStatus,
    PaymentType,
    can_change_invoice_status,
)
from lease_erp.core.modes import InvoiceMode
from lease_erp.core.schema import Invoice, InvoiceDetail, LedgerPosting, ReceiptAllocation
from lease_erp.core.validation import validate_invoice_amounts, validate_posting_data

from .base import DispatchClient, payload_of, rows_of
from .results import DispatchResult

Mode = InvoiceMode
TERMINAL_STATUSES = frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED, InvoiceStatus.VOIDED})


def _detail(response: ResponseEnvelope) -> InvoiceDetail | None:
    rows = response.table(1)
    if not rows:
        return None
    return InvoiceDetail(
        invoice=Invoice.model_validate(rows[0]),
        allocations=[ReceiptAllocation.model_validate(row) for row in response.table(2)],
        postings=[LedgerPosting.model_validate(row) for row in response.table(3)],
    )


def _statistics(response: ResponseEnvelope) -> dict[str, Any]:
    summary = response.table(4)
    return {
        "by_status": response.table(1),
        "by_approval": response.table(2),
        "monthly": response.table(3),
        "summary": summary[0] if summary else {},
    }


def _fields(response: ResponseEnvelope) -> dict[str, Any]:
    return {key: value for key, value in response.extras.items() if not key.startswith("table")}


def can_edit_invoice(invoice: Invoice) -> bool:
    if invoice.IsPosted or invoice.ApprovalStatus == ApprovalStatus.APPROVED.value:
        return False
    return InvoiceStatus.parse(invoice.InvoiceStatus) not in TERMINAL_STATUSES


def can_delete_invoice(invoice: Invoice) -> bool:
    if invoice.IsPosted or invoice.ApprovalStatus == ApprovalStatus.APPROVED.value:
        return False
    return not invoice.PaidAmount


def can_post_invoice(invoice: Invoice) -> bool:
    if invoice.IsPosted or InvoiceStatus.parse(invoice.InvoiceStatus) in UNPOSTABLE_INVOICE_STATUSES:
        return False
    if not invoice.ApprovalStatus:
        return not invoice.RequiresApproval
    return ApprovalStatus.parse(invoice.ApprovalStatus) in CLEARED_FOR_POSTING


class InvoiceClient(DispatchClient):
    modes = InvoiceMode

    can_edit_invoice = staticmethod(can_edit_invoice)
    can_delete_invoice = staticmethod(can_delete_invoice)
    can_post_invoice = staticmethod(can_post_invoice)

    def generate_invoice(self, invoice: Invoice | Mapping[str, Any]) -> DispatchResult[None]:
        payload = payload_of(Invoice, invoice)
        if "TotalAmount" in payload:
            report = validate_invoice_amounts(payload)
            if not report.is_valid:
                return self.invalid(report.errors)
        return self.call(Mode.GENERATE, payload, action="generate invoice", mutation=True)

    def update_invoice(self, invoice_id: int, changes: Invoice | Mapping[str, Any]) -> DispatchResult[None]:
        return self.call(
            Mode.UPDATE,
            {"LeaseInvoiceID": invoice_id, **payload_of(Invoice, changes)},
            action="update invoice",
            mutation=True,
        )

    def get_all_invoices(
        self, company_id: int | None = None, fiscal_year_id: int | None = None
    ) -> DispatchResult[list[Invoice]]:
        return self.call(
            Mode.GET_ALL,
            {"CompanyID": company_id, "FiscalYearID": fiscal_year_id},
            action="load invoices",
            parse=rows_of(Invoice),
        )

    def get_invoice_by_id(self, invoice_id: int) -> DispatchResult[InvoiceDetail]:
        return self.call(Mode.GET_BY_ID, {"LeaseInvoiceID": invoice_id}, action="load invoice", parse=_detail)

    def delete_invoice(self, invoice_id: int) -> DispatchResult[None]:
        return self.call(Mode.DELETE, {"LeaseInvoiceID": invoice_id}, action="delete invoice", mutation=True)

    def search_invoices(self, filters: Mapping[str, Any] | None = None) -> DispatchResult[list[Invoice]]:
        return self.call(Mode.SEARCH, dict(filters or {}), action="search invoices", parse=rows_of(Invoice))

    def change_invoice_status(
        self,
        invoice_id: int,
        status: InvoiceStatus | str,
        *,
        current: Invoice | None = None,
        notes: str | None = None,
    ) -> DispatchResult[None]:
        try:
            target = InvoiceStatus.parse(status)
            allowed = current is None or can_change_invoice_status(current.InvoiceStatus, target)
        except ValidationError as exc:
            return self.invalid(exc.messages)
        if not allowed:
            return self.invalid(f"Cannot change invoice status from {current.InvoiceStatus} to {target.value}")
        return self.call(
            Mode.CHANGE_STATUS,
            {"LeaseInvoiceID": invoice_id, "InvoiceStatus": target.value, "Notes": notes},
            action="change invoice status",
            mutation=True,
        )

    def get_invoice_statistics(self, filters: Mapping[str, Any] | None = None) -> DispatchResult[dict[str, Any]]:
        return self.call(
            Mode.STATISTICS, dict(filters or {}), action="load invoice statistics", parse=_statistics
        )

    def get_unposted_invoices(self, filters: Mapping[str, Any] | None = None) -> DispatchResult[list[Invoice]]:
        return self.call(Mode.UNPOSTED, dict(filters or {}), action="load unposted invoices", parse=rows_of(Invoice))

    def _posting_parameters(
        self,
        posting_date: date,
        debit_account_id: int | None,
        credit_account_id: int | None,
        narration: str | None,
        reference: str | None,
    ) -> dict[str, Any]:
        return {
            "PostingDate": posting_date,
            "DebitAccountID": debit_account_id,
            "CreditAccountID": credit_account_id,
            "PostingNarration": narration,
            "PostingReference": reference,
        }

    def post_invoice(
        self,
        invoice_id: int,
        posting_date: date | None = None,
        *,
        debit_account_id: int | None = None,
        credit_account_id: int | None = None,
        narration: str | None = None,
        reference: str | None = None,
    ) -> DispatchResult[None]:
        posting_date = posting_date or date.today()
        report = validate_posting_data(posting_date, debit_account_id, credit_account_id, require_accounts=False)
        if not report.is_valid:
            return self.invalid(report.errors)
        return self.call(
            Mode.POST_SINGLE,
            {
                "LeaseInvoiceID": invoice_id,
                **self._posting_parameters(posting_date, debit_account_id, credit_account_id, narration, reference),
            },
            action="post invoice",
            mutation=True,
        )

    def post_multiple_invoices(
        self,
        invoice_ids: Iterable[int],
        posting_date: date | None = None,
        *,
        debit_account_id: int | None = None,
        credit_account_id: int | None = None,
        narration: str | None = None,
        reference: str | None = None,
    ) -> DispatchResult[dict[str, Any]]:
        ids = list(invoice_ids)
        if not ids:
            return self.invalid("Select at least one invoice to post")
        posting_date = posting_date or date.today()
        report = validate_posting_data(posting_date, debit_account_id, credit_account_id, require_accounts=False)
        if not report.is_valid:
            return self.invalid(report.errors)
        return self.call(
            Mode.POST_MULTIPLE,
            {
                "LeaseInvoiceIDs": ids,
                **self._posting_parameters(posting_date, debit_account_id, credit_account_id, narration, reference),
            },
            action="post invoices",
            parse=_fields,
            mutation=True,
        )

    def reverse_invoice_posting(
        self, posting_id: int, reason: str | None, reversal_date: date | None = None
    ) -> DispatchResult[None]:
        if not reason or not reason.strip():
            return self.invalid("Reversal reason is required")
        return self.call(
            Mode.REVERSE_POSTING,
            {"PostingID": posting_id, "ReversalReason": reason.strip(), "ReversalDate": reversal_date},
            action="reverse invoice posting",
            mutation=True,
        )

    def record_invoice_payment(
        self,
        invoice_id: int,
        amount: float,
        *,
        payment_date: date | None = None,
        payment_type: PaymentType | str = PaymentType.CASH,
        bank_id: int | None = None,
        cheque_no: str | None = None,
        transaction_reference: str | None = None,
        notes: str | None = None,
    ) -> DispatchResult[None]:
        if not amount or float(amount) <= 0:
            return self.invalid("Payment amount must be greater than zero")
        try:
            kind = PaymentType.parse(payment_type)
        except ValidationError as exc:
            return self.invalid(exc.messages)
        if kind is PaymentType.CHEQUE and not cheque_no:
            return self.invalid("Cheque number is required for cheque payments")
        return self.call(
            Mode.RECORD_PAYMENT,
            {
                "LeaseInvoiceID": invoice_id,
                "PaymentAmount": amount,
                "PaymentDate": payment_date,
                "PaymentType": kind.value,
                "BankID": bank_id,
                "ChequeNo": cheque_no,
                "TransactionReference": transaction_reference,
                "Notes": notes,
            },
            action="record payment",
            mutation=True,
        )

    def approve_invoice(self, invoice_id: int, comments: str | None = None) -> DispatchResult[None]:
        return self.call(
            Mode.APPROVE,
            {"LeaseInvoiceID": invoice_id, "ApprovalComments": comments},
            action="approve invoice",
            mutation=True,
        )

    def reject_invoice(self, invoice_id: int, reason: str | None) -> DispatchResult[None]:
        if not reason or not reason.strip():
            return self.invalid("Rejection reason is required")
        return self.call(
            Mode.REJECT,
            {"LeaseInvoiceID": invoice_id, "RejectionReason": reason.strip()},
            action="reject invoice",
            mutation=True,
        )

    def reset_invoice_approval(self, invoice_id: int) -> DispatchResult[None]:
        return self.call(
            Mode.RESET_APPROVAL, {"LeaseInvoiceID": invoice_id}, action="reset invoice approval", mutation=True
        )

    def get_pending_approval_invoices(
        self, filters: Mapping[str, Any] | None = None
    ) -> DispatchResult[list[Invoice]]:
        return self.call(
            Mode.PENDING_APPROVAL, dict(filters or {}), action="load pending invoices", parse=rows_of(Invoice)
        )

    def validate_invoice_for_posting(
        self,
        invoice_id: int,
        posting_date: date | None = None,
        *,
        debit_account_id: int | None = None,
        credit_account_id: int | None = None,
    ) -> DispatchResult[dict[str, Any]]:
        return self.call(
            Mode.VALIDATE_POSTING,
            {
                "LeaseInvoiceID": invoice_id,
                "PostingDate": posting_date,
                "DebitAccountID": debit_account_id,
                "CreditAccountID": credit_account_id,
            },
            action="validate invoice posting",
            parse=_fields,
        )
