"""Lease receipt client: CRUD, payment status, allocation, GL posting, approval."""
from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Mapping

from lease_erp.core.envelope import ResponseEnvelope
from lease_erp.core.errors import ValidationError
from lease_erp.core.lifecycle import (
    PaymentStatus,
    PaymentType,
    allowed_payment_transitions,
    can_change_payment_status,
)
from lease_erp.core.modes import ReceiptMode
from lease_erp.core.schema import LedgerPosting, Receipt, ReceiptAllocation, ReceiptDetail
from lease_erp.core.validation import (
    validate_allocation_data,
    validate_posting_data,
    validate_receipt_data,
)

from .base import DispatchClient, payload_of, rows_of
from .results import DispatchResult

Mode = ReceiptMode
NOT_PENDING_CLEARANCE = frozenset({PaymentStatus.BOUNCED, PaymentStatus.CANCELLED, PaymentStatus.REVERSED})


def _detail(response: ResponseEnvelope) -> ReceiptDetail | None:
    rows = response.table(1)
    if not rows:
        return None
    return ReceiptDetail(
        receipt=Receipt.model_validate(rows[0]),
        postings=[LedgerPosting.model_validate(row) for row in response.table(2)],
        allocations=[ReceiptAllocation.model_validate(row) for row in response.table(3)],
    )


def _statistics(response: ResponseEnvelope) -> dict[str, Any]:
    summary = response.table(4)
    return {
        "by_status": response.table(1),
        "by_type": response.table(2),
        "monthly": response.table(3),
        "summary": summary[0] if summary else {},
    }


def _fields(response: ResponseEnvelope) -> dict[str, Any]:
    return {key: value for key, value in response.extras.items() if not key.startswith("table")}


class ReceiptClient(DispatchClient):
    modes = ReceiptMode

    # ------------------------------------------------------------------
    # CRUD and queries
    # ------------------------------------------------------------------
    def create_receipt(self, receipt: Receipt | Mapping[str, Any]) -> DispatchResult[None]:
        payload = payload_of(Receipt, receipt)
        report = validate_receipt_data(payload)
        if not report.is_valid:
            return self.invalid(report.errors)
        return self.call(Mode.CREATE, payload, action="create receipt", mutation=True)

    def update_receipt(self, receipt_id: int, changes: Receipt | Mapping[str, Any]) -> DispatchResult[None]:
        return self.call(
            Mode.UPDATE,
            {"LeaseReceiptID": receipt_id, **payload_of(Receipt, changes)},
            action="update receipt",
            mutation=True,
        )

    def get_all_receipts(
        self, company_id: int | None = None, fiscal_year_id: int | None = None
    ) -> DispatchResult[list[Receipt]]:
        return self.call(
            Mode.GET_ALL,
            {"CompanyID": company_id, "FiscalYearID": fiscal_year_id},
            action="load receipts",
            parse=rows_of(Receipt),
        )

    def get_receipt_by_id(self, receipt_id: int) -> DispatchResult[ReceiptDetail]:
        return self.call(Mode.GET_BY_ID, {"LeaseReceiptID": receipt_id}, action="load receipt", parse=_detail)

    def delete_receipt(self, receipt_id: int) -> DispatchResult[None]:
        return self.call(Mode.DELETE, {"LeaseReceiptID": receipt_id}, action="delete receipt", mutation=True)

    def search_receipts(self, filters: Mapping[str, Any] | None = None) -> DispatchResult[list[Receipt]]:
        """``filters`` uses the wire names (``SearchText``, ``FilterPaymentStatus``...)."""

        return self.call(Mode.SEARCH, dict(filters or {}), action="search receipts", parse=rows_of(Receipt))

    def get_receipt_statistics(self, filters: Mapping[str, Any] | None = None) -> DispatchResult[dict[str, Any]]:
        return self.call(
            Mode.STATISTICS, dict(filters or {}), action="load receipt statistics", parse=_statistics
        )

    def get_unposted_receipts(self, filters: Mapping[str, Any] | None = None) -> DispatchResult[list[Receipt]]:
        return self.call(
            Mode.UNPOSTED, dict(filters or {}), action="load unposted receipts", parse=rows_of(Receipt)
        )

    def get_receipts_by_customer(self, customer_id: int) -> DispatchResult[list[Receipt]]:
        return self.call(
            Mode.BY_CUSTOMER, {"CustomerID": customer_id}, action="load customer receipts", parse=rows_of(Receipt)
        )

    def get_receipts_by_invoice(self, invoice_id: int) -> DispatchResult[list[Receipt]]:
        return self.call(
            Mode.BY_INVOICE, {"LeaseInvoiceID": invoice_id}, action="load invoice receipts", parse=rows_of(Receipt)
        )

    # ------------------------------------------------------------------
    # payment status
    # ------------------------------------------------------------------
    def change_receipt_status(
        self,
        receipt_id: int,
        status: PaymentStatus | str,
        *,
        current: Receipt | None = None,
        notes: str | None = None,
        clearance_date: date | None = None,
        deposit_date: date | None = None,
        deposited_bank_id: int | None = None,
    ) -> DispatchResult[None]:
        """Move a receipt to ``status``.

        When the caller already holds the receipt (``current``) the move is
        checked against the payment status table first and refused locally.
        """

        try:
            target = PaymentStatus.parse(status)
            allowed = current is None or can_change_payment_status(
                current.PaymentStatus, target, current.PaymentType
            )
        except ValidationError as exc:
            return self.invalid(exc.messages)
        if not allowed:
            return self.invalid(f"Cannot change payment status from {current.PaymentStatus} to {target.value}")
        return self.call(
            Mode.CHANGE_STATUS,
            {
                "LeaseReceiptID": receipt_id,
                "PaymentStatus": target.value,
                "Notes": notes,
                "ClearanceDate": clearance_date,
                "DepositDate": deposit_date,
                "DepositedBankID": deposited_bank_id,
            },
            action="change receipt status",
            mutation=True,
        )

    def update_receipt_clearance(
        self,
        receipt_id: int,
        clearance_date: date | None = None,
        status: PaymentStatus | str = PaymentStatus.CLEARED,
        *,
        notes: str | None = None,
    ) -> DispatchResult[None]:
        return self.change_receipt_status(
            receipt_id, status, clearance_date=clearance_date or date.today(), notes=notes
        )

    def update_receipt_deposit(
        self, receipt_id: int, deposit_date: date | None = None, bank_id: int | None = None
    ) -> DispatchResult[None]:
        return self.change_receipt_status(
            receipt_id, PaymentStatus.DEPOSITED, deposit_date=deposit_date or date.today(), deposited_bank_id=bank_id
        )

    def mark_receipt_as_bounced(self, receipt_id: int, reason: str) -> DispatchResult[None]:
        return self.change_receipt_status(receipt_id, PaymentStatus.BOUNCED, notes=f"Bounced: {reason}")

    @staticmethod
    def allowed_status_transitions(receipt: Receipt) -> list[PaymentStatus]:
        if receipt.IsPosted:
            return []
        return allowed_payment_transitions(receipt.PaymentStatus, receipt.PaymentType)

    def bulk_update_receipts(
        self, receipt_ids: Iterable[int], operation: str, **parameters: Any
    ) -> DispatchResult[dict[str, Any]]:
        """Apply ``operation`` (UpdateStatus, Deposit, Approve, Reject, Post) to many receipts."""

        ids = list(receipt_ids)
        if not ids:
            return self.invalid("Select at least one receipt")
        return self.call(
            Mode.BULK_UPDATE,
            {"LeaseReceiptIDs": ids, "BulkOperation": operation, **parameters},
            action="update receipts",
            parse=_fields,
            mutation=True,
        )

    # ------------------------------------------------------------------
    # allocation
    # ------------------------------------------------------------------
    def allocate_receipt_to_invoice(
        self,
        receipt_id: int,
        invoice_id: int,
        amount: float,
        *,
        allocation_date: date | None = None,
        notes: str | None = None,
    ) -> DispatchResult[None]:
        report = validate_allocation_data([{"LeaseInvoiceID": invoice_id, "AllocatedAmount": amount}])
        if not report.is_valid:
            return self.invalid(report.errors)
        return self.call(
            Mode.ALLOCATE_TO_INVOICE,
            {
                "LeaseReceiptID": receipt_id,
                "LeaseInvoiceID": invoice_id,
                "AllocatedAmount": amount,
                "AllocationDate": allocation_date,
                "Notes": notes,
            },
            action="allocate receipt",
            mutation=True,
        )

    def allocate_receipt_to_multiple_invoices(
        self, receipt_id: int, allocations: Iterable[Mapping[str, Any]]
    ) -> DispatchResult[None]:
        rows = [dict(row) for row in allocations]
        report = validate_allocation_data(rows)
        if not report.is_valid:
            return self.invalid(report.errors)
        return self.call(
            Mode.ALLOCATE_MULTIPLE,
            {"LeaseReceiptID": receipt_id, "InvoiceAllocationsJSON": rows},
            action="allocate receipt",
            mutation=True,
        )

    # ------------------------------------------------------------------
    # GL posting
    # ------------------------------------------------------------------
    def validate_receipt_for_posting(
        self,
        receipt_id: int,
        posting_date: date | None = None,
        *,
        debit_account_id: int | None = None,
        credit_account_id: int | None = None,
    ) -> DispatchResult[dict[str, Any]]:
        return self.call(
            Mode.VALIDATE_POSTING,
            {
                "LeaseReceiptID": receipt_id,
                "PostingDate": posting_date,
                "DebitAccountID": debit_account_id,
                "CreditAccountID": credit_account_id,
            },
            action="validate receipt posting",
            parse=_fields,
        )

    def post_receipt_to_gl(
        self,
        receipt_id: int,
        posting_date: date | None = None,
        *,
        debit_account_id: int | None = None,
        credit_account_id: int | None = None,
        narration: str | None = None,
        reference: str | None = None,
    ) -> DispatchResult[None]:
        posting_date = posting_date or date.today()
        report = validate_posting_data(
            posting_date, debit_account_id, credit_account_id, require_accounts=False
        )
        if not report.is_valid:
            return self.invalid(report.errors)
        return self.call(
            Mode.POST,
            {
                "LeaseReceiptID": receipt_id,
                "PostingDate": posting_date,
                "DebitAccountID": debit_account_id,
                "CreditAccountID": credit_account_id,
                "PostingNarration": narration,
                "PostingReference": reference,
            },
            action="post receipt",
            mutation=True,
        )

    def reverse_receipt_posting(
        self,
        reason: str | None,
        *,
        posting_id: int | None = None,
        receipt_id: int | None = None,
        reversal_date: date | None = None,
    ) -> DispatchResult[None]:
        if not reason or not reason.strip():
            return self.invalid("Reversal reason is required")
        if not posting_id and not receipt_id:
            return self.invalid("Posting is required")
        return self.call(
            Mode.REVERSE_POSTING,
            {
                "PostingID": posting_id,
                "LeaseReceiptID": receipt_id,
                "ReversalReason": reason.strip(),
                "ReversalDate": reversal_date,
            },
            action="reverse receipt posting",
            mutation=True,
        )

    # ------------------------------------------------------------------
    # approval
    # ------------------------------------------------------------------
    def approve_receipt(self, receipt_id: int, comments: str | None = None) -> DispatchResult[None]:
        return self.call(
            Mode.APPROVE,
            {"LeaseReceiptID": receipt_id, "ApprovalComments": comments},
            action="approve receipt",
            mutation=True,
        )

    def reject_receipt(self, receipt_id: int, reason: str | None) -> DispatchResult[None]:
        if not reason or not reason.strip():
            return self.invalid("Rejection reason is required")
        return self.call(
            Mode.REJECT,
            {"LeaseReceiptID": receipt_id, "RejectionReason": reason.strip()},
            action="reject receipt",
            mutation=True,
        )

    def reset_receipt_approval(self, receipt_id: int) -> DispatchResult[None]:
        return self.call(
            Mode.RESET_APPROVAL, {"LeaseReceiptID": receipt_id}, action="reset receipt approval", mutation=True
        )

    def get_pending_approval_receipts(
        self, filters: Mapping[str, Any] | None = None
    ) -> DispatchResult[list[Receipt]]:
        return self.call(
            Mode.PENDING_APPROVAL, dict(filters or {}), action="load pending receipts", parse=rows_of(Receipt)
        )

    # ------------------------------------------------------------------
    # compositions
    # ------------------------------------------------------------------
    def get_receipts_by_payment_type(self, payment_type: PaymentType | str) -> DispatchResult[list[Receipt]]:
        try:
            kind = PaymentType.parse(payment_type)
        except ValidationError as exc:
            return self.invalid(exc.messages)
        return self.search_receipts({"FilterPaymentType": kind.value})

    def get_receipts_by_payment_status(self, status: PaymentStatus | str) -> DispatchResult[list[Receipt]]:
        try:
            target = PaymentStatus.parse(status)
        except ValidationError as exc:
            return self.invalid(exc.messages)
        return self.search_receipts({"FilterPaymentStatus": target.value})

    def get_receipts_by_date_range(
        self, from_date: date | None, to_date: date | None
    ) -> DispatchResult[list[Receipt]]:
        return self.search_receipts({"FilterFromDate": from_date, "FilterToDate": to_date})

    def get_posted_receipts(self) -> DispatchResult[list[Receipt]]:
        return self.search_receipts({"FilterIsPosted": True})

    def get_advance_payment_receipts(self) -> DispatchResult[list[Receipt]]:
        return self.search_receipts({"FilterAdvanceOnly": True})

    def get_receipts_pending_clearance(self) -> DispatchResult[list[Receipt]]:
        settled = {status.value for status in NOT_PENDING_CLEARANCE}
        return self.get_receipts_by_payment_type(PaymentType.CHEQUE).map(
            lambda rows: [
                row for row in rows or [] if row.ClearanceDate is None and row.PaymentStatus not in settled
            ]
        )

    def get_bounced_receipts(self) -> DispatchResult[list[Receipt]]:
        return self.get_receipts_by_payment_status(PaymentStatus.BOUNCED)

    def get_receipts_requiring_deposit(self) -> DispatchResult[list[Receipt]]:
        return self.get_receipts_by_payment_type(PaymentType.CHEQUE).map(
            lambda rows: [
                row
                for row in rows or []
                if row.DepositDate is None and row.PaymentStatus == PaymentStatus.RECEIVED.value
            ]
        )
