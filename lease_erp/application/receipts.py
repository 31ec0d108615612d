"""Receipt modes: capture, clearance workflow, allocation, approval and GL posting."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, assert_never

from lease_erp.core.envelope import ResponseEnvelope
from lease_erp.core.errors import ConflictError, DomainError, LeaseError, not_found
from lease_erp.core.lifecycle import (
    ApprovalStatus,
    PaymentStatus,
    PaymentType,
    POSTABLE_PAYMENT_STATUSES,
    initial_approval_status,
    initial_payment_status,
    receipt_posting_errors,
    require_can_approve,
    require_can_reject,
    require_can_reset_approval,
    require_no_errors,
    require_payment_transition,
    reversal_errors,
)
from lease_erp.core.modes import ReceiptMode
from lease_erp.core.schema import Receipt
from lease_erp.core.wire import is_truthy, parse_id
from lease_erp.domain import Principal

from . import ledger
from .dispatch import (
    EntityHandler,
    by_id,
    contains_text,
    json_rows,
    normalise_record,
    opt_amount,
    opt_date,
    opt_flag,
    opt_id,
    opt_text,
    req_id,
    req_text,
    within_amounts,
    within_dates,
)
from .periods import closed_period_on
from .statistics import grouped_summary, monthly_summary, totals

DATE_FIELDS = ("ReceiptDate", "ChequeDate", "DepositDate", "ClearanceDate")
SEARCH_FIELDS = ("ReceiptNo", "ChequeNo", "TransactionReference", "BankAccountNo", "Notes", "InvoiceNo")


def _now() -> str:
    return datetime.now().replace(microsecond=0).isoformat()


def insert_receipt(repository, record: dict[str, Any], principal: Principal) -> dict[str, Any]:
    """Validate and store a new receipt; shared with invoice payment recording."""

    for key, label in (("CustomerID", "Customer"), ("CompanyID", "Company"), ("FiscalYearID", "Fiscal year")):
        if not record.get(key):
            raise DomainError(f"{label} is required")
    amount = float(record.get("ReceivedAmount") or 0)
    if amount <= 0:
        raise DomainError("Received amount must be greater than zero")
    if record.get("LeaseInvoiceID") and repository.get("invoices", record["LeaseInvoiceID"]) is None:
        raise not_found("Invoice", record["LeaseInvoiceID"])

    receipt_date = record.get("ReceiptDate") or date.today().isoformat()
    receipt_no = record.get("ReceiptNo")
    if receipt_no:
        if repository.list("receipts", lambda row: row.get("ReceiptNo") == receipt_no):
            raise ConflictError(f"Receipt number {receipt_no} already exists")
    else:
        receipt_no = ledger.next_document_no(
            repository, "receipt", "REC", date.fromisoformat(receipt_date)
        )

    requires_approval = is_truthy(record.get("RequiresApproval", False))
    record.update(
        ReceiptNo=receipt_no,
        ReceiptDate=receipt_date,
        ReceivedAmount=round(amount, 2),
        PaymentType=PaymentType.parse(record.get("PaymentType") or PaymentType.CASH).value,
        PaymentStatus=initial_payment_status(record.get("PaymentStatus")).value,
        IsAdvancePayment=is_truthy(record.get("IsAdvancePayment", False)),
        RequiresApproval=requires_approval,
        ApprovalStatus=initial_approval_status(requires_approval).value,
        IsPosted=False,
        PostingID=None,
        AllocatedAmount=0.0,
    )
    return repository.insert("receipts", record, principal)


class ReceiptHandler(EntityHandler[ReceiptMode]):
    modes = ReceiptMode

    def handle(self, mode: ReceiptMode, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        match mode:
            case ReceiptMode.CREATE:
                return self._create(params, principal)
            case ReceiptMode.UPDATE:
                return self._update(params, principal)
            case ReceiptMode.GET_ALL:
                return ResponseEnvelope.success(data=self._search_rows({
                    "FilterCompanyID": params.get("CompanyID"),
                    "FilterFiscalYearID": params.get("FiscalYearID"),
                }))
            case ReceiptMode.GET_BY_ID:
                return self._get_by_id(params)
            case ReceiptMode.DELETE:
                return self._delete(params, principal)
            case ReceiptMode.SEARCH:
                return ResponseEnvelope.success(data=self._search_rows(params))
            case ReceiptMode.CHANGE_STATUS:
                return self._change_status(params, principal)
            case ReceiptMode.STATISTICS:
                return self._statistics(params)
            case ReceiptMode.ALLOCATE_TO_INVOICE:
                return self._allocate(params, principal)
            case ReceiptMode.POST:
                return self._post(params, principal)
            case ReceiptMode.REVERSE_POSTING:
                return self._reverse(params, principal)
            case ReceiptMode.UNPOSTED:
                rows = [
                    row
                    for row in self._search_rows(params)
                    if not row.get("IsPosted")
                    and PaymentStatus.parse(row["PaymentStatus"]) in POSTABLE_PAYMENT_STATUSES
                ]
                return ResponseEnvelope.success(data=rows)
            case ReceiptMode.ALLOCATE_MULTIPLE:
                return self._allocate_multiple(params, principal)
            case ReceiptMode.BY_CUSTOMER:
                customer_id = req_id(params, "CustomerID", "Customer")
                return ResponseEnvelope.success(data=self._search_rows({"FilterCustomerID": customer_id}))
            case ReceiptMode.BY_INVOICE:
                return self._by_invoice(params)
            case ReceiptMode.BULK_UPDATE:
                return self._bulk_update(params, principal)
            case ReceiptMode.APPROVE:
                return self._approve(params, principal)
            case ReceiptMode.REJECT:
                return self._reject(params, principal)
            case ReceiptMode.RESET_APPROVAL:
                return self._reset_approval(params, principal)
            case ReceiptMode.PENDING_APPROVAL:
                rows = [
                    row
                    for row in self._search_rows(params)
                    if row.get("RequiresApproval") and row.get("ApprovalStatus") == ApprovalStatus.PENDING.value
                ]
                return ResponseEnvelope.success(data=rows)
            case ReceiptMode.VALIDATE_POSTING:
                return self._validate_posting(params)
            case _:
                assert_never(mode)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _decorate(self, row: dict[str, Any]) -> dict[str, Any]:
        invoice = self.repository.get("invoices", row.get("LeaseInvoiceID"))
        row["InvoiceNo"] = invoice.get("InvoiceNo") if invoice else None
        row["UnallocatedAmount"] = ledger.unallocated_amount(row)
        return row

    def _receipt(self, params: dict[str, Any]) -> dict[str, Any]:
        return self.repository.require("receipts", req_id(params, "LeaseReceiptID", "Receipt"))

    def _search_rows(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        text = opt_text(params, "SearchText")
        customer_id = opt_id(params, "FilterCustomerID")
        invoice_id = opt_id(params, "FilterInvoiceID")
        company_id = opt_id(params, "FilterCompanyID")
        fiscal_year_id = opt_id(params, "FilterFiscalYearID")
        bank_id = opt_id(params, "FilterBankID")
        payment_type = opt_text(params, "FilterPaymentType")
        payment_status = opt_text(params, "FilterPaymentStatus")
        approval_status = opt_text(params, "FilterApprovalStatus")
        is_posted = opt_flag(params, "FilterIsPosted")
        advance_only = opt_flag(params, "FilterAdvanceOnly")
        start = opt_date(params, "FilterFromDate")
        end = opt_date(params, "FilterToDate")
        low = opt_amount(params, "FilterAmountFrom")
        high = opt_amount(params, "FilterAmountTo")

        if payment_type:
            payment_type = PaymentType.parse(payment_type).value
        if payment_status:
            payment_status = PaymentStatus.parse(payment_status).value
        if approval_status:
            approval_status = ApprovalStatus.parse(approval_status).value

        def keep(row: dict[str, Any]) -> bool:
            checks = (
                not customer_id or row.get("CustomerID") == customer_id,
                not invoice_id or row.get("LeaseInvoiceID") == invoice_id,
                not company_id or row.get("CompanyID") == company_id,
                not fiscal_year_id or row.get("FiscalYearID") == fiscal_year_id,
                not bank_id or bank_id in (row.get("BankID"), row.get("DepositedBankID")),
                not payment_type or row.get("PaymentType") == payment_type,
                not payment_status or row.get("PaymentStatus") == payment_status,
                not approval_status or row.get("ApprovalStatus") == approval_status,
                is_posted is None or bool(row.get("IsPosted")) == is_posted,
                not advance_only or bool(row.get("IsAdvancePayment")),
                within_dates(row.get("ReceiptDate"), start, end),
                within_amounts(row.get("ReceivedAmount"), low, high),
            )
            return all(checks)

        rows = [self._decorate(row) for row in self.repository.list("receipts", keep)]
        return by_id([row for row in rows if contains_text(row, text, SEARCH_FIELDS)], "LeaseReceiptID")

    def _posting_inputs(self, params: dict[str, Any], receipt: dict[str, Any]) -> dict[str, Any]:
        posting_date = opt_date(params, "PostingDate") or date.today()
        return {
            "posting_date": posting_date,
            "debit_account_id": opt_id(params, "DebitAccountID"),
            "credit_account_id": opt_id(params, "CreditAccountID") or receipt.get("AccountID"),
            "closed_period": closed_period_on(self.repository, receipt.get("CompanyID"), posting_date),
        }

    def _posting_errors(self, receipt: dict[str, Any] | None, inputs: dict[str, Any]) -> list[str]:
        return receipt_posting_errors(
            receipt,
            closed_period=inputs["closed_period"],
            debit_account_id=inputs["debit_account_id"],
            credit_account_id=inputs["credit_account_id"],
        )

    # ------------------------------------------------------------------
    # modes
    # ------------------------------------------------------------------
    def _create(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        record = normalise_record(Receipt.pick_writable(params), DATE_FIELDS)
        row = insert_receipt(self.repository, record, principal)
        return ResponseEnvelope.success(
            "Receipt created successfully",
            NewReceiptID=row["LeaseReceiptID"],
            ReceiptNo=row["ReceiptNo"],
        )

    def _update(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        current = self._receipt(params)
        if current.get("IsPosted"):
            raise DomainError("Cannot update a posted receipt")
        changes = normalise_record(Receipt.pick_writable(params), DATE_FIELDS)

        if "PaymentType" in changes:
            changes["PaymentType"] = PaymentType.parse(changes["PaymentType"]).value
        if "PaymentStatus" in changes:
            target = PaymentStatus.parse(changes["PaymentStatus"])
            if target.value != current["PaymentStatus"]:
                payment_type = changes.get("PaymentType", current["PaymentType"])
                require_payment_transition(current["PaymentStatus"], target, payment_type)
            changes["PaymentStatus"] = target.value
        if "ReceivedAmount" in changes:
            amount = float(changes["ReceivedAmount"] or 0)
            if amount <= 0:
                raise DomainError("Received amount must be greater than zero")
            if amount < float(current.get("AllocatedAmount") or 0):
                raise DomainError("Received amount cannot be less than the allocated amount")
        if "ReceiptNo" in changes and changes["ReceiptNo"] != current.get("ReceiptNo"):
            if self.repository.list("receipts", lambda row: row.get("ReceiptNo") == changes["ReceiptNo"]):
                raise ConflictError(f"Receipt number {changes['ReceiptNo']} already exists")
        if "RequiresApproval" in changes:
            changes["RequiresApproval"] = is_truthy(changes["RequiresApproval"])
            if current.get("ApprovalStatus") in (ApprovalStatus.PENDING.value, ApprovalStatus.NOT_REQUIRED.value):
                changes["ApprovalStatus"] = initial_approval_status(changes["RequiresApproval"]).value

        self.repository.update("receipts", current["LeaseReceiptID"], changes, principal)
        return ResponseEnvelope.success("Receipt updated successfully")

    def _get_by_id(self, params: dict[str, Any]) -> ResponseEnvelope:
        receipt = self._decorate(self._receipt(params))
        receipt_id = receipt["LeaseReceiptID"]
        return ResponseEnvelope.success(
            table1=[receipt],
            table2=ledger.postings_for(self.repository, "Receipt", receipt_id),
            table3=ledger.allocations_for(self.repository, "LeaseReceiptID", receipt_id),
        )

    def _delete(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        receipt = self._receipt(params)
        if receipt.get("IsPosted"):
            raise DomainError("Cannot delete a posted receipt")
        if float(receipt.get("AllocatedAmount") or 0) > 0:
            raise DomainError("Cannot delete a receipt that is allocated to invoices")
        self.repository.soft_delete("receipts", receipt["LeaseReceiptID"], principal)
        return ResponseEnvelope.success("Receipt deleted successfully")

    def _apply_status(self, receipt: dict[str, Any], params: dict[str, Any], principal: Principal) -> PaymentStatus:
        target = require_payment_transition(
            receipt["PaymentStatus"], req_text(params, "PaymentStatus", "Payment status"), receipt["PaymentType"]
        )
        changes: dict[str, Any] = {"PaymentStatus": target.value}
        if target is PaymentStatus.CLEARED:
            changes["ClearanceDate"] = (opt_date(params, "ClearanceDate") or date.today()).isoformat()
        elif target is PaymentStatus.DEPOSITED:
            changes["DepositDate"] = (opt_date(params, "DepositDate") or date.today()).isoformat()
            deposited_bank = opt_id(params, "DepositedBankID")
            if deposited_bank:
                changes["DepositedBankID"] = deposited_bank
        elif target is PaymentStatus.RECEIVED:
            changes["ClearanceDate"] = None
        notes = opt_text(params, "Notes")
        if notes:
            changes["Notes"] = notes
        self.repository.update("receipts", receipt["LeaseReceiptID"], changes, principal)
        return target

    def _change_status(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        target = self._apply_status(self._receipt(params), params, principal)
        return ResponseEnvelope.success(f"Receipt status changed to {target.value}")

    def _statistics(self, params: dict[str, Any]) -> ResponseEnvelope:
        rows = self._search_rows(params)
        amount = {"ReceivedAmount": "TotalAmount"}
        posted = [row for row in rows if row.get("IsPosted")]
        summary = totals(rows, amount, count_as="TotalReceipts")
        summary["PostedAmount"] = totals(posted, amount, count_as="PostedReceipts")["TotalAmount"]
        summary["PostedReceipts"] = len(posted)
        summary["UnpostedAmount"] = round(summary["TotalAmount"] - summary["PostedAmount"], 2)
        summary["PendingApproval"] = sum(
            1 for row in rows if row.get("ApprovalStatus") == ApprovalStatus.PENDING.value
        )
        return ResponseEnvelope.success(
            table1=grouped_summary(rows, "PaymentStatus", count_as="ReceiptCount", sums=amount),
            table2=grouped_summary(rows, "PaymentType", count_as="ReceiptCount", sums=amount),
            table3=monthly_summary(rows, "ReceiptDate", count_as="ReceiptCount", sums=amount),
            table4=[summary],
        )

    def _allocate(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        receipt = self._receipt(params)
        invoice = self.repository.require("invoices", req_id(params, "LeaseInvoiceID", "Invoice"))
        allocation = ledger.allocate_receipt(
            self.repository,
            receipt,
            invoice,
            opt_amount(params, "AllocatedAmount") or 0.0,
            principal,
            allocation_date=opt_date(params, "AllocationDate"),
            notes=opt_text(params, "Notes"),
        )
        return ResponseEnvelope.success(
            "Receipt allocated successfully",
            AllocationID=allocation["AllocationID"],
            UnallocatedAmount=ledger.unallocated_amount(receipt),
        )

    def _allocate_multiple(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        receipt = self._receipt(params)
        allocations = json_rows(params, "InvoiceAllocationsJSON")
        if not allocations:
            raise DomainError("At least one invoice allocation is required")

        planned: list[tuple[int, float]] = []
        for item in allocations:
            invoice = self.repository.require("invoices", parse_id(item.get("LeaseInvoiceID"), field="LeaseInvoiceID"))
            if any(invoice_id == invoice["LeaseInvoiceID"] for invoice_id, _ in planned):
                raise DomainError(f"Invoice {invoice.get('InvoiceNo')} appears more than once")
            amount = round(float(item.get("AllocatedAmount") or 0), 2)
            ledger.check_allocation(receipt, invoice, amount)
            planned.append((invoice["LeaseInvoiceID"], amount))
        if sum(amount for _, amount in planned) - ledger.unallocated_amount(receipt) > 0.005:
            raise DomainError("Total allocation exceeds the unallocated receipt amount")

        for invoice_id, amount in planned:
            invoice = self.repository.require("invoices", invoice_id)
            ledger.allocate_receipt(self.repository, receipt, invoice, amount, principal)
        return ResponseEnvelope.success(
            f"{len(planned)} allocations created",
            AllocationCount=len(planned),
            UnallocatedAmount=ledger.unallocated_amount(receipt),
        )

    def _post_one(self, receipt: dict[str, Any], params: dict[str, Any], principal: Principal) -> dict[str, Any]:
        inputs = self._posting_inputs(params, receipt)
        require_no_errors(self._posting_errors(receipt, inputs))
        posting = ledger.create_posting(
            self.repository,
            source_type="Receipt",
            source_id=receipt["LeaseReceiptID"],
            amount=float(receipt["ReceivedAmount"]) * float(params.get("ExchangeRate") or receipt.get("ExchangeRate") or 1),
            posting_date=inputs["posting_date"],
            company_id=receipt.get("CompanyID"),
            fiscal_year_id=receipt.get("FiscalYearID"),
            principal=principal,
            debit_account_id=inputs["debit_account_id"],
            credit_account_id=inputs["credit_account_id"],
            narration=opt_text(params, "PostingNarration") or f"Receipt {receipt['ReceiptNo']}",
            reference=opt_text(params, "PostingReference"),
        )
        self.repository.update(
            "receipts",
            receipt["LeaseReceiptID"],
            {"IsPosted": True, "PostingID": posting["PostingID"]},
            principal,
        )
        return posting

    def _post(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        receipt = self.repository.get("receipts", opt_id(params, "LeaseReceiptID"))
        if receipt is None:
            require_no_errors(["Receipt not found"])
        posting = self._post_one(receipt, params, principal)
        return ResponseEnvelope.success(
            "Receipt posted successfully",
            PostingID=posting["PostingID"],
            VoucherNo=posting["VoucherNo"],
        )

    def _reverse(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        posting_id = opt_id(params, "PostingID")
        if posting_id is None:
            receipt = self._receipt(params)
            posting_id = receipt.get("PostingID")
            if posting_id is None:
                raise DomainError("Receipt is not posted")
        posting = self.repository.get("postings", posting_id)
        if posting is not None and posting.get("SourceType") != "Receipt":
            posting = None
        if posting is not None and posting.get("TransactionType") == "Reversal":
            raise DomainError("Reversal vouchers cannot be reversed")
        reason = opt_text(params, "ReversalReason")
        require_no_errors(reversal_errors(posting, reason))

        reversal = ledger.reverse_posting(self.repository, posting, reason, principal, opt_date(params, "ReversalDate"))
        self.repository.update(
            "receipts",
            posting["SourceID"],
            {"IsPosted": False, "PostingID": None, "PaymentStatus": PaymentStatus.REVERSED.value},
            principal,
        )
        return ResponseEnvelope.success(
            "Receipt posting reversed successfully",
            PostingID=reversal["PostingID"],
            VoucherNo=reversal["VoucherNo"],
            ReversedPostingID=posting_id,
        )

    def _by_invoice(self, params: dict[str, Any]) -> ResponseEnvelope:
        invoice_id = req_id(params, "LeaseInvoiceID", "Invoice")
        allocated = {
            row["LeaseReceiptID"] for row in self.repository.list("allocations", lambda r: r.get("LeaseInvoiceID") == invoice_id)
        }
        rows = [
            row
            for row in self._search_rows({})
            if row.get("LeaseInvoiceID") == invoice_id or row["LeaseReceiptID"] in allocated
        ]
        return ResponseEnvelope.success(data=rows)

    def _bulk_update(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        raw_ids = params.get("LeaseReceiptIDs") or []
        if isinstance(raw_ids, str):
            raw_ids = [item for item in raw_ids.split(",") if item.strip()]
        receipt_ids = [parse_id(item, field="LeaseReceiptIDs") for item in raw_ids]
        if not receipt_ids:
            raise DomainError("Select at least one receipt")

        operation = req_text(params, "BulkOperation", "Bulk operation")
        actions: dict[str, Callable[[dict[str, Any]], Any]] = {
            "UpdateStatus": lambda receipt: self._apply_status(receipt, params, principal),
            "Deposit": lambda receipt: self._apply_status(
                receipt, {**params, "PaymentStatus": PaymentStatus.DEPOSITED.value}, principal
            ),
            "Approve": lambda receipt: self._approve_one(receipt, params, principal),
            "Reject": lambda receipt: self._reject_one(receipt, params, principal),
            "Post": lambda receipt: self._post_one(receipt, params, principal),
        }
        action = actions.get(operation)
        if action is None:
            raise DomainError(f"Unknown bulk operation: {operation}")

        errors: list[str] = []
        updated = 0
        for receipt_id in receipt_ids:
            try:
                action(self.repository.require("receipts", receipt_id))
                updated += 1
            except LeaseError as exc:
                errors.append(f"Receipt {receipt_id}: {exc}")
        if not updated:
            return ResponseEnvelope.failure(
                "No receipts were updated", UpdatedCount=0, FailedCount=len(errors), Errors=errors
            )
        return ResponseEnvelope.success(
            f"{updated} receipt(s) updated",
            UpdatedCount=updated,
            FailedCount=len(errors),
            Errors=errors,
        )

    def _approve_one(self, receipt: dict[str, Any], params: dict[str, Any], principal: Principal) -> None:
        require_can_approve(receipt.get("ApprovalStatus"), "Receipt")
        self.repository.update(
            "receipts",
            receipt["LeaseReceiptID"],
            {
                "ApprovalStatus": ApprovalStatus.APPROVED.value,
                "ApprovedBy": principal.user_name,
                "ApprovedOn": _now(),
                "ApprovalComments": opt_text(params, "ApprovalComments"),
            },
            principal,
        )

    def _reject_one(self, receipt: dict[str, Any], params: dict[str, Any], principal: Principal) -> None:
        reason = opt_text(params, "RejectionReason")
        require_can_reject(receipt.get("ApprovalStatus"), "Receipt", reason)
        self.repository.update(
            "receipts",
            receipt["LeaseReceiptID"],
            {
                "ApprovalStatus": ApprovalStatus.REJECTED.value,
                "RejectedBy": principal.user_name,
                "RejectedOn": _now(),
                "RejectionReason": reason,
            },
            principal,
        )

    def _approve(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        self._approve_one(self._receipt(params), params, principal)
        return ResponseEnvelope.success("Receipt approved successfully")

    def _reject(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        self._reject_one(self._receipt(params), params, principal)
        return ResponseEnvelope.success("Receipt rejected")

    def _reset_approval(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        receipt = self._receipt(params)
        require_can_reset_approval(receipt.get("ApprovalStatus"), "Receipt", is_posted=bool(receipt.get("IsPosted")))
        self.repository.update(
            "receipts",
            receipt["LeaseReceiptID"],
            {
                "ApprovalStatus": ApprovalStatus.PENDING.value,
                "ApprovedBy": None,
                "ApprovedOn": None,
                "ApprovalComments": None,
                "RejectedBy": None,
                "RejectedOn": None,
                "RejectionReason": None,
            },
            principal,
        )
        return ResponseEnvelope.success("Receipt approval reset to Pending")

    def _validate_posting(self, params: dict[str, Any]) -> ResponseEnvelope:
        receipt = self.repository.get("receipts", opt_id(params, "LeaseReceiptID"))
        inputs = self._posting_inputs(params, receipt or {})
        errors = self._posting_errors(receipt, inputs)
        return ResponseEnvelope.success(
            errors[0] if errors else "Receipt can be posted",
            IsValid=not errors,
            Errors=errors,
        )
