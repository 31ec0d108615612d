"""Contract invoice modes: generation, approval, GL posting and payments."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, assert_never

from lease_erp.core.envelope import ResponseEnvelope
from lease_erp.core.errors import ConflictError, DomainError, LeaseError, not_found
from lease_erp.core.lifecycle import (
    ApprovalStatus,
    InvoiceStatus,
    PaymentType,
    UNPOSTABLE_INVOICE_STATUSES,
    initial_approval_status,
    invoice_posting_errors,
    require_can_approve,
    require_can_reject,
    require_can_reset_approval,
    require_invoice_transition,
    require_no_errors,
    reversal_errors,
)
from lease_erp.core.modes import InvoiceMode
from lease_erp.core.schema import Invoice
from lease_erp.core.wire import is_truthy, parse_date, parse_id
from lease_erp.domain import Principal

from . import ledger
from .dispatch import (
    EntityHandler,
    by_id,
    contains_text,
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
from .receipts import insert_receipt
from .statistics import grouped_summary, monthly_summary, totals

DATE_FIELDS = ("InvoiceDate", "DueDate", "PeriodFromDate", "PeriodToDate")
SEARCH_FIELDS = ("InvoiceNo", "ContractNo", "Notes", "InvoiceType")
AMOUNT_FIELDS = ("SubTotal", "TaxAmount", "DiscountAmount", "TotalAmount")


def _now() -> str:
    return datetime.now().replace(microsecond=0).isoformat()


def _amounts(record: dict[str, Any], current: dict[str, Any] | None = None) -> dict[str, float]:
    merged = {**(current or {}), **record}
    subtotal = float(merged.get("SubTotal") or 0)
    tax = float(merged.get("TaxAmount") or 0)
    discount = float(merged.get("DiscountAmount") or 0)
    total = merged.get("TotalAmount")
    if total in (None, "") or ("TotalAmount" not in record and any(k in record for k in AMOUNT_FIELDS)):
        total = subtotal + tax - discount
    total = round(float(total), 2)
    if total <= 0:
        raise DomainError("Total amount must be greater than zero")
    if subtotal and abs(subtotal + tax - discount - total) > 0.01:
        raise DomainError("Total amount does not match subtotal + tax - discount")
    return {"SubTotal": subtotal, "TaxAmount": tax, "DiscountAmount": discount, "TotalAmount": total}


class InvoiceHandler(EntityHandler[InvoiceMode]):
    modes = InvoiceMode

    def handle(self, mode: InvoiceMode, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        match mode:
            case InvoiceMode.GENERATE:
                return self._generate(params, principal)
            case InvoiceMode.UPDATE:
                return self._update(params, principal)
            case InvoiceMode.GET_ALL:
                return ResponseEnvelope.success(data=self._search_rows({
                    "FilterCompanyID": params.get("CompanyID"),
                    "FilterFiscalYearID": params.get("FiscalYearID"),
                }))
            case InvoiceMode.GET_BY_ID:
                return self._get_by_id(params)
            case InvoiceMode.DELETE:
                return self._delete(params, principal)
            case InvoiceMode.SEARCH:
                return ResponseEnvelope.success(data=self._search_rows(params))
            case InvoiceMode.CHANGE_STATUS:
                return self._change_status(params, principal)
            case InvoiceMode.STATISTICS:
                return self._statistics(params)
            case InvoiceMode.UNPOSTED:
                rows = [
                    row
                    for row in self._search_rows(params)
                    if not row.get("IsPosted")
                    and InvoiceStatus.parse(row["InvoiceStatus"]) not in UNPOSTABLE_INVOICE_STATUSES
                ]
                return ResponseEnvelope.success(data=rows)
            case InvoiceMode.POST_SINGLE:
                return self._post_single(params, principal)
            case InvoiceMode.POST_MULTIPLE:
                return self._post_multiple(params, principal)
            case InvoiceMode.REVERSE_POSTING:
                return self._reverse(params, principal)
            case InvoiceMode.RECORD_PAYMENT:
                return self._record_payment(params, principal)
            case InvoiceMode.APPROVE:
                return self._approve(params, principal)
            case InvoiceMode.REJECT:
                return self._reject(params, principal)
            case InvoiceMode.RESET_APPROVAL:
                return self._reset_approval(params, principal)
            case InvoiceMode.PENDING_APPROVAL:
                rows = [
                    row
                    for row in self._search_rows(params)
                    if row.get("RequiresApproval") and row.get("ApprovalStatus") == ApprovalStatus.PENDING.value
                ]
                return ResponseEnvelope.success(data=rows)
            case InvoiceMode.VALIDATE_POSTING:
                invoice = self.repository.get("invoices", opt_id(params, "LeaseInvoiceID"))
                errors = self._posting_errors(invoice, self._posting_inputs(params, invoice or {}))
                return ResponseEnvelope.success(
                    errors[0] if errors else "Invoice can be posted",
                    IsValid=not errors,
                    Errors=errors,
                )
            case _:
                assert_never(mode)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _decorate(self, row: dict[str, Any]) -> dict[str, Any]:
        contract = self.repository.get("contracts", row.get("ContractID"))
        row["ContractNo"] = contract.get("ContractNo") if contract else None
        due = parse_date(row.get("DueDate"))
        row["IsOverdue"] = bool(
            due and due < date.today() and float(row.get("BalanceAmount") or 0) > 0
            and row.get("InvoiceStatus") not in (InvoiceStatus.CANCELLED.value, InvoiceStatus.VOIDED.value)
        )
        return row

    def _invoice(self, params: dict[str, Any]) -> dict[str, Any]:
        return self.repository.require("invoices", req_id(params, "LeaseInvoiceID", "Invoice"))

    def _search_rows(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        text = opt_text(params, "SearchText")
        contract_id = opt_id(params, "FilterContractID")
        customer_id = opt_id(params, "FilterCustomerID")
        company_id = opt_id(params, "FilterCompanyID")
        fiscal_year_id = opt_id(params, "FilterFiscalYearID")
        status = opt_text(params, "FilterInvoiceStatus")
        approval_status = opt_text(params, "FilterApprovalStatus")
        is_posted = opt_flag(params, "FilterIsPosted")
        overdue_only = opt_flag(params, "FilterOverdueOnly")
        start = opt_date(params, "FilterFromDate")
        end = opt_date(params, "FilterToDate")
        low = opt_amount(params, "FilterAmountFrom")
        high = opt_amount(params, "FilterAmountTo")
        if status:
            status = InvoiceStatus.parse(status).value
        if approval_status:
            approval_status = ApprovalStatus.parse(approval_status).value

        def keep(row: dict[str, Any]) -> bool:
            return all((
                not contract_id or row.get("ContractID") == contract_id,
                not customer_id or row.get("CustomerID") == customer_id,
                not company_id or row.get("CompanyID") == company_id,
                not fiscal_year_id or row.get("FiscalYearID") == fiscal_year_id,
                not status or row.get("InvoiceStatus") == status,
                not approval_status or row.get("ApprovalStatus") == approval_status,
                is_posted is None or bool(row.get("IsPosted")) == is_posted,
                within_dates(row.get("InvoiceDate"), start, end),
                within_amounts(row.get("TotalAmount"), low, high),
            ))

        rows = [self._decorate(row) for row in self.repository.list("invoices", keep)]
        rows = [
            row
            for row in rows
            if contains_text(row, text, SEARCH_FIELDS) and (not overdue_only or row["IsOverdue"])
        ]
        return by_id(rows, "LeaseInvoiceID")

    def _posting_inputs(self, params: dict[str, Any], invoice: dict[str, Any]) -> dict[str, Any]:
        posting_date = opt_date(params, "PostingDate") or date.today()
        return {
            "posting_date": posting_date,
            "debit_account_id": opt_id(params, "DebitAccountID"),
            "credit_account_id": opt_id(params, "CreditAccountID"),
            "closed_period": closed_period_on(self.repository, invoice.get("CompanyID"), posting_date),
        }

    def _posting_errors(self, invoice: dict[str, Any] | None, inputs: dict[str, Any]) -> list[str]:
        return invoice_posting_errors(
            invoice,
            closed_period=inputs["closed_period"],
            debit_account_id=inputs["debit_account_id"],
            credit_account_id=inputs["credit_account_id"],
        )

    def _post_one(self, invoice: dict[str, Any] | None, params: dict[str, Any], principal: Principal) -> dict[str, Any]:
        inputs = self._posting_inputs(params, invoice or {})
        require_no_errors(self._posting_errors(invoice, inputs))
        posting = ledger.create_posting(
            self.repository,
            source_type="Invoice",
            source_id=invoice["LeaseInvoiceID"],
            amount=float(invoice["TotalAmount"]),
            posting_date=inputs["posting_date"],
            company_id=invoice.get("CompanyID"),
            fiscal_year_id=invoice.get("FiscalYearID"),
            principal=principal,
            debit_account_id=inputs["debit_account_id"],
            credit_account_id=inputs["credit_account_id"],
            narration=opt_text(params, "PostingNarration") or f"Invoice {invoice['InvoiceNo']}",
            reference=opt_text(params, "PostingReference"),
        )
        self.repository.update(
            "invoices",
            invoice["LeaseInvoiceID"],
            {"IsPosted": True, "PostingID": posting["PostingID"]},
            principal,
        )
        return posting

    # ------------------------------------------------------------------
    # modes
    # ------------------------------------------------------------------
    def _generate(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        record = normalise_record(Invoice.pick_writable(params), DATE_FIELDS)
        for key, label in (("CompanyID", "Company"), ("FiscalYearID", "Fiscal year")):
            if not record.get(key):
                raise DomainError(f"{label} is required")
        contract_id = record.get("ContractID")
        if contract_id:
            contract = self.repository.get("contracts", contract_id)
            if contract is None:
                raise not_found("Contract", contract_id)
            record.setdefault("CustomerID", contract.get("CustomerID"))
        if not record.get("CustomerID"):
            raise DomainError("Customer is required")

        record.update(_amounts(record))
        invoice_date = record.get("InvoiceDate") or date.today().isoformat()
        invoice_no = record.get("InvoiceNo")
        if invoice_no:
            if self.repository.list("invoices", lambda row: row.get("InvoiceNo") == invoice_no):
                raise ConflictError(f"Invoice number {invoice_no} already exists")
        else:
            invoice_no = ledger.next_document_no(
                self.repository, "invoice", "INV", date.fromisoformat(invoice_date)
            )
        status = InvoiceStatus.parse(record.get("InvoiceStatus") or InvoiceStatus.PENDING)
        if status not in (InvoiceStatus.DRAFT, InvoiceStatus.PENDING):
            raise DomainError("New invoices must start as Draft or Pending")
        requires_approval = is_truthy(record.get("RequiresApproval", True))
        record.update(
            InvoiceNo=invoice_no,
            InvoiceDate=invoice_date,
            InvoiceStatus=status.value,
            PaidAmount=0.0,
            BalanceAmount=record["TotalAmount"],
            RequiresApproval=requires_approval,
            ApprovalStatus=initial_approval_status(requires_approval).value,
            IsPosted=False,
            PostingID=None,
        )
        row = self.repository.insert("invoices", record, principal)
        return ResponseEnvelope.success(
            "Invoice generated successfully",
            NewInvoiceID=row["LeaseInvoiceID"],
            InvoiceNo=row["InvoiceNo"],
        )

    def _update(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        current = self._invoice(params)
        if current.get("ApprovalStatus") == ApprovalStatus.APPROVED.value:
            raise DomainError("Approved invoices cannot be edited")
        if current.get("IsPosted"):
            raise DomainError("Cannot update a posted invoice")
        changes = normalise_record(Invoice.pick_writable(params), DATE_FIELDS)
        if any(key in changes for key in AMOUNT_FIELDS):
            changes.update(_amounts(changes, current))
            paid = float(current.get("PaidAmount") or 0)
            if changes["TotalAmount"] < paid:
                raise DomainError("Total amount cannot be less than the amount already paid")
            changes["BalanceAmount"] = round(changes["TotalAmount"] - paid, 2)
        if "InvoiceStatus" in changes:
            target = InvoiceStatus.parse(changes["InvoiceStatus"])
            if target.value != current["InvoiceStatus"]:
                require_invoice_transition(current["InvoiceStatus"], target)
            changes["InvoiceStatus"] = target.value
        if "RequiresApproval" in changes:
            changes["RequiresApproval"] = is_truthy(changes["RequiresApproval"])
            if current.get("ApprovalStatus") in (ApprovalStatus.PENDING.value, ApprovalStatus.NOT_REQUIRED.value):
                changes["ApprovalStatus"] = initial_approval_status(changes["RequiresApproval"]).value
        self.repository.update("invoices", current["LeaseInvoiceID"], changes, principal)
        return ResponseEnvelope.success("Invoice updated successfully")

    def _get_by_id(self, params: dict[str, Any]) -> ResponseEnvelope:
        invoice = self._decorate(self._invoice(params))
        invoice_id = invoice["LeaseInvoiceID"]
        return ResponseEnvelope.success(
            table1=[invoice],
            table2=ledger.allocations_for(self.repository, "LeaseInvoiceID", invoice_id),
            table3=ledger.postings_for(self.repository, "Invoice", invoice_id),
        )

    def _delete(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        invoice = self._invoice(params)
        if invoice.get("ApprovalStatus") == ApprovalStatus.APPROVED.value:
            raise DomainError("Approved invoices cannot be deleted")
        if invoice.get("IsPosted"):
            raise DomainError("Cannot delete a posted invoice")
        if float(invoice.get("PaidAmount") or 0) > 0:
            raise DomainError("Cannot delete an invoice with recorded payments")
        self.repository.soft_delete("invoices", invoice["LeaseInvoiceID"], principal)
        return ResponseEnvelope.success("Invoice deleted successfully")

    def _change_status(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        invoice = self._invoice(params)
        target = require_invoice_transition(
            invoice["InvoiceStatus"], req_text(params, "InvoiceStatus", "Invoice status")
        )
        if target in (InvoiceStatus.CANCELLED, InvoiceStatus.VOIDED) and invoice.get("IsPosted"):
            raise DomainError("Reverse the GL posting before cancelling or voiding the invoice")
        self.repository.update(
            "invoices", invoice["LeaseInvoiceID"], {"InvoiceStatus": target.value}, principal
        )
        return ResponseEnvelope.success(f"Invoice status changed to {target.value}")

    def _statistics(self, params: dict[str, Any]) -> ResponseEnvelope:
        rows = self._search_rows(params)
        money = {"TotalAmount": "TotalAmount", "PaidAmount": "PaidAmount", "BalanceAmount": "BalanceAmount"}
        overdue = [row for row in rows if row["IsOverdue"]]
        summary = totals(rows, money, count_as="TotalInvoices")
        summary["OverdueInvoices"] = len(overdue)
        summary["OverdueAmount"] = totals(overdue, {"BalanceAmount": "Amount"}, count_as="Count")["Amount"]
        summary["PostedInvoices"] = sum(1 for row in rows if row.get("IsPosted"))
        return ResponseEnvelope.success(
            table1=grouped_summary(rows, "InvoiceStatus", count_as="InvoiceCount", sums=money),
            table2=grouped_summary(rows, "ApprovalStatus", count_as="InvoiceCount", sums={"TotalAmount": "TotalAmount"}),
            table3=monthly_summary(rows, "InvoiceDate", count_as="InvoiceCount", sums=money),
            table4=[summary],
        )

    def _post_single(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        invoice = self.repository.get("invoices", opt_id(params, "LeaseInvoiceID"))
        posting = self._post_one(invoice, params, principal)
        return ResponseEnvelope.success(
            "Invoice posted successfully",
            PostingID=posting["PostingID"],
            VoucherNo=posting["VoucherNo"],
        )

    def _post_multiple(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        raw_ids = params.get("LeaseInvoiceIDs") or []
        if isinstance(raw_ids, str):
            raw_ids = [item for item in raw_ids.split(",") if item.strip()]
        invoice_ids = [parse_id(item, field="LeaseInvoiceIDs") for item in raw_ids]
        if not invoice_ids:
            raise DomainError("Select at least one invoice to post")

        vouchers: list[str] = []
        errors: list[str] = []
        for invoice_id in invoice_ids:
            try:
                posting = self._post_one(self.repository.get("invoices", invoice_id), params, principal)
                vouchers.append(posting["VoucherNo"])
            except LeaseError as exc:
                errors.append(f"Invoice {invoice_id}: {exc}")
        if not vouchers:
            return ResponseEnvelope.failure(
                "No invoices were posted", PostedCount=0, FailedCount=len(errors), Errors=errors
            )
        return ResponseEnvelope.success(
            f"{len(vouchers)} invoice(s) posted",
            PostedCount=len(vouchers),
            FailedCount=len(errors),
            VoucherNumbers=vouchers,
            Errors=errors,
        )

    def _reverse(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        posting_id = opt_id(params, "PostingID")
        posting = self.repository.get("postings", posting_id)
        if posting is not None and posting.get("SourceType") != "Invoice":
            posting = None
        if posting is not None and posting.get("TransactionType") == "Reversal":
            raise DomainError("Reversal vouchers cannot be reversed")
        reason = opt_text(params, "ReversalReason")
        require_no_errors(reversal_errors(posting, reason))

        reversal = ledger.reverse_posting(self.repository, posting, reason, principal, opt_date(params, "ReversalDate"))
        self.repository.update(
            "invoices", posting["SourceID"], {"IsPosted": False, "PostingID": None}, principal
        )
        return ResponseEnvelope.success(
            "Invoice posting reversed successfully",
            PostingID=reversal["PostingID"],
            VoucherNo=reversal["VoucherNo"],
            ReversedPostingID=posting_id,
        )

    def _record_payment(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        invoice = self._invoice(params)
        if invoice.get("ApprovalStatus") not in (ApprovalStatus.APPROVED.value, ApprovalStatus.NOT_REQUIRED.value):
            raise DomainError("Invoice must be approved before recording payments")
        amount = round(opt_amount(params, "PaymentAmount") or 0.0, 2)
        if amount <= 0:
            raise DomainError("Payment amount must be greater than zero")
        if amount - float(invoice.get("BalanceAmount") or 0) > 0.005:
            raise DomainError("Payment amount exceeds the invoice balance")

        payment_date = opt_date(params, "PaymentDate") or date.today()
        receipt = insert_receipt(
            self.repository,
            {
                "ReceiptDate": payment_date.isoformat(),
                "LeaseInvoiceID": invoice["LeaseInvoiceID"],
                "CustomerID": invoice.get("CustomerID"),
                "CompanyID": invoice.get("CompanyID"),
                "FiscalYearID": invoice.get("FiscalYearID"),
                "PaymentType": PaymentType.parse(params.get("PaymentType") or PaymentType.CASH).value,
                "ReceivedAmount": amount,
                "ChequeNo": opt_text(params, "ChequeNo"),
                "BankID": opt_id(params, "BankID"),
                "TransactionReference": opt_text(params, "TransactionReference"),
                "Notes": opt_text(params, "Notes") or f"Payment for invoice {invoice['InvoiceNo']}",
                "RequiresApproval": False,
            },
            principal,
        )
        ledger.allocate_receipt(self.repository, receipt, invoice, amount, principal, allocation_date=payment_date)
        updated = self.repository.require("invoices", invoice["LeaseInvoiceID"])
        return ResponseEnvelope.success(
            "Payment recorded successfully",
            NewReceiptID=receipt["LeaseReceiptID"],
            ReceiptNo=receipt["ReceiptNo"],
            BalanceAmount=updated["BalanceAmount"],
            InvoiceStatus=updated["InvoiceStatus"],
        )

    def _approve(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        invoice = self._invoice(params)
        require_can_approve(invoice.get("ApprovalStatus"), "Invoice")
        self.repository.update(
            "invoices",
            invoice["LeaseInvoiceID"],
            {
                "ApprovalStatus": ApprovalStatus.APPROVED.value,
                "ApprovedBy": principal.user_name,
                "ApprovedOn": _now(),
                "ApprovalComments": opt_text(params, "ApprovalComments"),
            },
            principal,
        )
        return ResponseEnvelope.success("Invoice approved successfully")

    def _reject(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        invoice = self._invoice(params)
        reason = opt_text(params, "RejectionReason")
        require_can_reject(invoice.get("ApprovalStatus"), "Invoice", reason)
        self.repository.update(
            "invoices",
            invoice["LeaseInvoiceID"],
            {
                "ApprovalStatus": ApprovalStatus.REJECTED.value,
                "RejectedBy": principal.user_name,
                "RejectedOn": _now(),
                "RejectionReason": reason,
            },
            principal,
        )
        return ResponseEnvelope.success("Invoice rejected")

    def _reset_approval(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        invoice = self._invoice(params)
        require_can_reset_approval(invoice.get("ApprovalStatus"), "Invoice", is_posted=bool(invoice.get("IsPosted")))
        self.repository.update(
            "invoices",
            invoice["LeaseInvoiceID"],
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
        return ResponseEnvelope.success("Invoice approval reset to Pending")
