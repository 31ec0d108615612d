import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from lease_erp.clients import FailureKind, InvoiceClient, can_delete_invoice, can_edit_invoice, can_post_invoice
from lease_erp.core.schema import Invoice


def _invoice(clients, invoice_id):
    result = clients.invoices.get_invoice_by_id(invoice_id)
    assert result.ok, result.message
    return result.data


def test_generated_invoice_defaults(clients, make_invoice):
    invoice_id = make_invoice()

    invoice = _invoice(clients, invoice_id).invoice
    assert invoice.InvoiceNo.startswith("INV-202503-")
    assert invoice.InvoiceStatus == "Pending"
    assert invoice.ApprovalStatus == "Not Required"
    assert invoice.BalanceAmount == 1050
    assert invoice.PaidAmount == 0


def test_amounts_must_add_up(clients, fiscal_year):
    result = clients.invoices.generate_invoice({
        "CustomerID": 42,
        "CompanyID": 1,
        "FiscalYearID": fiscal_year,
        "SubTotal": 1000,
        "TaxAmount": 50,
        "TotalAmount": 900,
    })

    assert result.failure is FailureKind.VALIDATION
    assert result.message == "Total amount does not match subtotal + tax - discount"


def test_payment_to_zero_balance_marks_invoice_paid(clients, make_invoice):
    invoice_id = make_invoice()

    partial = clients.invoices.record_invoice_payment(invoice_id, 50, payment_date=date(2025, 3, 5))
    assert partial.ok, partial.message
    assert partial.get("BalanceAmount") == 1000
    assert partial.get("InvoiceStatus") == "Pending"

    rest = clients.invoices.record_invoice_payment(
        invoice_id, 1000, payment_date=date(2025, 3, 20), payment_type="Cheque", cheque_no="991"
    )
    assert rest.ok, rest.message
    assert rest.get("InvoiceStatus") == "Paid"

    detail = _invoice(clients, invoice_id)
    assert detail.invoice.PaidAmount == 1050
    assert detail.invoice.BalanceAmount == 0
    assert len(detail.allocations) == 2

    receipts = clients.receipts.get_receipts_by_invoice(invoice_id).data
    assert sorted(r.PaymentType for r in receipts) == ["Cash", "Cheque"]

    overpaid = clients.invoices.record_invoice_payment(invoice_id, 1)
    assert overpaid.failure is FailureKind.DOMAIN


def test_payment_needs_approval_when_required(clients, make_invoice):
    invoice_id = make_invoice(RequiresApproval=True)

    refused = clients.invoices.record_invoice_payment(invoice_id, 100)
    assert refused.message == "Invoice must be approved before recording payments"

    assert clients.invoices.get_pending_approval_invoices().data[0].LeaseInvoiceID == invoice_id
    assert clients.invoices.approve_invoice(invoice_id).ok
    assert clients.invoices.record_invoice_payment(invoice_id, 100).ok


def test_cheque_payment_needs_number_locally(clients, make_invoice):
    invoice_id = make_invoice()

    result = clients.invoices.record_invoice_payment(invoice_id, 10, payment_type="Cheque")

    assert result.failure is FailureKind.VALIDATION


def test_post_reverse_and_reset_rules(clients, make_invoice):
    invoice_id = make_invoice(RequiresApproval=True)
    invoices = clients.invoices

    assert invoices.approve_invoice(invoice_id, "ok").ok
    posted = invoices.post_invoice(invoice_id, date(2025, 3, 3))
    assert posted.ok, posted.message

    reset = invoices.reset_invoice_approval(invoice_id)
    assert reset.message == "Cannot reset approval of a posted invoice"
    void = invoices.change_invoice_status(invoice_id, "Cancelled")
    assert void.message == "Reverse the GL posting before cancelling or voiding the invoice"

    reversed_ = invoices.reverse_invoice_posting(posted.get("PostingID"), "wrong customer", date(2025, 3, 4))
    assert reversed_.ok, reversed_.message
    twice = invoices.reverse_invoice_posting(posted.get("PostingID"), "again")
    assert "Posting has already been reversed" in twice.validation_messages

    detail = _invoice(clients, invoice_id)
    assert detail.invoice.IsPosted is False
    assert len(detail.postings) == 2
    assert invoices.reset_invoice_approval(invoice_id).ok
    assert _invoice(clients, invoice_id).invoice.ApprovalStatus == "Pending"


def test_post_multiple_reports_failures(clients, make_invoice):
    ready = make_invoice()
    waiting = make_invoice(RequiresApproval=True)

    result = clients.invoices.post_multiple_invoices([ready, waiting], date(2025, 3, 3))

    assert result.ok
    assert result.data["PostedCount"] == 1
    assert result.data["FailedCount"] == 1
    assert "must be approved" in result.data["Errors"][0]
    assert [i.LeaseInvoiceID for i in clients.invoices.get_unposted_invoices().data] == [waiting]


def test_status_adjacency(clients, make_invoice):
    invoice_id = make_invoice(InvoiceStatus="Draft")
    current = _invoice(clients, invoice_id).invoice

    local = clients.invoices.change_invoice_status(invoice_id, "Paid", current=current)
    assert local.failure is FailureKind.VALIDATION

    server = clients.invoices.change_invoice_status(invoice_id, "Active")
    assert server.message == "Cannot change invoice status from Draft to Active"
    assert clients.invoices.change_invoice_status(invoice_id, "Pending").ok


def test_approved_invoice_is_locked(clients, make_invoice):
    invoice_id = make_invoice(RequiresApproval=True)
    clients.invoices.approve_invoice(invoice_id)

    assert clients.invoices.update_invoice(invoice_id, {"Notes": "x"}).message == "Approved invoices cannot be edited"
    assert clients.invoices.delete_invoice(invoice_id).message == "Approved invoices cannot be deleted"


def test_statistics(clients, make_invoice):
    make_invoice()
    make_invoice(SubTotal=200, TaxAmount=0, TotalAmount=200)

    stats = clients.invoices.get_invoice_statistics()

    assert stats.data["summary"]["TotalInvoices"] == 2
    assert stats.data["summary"]["TotalAmount"] == 1250
    assert stats.data["monthly"][0]["InvoiceCount"] == 2


def test_affordance_helpers():
    draft = Invoice(InvoiceStatus="Draft", ApprovalStatus="Pending", RequiresApproval=True, TotalAmount=10)
    approved = draft.model_copy(update={"ApprovalStatus": "Approved", "InvoiceStatus": "Approved"})
    paid = approved.model_copy(update={"InvoiceStatus": "Paid", "PaidAmount": 10})

    assert can_edit_invoice(draft) and not can_edit_invoice(approved)
    assert can_delete_invoice(draft) and not can_delete_invoice(paid)
    assert not can_post_invoice(draft)
    assert can_post_invoice(approved)
    assert InvoiceClient.can_post_invoice(approved)


def test_model_update_keeps_amounts(clients, make_invoice):
    invoice_id = make_invoice()

    result = clients.invoices.update_invoice(invoice_id, Invoice(Notes="memo"))

    assert result.ok, result.message
    invoice = _invoice(clients, invoice_id).invoice
    assert invoice.Notes == "memo"
    assert invoice.TotalAmount == 1050
    assert invoice.InvoiceStatus == "Pending"


def test_posted_invoice_fails_posting_validation(clients, make_invoice):
    invoice_id = make_invoice()
    assert clients.invoices.post_invoice(invoice_id, date(2025, 3, 3)).ok

    checked = clients.invoices.validate_invoice_for_posting(invoice_id, date(2025, 3, 3))

    assert checked.ok
    assert checked.data["IsValid"] is False
    assert "Invoice is already posted" in checked.data["Errors"]
    assert checked.message == checked.data["Errors"][0]
