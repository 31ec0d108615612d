import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from lease_erp.core.errors import DomainError, ValidationError
from lease_erp.core.lifecycle import (
    ApprovalStatus,
    ContractStatus,
    InvoiceStatus,
    PaymentStatus,
    PaymentType,
    allowed_payment_transitions,
    can_change_contract_status,
    can_change_invoice_status,
    can_change_payment_status,
    generate_monthly_periods,
    invoice_posting_errors,
    period_closure_check,
    period_covering,
    period_reopen_errors,
    receipt_posting_errors,
    require_can_reset_approval,
    require_contract_transition,
    reversal_errors,
)


def test_status_parsing_accepts_wire_spellings():
    assert PaymentStatus.parse("pending clearance") is PaymentStatus.PENDING_CLEARANCE
    assert PaymentStatus.parse("PendingClearance") is PaymentStatus.PENDING_CLEARANCE
    assert PaymentType.parse("bank transfer") is PaymentType.BANK_TRANSFER
    assert ApprovalStatus.parse("Not Required") is ApprovalStatus.NOT_REQUIRED
    with pytest.raises(ValidationError):
        PaymentStatus.parse("Lost")


def test_deposit_states_are_cheque_only():
    cash = allowed_payment_transitions(PaymentStatus.RECEIVED, PaymentType.CASH)
    cheque = allowed_payment_transitions(PaymentStatus.RECEIVED, PaymentType.CHEQUE)

    assert PaymentStatus.DEPOSITED not in cash
    assert PaymentStatus.DEPOSITED in cheque
    assert PaymentStatus.CLEARED in cash
    assert can_change_payment_status("Deposited", "PendingClearance", "Cheque")


@pytest.mark.parametrize("terminal", [PaymentStatus.CANCELLED, PaymentStatus.REVERSED])
def test_terminal_payment_states_have_no_exit(terminal):
    assert allowed_payment_transitions(terminal, PaymentType.CHEQUE) == []


def test_bounced_cheque_can_only_be_received_again():
    assert allowed_payment_transitions(PaymentStatus.BOUNCED, PaymentType.CHEQUE) == [PaymentStatus.RECEIVED]
    assert not can_change_payment_status(PaymentStatus.BOUNCED, PaymentStatus.CLEARED, PaymentType.CHEQUE)


def test_contract_adjacency():
    assert can_change_contract_status("Draft", "Pending")
    assert not can_change_contract_status("Draft", "Active")
    assert not can_change_contract_status("Completed", "Active")
    assert can_change_contract_status(ContractStatus.EXPIRED, ContractStatus.COMPLETED)


def test_contract_activation_needs_clearance_from_approval():
    with pytest.raises(DomainError, match="approved"):
        require_contract_transition("Pending", "Active", "Pending")
    assert require_contract_transition("Pending", "Active", "Not Required") is ContractStatus.ACTIVE
    assert require_contract_transition("Pending", "Active", "Approved") is ContractStatus.ACTIVE


def test_invoice_adjacency():
    assert can_change_invoice_status("Approved", "Active")
    assert not can_change_invoice_status("Paid", "Active")
    assert not can_change_invoice_status(InvoiceStatus.DRAFT, InvoiceStatus.PAID)


def test_reset_approval_rules():
    require_can_reset_approval("Approved", "Receipt")
    require_can_reset_approval("Rejected", "Receipt")
    with pytest.raises(DomainError, match="Only approved or rejected"):
        require_can_reset_approval("Pending", "Receipt")
    with pytest.raises(DomainError, match="posted receipt"):
        require_can_reset_approval("Approved", "Receipt", is_posted=True)


def test_receipt_posting_errors_are_enumerated():
    receipt = {
        "IsPosted": True,
        "PaymentStatus": "Bounced",
        "ApprovalStatus": "Pending",
        "ReceivedAmount": 0,
    }
    errors = receipt_posting_errors(
        receipt, closed_period={"PeriodCode": "FY2025-P01"}, debit_account_id=3, credit_account_id=3
    )

    assert errors == [
        "Receipt is already posted",
        "Receipts with status Bounced cannot be posted",
        "Receipt must be approved before posting",
        "Receipt amount must be greater than zero",
        "Posting date falls in closed accounting period FY2025-P01",
        "Debit and credit accounts must be different",
    ]
    assert receipt_posting_errors(None) == ["Receipt not found"]


def test_invoice_posting_allows_not_required_approval():
    invoice = {"InvoiceStatus": "Pending", "ApprovalStatus": "Not Required", "TotalAmount": 10}
    assert invoice_posting_errors(invoice) == []
    assert invoice_posting_errors({**invoice, "InvoiceStatus": "Draft"}) == [
        "Invoices with status Draft cannot be posted"
    ]


def test_reversal_needs_reason_and_unreversed_posting():
    assert reversal_errors({"IsReversed": False}, "duplicate") == []
    assert reversal_errors({"IsReversed": True}, " ") == [
        "Reversal reason is required",
        "Posting has already been reversed",
    ]


def test_monthly_periods_clip_to_fiscal_year():
    periods = generate_monthly_periods(
        {"FYCode": "FY25", "StartDate": "2025-04-15", "EndDate": "2026-04-14"}
    )

    assert len(periods) == 13
    assert periods[0]["StartDate"] == "2025-04-15"
    assert periods[0]["EndDate"] == "2025-04-30"
    assert periods[-1]["PeriodCode"] == "FY25-P13"
    assert periods[-1]["EndDate"] == "2026-04-14"
    assert period_covering(periods, "2025-12-31")["PeriodName"] == "December 2025"
    assert period_covering(periods, "2027-01-01") is None


def test_period_closure_requires_earlier_periods_closed():
    periods = generate_monthly_periods({"FYCode": "FY", "StartDate": "2025-01-01", "EndDate": "2025-03-31"})
    march = periods[2]

    check = period_closure_check(march, periods[:2])
    assert not check.can_close
    assert check.previous_periods_open
    assert check.validation_messages == ["Cannot close this period. Previous periods must be closed first."]

    closed = [{**p, "IsOpen": False, "IsClosed": True} for p in periods[:2]]
    assert period_closure_check(march, closed).can_close
    busy = period_closure_check(march, closed, blocking_transactions=2)
    assert busy.transaction_count == 2 and not busy.can_close


def test_reopen_blocked_by_later_closed_periods():
    periods = [
        {**p, "IsOpen": False, "IsClosed": True}
        for p in generate_monthly_periods({"FYCode": "FY", "StartDate": "2025-01-01", "EndDate": "2025-03-31"})
    ]

    assert period_reopen_errors(periods[0], periods) == [
        "Cannot reopen this period while later periods are closed: FY-P02, FY-P03"
    ]
    assert period_reopen_errors(periods[2], periods) == []
    assert period_reopen_errors({**periods[2], "IsClosed": False}, periods) == ["Period is already open"]
