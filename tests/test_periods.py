import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from lease_erp.clients import FailureKind

COMPANY_ID = 1


def _periods(clients, fiscal_year_id):
    result = clients.periods.get_periods_by_fiscal_year(fiscal_year_id)
    assert result.ok, result.message
    return result.data


def test_fiscal_year_generates_twelve_periods(clients, fiscal_year):
    periods = _periods(clients, fiscal_year)

    assert [p.PeriodNumber for p in periods] == list(range(1, 13))
    assert periods[0].PeriodCode == "FY2025-P01"
    assert periods[1].EndDate == date(2025, 2, 28)
    assert all(p.IsOpen and not p.IsClosed for p in periods)
    assert periods[0].FYCode == "FY2025"
    assert clients.periods.periods_exist_for_fiscal_year(fiscal_year).data is True


def test_generating_twice_is_refused(clients, fiscal_year):
    result = clients.periods.create_periods_for_fiscal_year(fiscal_year, COMPANY_ID)

    assert result.failure is FailureKind.DOMAIN
    assert result.message == "Accounting periods already exist for this fiscal year"
    assert len(_periods(clients, fiscal_year)) == 12


def test_generation_needs_a_selected_fiscal_year(clients, notifier):
    result = clients.periods.create_periods_for_fiscal_year(None, COMPANY_ID)

    assert result.failure is FailureKind.VALIDATION
    assert notifier.errors == ["Please select a fiscal year before generating periods"]


def test_close_out_of_order_leaves_period_open(clients, fiscal_year):
    march = _periods(clients, fiscal_year)[2]

    check = clients.periods.validate_period_closure(march.PeriodID)
    assert check.ok
    assert check.data["CanClose"] is False
    assert check.data["PreviousPeriodsOpen"] is True

    result = clients.periods.close_period(march.PeriodID)
    assert result.failure is FailureKind.PRECONDITION
    assert result.validation_messages == ["Cannot close this period. Previous periods must be closed first."]
    assert result.get("PreviousPeriodsOpen") is True
    assert clients.periods.get_period_by_id(march.PeriodID).data.IsOpen is True


def test_unposted_documents_block_closure(clients, fiscal_year, make_receipt):
    make_receipt(ReceiptDate=date(2025, 1, 15))
    january = _periods(clients, fiscal_year)[0]

    result = clients.periods.close_period(january.PeriodID)

    assert result.failure is FailureKind.PRECONDITION
    assert result.get("TransactionCount") == 1


def test_close_in_order_then_reopen_latest_first(clients, fiscal_year):
    periods = _periods(clients, fiscal_year)
    january, february = periods[0], periods[1]

    bulk = clients.periods.bulk_close_periods([january.PeriodID, february.PeriodID], "month end")
    assert bulk.ok
    assert bulk.data == [january.PeriodID, february.PeriodID]

    closed = clients.periods.get_period_by_id(january.PeriodID).data
    assert closed.IsClosed and not closed.IsOpen
    assert closed.ClosedByUserName == "accountant"
    assert closed.ClosingComments == "month end"

    blocked = clients.periods.reopen_period(january.PeriodID)
    assert blocked.failure is FailureKind.PRECONDITION
    assert blocked.validation_messages == [
        "Cannot reopen this period while later periods are closed: FY2025-P02"
    ]

    assert clients.periods.reopen_period(february.PeriodID).ok
    assert clients.periods.reopen_period(january.PeriodID).ok
    assert clients.periods.get_period_by_id(january.PeriodID).data.ClosedByUserName is None


def test_bulk_close_stops_at_first_refusal(clients, fiscal_year):
    periods = _periods(clients, fiscal_year)

    result = clients.periods.bulk_close_periods([periods[0].PeriodID, periods[2].PeriodID, periods[1].PeriodID])

    assert not result.ok
    assert result.get("ClosedPeriodIDs") == [periods[0].PeriodID]
    assert result.get("FailedPeriodID") == periods[2].PeriodID
    assert clients.periods.get_period_by_id(periods[1].PeriodID).data.IsOpen is True


def test_period_queries(clients, fiscal_year):
    january = _periods(clients, fiscal_year)[0]
    clients.periods.close_period(january.PeriodID)

    assert len(clients.periods.get_open_periods(fiscal_year).data) == 11
    assert [p.PeriodID for p in clients.periods.get_closed_periods(fiscal_year).data] == [january.PeriodID]
    assert clients.periods.get_next_open_period(fiscal_year).data.PeriodNumber == 2
    assert clients.periods.get_next_open_period(fiscal_year, after_period_number=5).data.PeriodNumber == 6

    stats = clients.periods.get_period_statistics(fiscal_year).data
    assert stats["TotalPeriods"] == 12
    assert stats["ClosedPeriods"] == 1

    dropdown = clients.periods.get_periods_for_dropdown(fiscal_year_id=fiscal_year, open_only=True)
    assert len(dropdown.data) == 11
    assert set(dropdown.data[0]) >= {"PeriodID", "PeriodCode", "PeriodName"}

    found = clients.periods.search_periods("june")
    assert [p.PeriodCode for p in found.data] == ["FY2025-P06"]
    assert clients.periods.get_period_by_date(date(2025, 7, 4), COMPANY_ID).data.PeriodCode == "FY2025-P07"
    assert clients.periods.get_period_by_date(date(2030, 1, 1)).data is None

    current = clients.periods.get_current_open_period(COMPANY_ID, date(2025, 1, 10))
    assert current.failure is FailureKind.DOMAIN
    assert clients.periods.get_current_open_period(COMPANY_ID, date(2025, 8, 10)).data.PeriodCode == "FY2025-P08"


def test_posting_date_validation(clients, fiscal_year):
    january = _periods(clients, fiscal_year)[0]
    clients.periods.close_period(january.PeriodID)

    closed = clients.periods.validate_posting_date(date(2025, 1, 31), COMPANY_ID)
    assert closed.ok
    assert closed.data["IsOpen"] is False
    assert closed.message == "Posting date falls in closed period FY2025-P01"

    open_ = clients.periods.validate_posting_date("2025-02-01", COMPANY_ID)
    assert open_.data["IsOpen"] is True

    outside = clients.periods.validate_posting_date(date(2026, 2, 1), COMPANY_ID)
    assert outside.message == "No accounting period found for the posting date"


def test_fiscal_year_rules(clients, fiscal_year):
    years = clients.fiscal_years

    overlap = years.create_fiscal_year({
        "FYCode": "FY2025B",
        "StartDate": date(2025, 6, 1),
        "EndDate": date(2026, 5, 31),
        "CompanyID": COMPANY_ID,
    })
    assert overlap.message == "Fiscal year dates overlap with FY2025"

    backwards = years.create_fiscal_year({
        "FYCode": "FY2027",
        "StartDate": date(2027, 12, 31),
        "EndDate": date(2027, 1, 1),
        "CompanyID": COMPANY_ID,
    })
    assert backwards.message == "End date must be after start date"

    assert years.delete_fiscal_year(fiscal_year).message == "Cannot delete a fiscal year that has accounting periods"
    assert years.get_current_fiscal_year(COMPANY_ID, date(2025, 5, 5)).data.FYCode == "FY2025"
    assert [fy.FYCode for fy in years.search_fiscal_years("2025").data] == ["FY2025"]
    assert years.update_fiscal_year(fiscal_year, {"FYDescription": "Calendar 2025"}).ok
    assert years.get_fiscal_year_by_id(fiscal_year).data.FYDescription == "Calendar 2025"


def test_unreadable_date_is_refused_before_loading(clients, fiscal_year, notifier):
    result = clients.periods.get_period_by_date("31/02/2025", COMPANY_ID)

    assert result.failure is FailureKind.VALIDATION
    assert result.validation_messages == ["Invalid date: 31/02/2025"]
    assert notifier.errors == ["Invalid date: 31/02/2025"]
