"""Accounting period client and its client-side compositions."""
from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Mapping

from lease_erp.core.errors import ValidationError
from lease_erp.core.lifecycle import period_covering
from lease_erp.core.modes import AccountingPeriodMode
from lease_erp.core.schema import AccountingPeriod
from lease_erp.core.wire import parse_date

from .base import DispatchClient, one_of, raw_rows, rows_of
from .results import DispatchResult

Mode = AccountingPeriodMode


def _fields(response) -> dict[str, Any]:
    return {key: value for key, value in response.extras.items() if not key.startswith("table")}


class AccountingPeriodClient(DispatchClient):
    modes = AccountingPeriodMode

    def create_periods_for_fiscal_year(
        self, fiscal_year_id: int | None, company_id: int | None
    ) -> DispatchResult[list[AccountingPeriod]]:
        if not fiscal_year_id or not company_id:
            return self.invalid("Please select a fiscal year before generating periods")
        return self.call(
            Mode.CREATE_FOR_FISCAL_YEAR,
            {"FiscalYearID": fiscal_year_id, "CompanyID": company_id},
            action="generate accounting periods",
            parse=rows_of(AccountingPeriod),
            mutation=True,
        )

    def close_period(self, period_id: int, closing_comments: str | None = None) -> DispatchResult[None]:
        return self.call(
            Mode.CLOSE,
            {"PeriodID": period_id, "ClosingComments": closing_comments},
            action="close period",
            mutation=True,
        )

    def reopen_period(self, period_id: int) -> DispatchResult[None]:
        return self.call(Mode.REOPEN, {"PeriodID": period_id}, action="reopen period", mutation=True)

    def get_periods_by_fiscal_year(self, fiscal_year_id: int) -> DispatchResult[list[AccountingPeriod]]:
        return self.call(
            Mode.BY_FISCAL_YEAR,
            {"FiscalYearID": fiscal_year_id},
            action="load accounting periods",
            parse=rows_of(AccountingPeriod),
        )

    def get_current_open_period(
        self, company_id: int | None = None, as_of: date | None = None
    ) -> DispatchResult[AccountingPeriod]:
        return self.call(
            Mode.CURRENT_OPEN,
            {"CompanyID": company_id, "AsOfDate": as_of},
            action="load the current period",
            parse=one_of(AccountingPeriod),
        )

    def get_all_periods(self, filters: Mapping[str, Any] | None = None) -> DispatchResult[list[AccountingPeriod]]:
        """``filters`` uses the wire names (``FilterFiscalYearID``, ``FilterIsOpen``...)."""

        return self.call(
            Mode.GET_ALL, dict(filters or {}), action="load accounting periods", parse=rows_of(AccountingPeriod)
        )

    def get_period_by_id(self, period_id: int) -> DispatchResult[AccountingPeriod]:
        return self.call(
            Mode.GET_BY_ID, {"PeriodID": period_id}, action="load accounting period", parse=one_of(AccountingPeriod)
        )

    def search_periods(
        self, search_text: str | None = None, filters: Mapping[str, Any] | None = None
    ) -> DispatchResult[list[AccountingPeriod]]:
        return self.call(
            Mode.SEARCH,
            {"SearchText": search_text, **dict(filters or {})},
            action="search accounting periods",
            parse=rows_of(AccountingPeriod),
        )

    def get_periods_for_dropdown(
        self,
        *,
        company_id: int | None = None,
        fiscal_year_id: int | None = None,
        open_only: bool = False,
    ) -> DispatchResult[list[dict[str, Any]]]:
        return self.call(
            Mode.DROPDOWN,
            {
                "FilterCompanyID": company_id,
                "FilterFiscalYearID": fiscal_year_id,
                "OpenPeriodsOnly": open_only,
            },
            action="load periods",
            parse=raw_rows,
        )

    def validate_posting_date(
        self, posting_date: date | str, company_id: int | None = None
    ) -> DispatchResult[dict[str, Any]]:
        return self.call(
            Mode.VALIDATE_POSTING_DATE,
            {"PostingDate": posting_date, "CompanyID": company_id},
            action="validate posting date",
            parse=_fields,
        )

    def validate_period_closure(self, period_id: int) -> DispatchResult[dict[str, Any]]:
        return self.call(
            Mode.VALIDATE_CLOSURE, {"PeriodID": period_id}, action="validate period closure", parse=_fields
        )

    # ------------------------------------------------------------------
    # compositions
    # ------------------------------------------------------------------
    def get_period_statistics(self, fiscal_year_id: int) -> DispatchResult[dict[str, Any]]:
        def summarise(periods: list[AccountingPeriod] | None) -> dict[str, Any]:
            periods = periods or []
            today = date.today()
            current = next(
                (p for p in periods if p.StartDate and p.EndDate and p.StartDate <= today <= p.EndDate),
                None,
            )
            return {
                "TotalPeriods": len(periods),
                "OpenPeriods": sum(1 for p in periods if p.IsOpen),
                "ClosedPeriods": sum(1 for p in periods if p.IsClosed),
                "CurrentPeriod": current.PeriodCode if current else None,
            }

        return self.get_periods_by_fiscal_year(fiscal_year_id).map(summarise)

    def get_open_periods(self, fiscal_year_id: int | None = None) -> DispatchResult[list[AccountingPeriod]]:
        return self.get_all_periods({"FilterFiscalYearID": fiscal_year_id, "FilterIsOpen": True})

    def get_closed_periods(self, fiscal_year_id: int | None = None) -> DispatchResult[list[AccountingPeriod]]:
        return self.get_all_periods({"FilterFiscalYearID": fiscal_year_id, "FilterIsClosed": True})

    def periods_exist_for_fiscal_year(self, fiscal_year_id: int) -> DispatchResult[bool]:
        return self.get_periods_by_fiscal_year(fiscal_year_id).map(lambda periods: bool(periods))

    def get_next_open_period(
        self, fiscal_year_id: int, after_period_number: int = 0
    ) -> DispatchResult[AccountingPeriod]:
        def pick(periods: list[AccountingPeriod] | None) -> AccountingPeriod | None:
            ordered = sorted(periods or [], key=lambda p: p.PeriodNumber or 0)
            return next(
                (p for p in ordered if p.IsOpen and (p.PeriodNumber or 0) > after_period_number), None
            )

        return self.get_periods_by_fiscal_year(fiscal_year_id).map(pick)

    def bulk_close_periods(
        self, period_ids: Iterable[int], closing_comments: str | None = None
    ) -> DispatchResult[list[int]]:
        """Close periods in the given order, stopping at the first refusal."""

        closed: list[int] = []
        for period_id in period_ids:
            result = self.close_period(period_id, closing_comments)
            if not result.ok:
                result.fields["ClosedPeriodIDs"] = closed
                result.fields["FailedPeriodID"] = period_id
                return result
            closed.append(period_id)
        return DispatchResult.succeeded(closed, f"{len(closed)} period(s) closed", ClosedPeriodIDs=closed)

    def get_period_by_date(
        self, on_date: date | str, company_id: int | None = None
    ) -> DispatchResult[AccountingPeriod]:
        try:
            target = parse_date(on_date)
        except ValidationError as exc:
            return self.invalid(exc.messages)

        def pick(periods: list[AccountingPeriod] | None) -> AccountingPeriod | None:
            rows = [p.model_dump() for p in periods or []]
            found = period_covering(rows, target)
            return AccountingPeriod.model_validate(found) if found else None

        return self.get_all_periods({"FilterCompanyID": company_id}).map(pick)
