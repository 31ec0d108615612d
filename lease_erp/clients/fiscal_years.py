from __future__ import annotations

from datetime import date
from typing import Any, Mapping

from lease_erp.core.modes import FiscalYearMode
from lease_erp.core.schema import FiscalYear

from .base import DispatchClient, one_of, payload_of, rows_of
from .results import DispatchResult


class FiscalYearClient(DispatchClient):
    modes = FiscalYearMode

    def create_fiscal_year(self, fiscal_year: FiscalYear | Mapping[str, Any]) -> DispatchResult[None]:
        return self.call(
            FiscalYearMode.CREATE,
            payload_of(FiscalYear, fiscal_year),
            action="create fiscal year",
            mutation=True,
        )

    def update_fiscal_year(
        self, fiscal_year_id: int, changes: FiscalYear | Mapping[str, Any]
    ) -> DispatchResult[None]:
        return self.call(
            FiscalYearMode.UPDATE,
            {"FiscalYearID": fiscal_year_id, **payload_of(FiscalYear, changes)},
            action="update fiscal year",
            mutation=True,
        )

    def get_all_fiscal_years(self, company_id: int | None = None) -> DispatchResult[list[FiscalYear]]:
        return self.call(
            FiscalYearMode.GET_ALL, {"CompanyID": company_id}, action="load fiscal years", parse=rows_of(FiscalYear)
        )

    def get_fiscal_year_by_id(self, fiscal_year_id: int) -> DispatchResult[FiscalYear]:
        return self.call(
            FiscalYearMode.GET_BY_ID,
            {"FiscalYearID": fiscal_year_id},
            action="load fiscal year",
            parse=one_of(FiscalYear),
        )

    def delete_fiscal_year(self, fiscal_year_id: int) -> DispatchResult[None]:
        return self.call(
            FiscalYearMode.DELETE, {"FiscalYearID": fiscal_year_id}, action="delete fiscal year", mutation=True
        )

    def search_fiscal_years(
        self,
        search_text: str | None = None,
        *,
        company_id: int | None = None,
        is_active: bool | None = None,
    ) -> DispatchResult[list[FiscalYear]]:
        return self.call(
            FiscalYearMode.SEARCH,
            {"SearchText": search_text, "FilterCompanyID": company_id, "FilterIsActive": is_active},
            action="search fiscal years",
            parse=rows_of(FiscalYear),
        )

    def get_current_fiscal_year(
        self, company_id: int | None = None, as_of: date | None = None
    ) -> DispatchResult[FiscalYear]:
        return self.call(
            FiscalYearMode.CURRENT,
            {"CompanyID": company_id, "AsOfDate": as_of},
            action="load the current fiscal year",
            parse=one_of(FiscalYear),
        )
