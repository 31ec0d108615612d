"""Accounting period modes: generation, close/reopen and posting-date checks."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, assert_never

from lease_erp.core.envelope import ResponseEnvelope
from lease_erp.core.errors import ConflictError, DomainError, PreconditionError
from lease_erp.core.lifecycle import (
    InvoiceStatus,
    PaymentStatus,
    POSTABLE_PAYMENT_STATUSES,
    UNPOSTABLE_INVOICE_STATUSES,
    generate_monthly_periods,
    period_closure_check,
    period_covering,
    period_reopen_errors,
)
from lease_erp.core.modes import AccountingPeriodMode
from lease_erp.core.wire import parse_date
from lease_erp.domain import Principal
from lease_erp.infrastructure.store import LeaseRepository

from .dispatch import EntityHandler, contains_text, opt_date, opt_flag, opt_id, opt_text, req_id


def company_periods(repository: LeaseRepository, company_id: int | None) -> list[dict[str, Any]]:
    rows = repository.list(
        "periods",
        lambda row: company_id is None or row.get("CompanyID") in (None, company_id),
    )
    return sorted(rows, key=lambda row: (row.get("StartDate") or "", row.get("PeriodNumber") or 0))


def period_on(repository: LeaseRepository, company_id: int | None, on_date: Any) -> dict[str, Any] | None:
    period = period_covering(company_periods(repository, company_id), on_date)
    return dict(period) if period is not None else None


def closed_period_on(repository: LeaseRepository, company_id: int | None, on_date: Any) -> dict[str, Any] | None:
    """The closed period covering ``on_date``; dates without a period are not blocked."""

    period = period_on(repository, company_id, on_date)
    if period is not None and period.get("IsClosed"):
        return period
    return None


class AccountingPeriodHandler(EntityHandler[AccountingPeriodMode]):
    modes = AccountingPeriodMode

    def handle(self, mode: AccountingPeriodMode, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        match mode:
            case AccountingPeriodMode.CREATE_FOR_FISCAL_YEAR:
                return self._create_for_fiscal_year(params, principal)
            case AccountingPeriodMode.CLOSE:
                return self._close(params, principal)
            case AccountingPeriodMode.REOPEN:
                return self._reopen(params, principal)
            case AccountingPeriodMode.BY_FISCAL_YEAR:
                fiscal_year_id = req_id(params, "FiscalYearID", "Fiscal year")
                return ResponseEnvelope.success(data=self._fiscal_year_periods(fiscal_year_id))
            case AccountingPeriodMode.CURRENT_OPEN:
                return self._current_open(params)
            case AccountingPeriodMode.GET_ALL:
                return ResponseEnvelope.success(data=self._filtered(params))
            case AccountingPeriodMode.GET_BY_ID:
                period = self.repository.require("periods", req_id(params, "PeriodID", "Period"))
                return ResponseEnvelope.success(data=self._decorate(period))
            case AccountingPeriodMode.SEARCH:
                text = opt_text(params, "SearchText")
                rows = [
                    row
                    for row in self._filtered(params)
                    if contains_text(row, text, ("PeriodCode", "PeriodName", "FYCode", "ClosingComments"))
                ]
                return ResponseEnvelope.success(data=rows)
            case AccountingPeriodMode.DROPDOWN:
                return self._dropdown(params)
            case AccountingPeriodMode.VALIDATE_POSTING_DATE:
                return self._validate_posting_date(params)
            case AccountingPeriodMode.VALIDATE_CLOSURE:
                return self._validate_closure(params)
            case _:
                assert_never(mode)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _decorate(self, period: dict[str, Any]) -> dict[str, Any]:
        fiscal_year = self.repository.get("fiscal_years", period.get("FiscalYearID"))
        if fiscal_year is not None:
            period["FYCode"] = fiscal_year.get("FYCode")
            period["FYDescription"] = fiscal_year.get("FYDescription")
        return period

    def _fiscal_year_periods(self, fiscal_year_id: int) -> list[dict[str, Any]]:
        rows = self.repository.list("periods", lambda row: row.get("FiscalYearID") == fiscal_year_id)
        return [self._decorate(row) for row in sorted(rows, key=lambda row: row.get("PeriodNumber") or 0)]

    def _filtered(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        fiscal_year_id = opt_id(params, "FilterFiscalYearID")
        company_id = opt_id(params, "FilterCompanyID")
        is_open = opt_flag(params, "FilterIsOpen")
        is_closed = opt_flag(params, "FilterIsClosed")
        number = opt_id(params, "FilterPeriodNumber")

        def keep(row: dict[str, Any]) -> bool:
            if fiscal_year_id and row.get("FiscalYearID") != fiscal_year_id:
                return False
            if company_id and row.get("CompanyID") != company_id:
                return False
            if is_open is not None and bool(row.get("IsOpen")) != is_open:
                return False
            if is_closed is not None and bool(row.get("IsClosed")) != is_closed:
                return False
            if number and row.get("PeriodNumber") != number:
                return False
            return True

        rows = self.repository.list("periods", keep)
        rows.sort(key=lambda row: (row.get("FiscalYearID") or 0, row.get("PeriodNumber") or 0))
        return [self._decorate(row) for row in rows]

    def _blocking_transactions(self, period: dict[str, Any]) -> int:
        start = parse_date(period.get("StartDate"))
        end = parse_date(period.get("EndDate"))
        company_id = period.get("CompanyID")

        def in_period(row: dict[str, Any], field: str) -> bool:
            if company_id and row.get("CompanyID") not in (None, company_id):
                return False
            stamp = parse_date(row.get(field))
            return stamp is not None and start <= stamp <= end

        receipts = self.repository.list(
            "receipts",
            lambda row: not row.get("IsPosted")
            and PaymentStatus.parse(row.get("PaymentStatus")) in POSTABLE_PAYMENT_STATUSES
            and in_period(row, "ReceiptDate"),
        )
        invoices = self.repository.list(
            "invoices",
            lambda row: not row.get("IsPosted")
            and InvoiceStatus.parse(row.get("InvoiceStatus")) not in UNPOSTABLE_INVOICE_STATUSES
            and in_period(row, "InvoiceDate"),
        )
        return len(receipts) + len(invoices)

    def _closure(self, period_id: int | None):
        period = self.repository.get("periods", period_id)
        if period is None:
            return None, period_closure_check(None, [])
        siblings = self.repository.list(
            "periods",
            lambda row: row.get("FiscalYearID") == period.get("FiscalYearID") and row.get("PeriodID") != period_id,
        )
        return period, period_closure_check(period, siblings, self._blocking_transactions(period))

    # ------------------------------------------------------------------
    # modes
    # ------------------------------------------------------------------
    def _create_for_fiscal_year(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        fiscal_year_id = req_id(params, "FiscalYearID", "Fiscal year")
        company_id = req_id(params, "CompanyID", "Company")
        fiscal_year = self.repository.require("fiscal_years", fiscal_year_id)
        if fiscal_year.get("CompanyID") and fiscal_year["CompanyID"] != company_id:
            raise DomainError("Fiscal year does not belong to this company")
        if self.repository.list("periods", lambda row: row.get("FiscalYearID") == fiscal_year_id):
            raise ConflictError("Accounting periods already exist for this fiscal year")

        created = [
            self.repository.insert(
                "periods",
                {**period, "FiscalYearID": fiscal_year_id, "CompanyID": company_id},
                principal,
            )
            for period in generate_monthly_periods(fiscal_year)
        ]
        return ResponseEnvelope.success(
            f"{len(created)} accounting periods created",
            data=[self._decorate(row) for row in created],
            PeriodsCreated=len(created),
        )

    def _close(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        period_id = req_id(params, "PeriodID", "Period")
        period, check = self._closure(period_id)
        if not check.can_close:
            details = check.as_fields()
            details.pop("ValidationMessages")
            raise PreconditionError(check.validation_messages, **details)

        self.repository.update(
            "periods",
            period_id,
            {
                "IsOpen": False,
                "IsClosed": True,
                "ClosedByUserID": principal.user_id,
                "ClosedByUserName": principal.user_name,
                "ClosedOn": datetime.now().replace(microsecond=0).isoformat(),
                "ClosingComments": opt_text(params, "ClosingComments"),
            },
            principal,
        )
        return ResponseEnvelope.success(f"Period {period['PeriodCode']} closed successfully", CanClose=True)

    def _reopen(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        period_id = req_id(params, "PeriodID", "Period")
        period = self.repository.get("periods", period_id)
        siblings = []
        if period is not None:
            siblings = self.repository.list(
                "periods", lambda row: row.get("FiscalYearID") == period.get("FiscalYearID")
            )
        errors = period_reopen_errors(period, siblings)
        if errors:
            raise PreconditionError(errors)
        self.repository.update(
            "periods",
            period_id,
            {
                "IsOpen": True,
                "IsClosed": False,
                "ClosedByUserID": None,
                "ClosedByUserName": None,
                "ClosedOn": None,
            },
            principal,
        )
        return ResponseEnvelope.success(f"Period {period['PeriodCode']} reopened successfully")

    def _current_open(self, params: dict[str, Any]) -> ResponseEnvelope:
        company_id = opt_id(params, "CompanyID")
        as_of = opt_date(params, "AsOfDate") or date.today()
        period = period_on(self.repository, company_id, as_of)
        if period is None or not period.get("IsOpen"):
            raise DomainError("No open accounting period found for the current date")
        return ResponseEnvelope.success(data=self._decorate(period))

    def _dropdown(self, params: dict[str, Any]) -> ResponseEnvelope:
        open_only = bool(opt_flag(params, "OpenPeriodsOnly"))
        rows = [
            {
                "PeriodID": row["PeriodID"],
                "PeriodCode": row.get("PeriodCode"),
                "PeriodName": row.get("PeriodName"),
                "StartDate": row.get("StartDate"),
                "EndDate": row.get("EndDate"),
                "IsOpen": row.get("IsOpen"),
                "IsClosed": row.get("IsClosed"),
            }
            for row in self._filtered(params)
            if not open_only or row.get("IsOpen")
        ]
        return ResponseEnvelope.success(data=rows)

    def _validate_posting_date(self, params: dict[str, Any]) -> ResponseEnvelope:
        posting_date = opt_date(params, "PostingDate")
        if posting_date is None:
            raise DomainError("Posting date is required")
        period = period_on(self.repository, opt_id(params, "CompanyID"), posting_date)
        if period is None:
            raise DomainError("No accounting period found for the posting date")
        if period.get("IsOpen"):
            message = "Posting date is valid"
        else:
            message = f"Posting date falls in closed period {period.get('PeriodCode')}"
        return ResponseEnvelope.success(
            message,
            IsOpen=bool(period.get("IsOpen")),
            PeriodID=period["PeriodID"],
            PeriodCode=period.get("PeriodCode"),
        )

    def _validate_closure(self, params: dict[str, Any]) -> ResponseEnvelope:
        _, check = self._closure(opt_id(params, "PeriodID"))
        return ResponseEnvelope.success(
            check.validation_messages[0],
            IsValid=check.can_close,
            Errors=[] if check.can_close else list(check.validation_messages),
            **check.as_fields(),
        )

