"""Fiscal year master modes."""
from __future__ import annotations

from datetime import date
from typing import Any, assert_never

from lease_erp.core.envelope import ResponseEnvelope
from lease_erp.core.errors import ConflictError, DomainError
from lease_erp.core.modes import FiscalYearMode
from lease_erp.core.schema import FiscalYear
from lease_erp.core.wire import parse_date
from lease_erp.domain import Principal

from .dispatch import (
    EntityHandler,
    by_id,
    contains_text,
    normalise_record,
    opt_date,
    opt_flag,
    opt_id,
    opt_text,
    req_id,
)

DATE_FIELDS = ("StartDate", "EndDate")


class FiscalYearHandler(EntityHandler[FiscalYearMode]):
    modes = FiscalYearMode

    def handle(self, mode: FiscalYearMode, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        match mode:
            case FiscalYearMode.CREATE:
                return self._create(params, principal)
            case FiscalYearMode.UPDATE:
                return self._update(params, principal)
            case FiscalYearMode.GET_ALL:
                company_id = opt_id(params, "CompanyID")
                rows = self.repository.list(
                    "fiscal_years", lambda row: not company_id or row.get("CompanyID") == company_id
                )
                return ResponseEnvelope.success(data=by_id(rows, "FiscalYearID"))
            case FiscalYearMode.GET_BY_ID:
                row = self.repository.require("fiscal_years", req_id(params, "FiscalYearID", "Fiscal year"))
                return ResponseEnvelope.success(data=row)
            case FiscalYearMode.DELETE:
                return self._delete(params, principal)
            case FiscalYearMode.SEARCH:
                return self._search(params)
            case FiscalYearMode.CURRENT:
                company_id = opt_id(params, "CompanyID")
                as_of = opt_date(params, "AsOfDate") or date.today()
                for row in self.repository.list("fiscal_years"):
                    if company_id and row.get("CompanyID") != company_id:
                        continue
                    if parse_date(row["StartDate"]) <= as_of <= parse_date(row["EndDate"]):
                        return ResponseEnvelope.success(data=row)
                raise DomainError("No current fiscal year found")
            case _:
                assert_never(mode)

    def _check_dates(self, record: dict[str, Any], exclude_id: int | None = None) -> None:
        start = parse_date(record.get("StartDate"))
        end = parse_date(record.get("EndDate"))
        if start is None or end is None:
            raise DomainError("Start date and end date are required")
        if end <= start:
            raise DomainError("End date must be after start date")
        for other in self.repository.list("fiscal_years"):
            if other["FiscalYearID"] == exclude_id or other.get("CompanyID") != record.get("CompanyID"):
                continue
            if start <= parse_date(other["EndDate"]) and parse_date(other["StartDate"]) <= end:
                raise ConflictError(f"Fiscal year dates overlap with {other.get('FYCode')}")
            if other.get("FYCode") == record.get("FYCode"):
                raise ConflictError(f"Fiscal year code {record.get('FYCode')} already exists")

    def _create(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        record = normalise_record(FiscalYear.pick_writable(params), DATE_FIELDS)
        if not record.get("FYCode"):
            raise DomainError("Fiscal year code is required")
        if not record.get("CompanyID"):
            raise DomainError("Company is required")
        self._check_dates(record)
        record.setdefault("IsActive", True)
        record["IsClosed"] = False
        row = self.repository.insert("fiscal_years", record, principal)
        return ResponseEnvelope.success(
            "Fiscal year created successfully", NewFiscalYearID=row["FiscalYearID"]
        )

    def _update(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        fiscal_year_id = req_id(params, "FiscalYearID", "Fiscal year")
        current = self.repository.require("fiscal_years", fiscal_year_id)
        changes = normalise_record(FiscalYear.pick_writable(params), DATE_FIELDS)
        if any(key in changes for key in ("StartDate", "EndDate", "CompanyID", "FYCode")):
            self._check_dates({**current, **changes}, exclude_id=fiscal_year_id)
        self.repository.update("fiscal_years", fiscal_year_id, changes, principal)
        return ResponseEnvelope.success("Fiscal year updated successfully")

    def _delete(self, params: dict[str, Any], principal: Principal) -> ResponseEnvelope:
        fiscal_year_id = req_id(params, "FiscalYearID", "Fiscal year")
        self.repository.require("fiscal_years", fiscal_year_id)
        if self.repository.list("periods", lambda row: row.get("FiscalYearID") == fiscal_year_id):
            raise DomainError("Cannot delete a fiscal year that has accounting periods")
        self.repository.soft_delete("fiscal_years", fiscal_year_id, principal)
        return ResponseEnvelope.success("Fiscal year deleted successfully")

    def _search(self, params: dict[str, Any]) -> ResponseEnvelope:
        text = opt_text(params, "SearchText")
        company_id = opt_id(params, "FilterCompanyID")
        is_active = opt_flag(params, "FilterIsActive")
        rows = [
            row
            for row in self.repository.list("fiscal_years")
            if contains_text(row, text, ("FYCode", "FYDescription"))
            and (not company_id or row.get("CompanyID") == company_id)
            and (is_active is None or bool(row.get("IsActive")) == is_active)
        ]
        return ResponseEnvelope.success(data=by_id(rows, "FiscalYearID"))
