import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from lease_erp.core.modes import AccountingPeriodMode, ContractMode, FiscalYearMode, ReceiptMode, SupplierMode

AUDIT = {"CurrentUserID": 3, "CurrentUserName": "clerk"}


def _post(api, path, mode, **parameters):
    response = api.post(f"/api{path}", json={"mode": int(mode), "parameters": parameters})
    assert response.status_code == 200
    return response.json()


def test_root_points_to_docs(api):
    response = api.get("/")

    assert response.status_code == 200
    assert response.json() == {
        "message": "Lease ERP Dispatch API",
        "docs": "/docs",
        "health": "/api/endpoints",
    }


def test_endpoints_are_listed(api):
    items = api.get("/api/endpoints").json()["items"]

    assert "/Master/accountingPeriod" in items
    assert "/LeaseManagement/receipt" in items
    assert items == sorted(items)


def test_unknown_endpoint_is_404(api):
    response = api.post("/api/Master/nothingHere", json={"mode": 1, "parameters": {}})

    assert response.status_code == 404


def test_malformed_envelope_is_400(api):
    assert api.post("/api/Master/fiscalyear", json={"mode": 0}).status_code == 400
    assert api.post("/api/Master/fiscalyear", json={"parameters": {}}).status_code == 400
    assert api.post("/api/Master/fiscalyear", json={"mode": "create"}).status_code == 400


def test_unknown_mode_is_a_status_zero_response(api):
    body = _post(api, "/Master/fiscalyear", 99)

    assert body["Status"] == 0
    assert body["Message"] == "Unknown mode 99 for /Master/fiscalyear"


def test_endpoint_paths_are_case_insensitive(api):
    body = _post(api, "/master/FISCALYEAR", FiscalYearMode.GET_ALL)

    assert body == {"Status": 1, "Message": "", "data": []}


def test_created_record_carries_audit_fields(api):
    created = _post(
        api,
        "/Master/fiscalyear",
        FiscalYearMode.CREATE,
        FYCode="FY2026",
        StartDate="2026-01-01",
        EndDate="2026-12-31",
        CompanyID=1,
        **AUDIT,
    )
    assert created["Status"] == 1
    assert created["Message"] == "Fiscal year created successfully"

    row = _post(api, "/Master/fiscalyear", FiscalYearMode.GET_BY_ID, FiscalYearID=created["NewFiscalYearID"])["data"]
    assert row["FYCode"] == "FY2026"
    assert row["CreatedBy"] == "clerk"
    assert row["CreatedID"] == 3


def test_domain_refusal_and_missing_parameters(api):
    missing = _post(api, "/Master/fiscalyear", FiscalYearMode.CREATE, CompanyID=1)
    assert missing == {"Status": 0, "Message": "Fiscal year code is required"}

    absent = _post(api, "/Master/fiscalyear", FiscalYearMode.GET_BY_ID, FiscalYearID=404)
    assert absent["Status"] == 0
    assert "not found" in absent["Message"]


def test_precondition_refusal_lists_messages(api):
    created = _post(
        api,
        "/Master/fiscalyear",
        FiscalYearMode.CREATE,
        FYCode="FY2026",
        StartDate="2026-01-01",
        EndDate="2026-12-31",
        CompanyID=1,
    )
    generated = _post(
        api,
        "/Master/accountingPeriod",
        AccountingPeriodMode.CREATE_FOR_FISCAL_YEAR,
        FiscalYearID=created["NewFiscalYearID"],
        CompanyID=1,
    )
    assert generated["Status"] == 1
    periods = _post(
        api, "/Master/accountingPeriod", AccountingPeriodMode.BY_FISCAL_YEAR, FiscalYearID=created["NewFiscalYearID"]
    )["data"]

    body = _post(api, "/Master/accountingPeriod", AccountingPeriodMode.CLOSE, PeriodID=periods[2]["PeriodID"])

    assert body["Status"] == 0
    assert body["ValidationMessages"] == ["Cannot close this period. Previous periods must be closed first."]
    assert body["PreviousPeriodsOpen"] is True
    assert body["CanClose"] is False


def test_incomplete_unit_row_leaves_no_contract(api):
    body = _post(
        api,
        "/Master/contractmanagement",
        ContractMode.CREATE,
        CustomerID=42,
        CompanyID=1,
        UnitsJSON='[{"UnitID": 5, "TotalAmount": 100}, {"TotalAmount": 50}]',
    )

    assert body == {"Status": 0, "Message": "Unit is required"}
    assert _post(api, "/Master/contractmanagement", ContractMode.GET_ALL)["data"] == []


def test_incomplete_charge_row_keeps_existing_units(api):
    created = _post(
        api,
        "/Master/contractmanagement",
        ContractMode.CREATE,
        CustomerID=42,
        CompanyID=1,
        UnitsJSON='[{"UnitID": 5, "TotalAmount": 100}]',
    )
    assert created["Status"] == 1
    contract_id = created["NewContractID"]

    body = _post(
        api,
        "/Master/contractmanagement",
        ContractMode.UPDATE,
        ContractID=contract_id,
        Remarks="renewal",
        UnitsJSON='[{"UnitID": 6, "TotalAmount": 300}]',
        AdditionalChargesJSON='[{"Amount": 20}]',
    )

    assert body == {"Status": 0, "Message": "Additional charge is required"}
    detail = _post(api, "/Master/contractmanagement", ContractMode.GET_BY_ID, ContractID=contract_id)
    assert [unit["UnitID"] for unit in detail["table2"]] == [5]
    assert detail["table1"][0].get("Remarks") is None


def test_bad_bank_row_leaves_no_supplier(api):
    body = _post(
        api,
        "/Master/supplierManagement",
        SupplierMode.CREATE,
        SupplierName="Gulf Maintenance",
        ContactsJSON='[{"ContactName": "Sara"}]',
        BankDetailsJSON='[{"AccountName": "no number"}]',
    )

    assert body == {"Status": 0, "Message": "Account number or IBAN is required"}
    assert _post(api, "/Master/supplierManagement", SupplierMode.GET_ALL)["data"] == []
