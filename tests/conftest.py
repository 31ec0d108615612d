import sys
from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from lease_erp.app import create_app
from lease_erp.application import reset_backend_state
from lease_erp.clients import (
    AccountingPeriodClient,
    ChargeClient,
    ContractClient,
    DocTypeClient,
    FiscalYearClient,
    InvoiceClient,
    PropertyClient,
    ReceiptClient,
    SupplierClient,
)
from lease_erp.domain import Principal
from lease_erp.infrastructure import DispatchTransport, RecordingNotifier

COMPANY_ID = 1
CUSTOMER_ID = 42


@pytest.fixture(autouse=True)
def reset_state():
    reset_backend_state()
    yield
    reset_backend_state()


@pytest.fixture()
def api():
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def transport(api):
    return DispatchTransport("http://testserver/api", http_client=api)


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def principal():
    return Principal(user_id=7, user_name="accountant")


@pytest.fixture()
def clients(transport, principal, notifier):
    return SimpleNamespace(
        periods=AccountingPeriodClient(transport, principal, notifier=notifier),
        fiscal_years=FiscalYearClient(transport, principal, notifier=notifier),
        receipts=ReceiptClient(transport, principal, notifier=notifier),
        invoices=InvoiceClient(transport, principal, notifier=notifier),
        contracts=ContractClient(transport, principal, notifier=notifier),
        suppliers=SupplierClient(transport, principal, notifier=notifier),
        properties=PropertyClient(transport, principal, notifier=notifier),
        charges=ChargeClient(transport, principal, notifier=notifier),
        doc_types=DocTypeClient(transport, principal, notifier=notifier),
    )


@pytest.fixture()
def fiscal_year(clients):
    """FY2025 for the test company, split into monthly periods."""

    created = clients.fiscal_years.create_fiscal_year({
        "FYCode": "FY2025",
        "FYDescription": "Fiscal year 2025",
        "StartDate": date(2025, 1, 1),
        "EndDate": date(2025, 12, 31),
        "CompanyID": COMPANY_ID,
    })
    assert created.ok, created.message
    fiscal_year_id = created.get("NewFiscalYearID")
    periods = clients.periods.create_periods_for_fiscal_year(fiscal_year_id, COMPANY_ID)
    assert periods.ok, periods.message
    return fiscal_year_id


@pytest.fixture()
def make_invoice(clients, fiscal_year):
    def factory(**overrides):
        values = {
            "CustomerID": CUSTOMER_ID,
            "CompanyID": COMPANY_ID,
            "FiscalYearID": fiscal_year,
            "InvoiceDate": date(2025, 3, 1),
            "DueDate": date(2025, 3, 31),
            "SubTotal": 1000,
            "TaxAmount": 50,
            "TotalAmount": 1050,
            "RequiresApproval": False,
        }
        values.update(overrides)
        result = clients.invoices.generate_invoice(values)
        assert result.ok, result.message
        return result.get("NewInvoiceID")

    return factory


@pytest.fixture()
def make_receipt(clients, fiscal_year):
    def factory(**overrides):
        values = {
            "CustomerID": CUSTOMER_ID,
            "CompanyID": COMPANY_ID,
            "FiscalYearID": fiscal_year,
            "ReceiptDate": date(2025, 3, 10),
            "PaymentType": "Cash",
            "ReceivedAmount": 500,
        }
        values.update(overrides)
        result = clients.receipts.create_receipt(values)
        assert result.ok, result.message
        return result.get("NewReceiptID")

    return factory
