import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pandas as pd
from openpyxl import load_workbook

from lease_erp.core.schema import Receipt
from lease_erp.exporters.excel import export_records_xlsx, sheet_title
from lease_erp.exporters.receipts_csv import COLUMNS, export_receipts_csv


def _receipts():
    return [
        Receipt(
            ReceiptNo="REC-202503-00001",
            ReceiptDate="2025-03-10",
            PaymentType="Cheque",
            PaymentStatus="Cleared",
            ReceivedAmount=2500,
            PenaltyAmount=12.5,
            ChequeNo="000123",
            ClearanceDate="2025-03-12",
            IsPosted=True,
            CustomerName="Noor Trading",
            BankName="Emirates Bank",
        ),
        Receipt(ReceiptNo="REC-202503-00002", ReceivedAmount=40, IsAdvancePayment=True, InvoiceNo="INV-1"),
    ]


def test_receipts_csv_layout(tmp_path):
    path = export_receipts_csv(tmp_path / "out" / "receipts.csv", _receipts())

    df = pd.read_csv(path, dtype=str, keep_default_na=False)

    assert list(df.columns) == COLUMNS
    first, second = df.to_dict(orient="records")
    assert first["Receipt Date"] == "2025-03-10"
    assert first["Received Amount"] == "2500.00"
    assert first["Penalty Amount"] == "12.50"
    assert first["Security Deposit"] == "0.00"
    assert first["Is Posted"] == "Yes"
    assert first["Customer Name"] == "Noor Trading"
    assert first["Bank Name"] == "Emirates Bank"
    assert first["Cheque No"] == "000123"
    assert second["Is Advance Payment"] == "Yes"
    assert second["Is Posted"] == "No"
    assert second["Payment Type"] == "Cash"
    assert second["Invoice No"] == "INV-1"
    assert second["Receipt Date"] == ""


def test_empty_export_keeps_header(tmp_path):
    path = export_receipts_csv(tmp_path / "empty.csv", [])

    assert path.read_text().strip() == ",".join(COLUMNS)


def test_records_xlsx(tmp_path):
    rows = [{"PeriodCode": "FY2025-P01", "IsClosed": True}, {"PeriodCode": "FY2025-P02", "IsClosed": False}]

    path = export_records_xlsx(tmp_path / "periods.xlsx", rows, sheet_name="Accounting periods for FY2025 review")

    workbook = load_workbook(path)
    assert workbook.sheetnames == ["Accounting periods for FY2025 r"]
    sheet = workbook.active
    values = list(sheet.iter_rows(values_only=True))
    assert values[0] == ("PeriodCode", "IsClosed")
    assert values[1] == ("FY2025-P01", True)
    assert len(values) == 3


def test_xlsx_accepts_models(tmp_path):
    path = export_records_xlsx(tmp_path / "receipts.xlsx", _receipts())

    sheet = load_workbook(path)["Records"]
    header = [cell.value for cell in sheet[1]]

    assert "ReceiptNo" in header
    assert sheet.cell(row=2, column=header.index("ReceiptNo") + 1).value == "REC-202503-00001"


def test_sheet_name_drops_forbidden_characters(tmp_path):
    rows = [{"ReceiptNo": "REC-1"}]

    path = export_records_xlsx(tmp_path / "receipts.xlsx", rows, sheet_name="Receipts [03/2025]: cash?")

    assert load_workbook(path).sheetnames == ["Receipts -03-2025-- cash-"]
    assert sheet_title("*/?") == "---"
    assert sheet_title("  ") == "Records"
