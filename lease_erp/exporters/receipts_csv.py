from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from lease_erp.core.schema import Receipt

COLUMNS = [
    "Receipt No",
    "Receipt Date",
    "Customer Name",
    "Invoice No",
    "Payment Type",
    "Payment Status",
    "Received Amount",
    "Security Deposit",
    "Penalty Amount",
    "Discount Amount",
    "Is Advance Payment",
    "Bank Name",
    "Cheque No",
    "Transaction Reference",
    "Deposit Date",
    "Clearance Date",
    "Is Posted",
    "Notes",
]


def _money(value: Any) -> str:
    return f"{float(value or 0):.2f}"


def _yes_no(value: Any) -> str:
    return "Yes" if value else "No"


def export_receipts_csv(path: Path, receipts: Iterable[Receipt]) -> Path:
    records = []
    for receipt in receipts:
        data = receipt.model_dump(mode="json")
        records.append({
            "Receipt No": data["ReceiptNo"],
            "Receipt Date": data["ReceiptDate"] or "",
            "Customer Name": data.get("CustomerName") or "",
            "Invoice No": data["InvoiceNo"] or "",
            "Payment Type": data["PaymentType"],
            "Payment Status": data["PaymentStatus"],
            "Received Amount": _money(data["ReceivedAmount"]),
            "Security Deposit": _money(data["SecurityDepositAmount"]),
            "Penalty Amount": _money(data["PenaltyAmount"]),
            "Discount Amount": _money(data["DiscountAmount"]),
            "Is Advance Payment": _yes_no(data["IsAdvancePayment"]),
            "Bank Name": data.get("BankName") or "",
            "Cheque No": data["ChequeNo"] or "",
            "Transaction Reference": data["TransactionReference"] or "",
            "Deposit Date": data["DepositDate"] or "",
            "Clearance Date": data["ClearanceDate"] or "",
            "Is Posted": _yes_no(data["IsPosted"]),
            "Notes": data["Notes"] or "",
        })
    df = pd.DataFrame(records, columns=COLUMNS)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path
