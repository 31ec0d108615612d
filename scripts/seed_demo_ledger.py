#!/usr/bin/env python
from __future__ import annotations

import argparse
import sys
from datetime import date

from lease_erp.clients import AccountingPeriodClient, FiscalYearClient, InvoiceClient, ReceiptClient
from lease_erp.domain import Principal
from lease_erp.infrastructure import DispatchTransport
from lease_erp.logging_config import configure_logging


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed a demo fiscal year, periods, invoice and cheque receipt")
    parser.add_argument("--base-url", default=None, help="Dispatch API base URL (defaults to LEASE_API_BASE_URL)")
    parser.add_argument("--year", type=int, default=date.today().year, help="Calendar year of the fiscal year")
    parser.add_argument("--company-id", type=int, default=1)
    parser.add_argument("--customer-id", type=int, default=1)
    parser.add_argument("--user-id", type=int, default=1)
    parser.add_argument("--user-name", default="demo")
    args = parser.parse_args()

    configure_logging()
    if args.base_url:
        transport = DispatchTransport(args.base_url)
    else:
        transport = DispatchTransport.from_env()
    principal = Principal(user_id=args.user_id, user_name=args.user_name)

    with transport:
        fiscal_years = FiscalYearClient(transport, principal)
        created = fiscal_years.create_fiscal_year({
            "FYCode": f"FY{args.year}",
            "FYDescription": f"Fiscal year {args.year}",
            "StartDate": date(args.year, 1, 1),
            "EndDate": date(args.year, 12, 31),
            "CompanyID": args.company_id,
        })
        if not created.ok:
            print(f"Fiscal year not created: {created.message}", file=sys.stderr)
            return 1
        fiscal_year_id = created.get("NewFiscalYearID")

        periods = AccountingPeriodClient(transport, principal).create_periods_for_fiscal_year(
            fiscal_year_id, args.company_id
        )
        print(f"Periods: {periods.message}")

        invoice = InvoiceClient(transport, principal).generate_invoice({
            "CustomerID": args.customer_id,
            "CompanyID": args.company_id,
            "FiscalYearID": fiscal_year_id,
            "InvoiceDate": date(args.year, 1, 5),
            "DueDate": date(args.year, 2, 5),
            "SubTotal": 5000,
            "TaxAmount": 250,
            "TotalAmount": 5250,
            "RequiresApproval": False,
        })
        print(f"Invoice: {invoice.message} {invoice.get('InvoiceNo') or ''}")

        receipt = ReceiptClient(transport, principal).create_receipt({
            "CustomerID": args.customer_id,
            "CompanyID": args.company_id,
            "FiscalYearID": fiscal_year_id,
            "LeaseInvoiceID": invoice.get("NewInvoiceID"),
            "ReceiptDate": date(args.year, 1, 10),
            "PaymentType": "Cheque",
            "ChequeNo": "000123",
            "ChequeDate": date(args.year, 1, 10),
            "BankID": 1,
            "ReceivedAmount": 5250,
        })
        print(f"Receipt: {receipt.message} {receipt.get('ReceiptNo') or ''}")
    return 0 if invoice.ok and receipt.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
