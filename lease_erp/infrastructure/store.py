"""In-memory persistence backing the reference dispatch backend."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Iterable, Protocol

from lease_erp.core.errors import not_found
from lease_erp.domain import EntityTable, Principal

Predicate = Callable[[dict[str, Any]], bool]

TABLES: dict[str, str] = {
    "fiscal_years": "FiscalYearID",
    "periods": "PeriodID",
    "receipts": "LeaseReceiptID",
    "allocations": "AllocationID",
    "postings": "PostingID",
    "invoices": "LeaseInvoiceID",
    "contracts": "ContractID",
    "contract_units": "ContractUnitID",
    "contract_charges": "ContractAdditionalChargeID",
    "attachments": "AttachmentID",
    "suppliers": "SupplierID",
    "supplier_contacts": "SupplierContactID",
    "supplier_bank_details": "SupplierBankID",
    "supplier_types": "SupplierTypeID",
    "properties": "PropertyID",
    "charges": "ChargesID",
    "doc_types": "DocTypeID",
}

LABELS: dict[str, str] = {
    "fiscal_years": "Fiscal year",
    "periods": "Period",
    "receipts": "Receipt",
    "allocations": "Allocation",
    "postings": "Posting",
    "invoices": "Invoice",
    "contracts": "Contract",
    "contract_units": "Contract unit",
    "contract_charges": "Contract charge",
    "attachments": "Attachment",
    "suppliers": "Supplier",
    "supplier_contacts": "Supplier contact",
    "supplier_bank_details": "Supplier bank detail",
    "supplier_types": "Supplier type",
    "properties": "Property",
    "charges": "Charge",
    "doc_types": "Document type",
}


def _now() -> str:
    return datetime.now().replace(microsecond=0).isoformat()


class LeaseRepository(Protocol):
    """Persistence contract for the dispatch backend."""

    def insert(self, table: str, record: dict[str, Any], principal: Principal) -> dict[str, Any]: ...

    def update(
        self, table: str, record_id: int, changes: dict[str, Any], principal: Principal
    ) -> dict[str, Any]: ...

    def soft_delete(self, table: str, record_id: int, principal: Principal) -> dict[str, Any]: ...

    def hard_delete(self, table: str, record_id: int) -> None: ...

    def get(self, table: str, record_id: int | None) -> dict[str, Any] | None: ...

    def require(self, table: str, record_id: int | None) -> dict[str, Any]: ...

    def list(self, table: str, predicate: Predicate | None = None) -> list[dict[str, Any]]: ...

    def next_number(self, series: str) -> int: ...

    def reset(self) -> None: ...


class InMemoryLeaseRepository:
    """Dict-backed tables with sequential IDs, audit stamps and soft delete."""

    def __init__(self) -> None:
        self._tables: dict[str, EntityTable] = {}
        self._series: dict[str, int] = {}
        self.reset()

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _table(self, name: str) -> EntityTable:
        try:
            return self._tables[name]
        except KeyError as exc:
            raise KeyError(f"unknown table: {name}") from exc

    @staticmethod
    def _visible(row: dict[str, Any]) -> bool:
        return row.get("RecordStatus", 1) != 0

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def insert(self, table: str, record: dict[str, Any], principal: Principal) -> dict[str, Any]:
        entity = self._table(table)
        record_id = entity.allocate_id()
        row = dict(record)
        row[entity.id_field] = record_id
        row.update(
            CreatedBy=principal.user_name,
            CreatedID=principal.user_id,
            CreatedOn=_now(),
            RecordStatus=1,
        )
        entity.rows[record_id] = row
        return dict(row)

    def update(
        self, table: str, record_id: int, changes: dict[str, Any], principal: Principal
    ) -> dict[str, Any]:
        row = self._table(table).rows.get(record_id)
        if row is None or not self._visible(row):
            raise not_found(LABELS[table], record_id)
        row.update(changes)
        row.update(UpdatedBy=principal.user_name, UpdatedID=principal.user_id, UpdatedOn=_now())
        return dict(row)

    def soft_delete(self, table: str, record_id: int, principal: Principal) -> dict[str, Any]:
        row = self._table(table).rows.get(record_id)
        if row is None or not self._visible(row):
            raise not_found(LABELS[table], record_id)
        row.update(
            RecordStatus=0,
            DeletedBy=principal.user_name,
            DeletedID=principal.user_id,
            DeletedOn=_now(),
        )
        return dict(row)

    def hard_delete(self, table: str, record_id: int) -> None:
        self._table(table).rows.pop(record_id, None)

    def get(self, table: str, record_id: int | None) -> dict[str, Any] | None:
        if record_id is None:
            return None
        row = self._table(table).rows.get(record_id)
        if row is None or not self._visible(row):
            return None
        return dict(row)

    def require(self, table: str, record_id: int | None) -> dict[str, Any]:
        row = self.get(table, record_id)
        if row is None:
            raise not_found(LABELS[table], record_id)
        return row

    def list(self, table: str, predicate: Predicate | None = None) -> list[dict[str, Any]]:
        rows: Iterable[dict[str, Any]] = (
            row for row in self._table(table).rows.values() if self._visible(row)
        )
        if predicate is not None:
            rows = (row for row in rows if predicate(row))
        return [dict(row) for row in rows]

    def next_number(self, series: str) -> int:
        value = self._series.get(series, 0) + 1
        self._series[series] = value
        return value

    def reset(self) -> None:
        self._tables = {name: EntityTable(name=name, id_field=id_field) for name, id_field in TABLES.items()}
        self._series = {}


__all__ = ["InMemoryLeaseRepository", "LABELS", "LeaseRepository", "TABLES"]
